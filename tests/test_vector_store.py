import pytest
from langchain_core.documents import Document

from ledgerlens.src.database.vector_store import TransactionVectorStore, document_id


def _doc(text, row, source="statement.csv"):
    return Document(page_content=text, metadata={"source": source, "row": row})


@pytest.fixture
def store(tmp_path, embedder):
    return TransactionVectorStore(embedder, uri=str(tmp_path / "lancedb"), table_name="tx_test", dimension=embedder.dimension)


def test_new_table_is_empty(store):
    assert store.count() == 0
    assert store.table_name == "tx_test"


def test_add_documents_embeds_and_counts(store, embedder):
    added = store.add_documents([_doc("alpha payment", 0), _doc("beta deposit", 1), _doc("gamma fee", 2)])

    assert added == 3
    assert store.count() == 3
    assert embedder.document_calls == [["alpha payment", "beta deposit", "gamma fee"]]


def test_add_documents_upserts_by_source_and_row(store):
    store.add_documents([_doc("alpha payment", 0), _doc("beta deposit", 1)])
    store.add_documents([_doc("alpha payment (corrected)", 0)])

    assert store.count() == 2
    matches = store.similarity_search_with_score("alpha", k=1)
    assert matches[0][0].page_content == "alpha payment (corrected)"


def test_same_row_from_another_file_is_a_new_document(store):
    store.add_documents([_doc("alpha payment", 0, source="jan.csv")])
    store.add_documents([_doc("alpha payment", 0, source="feb.csv")])

    assert store.count() == 2


def test_search_returns_similarity_scores_most_similar_first(store):
    store.add_documents([_doc("beta deposit", 0), _doc("alpha payment", 1), _doc("delta transfer", 2)])

    matches = store.similarity_search_with_score("alpha", k=3)

    assert len(matches) == 3
    top_doc, top_score = matches[0]
    assert top_doc.page_content == "alpha payment"
    assert top_doc.metadata["source"] == "statement.csv"
    assert top_doc.metadata["row"] == 1
    assert top_score == pytest.approx(1.0, abs=1e-3)
    scores = [score for _, score in matches]
    assert scores == sorted(scores, reverse=True)
    assert scores[-1] < 0.5


def test_search_by_vector_respects_k(store, embedder):
    store.add_documents([_doc(f"alpha {i}", i) for i in range(5)])

    matches = store.similarity_search_by_vector_with_score(embedder.embed_query("alpha"), k=2)

    assert len(matches) == 2


def test_search_on_empty_table_returns_nothing(store):
    assert store.similarity_search_with_score("alpha", k=4) == []


def test_drop_table(store):
    store.add_documents([_doc("alpha payment", 0)])
    store.drop_table()

    assert store.count() == 0


def test_document_id_is_stable():
    assert document_id("jan.csv", 3) == document_id("jan.csv", 3)
    assert document_id("jan.csv", 3) != document_id("jan.csv", 4)
    assert document_id("jan.csv", 3) != document_id("feb.csv", 3)
