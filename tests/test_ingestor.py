from types import SimpleNamespace

import pytest

from conftest import FakeStore, csv_bytes
from ledgerlens.config.settings import settings
from ledgerlens.src.core import ingestor
from ledgerlens.src.core.ingestor import CSVIngestionPipeline


class CountingPipeline(CSVIngestionPipeline):
    pauses = 0

    async def _pause(self):
        self.pauses += 1


@pytest.mark.parametrize(
    "filename, content_type",
    [
        ("statement.csv", "text/csv"),
        ("statement.CSV", "application/octet-stream"),
        ("export.txt", "text/csv"),
        ("export", "text/csv; charset=utf-8"),
    ],
)
def test_validate_upload_accepts_csv(filename, content_type):
    CSVIngestionPipeline.validate_upload(filename, content_type)


@pytest.mark.parametrize(
    "filename, content_type, message",
    [
        ("receipt.png", "image/png", "File must be a CSV"),
        ("statement.xlsx", "application/vnd.ms-excel", "File must be a CSV"),
        (None, None, "No CSV file provided"),
        ("", "text/csv", "No CSV file provided"),
    ],
)
def test_validate_upload_rejects_non_csv(filename, content_type, message):
    with pytest.raises(ValueError, match=message):
        CSVIngestionPipeline.validate_upload(filename, content_type)


def test_load_documents_builds_one_document_per_row(tmp_path, embedder):
    path = tmp_path / "jan.csv"
    path.write_bytes(csv_bytes(3))

    docs = CSVIngestionPipeline(FakeStore(), embedder).load_documents(path, "january.csv")

    assert len(docs) == 3
    assert docs[0].page_content == "date: 2024-01-01\ndescription: Payment 0\namount: 10.00"
    assert [d.metadata for d in docs] == [{"source": "january.csv", "row": i} for i in range(3)]


async def test_rows_are_split_into_sequential_batches(tmp_path, embedder):
    path = tmp_path / "tx.csv"
    path.write_bytes(csv_bytes(120))
    store = FakeStore()
    pipeline = CountingPipeline(store, embedder, batch_size=50, batch_delay=0)

    result = await pipeline.ingest_file(path)

    assert result["total_documents"] == 120
    assert result["processed_documents"] == 120
    assert result["total_batches"] == 3
    assert result["batch_size"] == 50
    assert [r["documents_in_batch"] for r in result["results"]] == [50, 50, 20]
    assert [(r["start_index"], r["end_index"]) for r in result["results"]] == [(0, 49), (50, 99), (100, 119)]
    assert all(r["status"] == "success" and "error" not in r for r in result["results"])
    assert result["summary"] == {"successful": 3, "failed": 0}
    assert [d.metadata["row"] for d in store.added] == list(range(120))
    assert pipeline.pauses == 2


async def test_failed_batch_is_recorded_and_loop_continues(tmp_path, embedder):
    path = tmp_path / "tx.csv"
    path.write_bytes(csv_bytes(120))
    store = FakeStore(fail_on_calls={2})
    pipeline = CountingPipeline(store, embedder, batch_size=50, batch_delay=0)

    result = await pipeline.ingest_file(path)

    failed = result["results"][1]
    assert failed["status"] == "error"
    assert failed["documents_processed"] == 0
    assert failed["error"] == "embedding quota exceeded"
    assert result["results"][2]["status"] == "success"
    assert result["processed_documents"] == 70
    assert result["total_documents"] == 120
    assert result["summary"] == {"successful": 2, "failed": 1}
    assert pipeline.pauses == 2


async def test_processed_count_matches_parsed_rows(tmp_path, embedder):
    for rows in (1, 49, 50, 51, 173):
        path = tmp_path / f"tx_{rows}.csv"
        path.write_bytes(csv_bytes(rows))
        pipeline = CountingPipeline(FakeStore(), embedder, batch_size=50, batch_delay=0)

        result = await pipeline.ingest_file(path)

        assert result["processed_documents"] == result["total_documents"] == rows
        assert sum(r["documents_processed"] for r in result["results"]) == rows


async def test_header_only_csv_has_no_batches(tmp_path, embedder):
    path = tmp_path / "empty.csv"
    path.write_bytes(csv_bytes(0))

    result = await CSVIngestionPipeline(FakeStore(), embedder, batch_delay=0).ingest_file(path)

    assert result["total_documents"] == 0
    assert result["total_batches"] == 0
    assert result["results"] == []
    assert embedder.total_calls == 0


async def test_dimension_probe_embeds_first_row_once(tmp_path, embedder):
    path = tmp_path / "tx.csv"
    path.write_bytes(csv_bytes(5))

    result = await CSVIngestionPipeline(FakeStore(), embedder, batch_delay=0).ingest_file(path)

    assert embedder.query_calls == ["date: 2024-01-01\ndescription: Payment 0\namount: 10.00"]
    assert result["expected_embedding_dimension"] == settings.EMBEDDING_DIMENSION
    assert result["embedding_model"] == settings.EMBEDDING_MODEL


async def test_ingest_upload_removes_temp_file(upload_dir, embedder):
    store = FakeStore()

    result = await CSVIngestionPipeline(store, embedder, batch_delay=0).ingest_upload(csv_bytes(3), "uploads/march.csv")

    assert result["processed_documents"] == 3
    assert {d.metadata["source"] for d in store.added} == {"march.csv"}
    assert list(upload_dir.iterdir()) == []


async def test_ingest_upload_removes_temp_file_on_failure(upload_dir, embedder):
    pipeline = CSVIngestionPipeline(FakeStore(), embedder, batch_delay=0)

    with pytest.raises(Exception):
        await pipeline.ingest_upload(b"\xff\xfe\x00not-utf8", "broken.csv")

    assert list(upload_dir.iterdir()) == []


def test_batch_size_must_be_positive(embedder):
    with pytest.raises(ValueError):
        CSVIngestionPipeline(FakeStore(), embedder, batch_size=-1)


def test_zero_batch_size_is_rejected(embedder):
    with pytest.raises(ValueError, match="batch_size"):
        CSVIngestionPipeline(FakeStore(), embedder, batch_size=0)


async def test_default_pipeline_sleeps_two_seconds_between_batches(tmp_path, embedder, monkeypatch):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr(ingestor, "asyncio", SimpleNamespace(sleep=fake_sleep))
    path = tmp_path / "tx.csv"
    path.write_bytes(csv_bytes(120))

    result = await CSVIngestionPipeline(FakeStore(), embedder).ingest_file(path)

    assert settings.INGEST_BATCH_DELAY_SECONDS == 2.0
    assert result["total_batches"] == 3
    assert sleeps == [2.0, 2.0]
