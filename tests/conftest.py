"""Shared fakes for the embedding client, vector store and chat model."""

import os

# Settings() requires a key at import time; no test talks to Gemini.
os.environ.setdefault("GOOGLE_API_KEY", "test-google-api-key")

import pytest
from langchain_core.documents import Document
from langchain_core.messages import AIMessage

from ledgerlens.config.settings import settings


class KeywordEmbedder:
    """One dimension per vocabulary word; counts occurrences, plus a small floor."""

    def __init__(self, vocabulary=("alpha", "beta", "gamma", "delta")):
        self.vocabulary = tuple(vocabulary)
        self.query_calls = []
        self.document_calls = []

    @property
    def dimension(self):
        return len(self.vocabulary)

    def _vector(self, text):
        lowered = text.lower()
        return [lowered.count(word) + 0.01 for word in self.vocabulary]

    def embed_query(self, text):
        self.query_calls.append(text)
        return self._vector(text)

    def embed_documents(self, texts):
        self.document_calls.append(list(texts))
        return [self._vector(t) for t in texts]

    @property
    def total_calls(self):
        return len(self.query_calls) + len(self.document_calls)


class FakeStore:
    """Records upserts and serves canned search results."""

    table_name = "fake_transactions"

    def __init__(self, matches=None, fail_on_calls=()):
        self.matches = list(matches or [])
        self.fail_on_calls = set(fail_on_calls)
        self.added = []
        self.add_calls = 0
        self.search_limits = []

    def add_documents(self, documents):
        self.add_calls += 1
        if self.add_calls in self.fail_on_calls:
            raise RuntimeError("embedding quota exceeded")
        self.added.extend(documents)
        return len(documents)

    def similarity_search_by_vector_with_score(self, vector, k=4):
        self.search_limits.append(k)
        return self.matches[:k]

    def count(self):
        return len(self.added)


class RecordingLLM:
    """Chat-model stand-in that returns a fixed reply and keeps every prompt."""

    def __init__(self, reply="stub answer"):
        self.reply = reply
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        return AIMessage(content=self.reply)


def make_match(text, score, row=0):
    return (Document(page_content=text, metadata={"source": "statement.csv", "row": row}), score)


def csv_bytes(rows):
    lines = ["date,description,amount"]
    lines.extend(f"2024-01-{(i % 28) + 1:02d},Payment {i},{10 + i}.00" for i in range(rows))
    return ("\n".join(lines) + "\n").encode("utf-8")


@pytest.fixture
def embedder():
    return KeywordEmbedder()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_TMP_DIR", path)
    return path
