import pytest
from qdrant_client import QdrantClient

from search_memory.db.vector_database import VectorDatabase, get_vector_db
from search_memory.exceptions import DependencyFailure


def test_get_vector_db():
    client = get_vector_db()

    assert isinstance(client, QdrantClient)
    # one connection shared by the whole package
    assert get_vector_db() is client
    assert VectorDatabase().db is client


@pytest.mark.skip_encapsulation
def test_unreachable_qdrant(monkeypatch):
    monkeypatch.setenv("SEARCH_MEMORY_QDRANT_HOST", "http://127.0.0.1")
    monkeypatch.setenv("SEARCH_MEMORY_QDRANT_PORT", "1")

    with pytest.raises(DependencyFailure) as e:
        get_vector_db()

    assert e.value.dependency == "qdrant"
    assert isinstance(e.value.__cause__, OSError)


@pytest.mark.skip_encapsulation
def test_local_qdrant(monkeypatch, tmp_path):
    monkeypatch.delenv("SEARCH_MEMORY_QDRANT_HOST", raising=False)
    monkeypatch.setenv("SEARCH_MEMORY_QDRANT_PATH", str(tmp_path))

    client = get_vector_db()

    assert isinstance(client, QdrantClient)
    assert get_vector_db() is client

    client.close()
