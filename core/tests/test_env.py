import pytest

from search_memory.env import get_env, get_supported_env_variables


@pytest.mark.skip_encapsulation
def test_get_env_defaults(monkeypatch):
    for name in get_supported_env_variables():
        monkeypatch.delenv(name, raising=False)

    assert get_env("SEARCH_MEMORY_QDRANT_HOST") == ""
    assert get_env("SEARCH_MEMORY_QDRANT_PORT") == "6333"
    assert get_env("SEARCH_MEMORY_QDRANT_PATH") == "data/local_vector_memory/"
    assert get_env("SEARCH_MEMORY_LOG_LEVEL") == "INFO"
    assert get_env("SEARCH_MEMORY_QUERY_PAGE_SIZE") == "50"


def test_get_env_override(monkeypatch):
    monkeypatch.setenv("SEARCH_MEMORY_QDRANT_PORT", "7000")

    assert get_env("SEARCH_MEMORY_QDRANT_PORT") == "7000"


# the tests force a small page to exercise paging
def test_page_size_in_tests():
    assert get_env("SEARCH_MEMORY_QUERY_PAGE_SIZE") == "2"


def test_get_env_unknown(monkeypatch):
    monkeypatch.delenv("SEARCH_MEMORY_UNKNOWN", raising=False)

    assert get_env("SEARCH_MEMORY_UNKNOWN") is None
