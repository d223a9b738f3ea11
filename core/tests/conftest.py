import pytest
from qdrant_client import QdrantClient

from search_memory.db.vector_database import VectorDatabase
from search_memory.memory.search_backend import QdrantSearchBackend
from search_memory.memory.search_memory_store import SearchMemoryStore
import search_memory.utils as utils

from tests.utils import (
    FakeSearchBackend,
    KeywordEmbedder,
    get_class_from_decorated_singleton,
)


# substitute classes' methods where necessary for testing purposes
def mock_classes(monkeypatch):
    # Use in memory vector db
    def mock_connect_to_vector_memory(self, *args, **kwargs):
        return QdrantClient(":memory:")

    monkeypatch.setattr(
        get_class_from_decorated_singleton(VectorDatabase), "connect_to_vector_memory", mock_connect_to_vector_memory
    )


def should_skip_encapsulation(request):
    return request.node.get_closest_marker("skip_encapsulation") is not None


@pytest.fixture(autouse=True)
def encapsulate_each_test(request, monkeypatch):
    # delete all singletons!!!
    utils.singleton.instances = {}

    if should_skip_encapsulation(request):
        # Skip the in-memory Qdrant for tests marked with @pytest.mark.skip_encapsulation
        yield

        utils.singleton.instances = {}
        return

    # monkeypatch classes
    mock_classes(monkeypatch)

    # force paging in the tests
    monkeypatch.setenv("SEARCH_MEMORY_QUERY_PAGE_SIZE", "2")

    yield

    utils.singleton.instances = {}


@pytest.fixture
def embedder():
    yield KeywordEmbedder()


@pytest.fixture
def qdrant_backend():
    yield QdrantSearchBackend()


# the memory store against the in-memory Qdrant
@pytest.fixture
def store(embedder, qdrant_backend):
    yield SearchMemoryStore(embedder=embedder, backend=qdrant_backend)


@pytest.fixture
def fake_backend():
    yield FakeSearchBackend()


# the memory store against canned results, to control the scores
@pytest.fixture
def fake_store(embedder, fake_backend):
    yield SearchMemoryStore(embedder=embedder, backend=fake_backend)
