from typing import Dict, Iterator, List, Tuple
from langchain_core.embeddings import Embeddings

from search_memory.exceptions import DependencyFailure
from search_memory.memory.models import MemoryRecord
from search_memory.memory.search_backend import SearchBackend
from search_memory.memory.search_record import SearchDocument

collection_name = "docs-2024"


def get_class_from_decorated_singleton(singleton):
    return singleton.__wrapped__


class KeywordEmbedder(Embeddings):
    """Counts a few known words: texts sharing more words with the query rank higher."""

    vocabulary = ["renewal", "policy", "contract", "queen", "garden", "tea"]

    def _embed(self, text: str) -> List[float]:
        words = text.lower().split()
        # the trailing component keeps the vector away from zero
        return [float(words.count(w)) for w in self.vocabulary] + [0.1]

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        return [self._embed(t) for t in texts]

    def embed_query(self, text: str) -> List[float]:
        return self._embed(text)


class FailingEmbedder(Embeddings):
    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        raise RuntimeError("embedding service unavailable")

    def embed_query(self, text: str) -> List[float]:
        raise RuntimeError("embedding service unavailable")


class FakeSearchBackend(SearchBackend):
    """
    In-memory backend returning canned (document, score) pairs in the given order, paged like a remote cursor.
    It ignores `candidate_count` and returns every stored document, as a backend is allowed to return more.
    """

    def __init__(self, page_size: int = 2, fail_after_pages: int | None = None):
        self.collections: Dict[str, List[Tuple[SearchDocument, float]]] = {}
        self.page_size = page_size
        self.fail_after_pages = fail_after_pages
        self.pages_served = 0
        self.closed = False
        self.queries = []

    def add(self, collection: str, record: MemoryRecord, score: float) -> None:
        self.collections.setdefault(collection, []).append((SearchDocument.from_memory_record(record), score))

    def list_collections(self) -> Iterator[str]:
        yield from list(self.collections.keys())

    def collection_exists(self, collection_name: str) -> bool:
        return collection_name in self.collections

    def create_collection(self, collection_name: str, vector_size: int) -> None:
        self.collections[collection_name] = []

    def delete_collection(self, collection_name: str) -> None:
        del self.collections[collection_name]

    def query(self, collection_name, vector, text_hint, candidate_count, with_vectors=False):
        self.queries.append((collection_name, text_hint, candidate_count, with_vectors))

        ranked = self.collections[collection_name]
        try:
            for start in range(0, len(ranked), self.page_size):
                if self.fail_after_pages is not None and self.pages_served >= self.fail_after_pages:
                    raise DependencyFailure("fake", "connection reset")
                self.pages_served += 1
                yield from ranked[start:start + self.page_size]
        finally:
            self.closed = True

    def upsert(self, collection_name: str, documents: List[SearchDocument]) -> List[str]:
        self.collections[collection_name].extend((d, 1.0) for d in documents)
        return [d.id for d in documents]

    def get(self, collection_name: str, keys: List[str], with_vectors: bool = False) -> List[SearchDocument]:
        return [d for d, _ in self.collections[collection_name] if d.id in keys]

    def delete(self, collection_name: str, keys: List[str]) -> None:
        self.collections[collection_name] = [(d, s) for d, s in self.collections[collection_name] if d.id not in keys]


def make_record(id: str, text: str, embedding: List[float] | None = None, **metadata) -> MemoryRecord:
    return MemoryRecord.local_record(id=id, text=text, embedding=embedding or [0.1, 0.2, 0.3], **metadata)
