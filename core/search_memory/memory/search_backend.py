import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Tuple, Final
from qdrant_client import QdrantClient
from qdrant_client.http.models import (
    Distance,
    PointIdsList,
    PointStruct,
    QuantizationSearchParams,
    Record,
    ScoredPoint,
    SearchParams,
    VectorParams,
)

from search_memory.db.vector_database import get_vector_db
from search_memory.env import get_env
from search_memory.exceptions import CollectionNotFound, DependencyFailure, InvalidArgumentError
from search_memory.log import log
from search_memory.memory.search_record import SearchDocument, SearchField


class SearchBackend(ABC):
    """The search service as seen by the memory store: collections of `SearchDocument`, ranked by vector."""

    @abstractmethod
    def list_collections(self) -> Iterator[str]:
        pass

    @abstractmethod
    def collection_exists(self, collection_name: str) -> bool:
        pass

    @abstractmethod
    def create_collection(self, collection_name: str, vector_size: int) -> None:
        pass

    @abstractmethod
    def delete_collection(self, collection_name: str) -> None:
        pass

    @abstractmethod
    def query(
        self,
        collection_name: str,
        vector: List[float],
        text_hint: str,
        candidate_count: int,
        with_vectors: bool = False,
    ) -> Iterator[Tuple[SearchDocument, float]]:
        """
        Rank the documents of a collection against a vector.

        Args:
            collection_name: the collection to query
            vector: the query embedding
            text_hint: the query text, for backends able to mix it into the ranking
            candidate_count: how many candidates to rank at most
            with_vectors: whether to return the document embeddings

        Returns:
            Iterator: (document, score) pairs, most relevant first
        """
        pass

    @abstractmethod
    def upsert(self, collection_name: str, documents: List[SearchDocument]) -> List[str]:
        pass

    @abstractmethod
    def get(self, collection_name: str, keys: List[str], with_vectors: bool = False) -> List[SearchDocument]:
        pass

    @abstractmethod
    def delete(self, collection_name: str, keys: List[str]) -> None:
        pass


@contextmanager
def qdrant_call(operation: str):
    try:
        yield
    except Exception as e:
        log.error(f"Qdrant {operation} failed: {e}")
        raise DependencyFailure("qdrant", f"{operation} failed: {e}") from e


def to_point_id(key: str) -> str:
    # Qdrant only accepts unsigned integers and UUIDs as point ids.
    # surrogatepass keeps keys that could not be encoded hashable
    return str(uuid.uuid5(uuid.NAMESPACE_URL, key.encode("utf-8", "surrogatepass").hex()))


class QdrantSearchBackend(SearchBackend):
    def __init__(self, client: QdrantClient | None = None, page_size: int | None = None):
        # connects to Qdrant unless a client is given
        self.client: Final = client or get_vector_db()
        self.page_size: Final[int] = page_size or int(get_env("SEARCH_MEMORY_QUERY_PAGE_SIZE"))

        if self.page_size <= 0:
            raise InvalidArgumentError(f"Query page size must be positive, got {self.page_size}")

    def list_collections(self) -> Iterator[str]:
        with qdrant_call("get_collections"):
            response = self.client.get_collections()

        for collection in response.collections:
            yield collection.name

    def collection_exists(self, collection_name: str) -> bool:
        with qdrant_call("collection_exists"):
            return self.client.collection_exists(collection_name)

    def create_collection(self, collection_name: str, vector_size: int) -> None:
        log.warning(f"Creating collection \"{collection_name}\" ...")

        with qdrant_call("create_collection"):
            self.client.create_collection(
                collection_name=collection_name,
                vectors_config={
                    str(SearchField.EMBEDDING): VectorParams(size=vector_size, distance=Distance.COSINE),
                },
            )

    def delete_collection(self, collection_name: str) -> None:
        log.warning(f"Deleting collection \"{collection_name}\" ...")

        with qdrant_call("delete_collection"):
            self.client.delete_collection(collection_name)

    def query(
        self,
        collection_name: str,
        vector: List[float],
        text_hint: str,
        candidate_count: int,
        with_vectors: bool = False,
    ) -> Iterator[Tuple[SearchDocument, float]]:
        """
        Page through the ranked points of a collection. A page is requested only once the previous one has been
        consumed. Qdrant ranks on the vector alone, so `text_hint` is only logged.

        Raises `CollectionNotFound` if the collection is dropped while the pages are read.
        """

        log.debug(f"Querying \"{collection_name}\" for {candidate_count} candidates, text: {text_hint!r}")

        offset = 0
        consumed = 0
        try:
            while offset < candidate_count:
                limit = min(self.page_size, candidate_count - offset)
                try:
                    with qdrant_call("query_points"):
                        response = self.client.query_points(
                            collection_name=collection_name,
                            query=vector,
                            using=str(SearchField.EMBEDDING),
                            limit=limit,
                            offset=offset,
                            with_payload=True,
                            with_vectors=with_vectors,
                            search_params=SearchParams(
                                quantization=QuantizationSearchParams(
                                    ignore=False,
                                    rescore=True,
                                    oversampling=2.0,
                                )
                            ),
                        )
                except DependencyFailure as e:
                    # local and remote clients report a missing collection differently
                    if not self.collection_exists(collection_name):
                        raise CollectionNotFound(collection_name) from e
                    raise

                for point in response.points:
                    yield self._to_document(point), point.score
                    consumed += 1

                if len(response.points) < limit:
                    return

                offset += len(response.points)
        finally:
            log.debug(f"Query on \"{collection_name}\" closed after {consumed} ranked points")

    def upsert(self, collection_name: str, documents: List[SearchDocument]) -> List[str]:
        points = []
        for document in documents:
            if not document.embedding:
                raise InvalidArgumentError(f"Document {document.id!r} has no embedding")

            points.append(PointStruct(
                id=to_point_id(document.id),
                vector={str(SearchField.EMBEDDING): document.embedding},
                payload=document.to_payload(),
            ))

        with qdrant_call("upsert"):
            self.client.upsert(collection_name=collection_name, points=points)

        return [document.id for document in documents]

    def get(self, collection_name: str, keys: List[str], with_vectors: bool = False) -> List[SearchDocument]:
        with qdrant_call("retrieve"):
            points = self.client.retrieve(
                collection_name=collection_name,
                ids=[to_point_id(key) for key in keys],
                with_payload=True,
                with_vectors=with_vectors,
            )

        return [self._to_document(point) for point in points]

    def delete(self, collection_name: str, keys: Iterable[str]) -> None:
        with qdrant_call("delete"):
            self.client.delete(
                collection_name=collection_name,
                points_selector=PointIdsList(points=[to_point_id(key) for key in keys]),
            )

    @staticmethod
    def _to_document(point: Record | ScoredPoint) -> SearchDocument:
        vector = point.vector
        if isinstance(vector, dict):
            vector = vector.get(str(SearchField.EMBEDDING))

        return SearchDocument.from_payload(point.payload or {}, vector)
