from contextlib import closing
from typing import Final, Iterable, Iterator, List, Tuple
from langchain_core.embeddings import Embeddings

from search_memory.exceptions import CollectionNotFound, DependencyFailure, InvalidArgumentError
from search_memory.log import log
from search_memory.memory.models import MemoryQueryResult, MemoryRecord
from search_memory.memory.search_backend import QdrantSearchBackend, SearchBackend
from search_memory.memory.search_record import SearchDocument, encode_id


class SearchMemoryStore:
    """
    Semantic memory on top of a search index.

    Texts are embedded with the given embedder and stored in named collections of the search backend; queries are
    embedded the same way and answered with a lazy, relevance ordered stream of `MemoryQueryResult`.

    Attributes
    ----------
    embedder: Embeddings
        Turns texts and queries into vectors.
    backend: SearchBackend
        The search service holding the collections. Defaults to Qdrant.
    """

    def __init__(self, embedder: Embeddings, backend: SearchBackend | None = None):
        self.embedder: Final = embedder
        self.backend: Final = backend or QdrantSearchBackend()

    def _embed_query(self, text: str) -> List[float]:
        try:
            return self.embedder.embed_query(text)
        except Exception as e:
            log.error(f"Error embedding text {text[:50]!r}: {e}")
            raise DependencyFailure("embedder", str(e)) from e

    def _embed_documents(self, texts: List[str]) -> List[List[float]]:
        try:
            return self.embedder.embed_documents(texts)
        except Exception as e:
            log.error(f"Error embedding {len(texts)} texts: {e}")
            raise DependencyFailure("embedder", str(e)) from e

    def _ensure_collection_exists(self, collection: str) -> None:
        if not self.backend.collection_exists(collection):
            raise CollectionNotFound(collection)

    def get_collections(self) -> Iterator[str]:
        """
        Enumerate the collection names known to the backend.

        The listing reflects the backend at the time it is read: collections created or dropped meanwhile may or may
        not show up.
        """
        yield from self.backend.list_collections()

    def does_collection_exist(self, collection: str) -> bool:
        return self.backend.collection_exists(collection)

    def create_collection(self, collection: str) -> None:
        # the vector size is the one of the current embedder
        vector_size = len(self._embed_query("hello world"))
        self.backend.create_collection(collection, vector_size)

    def delete_collection(self, collection: str) -> None:
        self._ensure_collection_exists(collection)
        self.backend.delete_collection(collection)

    def upsert(self, collection: str, record: MemoryRecord) -> str:
        """
        Store a record, embedding its content when the record has no embedding yet.

        Args:
            collection: the target collection, created if missing
            record: the record to store

        Returns:
            str: the id of the stored record
        """

        return self.upsert_batch(collection, [record])[0]

    def upsert_batch(self, collection: str, records: Iterable[MemoryRecord]) -> List[str]:
        records = list(records)

        missing = [i for i, r in enumerate(records) if not r.embedding]
        if missing:
            vectors = self._embed_documents(
                [records[i].metadata.text or records[i].metadata.description for i in missing]
            )
            for i, vector in zip(missing, vectors):
                records[i] = records[i].model_copy(update={"embedding": vector})

        if not self.backend.collection_exists(collection):
            self.create_collection(collection)

        self.backend.upsert(collection, [SearchDocument.from_memory_record(r) for r in records])
        log.debug(f"Upserted {len(records)} records in \"{collection}\"")

        return [record.id for record in records]

    def save_information(
        self,
        collection: str,
        text: str,
        id: str,
        description: str = "",
        additional_metadata: str = "",
    ) -> str:
        record = MemoryRecord.local_record(
            id=id,
            text=text,
            embedding=self._embed_query(text),
            description=description,
            additional_metadata=additional_metadata,
        )
        return self.upsert(collection, record)

    def save_reference(
        self,
        collection: str,
        text: str,
        external_id: str,
        external_source_name: str,
        description: str = "",
        additional_metadata: str = "",
    ) -> str:
        """
        Store a reference to external content. Only the embedding of `text` is kept, not the text itself.

        Args:
            collection: the target collection, created if missing
            text: the external content, used to build the embedding
            external_id: id of the content in the external source
            external_source_name: name of the external source, e.g. a URL
            description: optional short label
            additional_metadata: optional opaque payload

        Returns:
            str: the id of the stored record
        """

        record = MemoryRecord.reference_record(
            external_id=external_id,
            source_name=external_source_name,
            embedding=self._embed_query(text),
            description=description,
            additional_metadata=additional_metadata,
        )
        return self.upsert(collection, record)

    def get(self, collection: str, key: str, with_embedding: bool = False) -> MemoryRecord | None:
        self._ensure_collection_exists(collection)

        documents = self.backend.get(collection, [encode_id(key)], with_vectors=with_embedding)
        if not documents:
            return None

        return documents[0].to_memory_record(with_embedding=with_embedding)

    def remove(self, collection: str, key: str) -> None:
        self.remove_batch(collection, [key])

    def remove_batch(self, collection: str, keys: Iterable[str]) -> None:
        self._ensure_collection_exists(collection)
        self.backend.delete(collection, [encode_id(key) for key in keys])

    def search(
        self,
        collection: str,
        query: str,
        limit: int = 1,
        min_relevance_score: float = 0.0,
        with_embeddings: bool = False,
    ) -> Iterator[MemoryQueryResult]:
        """
        Find the memories of a collection relevant to a query.

        The arguments are validated, the collection is checked and the query embedded before returning, so these
        failures are raised by the call itself. Results are then produced one at a time, in the order the backend
        ranks them, reading from the backend only as the iterator is consumed.

        Args:
            collection: the collection to search
            query: the text to search for
            limit: maximum number of results
            min_relevance_score: results scoring below this value are skipped
            with_embeddings: whether to include the embeddings in the results

        Returns:
            Iterator: the matching MemoryQueryResult, most relevant first

        Raises:
            InvalidArgumentError: if `limit` is not positive
            CollectionNotFound: if the collection does not exist, or is dropped while the results are read
            DependencyFailure: if the embedder or the backend fail
        """

        if limit <= 0:
            raise InvalidArgumentError(f"limit must be a positive integer, got {limit}")

        self._ensure_collection_exists(collection)

        query_embedding = self._embed_query(query)
        hits = self.backend.query(collection, query_embedding, query, limit, with_vectors=with_embeddings)

        return self._stream_results(hits, limit, min_relevance_score, with_embeddings)

    @staticmethod
    def _stream_results(
        hits: Iterator[Tuple[SearchDocument, float]],
        limit: int,
        min_relevance_score: float,
        with_embeddings: bool,
    ) -> Iterator[MemoryQueryResult]:
        # closing the results closes the backend stream as well
        with closing(hits):
            found = 0
            for document, score in hits:
                if score < min_relevance_score:
                    continue

                yield MemoryQueryResult(
                    record=document.to_memory_record(with_embedding=with_embeddings),
                    relevance=score,
                )

                found += 1
                if found >= limit:
                    return

    def get_nearest_match(
        self,
        collection: str,
        query: str,
        min_relevance_score: float = 0.0,
        with_embedding: bool = False,
    ) -> MemoryQueryResult | None:
        results = self.search(
            collection, query, limit=1, min_relevance_score=min_relevance_score, with_embeddings=with_embedding
        )
        with closing(results):
            return next(results, None)
