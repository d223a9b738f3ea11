from typing import Any, List
from pydantic import field_validator

from search_memory.utils import BaseModelDict


class MemoryRecordMetadata(BaseModelDict):
    """
    Everything a memory record carries besides its embedding.

    `is_reference` is True when the record only points to external content (see `external_source_name`) instead of
    storing it in `text`. `additional_metadata` is an opaque string, e.g. serialized JSON.
    """

    id: str
    text: str = ""
    description: str = ""
    external_source_name: str = ""
    additional_metadata: str = ""
    is_reference: bool = False


class MemoryRecord(BaseModelDict):
    metadata: MemoryRecordMetadata
    embedding: List[float] | None = None

    # the search index cannot tell an empty embedding from a missing one
    @field_validator("embedding", mode="before")
    @classmethod
    def _empty_as_no_embedding(cls, value: Any) -> Any:
        if value is not None and len(value) == 0:
            return None
        return value

    @property
    def id(self) -> str:
        return self.metadata.id

    @classmethod
    def local_record(
        cls,
        id: str,
        text: str,
        embedding: List[float] | None = None,
        description: str = "",
        additional_metadata: str = "",
    ) -> "MemoryRecord":
        """
        Build a record whose content is stored inline.

        Args:
            id: caller-assigned identifier, unique within a collection
            text: the content
            embedding: the content embedding
            description: optional short label
            additional_metadata: optional opaque payload

        Returns:
            MemoryRecord: the record, with `is_reference` set to False
        """

        return cls(
            metadata=MemoryRecordMetadata(
                id=id,
                text=text,
                description=description,
                additional_metadata=additional_metadata,
                is_reference=False,
            ),
            embedding=embedding,
        )

    @classmethod
    def reference_record(
        cls,
        external_id: str,
        source_name: str,
        embedding: List[float] | None = None,
        description: str = "",
        additional_metadata: str = "",
    ) -> "MemoryRecord":
        """
        Build a record that references content living elsewhere (a URL, a file path, ...).

        Args:
            external_id: identifier of the content in the external source
            source_name: name of the external source
            embedding: the content embedding
            description: optional short label
            additional_metadata: optional opaque payload

        Returns:
            MemoryRecord: the record, with empty text and `is_reference` set to True
        """

        return cls(
            metadata=MemoryRecordMetadata(
                id=external_id,
                text="",
                description=description,
                external_source_name=source_name,
                additional_metadata=additional_metadata,
                is_reference=True,
            ),
            embedding=embedding,
        )


class MemoryQueryResult(BaseModelDict):
    """A record matching a search, with the relevance assigned by the backend (higher is more relevant)."""

    record: MemoryRecord
    relevance: float

    @property
    def metadata(self) -> MemoryRecordMetadata:
        return self.record.metadata

    @property
    def embedding(self) -> List[float] | None:
        return self.record.embedding
