"""
Search index record and field definition.

Note: the backend field names are part of the index definition; once an index exists they cannot be changed.
"""

import base64
import binascii
import re
from typing import Any, Dict, Final, List, NamedTuple
from pydantic import BaseModel, Field, field_validator

from search_memory.enums import Enum
from search_memory.log import log
from search_memory.memory.models import MemoryRecord, MemoryRecordMetadata


class SearchField(Enum):
    ID = "id"
    TEXT = "content"
    EMBEDDING = "contentVector"
    EXTERNAL_SOURCE_NAME = "url"
    DESCRIPTION = "filepath"
    ADDITIONAL_METADATA = "AdditionalMetadata"
    IS_REFERENCE = "IsReference"


# SearchDocument attribute -> backend field
SEARCH_FIELDS: Final[Dict[str, SearchField]] = {
    "id": SearchField.ID,
    "text": SearchField.TEXT,
    "embedding": SearchField.EMBEDDING,
    "external_source_name": SearchField.EXTERNAL_SOURCE_NAME,
    "description": SearchField.DESCRIPTION,
    "additional_metadata": SearchField.ADDITIONAL_METADATA,
    "is_reference": SearchField.IS_REFERENCE,
}


class IdConversion(NamedTuple):
    value: str
    degraded: bool = False


def convert_id_to_key(real_id: str) -> IdConversion:
    """
    Encode an id with a URL-safe algorithm.

    Search keys can contain only letters, digits, underscore, dash and equal sign, so the UTF-8 bytes of the id are
    rendered with the URL-safe base64 alphabet.

    Args:
        real_id: the original id

    Returns:
        IdConversion: the key, or the original id flagged as degraded when it cannot be encoded
    """

    try:
        return IdConversion(base64.urlsafe_b64encode(real_id.encode("utf-8")).decode("ascii"))
    except (UnicodeError, TypeError, AttributeError):
        return IdConversion(real_id, degraded=True)


def convert_key_to_id(encoded_id: str) -> IdConversion:
    """
    Decode a key produced by `convert_id_to_key`.

    Args:
        encoded_id: the search key

    Returns:
        IdConversion: the original id, or the key flagged as degraded when it is not a valid encoding
    """

    try:
        raw = base64.b64decode(encoded_id, altchars=b"-_", validate=True)
        return IdConversion(raw.decode("utf-8"))
    except (binascii.Error, ValueError, TypeError):
        return IdConversion(encoded_id, degraded=True)


def encode_id(real_id: str) -> str:
    conversion = convert_id_to_key(real_id)
    if conversion.degraded:
        log.warning(f"Unable to encode id {real_id!r}, using it as search key")

    return conversion.value


def decode_id(encoded_id: str) -> str:
    conversion = convert_key_to_id(encoded_id)
    if conversion.degraded:
        # documents inserted without going through encode_id land here
        log.debug(f"Search key {encoded_id!r} is not encoded, using it as id")

    return conversion.value


SURROGATE_ESCAPE: Final = re.compile(r"\\u(d[89a-f][0-9a-f]{2})")


def escape_key(key: str) -> str:
    """
    Make a search key storable as JSON text.

    Keys produced by `encode_id` are ASCII already. A key that could not be encoded still carries lone surrogates,
    which are written as `\\udXXX` escapes.
    """

    return "".join(f"\\u{ord(c):04x}" if 0xD800 <= ord(c) <= 0xDFFF else c for c in key)


def unescape_key(value: str) -> str:
    return SURROGATE_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), value)


class SearchDocument(BaseModel):
    """
    A memory record shaped for the search index: encoded id, optional strings normalised to "".

    Build it with `from_memory_record` (write path) or `from_payload` (read path); the `id` attribute always holds
    the encoded key.
    """

    id: str
    text: str = ""
    embedding: List[float] = Field(default_factory=list)
    description: str = ""
    additional_metadata: str = ""
    external_source_name: str = ""
    is_reference: bool = False

    @field_validator("text", "description", "additional_metadata", "external_source_name", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("embedding", mode="before")
    @classmethod
    def _none_as_no_embedding(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("is_reference", mode="before")
    @classmethod
    def _none_as_not_reference(cls, value: Any) -> Any:
        return False if value is None else value

    @classmethod
    def from_memory_record(cls, record: MemoryRecord, external_source_name: str | None = None) -> "SearchDocument":
        """
        Create a search document from a memory record.

        Args:
            record: the memory record
            external_source_name: overrides the external source name stored in the record metadata

        Returns:
            SearchDocument: the document, with the id encoded
        """

        metadata = record.metadata
        if external_source_name is None:
            external_source_name = metadata.external_source_name

        return cls(
            id=encode_id(metadata.id),
            text=metadata.text,
            embedding=record.embedding,
            description=metadata.description,
            additional_metadata=metadata.additional_metadata,
            external_source_name=external_source_name,
            is_reference=metadata.is_reference,
        )

    def to_memory_record_metadata(self) -> MemoryRecordMetadata:
        return MemoryRecordMetadata(
            id=decode_id(self.id),
            text=self.text,
            description=self.description,
            external_source_name=self.external_source_name,
            additional_metadata=self.additional_metadata,
            is_reference=self.is_reference,
        )

    def to_memory_record(self, with_embedding: bool = True) -> MemoryRecord:
        """
        Convert the document back to a memory record.

        Args:
            with_embedding: whether to include the embedding in the record

        Returns:
            MemoryRecord: the record, with the id decoded
        """

        # an empty embedding is no embedding, see MemoryRecord
        return MemoryRecord(
            metadata=self.to_memory_record_metadata(),
            embedding=list(self.embedding) if with_embedding else None,
        )

    def to_payload(self) -> Dict[str, Any]:
        """Render the document under the backend field names, without the embedding."""
        payload = {
            str(SEARCH_FIELDS[name]): value
            for name, value in self.model_dump().items()
            if SEARCH_FIELDS[name] != SearchField.EMBEDDING
        }
        payload[str(SearchField.ID)] = escape_key(self.id)

        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], embedding: List[float] | None = None) -> "SearchDocument":
        values = {name: payload.get(str(field)) for name, field in SEARCH_FIELDS.items()}
        values["embedding"] = embedding
        values["id"] = unescape_key("" if values["id"] is None else str(values["id"]))

        return cls(**values)
