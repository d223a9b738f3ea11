import socket

from qdrant_client import QdrantClient

from search_memory.env import get_env
from search_memory.exceptions import DependencyFailure
from search_memory.log import log
from search_memory.utils import extract_domain_from_url, is_https, singleton


@singleton
class VectorDatabase:
    def __init__(self):
        self.db = self.connect_to_vector_memory()

    def connect_to_vector_memory(self) -> QdrantClient:
        qdrant_host = get_env("SEARCH_MEMORY_QDRANT_HOST")
        if qdrant_host:
            # Qdrant remote or in other container
            qdrant_port = int(get_env("SEARCH_MEMORY_QDRANT_PORT"))
            qdrant_https = is_https(qdrant_host)
            qdrant_host = extract_domain_from_url(qdrant_host)
            qdrant_api_key = get_env("SEARCH_MEMORY_QDRANT_API_KEY")

            try:
                with socket.create_connection((qdrant_host, qdrant_port), timeout=5):
                    pass
            except OSError as e:
                log.error(f"Qdrant does not respond to {qdrant_host}:{qdrant_port}")
                raise DependencyFailure("qdrant", f"{qdrant_host}:{qdrant_port} is unreachable") from e

            log.info(f"Connecting to Qdrant at {qdrant_host}:{qdrant_port}")
            return QdrantClient(
                host=qdrant_host,
                port=qdrant_port,
                https=qdrant_https,
                api_key=qdrant_api_key or None,
            )

        # Qdrant local vector DB client
        db_path = get_env("SEARCH_MEMORY_QDRANT_PATH")
        log.info(f"Qdrant path: {db_path}")

        return QdrantClient(path=db_path, force_disable_check_same_thread=True)


def get_vector_db() -> QdrantClient:
    return VectorDatabase().db
