"""Various utilities shared across the package."""

from typing import Any
from urllib.parse import urlparse
from pydantic import BaseModel, ConfigDict


def singleton(cls):
    def get_instance(*args, **kwargs):
        if cls not in singleton.instances:
            singleton.instances[cls] = cls(*args, **kwargs)
        return singleton.instances[cls]

    get_instance.__wrapped__ = cls
    return get_instance


singleton.instances = {}


def is_https(url: str) -> bool:
    try:
        return urlparse(url).scheme == "https"
    except ValueError:
        return False


def extract_domain_from_url(url: str) -> str:
    # "https://qdrant.example.com:6333" -> "qdrant.example.com"
    parsed = urlparse(url if "://" in url else f"//{url}")
    return parsed.hostname or url


class BaseModelDict(BaseModel):
    """A pydantic model that can also be read like a dictionary."""

    model_config = ConfigDict(extra="allow", validate_assignment=True, arbitrary_types_allowed=True)

    def __getitem__(self, key):
        return getattr(self, key)

    def __setitem__(self, key, value):
        setattr(self, key, value)

    def get(self, key: str, default: Any = None) -> Any:
        return getattr(self, key, default)

    def __contains__(self, key):
        return key in self.model_dump().keys()
