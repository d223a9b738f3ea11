class SearchMemoryError(Exception):
    pass


class InvalidArgumentError(SearchMemoryError, ValueError):
    pass


class DependencyFailure(SearchMemoryError):
    """An external collaborator (embedder or search backend) failed."""

    def __init__(self, dependency: str, message: str):
        self.dependency = dependency
        super().__init__(f"{dependency}: {message}")


class CollectionNotFound(SearchMemoryError, LookupError):
    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(f"Collection \"{collection}\" does not exist")
