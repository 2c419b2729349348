"""Project-specific exceptions for elastic-frame."""


class ElasticFrameError(Exception):
    """Base exception for the project."""


class InvalidArgumentError(ValueError, ElasticFrameError):
    """Raised when a resource or fragment is built from invalid arguments."""


class InvalidCombinationError(TypeError, ElasticFrameError):
    """Raised when two fragments cannot be combined into one request."""

    def __init__(self, left: str, right: str, shared: tuple[str, ...] = ()) -> None:
        """Build exception payload for unsupported fragment pairs."""
        if shared:
            message = f"Cannot combine '{left}' with '{right}': both define {', '.join(shared)}."
        else:
            message = f"Cannot combine '{left}' with '{right}'. Supported pairs: query + sort, query + aggs."
        super().__init__(message)


class HttpStatusError(RuntimeError, ElasticFrameError):
    """Raised when the cluster answers a request with a non-2xx status."""

    def __init__(self, *, method: str, url: str, status_code: int, reason: str) -> None:
        """Build exception payload for failed HTTP requests."""
        self.method = method
        self.url = url
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"{method} {url} failed with HTTP {status_code}: {reason}")


class ApprovalRequiredError(PermissionError, ElasticFrameError):
    """Raised when a destructive deletion is requested without approval."""

    def __init__(self, target: str) -> None:
        """Build exception payload for unapproved deletions."""
        super().__init__(
            f"Deleting '{target}' requires approve=True or an explicit sequence of document ids.",
        )


class BulkIndexingError(RuntimeError, ElasticFrameError):
    """Raised when a bulk request succeeds but reports failed items."""

    def __init__(self, *, failed_items: int, first_reason: str) -> None:
        """Build exception payload for partially failed bulk requests."""
        self.failed_items = failed_items
        self.first_reason = first_reason
        super().__init__(f"Bulk request reported {failed_items} failed item(s); first error: {first_reason}")
