# Error kinds raised by the graph services.
# Read paths model "not found" as None / empty lists; these exceptions are for
# mutations and for failures the caller has to tell apart.


class GraphError(Exception):
    """Base class for errors surfaced by the service layer"""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(GraphError):
    """A write path required an existing row that is missing"""


class ConflictError(GraphError):
    """Uniqueness, composite-key or foreign-key violation"""


class DependencyUnavailableError(GraphError):
    """The relational store or the cache is unreachable or timed out"""


class ValidationFailureError(GraphError):
    """Malformed input rejected before any store call"""
