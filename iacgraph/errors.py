"""
Error taxonomy for the dependency graph engine.

Every failure raised by the engine carries a stable error code, a
human-readable message and structured context (execution id, tenant id,
node id, query) so callers can report it without string parsing.

Taxonomy:
    NotFoundError: missing graph, execution or node
    InvalidQueryError: malformed parameters (e.g. max_depth <= 0)
    LimitExceededError: hard caps hit where truncation cannot be reported
    InternalError: unexpected fault
    OperationCancelledError: cooperative cancellation observed

Result caps on path and cycle enumeration are reported through a
``truncated`` flag on the result, never by raising.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Stable error codes exposed in serialized errors."""

    GRAPH_NOT_FOUND = "GRAPH_NOT_FOUND"
    NODE_NOT_FOUND = "NODE_NOT_FOUND"
    EDGE_NOT_FOUND = "EDGE_NOT_FOUND"
    INVALID_QUERY = "INVALID_QUERY"
    INVALID_GRAPH = "INVALID_GRAPH"
    LIMIT_EXCEEDED = "LIMIT_EXCEEDED"
    CANCELLED = "CANCELLED"
    INTERNAL = "INTERNAL"
    BLAST_NO_DATA = "BLAST_NO_DATA"
    BLAST_NODE_NOT_FOUND = "BLAST_NODE_NOT_FOUND"
    BLAST_INVALID_QUERY = "BLAST_INVALID_QUERY"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.GRAPH_NOT_FOUND: "The dependency graph was not found.",
    ErrorCode.NODE_NOT_FOUND: "The requested node does not exist in the graph.",
    ErrorCode.EDGE_NOT_FOUND: "The requested edge does not exist in the graph.",
    ErrorCode.INVALID_QUERY: "The query parameters are invalid.",
    ErrorCode.INVALID_GRAPH: "The graph failed validation.",
    ErrorCode.LIMIT_EXCEEDED: "A configured result limit was exceeded.",
    ErrorCode.CANCELLED: "The operation was cancelled.",
    ErrorCode.INTERNAL: "An unexpected internal error occurred.",
    ErrorCode.BLAST_NO_DATA: "No graph data is available for blast radius analysis.",
    ErrorCode.BLAST_NODE_NOT_FOUND: "A blast radius source node was not found.",
    ErrorCode.BLAST_INVALID_QUERY: "The blast radius query is invalid.",
}

SUGGESTED_ACTIONS: dict[ErrorCode, str] = {
    ErrorCode.GRAPH_NOT_FOUND: "Register the graph for this execution and tenant before querying.",
    ErrorCode.NODE_NOT_FOUND: "Check the node id against the registered graph for this execution.",
    ErrorCode.EDGE_NOT_FOUND: "Check the edge id against the registered graph for this execution.",
    ErrorCode.INVALID_QUERY: "Fix the query parameters and retry.",
    ErrorCode.INVALID_GRAPH: "Inspect the validation report for dangling or duplicate elements.",
    ErrorCode.LIMIT_EXCEEDED: "Narrow the query (lower max_depth or filter edge types).",
    ErrorCode.CANCELLED: "Retry the operation if the result is still needed.",
    ErrorCode.INTERNAL: "Report the error with its context.",
    ErrorCode.BLAST_NO_DATA: "Register the merged graph for this execution before analysis.",
    ErrorCode.BLAST_NODE_NOT_FOUND: "Use node ids from the registered merged graph.",
    ErrorCode.BLAST_INVALID_QUERY: "Fix the blast radius query parameters and retry.",
}

RETRYABLE_CODES = frozenset({ErrorCode.CANCELLED, ErrorCode.INTERNAL})


class GraphEngineError(Exception):
    """Base class for all engine errors."""

    default_code = ErrorCode.INTERNAL

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        **context: Any,
    ):
        self.code = code or self.default_code
        self.message = message or ERROR_MESSAGES[self.code]
        self.context = {k: v for k, v in context.items() if v is not None}
        super().__init__(self.message)

    @property
    def suggested_action(self) -> str:
        return SUGGESTED_ACTIONS[self.code]

    @property
    def retryable(self) -> bool:
        return self.code in RETRYABLE_CODES

    def to_dict(self) -> dict[str, Any]:
        """Serialize for reporting layers."""
        return {
            "error": type(self).__name__,
            "code": self.code.value,
            "message": self.message,
            "context": self.context,
            "suggested_action": self.suggested_action,
            "retryable": self.retryable,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value!r}, message={self.message!r}, context={self.context!r})"


class NotFoundError(GraphEngineError):
    default_code = ErrorCode.GRAPH_NOT_FOUND


class GraphNotFoundError(NotFoundError):
    """No graph registered for the (execution, tenant) key."""

    def __init__(self, execution_id: str, tenant_id: Optional[str] = None, **context: Any):
        super().__init__(
            f"Graph not found for execution {execution_id!r}",
            ErrorCode.GRAPH_NOT_FOUND,
            execution_id=execution_id,
            tenant_id=tenant_id,
            **context,
        )


class NodeNotFoundError(NotFoundError):
    """A referenced node id is absent from the registered graph."""

    def __init__(self, node_id: str, execution_id: Optional[str] = None, **context: Any):
        super().__init__(
            f"Node not found in graph: {node_id!r}",
            ErrorCode.NODE_NOT_FOUND,
            node_id=node_id,
            execution_id=execution_id,
            **context,
        )


class EdgeNotFoundError(NotFoundError):
    def __init__(self, edge_id: str, execution_id: Optional[str] = None, **context: Any):
        super().__init__(
            f"Edge not found in graph: {edge_id!r}",
            ErrorCode.EDGE_NOT_FOUND,
            edge_id=edge_id,
            execution_id=execution_id,
            **context,
        )


class InvalidQueryError(GraphEngineError):
    default_code = ErrorCode.INVALID_QUERY


class InvalidGraphError(InvalidQueryError):
    """Graph input failed validation (dangling edges, duplicate ids)."""

    default_code = ErrorCode.INVALID_GRAPH

    def __init__(self, message: str, report: Any = None, **context: Any):
        super().__init__(message, ErrorCode.INVALID_GRAPH, **context)
        self.report = report


class LimitExceededError(GraphEngineError):
    default_code = ErrorCode.LIMIT_EXCEEDED


class InternalError(GraphEngineError):
    default_code = ErrorCode.INTERNAL


class OperationCancelledError(GraphEngineError):
    default_code = ErrorCode.CANCELLED


class BlastRadiusError(GraphEngineError):
    """Base class for blast radius analysis failures."""

    default_code = ErrorCode.BLAST_NO_DATA

    @property
    def execution_id(self) -> Optional[str]:
        return self.context.get("execution_id")

    @property
    def node_id(self) -> Optional[str]:
        return self.context.get("node_id")


class BlastRadiusNotFoundError(BlastRadiusError, NotFoundError):
    """Execution graph or source node missing for a blast radius query."""


class BlastRadiusQueryError(BlastRadiusError, InvalidQueryError):
    default_code = ErrorCode.BLAST_INVALID_QUERY
