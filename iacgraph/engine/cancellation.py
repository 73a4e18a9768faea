"""
Cooperative cancellation for long-running graph queries.

Traversals check the token between frontier expansions; a cancelled token
makes the query raise OperationCancelledError without touching shared state.
"""

import threading
from typing import Optional

from iacgraph.errors import OperationCancelledError


class CancellationToken:
    """
    Thread-safe cancellation flag.

    Example:
        >>> token = CancellationToken()
        >>> threading.Timer(2.0, token.cancel).start()
        >>> engine.downstream("exec-1", "tenant-a", "node-1", cancel=token)
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, operation: str = "", **context) -> None:
        """Raise OperationCancelledError when the token has been cancelled."""
        if self._event.is_set():
            raise OperationCancelledError(
                f"Operation {operation!r} was cancelled" if operation else None,
                operation=operation or None,
                reason=self.reason,
                **context,
            )


def check_cancelled(token: Optional[CancellationToken], operation: str, **context) -> None:
    """No-op when no token was supplied."""
    if token is not None:
        token.raise_if_cancelled(operation, **context)
