"""
iacgraph: dependency graph engine for infrastructure-as-code.

Scores detected dependencies, stores them as per-execution graphs,
answers traversal queries and computes the blast radius of changes.
"""

from iacgraph.config import Settings, load_settings
from iacgraph.context import EngineContext
from iacgraph.errors import ErrorCode, GraphEngineError

__version__ = "0.1.0"

__all__ = [
    "EngineContext",
    "ErrorCode",
    "GraphEngineError",
    "Settings",
    "__version__",
    "load_settings",
]
