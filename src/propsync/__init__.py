"""propsync: client-side prop reconciliation for server-driven components."""

from importlib.metadata import version as _version

__version__ = _version("propsync")

from propsync.values import UNDEFINED, IDENTIFIER_KEY, ValueKind, classify, find_identifier, same_value
from propsync.paths import normalize_name, get_deep_data
from propsync.reactive import (
    Reaction,
    Revision,
    autorun,
    reaction,
    action,
    transaction,
    get_pending_count,
    current_reaction,
    keep_dependencies,
)
from propsync.store import ValueStore
# textual NOT auto-imported; opt-in only

__all__ = [
    "ValueStore",
    "UNDEFINED",
    "IDENTIFIER_KEY",
    "ValueKind",
    "classify",
    "find_identifier",
    "same_value",
    "normalize_name",
    "get_deep_data",
    "Reaction",
    "Revision",
    "autorun",
    "reaction",
    "action",
    "transaction",
    "get_pending_count",
    "current_reaction",
    "keep_dependencies",
]
