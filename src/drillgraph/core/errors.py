"""
Typed failures carried inside ``Err`` results.

These are values, not exceptions: the engine returns them rather than
raising, and callers inspect ``error.code`` or match on the class.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class DrillGraphError:
    """Base class for every failure the engine reports."""
    message: str

    code = "error"

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


@dataclass(frozen=True)
class NodeNotFoundError(DrillGraphError):
    node_id: str = ""

    code = "node_not_found"


@dataclass(frozen=True)
class NavigationError(DrillGraphError):
    code = "navigation"


@dataclass(frozen=True)
class SymbolFetchError(NavigationError):
    """The symbol-level collaborator failed; navigation was rolled back."""
    file_id: str = ""
    cause: str = ""

    code = "symbol_fetch_failed"


@dataclass(frozen=True)
class FlowNotFoundError(DrillGraphError):
    flow_id: str = ""

    code = "flow_not_found"


@dataclass(frozen=True)
class PatchError(DrillGraphError):
    event_type: str = ""

    code = "patch_rejected"


@dataclass(frozen=True)
class ConfigError(DrillGraphError):
    path: str = ""

    code = "config_invalid"


@dataclass(frozen=True)
class InvalidOptionError(DrillGraphError):
    """An unrecognised mode, filter or dimension was requested."""
    option: str = ""

    code = "invalid_option"
