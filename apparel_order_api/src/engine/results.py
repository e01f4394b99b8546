from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from src.engine.enums import TransitionDirection


class EngineError(str, Enum):
    """Validation failures the engine reports back to its caller."""
    ILLEGAL_TRANSITION = "IllegalTransition"
    TERMINAL_STATE = "TerminalState"
    REASON_REQUIRED = "ReasonRequired"
    INVALID_QUANTITY = "InvalidQuantity"


@dataclass(frozen=True)
class Rejected:
    """A request the engine refused. Never raised; always returned."""
    error: EngineError
    message: str

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True)
class Accepted:
    """A validated state move for the caller to persist and audit."""
    status: str
    direction: TransitionDirection
    label: str
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return True


TransitionResult = Union[Accepted, Rejected]


def clean_reason(reason: Optional[str]) -> Optional[str]:
    """Strip a free-text reason, collapsing blank input to None."""
    if reason is None:
        return None
    stripped = reason.strip()
    return stripped or None
