from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException, status

from src.engine.results import EngineError, Rejected

# Engine rejections that describe a conflict with the current state answer 409;
# malformed requests answer 422.
_STATUS_BY_ENGINE_ERROR = {
    EngineError.ILLEGAL_TRANSITION: status.HTTP_409_CONFLICT,
    EngineError.TERMINAL_STATE: status.HTTP_409_CONFLICT,
    EngineError.REASON_REQUIRED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    EngineError.INVALID_QUANTITY: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


class DomainError(HTTPException):
    """
    HTTPException carrying a machine-readable error code.

    The global handler renders `code` as the ErrorResponse error type.
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.details = details


class NotFoundError(DomainError):
    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(
            status.HTTP_404_NOT_FOUND,
            "not_found",
            f"{entity} {entity_id} not found",
        )


class VersionConflictError(DomainError):
    def __init__(self, expected: Optional[int], actual: Optional[int]) -> None:
        super().__init__(
            status.HTTP_409_CONFLICT,
            "version_conflict",
            "The order was modified by another request; reload and retry",
            details={"expected_version": expected, "current_version": actual},
        )


# PUBLIC_INTERFACE
def raise_for_rejection(result: Rejected, details: Optional[Any] = None) -> None:
    """
    Convert an engine Rejected value into a DomainError.

    Parameters:
        result: the rejected engine outcome
        details: optional payload attached to the error envelope
    Raises:
        DomainError: 409 for IllegalTransition/TerminalState, 422 otherwise.
    """
    raise DomainError(
        _STATUS_BY_ENGINE_ERROR[result.error],
        result.error.value,
        result.message,
        details=details,
    )
