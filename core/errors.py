"""Error taxonomy for the confirmation gate."""

from typing import Iterable, List, Optional


class GateError(RuntimeError):
    pass


class OperationNotFoundError(GateError):
    """Unknown or expired operation id."""

    def __init__(self, operation_id: str) -> None:
        super().__init__(f"pending operation {operation_id!r} not found or expired")
        self.operation_id = operation_id


class InvalidInputError(GateError):
    pass


class ExecutionFailureError(GateError):
    """Execution failed; `errors` aggregates sub-step failures for diagnostics."""

    def __init__(self, message: str, errors: Optional[Iterable[str]] = None) -> None:
        super().__init__(message)
        self.errors: List[str] = list(errors or [])

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        return base + ": " + "; ".join(self.errors)


class MergeFailureError(GateError):
    pass
