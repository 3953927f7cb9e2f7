from .pending_operation import (
    PendingOperation,
    OPERATION_TYPES,
    TYPE_ISSUE_CREATION,
    TYPE_ISSUE_UPDATE,
    TYPE_COMMENT_CREATION,
    TYPE_PR_CREATION,
    TYPE_PR_UPDATE,
)
from .execution import (
    DelegatedCall,
    ExecutionOutcome,
    LocalResult,
    STRATEGY_DELEGATED,
    STRATEGY_LOCAL,
)
from .errors import (
    ExecutionFailureError,
    GateError,
    InvalidInputError,
    MergeFailureError,
    OperationNotFoundError,
)

__all__ = [
    "PendingOperation",
    "OPERATION_TYPES",
    "TYPE_ISSUE_CREATION",
    "TYPE_ISSUE_UPDATE",
    "TYPE_COMMENT_CREATION",
    "TYPE_PR_CREATION",
    "TYPE_PR_UPDATE",
    # Execution outcomes
    "DelegatedCall",
    "ExecutionOutcome",
    "LocalResult",
    "STRATEGY_DELEGATED",
    "STRATEGY_LOCAL",
    # Errors
    "ExecutionFailureError",
    "GateError",
    "InvalidInputError",
    "MergeFailureError",
    "OperationNotFoundError",
]
