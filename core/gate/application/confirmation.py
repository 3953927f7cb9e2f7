"""Confirmation dispatcher: the confirm / cancel / revise protocol.

States: PENDING (registered) -> CONFIRMED | CANCELLED (terminal, entity removed)
or back to PENDING after a revise (args/preview refreshed, expiry untouched).

Every path produces an explicit Decision; nothing is swallowed. A confirm is
consumed exactly once: the entity is removed whether execution succeeds or
fails, so a failed side-effecting call is never silently retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from core import (
    ExecutionFailureError,
    ExecutionOutcome,
    MergeFailureError,
    PendingOperation,
)
from core.gate.application.execution_adapter import ExecutionAdapter
from core.gate.application.operation_registry import OperationRegistry
from core.gate.application.revision_rules import revise_operation

ACTION_CONFIRM = "confirm"
ACTION_CANCEL = "cancel"
ACTION_REVISE = "revise"
ACTIONS = (ACTION_CONFIRM, ACTION_CANCEL, ACTION_REVISE)

STATUS_NOT_FOUND = "not_found"
STATUS_CANCELLED = "cancelled"
STATUS_CONFIRMED = "confirmed"
STATUS_ERROR = "error"
STATUS_REVISED = "revised"
STATUS_INVALID = "invalid"
STATUS_REVISION_FAILED = "revision_failed"

FAILURE_STATUSES = frozenset({STATUS_NOT_FOUND, STATUS_ERROR, STATUS_INVALID, STATUS_REVISION_FAILED})

logger = logging.getLogger("preview_gate.confirmation")


@dataclass
class Decision:
    """Outcome of one operator decision, serialisable to the wire shape."""

    status: str
    operation_id: Optional[str] = None
    preview: Optional[str] = None
    message: Optional[str] = None
    outcome: Optional[ExecutionOutcome] = None
    errors: list = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status not in FAILURE_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"status": self.status}
        if self.status == STATUS_CONFIRMED and self.outcome is not None:
            payload.update(self.outcome.to_response())
        if self.status in (STATUS_REVISED, STATUS_REVISION_FAILED):
            payload["operationId"] = self.operation_id
        if self.status == STATUS_REVISED:
            payload["preview"] = self.preview
        if self.status in (STATUS_ERROR, STATUS_INVALID, STATUS_REVISION_FAILED):
            payload["message"] = self.message or "Unknown error"
        if self.errors:
            payload["errors"] = list(self.errors)
        return payload


class ConfirmationDispatcher:
    def __init__(self, registry: OperationRegistry, adapter: ExecutionAdapter) -> None:
        self.registry = registry
        self.adapter = adapter

    def handle_request(self, payload: Any) -> Decision:
        """Decode `{operationId, action, revisionInput?}` and dispatch it."""
        if not isinstance(payload, dict):
            return Decision(STATUS_INVALID, message="request must be a JSON object")
        operation_id = payload.get("operationId")
        if not isinstance(operation_id, str) or not operation_id.strip():
            return Decision(STATUS_INVALID, message="operationId is required")
        revision_input = payload.get("revisionInput")
        if revision_input is not None and not isinstance(revision_input, str):
            return Decision(STATUS_INVALID, message="revisionInput must be a string")
        return self.handle(operation_id.strip(), payload.get("action"), revision_input)

    def handle(self, operation_id: str, action: Any, revision_input: Optional[str] = None) -> Decision:
        if action not in ACTIONS:
            return Decision(STATUS_INVALID, message=f"action must be one of: {', '.join(ACTIONS)}")
        if action == ACTION_REVISE and not (revision_input or "").strip():
            return Decision(
                STATUS_INVALID,
                message="revisionInput is required to revise an operation",
            )

        operation = self.registry.get(operation_id)
        if operation is None:
            logger.info("decision %s on unknown or expired operation %s", action, operation_id)
            return Decision(STATUS_NOT_FOUND, operation_id=operation_id)

        if action == ACTION_CANCEL:
            return self._cancel(operation)
        if action == ACTION_CONFIRM:
            return self._confirm(operation)
        return self._revise(operation, str(revision_input))

    def confirm(self, operation_id: str) -> Decision:
        return self.handle(operation_id, ACTION_CONFIRM)

    def cancel(self, operation_id: str) -> Decision:
        return self.handle(operation_id, ACTION_CANCEL)

    def revise(self, operation_id: str, revision_input: Optional[str] = None) -> Decision:
        return self.handle(operation_id, ACTION_REVISE, revision_input)

    def _cancel(self, operation: PendingOperation) -> Decision:
        self.registry.remove(operation.id)
        logger.info("operation %s (%s) cancelled", operation.id, operation.tool_name)
        return Decision(
            STATUS_CANCELLED,
            operation_id=operation.id,
            message=f"The {operation.type_label} operation has been cancelled. No changes were made.",
        )

    def _confirm(self, operation: PendingOperation) -> Decision:
        try:
            outcome = self.adapter.execute(operation)
        except ExecutionFailureError as exc:
            logger.warning("operation %s (%s) failed on confirm: %s", operation.id, operation.tool_name, exc)
            return Decision(
                STATUS_ERROR,
                operation_id=operation.id,
                message=f"Failed to execute the confirmed operation: {exc.args[0] if exc.args else exc}",
                errors=exc.errors,
            )
        except Exception as exc:
            logger.warning("operation %s (%s) failed on confirm: %s", operation.id, operation.tool_name, exc)
            return Decision(
                STATUS_ERROR,
                operation_id=operation.id,
                message=f"Failed to execute the confirmed operation: {exc}",
            )
        finally:
            self.registry.remove(operation.id)
        logger.info("operation %s (%s) confirmed via %s strategy", operation.id, operation.tool_name, outcome.strategy)
        return Decision(STATUS_CONFIRMED, operation_id=operation.id, outcome=outcome)

    def _revise(self, operation: PendingOperation, revision_input: str) -> Decision:
        try:
            new_args, new_preview = revise_operation(operation, revision_input)
        except MergeFailureError as exc:
            logger.info("revision of %s (%s) rejected: %s", operation.id, operation.tool_name, exc)
            return Decision(STATUS_REVISION_FAILED, operation_id=operation.id, message=str(exc))
        if not self.registry.update(operation.id, new_args, new_preview):
            # Expired between lookup and store.
            return Decision(STATUS_NOT_FOUND, operation_id=operation.id)
        logger.info("operation %s (%s) revised", operation.id, operation.tool_name)
        return Decision(STATUS_REVISED, operation_id=operation.id, preview=new_preview)
