"""Pending operation: a proposed side-effecting action awaiting operator approval.

A pending operation is created by a proposer, owned by the operation registry,
and destroyed by confirm, cancel, or TTL expiry. Only the revise path mutates it
(`original_args` and `preview_text` together); identity, tool name and the
negotiation window never change.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict


# Display categories
TYPE_ISSUE_CREATION = "issue_creation"
TYPE_ISSUE_UPDATE = "issue_update"
TYPE_COMMENT_CREATION = "comment_creation"
TYPE_PR_CREATION = "pr_creation"
TYPE_PR_UPDATE = "pr_update"

OPERATION_TYPES = (
    TYPE_ISSUE_CREATION,
    TYPE_ISSUE_UPDATE,
    TYPE_COMMENT_CREATION,
    TYPE_PR_CREATION,
    TYPE_PR_UPDATE,
)


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


@dataclass
class PendingOperation:
    """A stored proposal awaiting confirm / cancel / revise.

    Attributes:
        id: Opaque unique token assigned by the registry
        tool_name: Requested mutation kind (selects the execution strategy)
        type: Display category (issue_creation, comment_creation, ...)
        original_args: Mutation parameters, replaced on each revision
        preview_text: Last rendered preview for `original_args`
        created_at: Epoch seconds at creation
        expires_at: created_at + TTL, fixed at creation
    """

    id: str
    tool_name: str
    type: str
    original_args: Dict[str, Any] = field(default_factory=dict)
    preview_text: str = ""
    created_at: float = 0.0
    expires_at: float = 0.0

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now

    def remaining_seconds(self, now: float) -> float:
        return max(0.0, self.expires_at - now)

    @property
    def type_label(self) -> str:
        return self.type.replace("_", " ")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "toolName": self.tool_name,
            "type": self.type,
            "originalArgs": dict(self.original_args),
            "previewText": self.preview_text,
            "createdAt": _iso(self.created_at),
            "expiresAt": _iso(self.expires_at),
        }

    def to_summary_dict(self, now: float) -> Dict[str, Any]:
        """Compact listing entry (no args, no preview body)."""
        return {
            "id": self.id,
            "toolName": self.tool_name,
            "type": self.type,
            "expiresAt": _iso(self.expires_at),
            "expiresInSeconds": int(self.remaining_seconds(now)),
        }
