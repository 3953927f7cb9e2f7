"""Per-tool rules for folding an operator's revision into stored arguments.

Free-text tools concatenate the revision onto one text field behind a labeled
separator. Tools whose arguments are purely structured have no rule: revising
them fails with MergeFailureError and the pending operation stays as it was.
"""

from typing import Any, Dict, NamedTuple, Optional, Tuple

from core import GateError, MergeFailureError, PendingOperation
from core.gate.application.proposals import render_preview


class MergeRule(NamedTuple):
    field: str
    separator: str


MERGE_RULES: Dict[str, MergeRule] = {
    "issue:CreateSimple": MergeRule("initialInput", "\n\nAdditional requirements: "),
    "issue:CreateFromThought": MergeRule("thoughtContent", "\n\nAdditional considerations: "),
    "issue:AppendToExistingIssue": MergeRule("content", "\n\n"),
    "issue:CreateWithSubIssues": MergeRule("body", "\n\nAdditional requirements: "),
    "github:CreateIssue": MergeRule("body", "\n\nAdditional requirements: "),
    "github:AddComment": MergeRule("body", "\n\n"),
    "github:CreatePullRequest": MergeRule("body", "\n\nAdditional notes: "),
}


def get_merge_rule(tool_name: str) -> Optional[MergeRule]:
    return MERGE_RULES.get(tool_name)


def merge_revision(tool_name: str, args: Dict[str, Any], revision_input: str) -> Dict[str, Any]:
    """Return a new args dict with the revision folded in; `args` is not touched."""
    rule = get_merge_rule(tool_name)
    if rule is None:
        raise MergeFailureError(
            f"{tool_name} has no free-text field to revise; cancel and propose again with new parameters"
        )
    merged = dict(args)
    base = str(merged.get(rule.field) or "")
    merged[rule.field] = f"{base}{rule.separator}{revision_input}" if base else revision_input
    return merged


def revise_operation(operation: PendingOperation, revision_input: str) -> Tuple[Dict[str, Any], str]:
    """Compute (new_args, new_preview) for a revision without storing anything."""
    new_args = merge_revision(operation.tool_name, operation.original_args, revision_input)
    try:
        preview = render_preview(operation.tool_name, new_args)
    except GateError as exc:
        raise MergeFailureError(f"revised arguments could not be rendered: {exc}") from exc
    return new_args, preview
