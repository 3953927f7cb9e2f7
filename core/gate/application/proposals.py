"""Proposal side of the confirmation gate.

Each supported tool name knows its display type, its required arguments and how
to render a preview from its arguments. Proposers call `propose`, which renders
the preview and registers the pending operation; the operator then answers via
the confirmation dispatcher.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from core import (
    InvalidInputError,
    TYPE_COMMENT_CREATION,
    TYPE_ISSUE_CREATION,
    TYPE_ISSUE_UPDATE,
    TYPE_PR_CREATION,
    TYPE_PR_UPDATE,
)
from core.gate.application.issue_heuristics import (
    category_labels,
    derive_issue_title,
    detect_thought_category,
    map_category_to_issue_type,
)
from core.gate.application.operation_registry import OperationRegistry
from core.gate.application.preview_formatter import (
    CommentPreviewData,
    IssuePreviewData,
    PRPreviewData,
    format_comment_creation_preview,
    format_issue_creation_preview,
    format_issue_update_preview,
    format_pr_creation_preview,
    format_pr_update_preview,
)

CURRENT_REPOSITORY = "current repository"
DEFAULT_SECTION_TITLE = "Additional Thoughts"


@dataclass(frozen=True)
class ProposalKind:
    tool_name: str
    op_type: str
    required: Tuple[str, ...]
    render: Callable[[Dict[str, Any]], str]
    description: str


@dataclass(frozen=True)
class Proposal:
    operation_id: str
    tool_name: str
    preview: str
    expires_at: float

    def to_dict(self) -> Dict[str, Any]:
        return {"operationId": self.operation_id, "toolName": self.tool_name, "preview": self.preview}


def _str_list(raw: Any) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return [part.strip() for part in raw.split(",") if part.strip()]
    return [str(item) for item in raw if str(item).strip()]


def _as_int(value: Any, field_name: str) -> int:
    try:
        return int(str(value).lstrip("#"))
    except (TypeError, ValueError):
        raise InvalidInputError(f"{field_name} must be an integer, got {value!r}") from None


def _slug(args: Dict[str, Any]) -> str:
    owner = str(args.get("owner") or "").strip()
    repo = str(args.get("repo") or "").strip()
    return f"{owner}/{repo}" if owner and repo else CURRENT_REPOSITORY


def _current(args: Dict[str, Any]) -> Dict[str, Any]:
    current = args.get("current")
    if current is None:
        return {}
    if not isinstance(current, dict):
        raise InvalidInputError(f"current must be an object, got {type(current).__name__}")
    return current


# ---------------------------------------------------------------------------
# Local-strategy tools
# ---------------------------------------------------------------------------


def render_simple_issue(args: Dict[str, Any]) -> str:
    text = str(args.get("initialInput") or "")
    category = detect_thought_category(text)
    issue = IssuePreviewData(
        title=derive_issue_title(text),
        body=f"## Description\n\n{text}\n\n## Type\n\n{map_category_to_issue_type(category)}",
        labels=category_labels(category),
    )
    return format_issue_creation_preview(issue, args.get("repository") or CURRENT_REPOSITORY)


def render_thought_issue(args: Dict[str, Any]) -> str:
    thought = str(args.get("thoughtContent") or "")
    category = args.get("category") or detect_thought_category(thought, _str_list(args.get("tags")))
    priority = args.get("suggestedPriority") or "Medium"
    template = args.get("suggestedTemplate") or "general"
    issue = IssuePreviewData(
        title=args.get("customTitle") or derive_issue_title(thought),
        body=(
            f"## Description\n\n{thought}\n\n## Template\n\n{template}\n\n"
            f"## Category\n\n{category}\n\n## Type\n\n{map_category_to_issue_type(category)}"
        ),
        labels=category_labels(category, priority),
    )
    return format_issue_creation_preview(issue, args.get("repository") or CURRENT_REPOSITORY)


def render_append_to_issue(args: Dict[str, Any]) -> str:
    section = args.get("sectionTitle") or DEFAULT_SECTION_TITLE
    comment = CommentPreviewData(
        body=f"## {section}\n\n{args.get('content') or ''}",
        issue_number=_as_int(args.get("issueNumber"), "issueNumber"),
        repository=args.get("repository") or CURRENT_REPOSITORY,
    )
    return format_comment_creation_preview(comment)


def render_issue_with_sub_issues(args: Dict[str, Any]) -> str:
    issue = IssuePreviewData(
        title=str(args.get("title") or ""),
        body=str(args.get("body") or ""),
        labels=_str_list(args.get("labels")),
        assignees=_str_list(args.get("assignees")),
    )
    preview = format_issue_creation_preview(issue, args.get("repository") or CURRENT_REPOSITORY)
    sub_issues = args.get("subIssues") or []
    lines = [f"**Sub-issues ({len(sub_issues)}):**"]
    for index, sub in enumerate(sub_issues, start=1):
        lines.append(f"{index}. {sub.get('title', '')}")
    return preview + "\n\n" + "\n".join(lines)


# ---------------------------------------------------------------------------
# Delegated-strategy tools
# ---------------------------------------------------------------------------


def render_github_issue(args: Dict[str, Any]) -> str:
    issue = IssuePreviewData(
        title=str(args.get("title") or ""),
        body=str(args.get("body") or ""),
        labels=_str_list(args.get("labels")),
        assignees=_str_list(args.get("assignees")),
        milestone=args.get("milestone"),
    )
    return format_issue_creation_preview(issue, _slug(args))


def render_github_issue_update(args: Dict[str, Any]) -> str:
    updates = IssuePreviewData(
        title=str(args.get("title") or ""),
        body=str(args.get("body") or ""),
        labels=_str_list(args.get("labels")),
        assignees=_str_list(args.get("assignees")),
        state=args.get("state"),
    )
    return format_issue_update_preview(
        _current(args),
        updates,
        _slug(args),
        _as_int(args.get("issue_number"), "issue_number"),
    )


def render_github_comment(args: Dict[str, Any]) -> str:
    comment = CommentPreviewData(
        body=str(args.get("body") or ""),
        issue_number=_as_int(args.get("issue_number"), "issue_number"),
        repository=_slug(args),
    )
    return format_comment_creation_preview(comment)


def render_github_pr(args: Dict[str, Any]) -> str:
    pr = PRPreviewData(
        title=str(args.get("title") or ""),
        body=str(args.get("body") or ""),
        base=str(args.get("base") or ""),
        head=str(args.get("head") or ""),
        draft=bool(args.get("draft", False)),
        reviewers=_str_list(args.get("reviewers")),
    )
    return format_pr_creation_preview(pr, _slug(args))


def render_github_pr_update(args: Dict[str, Any]) -> str:
    updates = PRPreviewData(
        title=str(args.get("title") or ""),
        body=str(args.get("body") or ""),
        draft=bool(args.get("draft", False)),
    )
    return format_pr_update_preview(
        _current(args),
        updates,
        _slug(args),
        _as_int(args.get("pullNumber"), "pullNumber"),
        draft_changed="draft" in args,
    )


PROPOSAL_KINDS: Dict[str, ProposalKind] = {
    kind.tool_name: kind
    for kind in (
        ProposalKind(
            "issue:CreateSimple",
            TYPE_ISSUE_CREATION,
            ("initialInput",),
            render_simple_issue,
            "Propose a new issue from a one-line description.",
        ),
        ProposalKind(
            "issue:CreateFromThought",
            TYPE_ISSUE_CREATION,
            ("thoughtContent",),
            render_thought_issue,
            "Propose a new issue from a captured thought (category/template/priority).",
        ),
        ProposalKind(
            "issue:AppendToExistingIssue",
            TYPE_COMMENT_CREATION,
            ("issueNumber", "content"),
            render_append_to_issue,
            "Propose appending a section to an existing issue as a comment.",
        ),
        ProposalKind(
            "issue:CreateWithSubIssues",
            TYPE_ISSUE_CREATION,
            ("title", "subIssues"),
            render_issue_with_sub_issues,
            "Propose a parent issue plus sub-issues, created together.",
        ),
        ProposalKind(
            "github:CreateIssue",
            TYPE_ISSUE_CREATION,
            ("owner", "repo", "title"),
            render_github_issue,
            "Propose an issue to be created by the host's GitHub tools.",
        ),
        ProposalKind(
            "github:UpdateIssue",
            TYPE_ISSUE_UPDATE,
            ("owner", "repo", "issue_number"),
            render_github_issue_update,
            "Propose an issue update to be applied by the host's GitHub tools.",
        ),
        ProposalKind(
            "github:AddComment",
            TYPE_COMMENT_CREATION,
            ("owner", "repo", "issue_number", "body"),
            render_github_comment,
            "Propose an issue comment to be posted by the host's GitHub tools.",
        ),
        ProposalKind(
            "github:CreatePullRequest",
            TYPE_PR_CREATION,
            ("owner", "repo", "title", "head", "base"),
            render_github_pr,
            "Propose a pull request to be opened by the host's GitHub tools.",
        ),
        ProposalKind(
            "github:UpdatePullRequest",
            TYPE_PR_UPDATE,
            ("owner", "repo", "pullNumber"),
            render_github_pr_update,
            "Propose a pull request update to be applied by the host's GitHub tools.",
        ),
    )
}


def get_kind(tool_name: str) -> Optional[ProposalKind]:
    return PROPOSAL_KINDS.get(tool_name)


def render_preview(tool_name: str, args: Dict[str, Any]) -> str:
    kind = get_kind(tool_name)
    if kind is None:
        raise InvalidInputError(f"no preview renderer for tool {tool_name!r}")
    return kind.render(args)


def validate_args(kind: ProposalKind, args: Dict[str, Any]) -> None:
    missing = [name for name in kind.required if args.get(name) in (None, "", [])]
    if missing:
        raise InvalidInputError(f"{kind.tool_name}: missing required argument(s): {', '.join(missing)}")
    if kind.tool_name == "issue:CreateWithSubIssues":
        subs = args.get("subIssues")
        if not isinstance(subs, list) or not all(isinstance(s, dict) and s.get("title") for s in subs):
            raise InvalidInputError("subIssues must be a list of objects with a title")


def propose(registry: OperationRegistry, tool_name: str, args: Dict[str, Any]) -> Proposal:
    """Render the preview and register a pending operation for `tool_name`."""
    kind = get_kind(tool_name)
    if kind is None:
        raise InvalidInputError(f"unknown proposal tool: {tool_name}")
    payload = dict(args or {})
    validate_args(kind, payload)
    preview = kind.render(payload)
    operation_id = registry.create(kind.tool_name, kind.op_type, payload, preview)
    pending = registry.get(operation_id)
    expires_at = pending.expires_at if pending is not None else registry.now() + registry.ttl_seconds
    return Proposal(operation_id=operation_id, tool_name=kind.tool_name, preview=preview, expires_at=expires_at)
