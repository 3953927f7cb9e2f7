"""Human-readable previews of GitHub mutations, shown before execution.

Every renderer is a pure function of its inputs. Long bodies are clipped by
display width so previews containing wide characters line up in terminals.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from wcwidth import wcwidth

CONFIRM_TOOL = "preview:ConfirmOrRevise"
ELLIPSIS = "..."


def display_width(text: str) -> int:
    width = 0
    for ch in text:
        w = wcwidth(ch)
        if w is None or w < 0:
            w = 0
        width += w
    return width


def clip_display(text: str, width: int) -> str:
    """Clip text to `width` visible columns, appending `...` when cut."""
    if display_width(text) <= width:
        return text
    room = max(0, width - len(ELLIPSIS))
    acc = []
    used = 0
    for ch in text:
        w = wcwidth(ch) or 0
        if w < 0:
            w = 0
        if used + w > room:
            break
        acc.append(ch)
        used += w
    return "".join(acc) + ELLIPSIS


def _join_or(items: Optional[List[str]], empty: str = "(none)") -> str:
    return ", ".join(items) if items else empty


def _footer(verb: str) -> str:
    return (
        f"✅ **Ready to {verb}?** Answer with `{CONFIRM_TOOL}` "
        "(action: confirm, cancel, or revise)."
    )


@dataclass
class IssuePreviewData:
    title: str = ""
    body: str = ""
    labels: List[str] = field(default_factory=list)
    assignees: List[str] = field(default_factory=list)
    milestone: Optional[str] = None
    state: Optional[str] = None


@dataclass
class CommentPreviewData:
    body: str
    issue_number: int
    repository: str


@dataclass
class PRPreviewData:
    title: str = ""
    body: str = ""
    base: str = ""
    head: str = ""
    draft: bool = False
    reviewers: List[str] = field(default_factory=list)


def format_issue_creation_preview(issue: IssuePreviewData, repository: str) -> str:
    body = clip_display(issue.body, 200) if issue.body else "(no description)"
    return (
        f"🆕 **New Issue Creation Preview** - {repository}\n\n"
        f"**Title:** \"{issue.title or '(no title provided)'}\"\n\n"
        f"**Description:**\n{body}\n\n"
        f"**Labels:** {_join_or(issue.labels)}\n"
        f"**Assignees:** {_join_or(issue.assignees)}\n"
        f"**Milestone:** {issue.milestone or '(none)'}\n\n"
        f"{_footer('create')}"
    )


def format_comment_creation_preview(comment: CommentPreviewData) -> str:
    return (
        f"💬 **Comment Creation Preview** - {comment.repository}#{comment.issue_number}\n\n"
        f"**Comment Content:**\n{clip_display(comment.body, 200)}\n\n"
        f"**Character Count:** {len(comment.body)} characters\n\n"
        f"{_footer('post')}"
    )


def format_pr_creation_preview(pr: PRPreviewData, repository: str) -> str:
    body = clip_display(pr.body, 200) if pr.body else "(no description)"
    status = "Draft PR" if pr.draft else "Ready for review"
    return (
        f"🔀 **Pull Request Creation Preview** - {repository}\n\n"
        f"**Title:** \"{pr.title or '(no title provided)'}\"\n"
        f"**Branch:** {pr.head} → {pr.base}\n"
        f"**Draft Status:** {status}\n\n"
        f"**Description:**\n{body}\n\n"
        f"**Reviewers:** {_join_or(pr.reviewers)}\n\n"
        f"{_footer('create')}"
    )


def _planned_changes(header: str, changes: List[str], verb: str) -> str:
    return f"{header}\n\n**Planned Changes:**\n" + "\n\n".join(changes) + f"\n\n{_footer(verb)}"


def format_issue_update_preview(
    current: Mapping[str, Any],
    updates: IssuePreviewData,
    repository: str,
    issue_number: int,
) -> str:
    """Diff-style preview; `current` is the issue as last fetched (may be partial)."""
    header = f"📋 **Issue Update Preview** - {repository}#{issue_number}"
    current_title = str(current.get("title") or "")
    current_body = str(current.get("body") or "")
    current_labels = sorted(_names(current.get("labels"), "name"))
    current_assignees = sorted(_names(current.get("assignees"), "login"))
    current_state = str(current.get("state") or "")

    changes: List[str] = []
    if updates.title and updates.title != current_title:
        changes.append(f"📝 **Title**\n   Current: \"{current_title}\"\n   New: \"{updates.title}\"")
    if updates.body and updates.body != current_body:
        before = clip_display(current_body, 100) if current_body else "(empty)"
        changes.append(f"📄 **Body**\n   Current: {before}\n   New: {clip_display(updates.body, 100)}")
    if updates.labels and sorted(updates.labels) != current_labels:
        adding = [label for label in updates.labels if label not in current_labels]
        removing = [label for label in current_labels if label not in updates.labels]
        lines = [
            "🏷️ **Labels**",
            f"   Current: {_join_or(current_labels)}",
            f"   New: {', '.join(updates.labels)}",
        ]
        if adding:
            lines.append(f"   Adding: {', '.join(adding)}")
        if removing:
            lines.append(f"   Removing: {', '.join(removing)}")
        changes.append("\n".join(lines))
    if updates.state and updates.state != current_state:
        changes.append(f"🔄 **State**\n   Current: {current_state or '(unknown)'}\n   New: {updates.state}")
    if updates.assignees and sorted(updates.assignees) != current_assignees:
        changes.append(
            f"👥 **Assignees**\n   Current: {_join_or(current_assignees)}\n   New: {', '.join(updates.assignees)}"
        )

    if not changes:
        return (
            f"{header}\n\n⚠️ **No changes detected** - all provided values match current state.\n\n"
            f"**Current issue state:**\n"
            f"• Title: \"{current_title}\"\n"
            f"• Labels: {_join_or(current_labels)}\n"
            f"• State: {current_state or '(unknown)'}\n"
            f"• Assignees: {_join_or(current_assignees)}"
        )
    return _planned_changes(header, changes, "proceed")


def format_pr_update_preview(
    current: Mapping[str, Any],
    updates: PRPreviewData,
    repository: str,
    pr_number: int,
    draft_changed: bool = False,
) -> str:
    header = f"🔀 **PR Update Preview** - {repository}#{pr_number}"
    current_title = str(current.get("title") or "")
    current_body = str(current.get("body") or "")
    current_draft = bool(current.get("draft", False))

    changes: List[str] = []
    if updates.title and updates.title != current_title:
        changes.append(f"📝 **Title**\n   Current: \"{current_title}\"\n   New: \"{updates.title}\"")
    if updates.body and updates.body != current_body:
        before = clip_display(current_body, 100) if current_body else "(empty)"
        changes.append(f"📄 **Description**\n   Current: {before}\n   New: {clip_display(updates.body, 100)}")
    if draft_changed and updates.draft != current_draft:
        changes.append(
            "📋 **Draft Status**\n"
            f"   Current: {'Draft' if current_draft else 'Ready for review'}\n"
            f"   New: {'Draft' if updates.draft else 'Ready for review'}"
        )

    if not changes:
        return (
            f"{header}\n\n⚠️ **No changes detected** - all provided values match current state.\n\n"
            f"**Current PR state:**\n"
            f"• Title: \"{current_title}\"\n"
            f"• Status: {'Draft' if current_draft else 'Ready for review'}"
        )
    return _planned_changes(header, changes, "proceed")


def _names(raw: Any, key: str) -> List[str]:
    """Names from a GitHub list of objects or strings; anything else reads as empty."""
    if not isinstance(raw, (list, tuple)):
        return []
    out: List[str] = []
    for item in raw:
        if isinstance(item, Mapping):
            value = item.get(key)
            if value:
                out.append(str(value))
        elif item:
            out.append(str(item))
    return out
