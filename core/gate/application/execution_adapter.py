"""Turn a confirmed pending operation into an effect.

Strategy is a pure function of the tool name:
- local: this process performs the mutation through an IssueService.
- delegated: this process has no transport for the mutation and returns a
  DelegatedCall the host must execute with its own GitHub tools.

A local mutation either fully succeeds or raises ExecutionFailureError; there is
no partial success.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from application.ports import IssueService
from core import (
    DelegatedCall,
    ExecutionFailureError,
    ExecutionOutcome,
    LocalResult,
    PendingOperation,
    STRATEGY_DELEGATED,
    STRATEGY_LOCAL,
)
from core.gate.application.issue_heuristics import (
    analyze_initial_complexity,
    category_labels,
    derive_issue_title,
    detect_thought_category,
    map_category_to_issue_type,
)
from core.gate.application.proposals import DEFAULT_SECTION_TITLE
from infrastructure.workspace_resolver import resolve_repository

logger = logging.getLogger("preview_gate.execution")

# toolName -> host tool the delegated descriptor names.
DELEGATED_TOOLS: Dict[str, str] = {
    "github:CreateIssue": "mcp__github__create_issue",
    "github:UpdateIssue": "mcp__github__update_issue",
    "github:AddComment": "mcp__github__add_issue_comment",
    "github:CreatePullRequest": "mcp__github__create_pull_request",
    "github:UpdatePullRequest": "mcp__github__update_pull_request",
}

# Proposal-only keys that never reach the host call.
_PREVIEW_ONLY_KEYS = ("current",)


def strategy_for(tool_name: str) -> str:
    if tool_name in LOCAL_TOOLS:
        return STRATEGY_LOCAL
    if tool_name in DELEGATED_TOOLS:
        return STRATEGY_DELEGATED
    raise ExecutionFailureError(f"Unsupported tool for execution: {tool_name}")


def _clean_parameters(args: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        key: value
        for key, value in args.items()
        if key not in _PREVIEW_ONLY_KEYS and value is not None and value != "" and value != []
    }


class ExecutionAdapter:
    def __init__(
        self,
        issue_service: Optional[IssueService] = None,
        repository_resolver: Callable[[Mapping[str, Any]], str] = resolve_repository,
    ) -> None:
        self.issue_service = issue_service
        self.repository_resolver = repository_resolver

    def execute(self, operation: PendingOperation) -> ExecutionOutcome:
        strategy = strategy_for(operation.tool_name)
        if strategy == STRATEGY_DELEGATED:
            call = DelegatedCall(
                tool=DELEGATED_TOOLS[operation.tool_name],
                parameters=_clean_parameters(operation.original_args),
            )
            logger.info("operation %s delegated as %s", operation.id, call.tool)
            return call
        handler = LOCAL_TOOLS[operation.tool_name]
        try:
            result = handler(self, operation.original_args)
        except ExecutionFailureError:
            raise
        except Exception as exc:
            raise ExecutionFailureError(f"{operation.tool_name} failed: {exc}") from exc
        logger.info("operation %s executed locally (%s)", operation.id, operation.tool_name)
        return result

    # ------------------------------------------------------------------
    # Local strategy handlers
    # ------------------------------------------------------------------

    def _service(self) -> IssueService:
        if self.issue_service is None:
            raise ExecutionFailureError("no issue service configured for local execution")
        return self.issue_service

    def _repository(self, args: Mapping[str, Any]) -> str:
        try:
            return self.repository_resolver(args)
        except RuntimeError as exc:
            raise ExecutionFailureError(f"cannot resolve target repository: {exc}") from exc

    def create_simple_issue(self, args: Mapping[str, Any]) -> LocalResult:
        text = str(args.get("initialInput") or "")
        repository = self._repository(args)
        category = detect_thought_category(text)
        complexity = analyze_initial_complexity(text)
        priority = "High" if complexity == "high" else "Medium"
        title = derive_issue_title(text)
        issue = self._service().create_issue(
            repository,
            title,
            body=f"## Description\n\n{text}\n\n## Type\n\n{map_category_to_issue_type(category)}",
            labels=category_labels(category, priority),
        )
        return LocalResult(
            tool_name="issue:CreateSimple",
            payload={
                "repository": repository,
                "issueNumber": issue.get("number"),
                "url": issue.get("html_url"),
                "title": title,
                "priority": priority,
            },
            message=f"Issue created: {repository}#{issue.get('number')} {title}",
        )

    def create_issue_from_thought(self, args: Mapping[str, Any]) -> LocalResult:
        thought = str(args.get("thoughtContent") or "")
        repository = self._repository(args)
        category = args.get("category") or detect_thought_category(thought, args.get("tags") or [])
        priority = args.get("suggestedPriority") or "Medium"
        template = args.get("suggestedTemplate") or "general"
        title = args.get("customTitle") or derive_issue_title(thought)
        issue = self._service().create_issue(
            repository,
            title,
            body=f"## Description\n\n{thought}\n\n## Template\n\n{template}\n\n## Category\n\n{category}",
            labels=category_labels(category, priority),
        )
        return LocalResult(
            tool_name="issue:CreateFromThought",
            payload={
                "repository": repository,
                "issueNumber": issue.get("number"),
                "url": issue.get("html_url"),
                "title": title,
                "template": template,
                "priority": priority,
                "category": category,
            },
            message=f"Issue created from thought: {repository}#{issue.get('number')}",
        )

    def append_to_existing_issue(self, args: Mapping[str, Any]) -> LocalResult:
        repository = self._repository(args)
        issue_number = int(str(args.get("issueNumber")).lstrip("#"))
        section = args.get("sectionTitle") or DEFAULT_SECTION_TITLE
        content = str(args.get("content") or "")
        comment = self._service().add_comment(repository, issue_number, f"## {section}\n\n{content}")
        return LocalResult(
            tool_name="issue:AppendToExistingIssue",
            payload={
                "repository": repository,
                "issueNumber": issue_number,
                "section": section,
                "commentUrl": comment.get("html_url"),
            },
            message=f"Section '{section}' added to {repository}#{issue_number}",
        )

    def create_issue_with_sub_issues(self, args: Mapping[str, Any]) -> LocalResult:
        service = self._service()
        repository = self._repository(args)
        labels = list(args.get("labels") or [])
        parent = service.create_issue(
            repository,
            str(args.get("title") or ""),
            body=str(args.get("body") or ""),
            labels=labels,
            assignees=list(args.get("assignees") or []),
        )
        parent_number = parent.get("number")
        created: List[Dict[str, Any]] = []
        errors: List[str] = []
        for index, sub in enumerate(args.get("subIssues") or [], start=1):
            try:
                issue = service.create_issue(
                    repository,
                    f"[Sub-issue {index}] {sub.get('title', '')}",
                    body=f"**Parent Issue:** #{parent_number}\n\n{sub.get('body') or sub.get('title', '')}",
                    labels=labels + ["sub-issue"],
                )
                created.append({"number": issue.get("number"), "title": sub.get("title"), "url": issue.get("html_url")})
            except Exception as exc:
                errors.append(f"sub-issue {index} ({sub.get('title', '')}): {exc}")
        if created:
            checklist = "\n".join(f"- [ ] #{item['number']} {item['title']}" for item in created)
            try:
                service.add_comment(repository, int(parent_number), f"## Sub-issues\n\n{checklist}")
            except Exception as exc:
                errors.append(f"parent checklist comment: {exc}")
        if errors:
            raise ExecutionFailureError(
                f"issue {repository}#{parent_number} created but {len(errors)} sub-step(s) failed",
                errors,
            )
        return LocalResult(
            tool_name="issue:CreateWithSubIssues",
            payload={
                "repository": repository,
                "issueNumber": parent_number,
                "url": parent.get("html_url"),
                "subIssues": created,
            },
            message=f"Issue {repository}#{parent_number} created with {len(created)} sub-issue(s)",
        )


LOCAL_TOOLS: Dict[str, Callable[[ExecutionAdapter, Mapping[str, Any]], LocalResult]] = {
    "issue:CreateSimple": ExecutionAdapter.create_simple_issue,
    "issue:CreateFromThought": ExecutionAdapter.create_issue_from_thought,
    "issue:AppendToExistingIssue": ExecutionAdapter.append_to_existing_issue,
    "issue:CreateWithSubIssues": ExecutionAdapter.create_issue_with_sub_issues,
}
