"""GitHub REST implementation of the IssueService port."""

import logging
import os
from typing import Any, Dict, List, Optional

from config import get_user_token, set_user_token
from infrastructure.github_issues.issues_client import IssuesClient, IssuesClientError

logger = logging.getLogger("preview_gate.github")

TOKEN_ENV_VARS = ("PREVIEW_GATE_GITHUB_TOKEN", "GITHUB_TOKEN")


def load_token() -> str:
    """Env token first, then the saved one; remember an env token for next time."""
    env_token = ""
    for name in TOKEN_ENV_VARS:
        env_token = (os.getenv(name) or "").strip()
        if env_token:
            break
    saved_token = get_user_token()
    if env_token and not saved_token:
        try:
            set_user_token(env_token)
        except OSError as exc:
            logger.warning("unable to persist GitHub token: %s", exc)
    return env_token or saved_token


def _check_slug(repository: str) -> str:
    slug = (repository or "").strip().strip("/")
    owner, _, repo = slug.partition("/")
    if not owner or not repo or "/" in repo:
        raise IssuesClientError(f"repository must be 'owner/repo', got {repository!r}")
    return slug


class GitHubIssueService:
    def __init__(self, client: IssuesClient) -> None:
        self.client = client

    def create_issue(
        self,
        repository: str,
        title: str,
        body: str = "",
        labels: Optional[List[str]] = None,
        assignees: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"title": title, "body": body}
        if labels:
            payload["labels"] = list(labels)
        if assignees:
            payload["assignees"] = list(assignees)
        data = self.client.request_json("post", f"repos/{_check_slug(repository)}/issues", payload)
        logger.info("created issue %s#%s", repository, data.get("number"))
        return data

    def add_comment(self, repository: str, issue_number: int, body: str) -> Dict[str, Any]:
        path = f"repos/{_check_slug(repository)}/issues/{int(issue_number)}/comments"
        data = self.client.request_json("post", path, {"body": body})
        logger.info("commented on %s#%s", repository, issue_number)
        return data
