from typing import Any, Dict, List, Optional, Protocol


class IssueService(Protocol):
    """Issue tracker operations the local execution strategy performs in-process.

    `repository` is an `owner/repo` slug. Implementations raise on failure and
    return the created object's payload (at least `number` and `html_url`).
    """

    def create_issue(
        self,
        repository: str,
        title: str,
        body: str = "",
        labels: Optional[List[str]] = None,
        assignees: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        ...

    def add_comment(self, repository: str, issue_number: int, body: str) -> Dict[str, Any]:
        ...
