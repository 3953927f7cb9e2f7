from .issues_client import IssuesClient, IssuesClientError, IssuesPermissionError
from .issue_service import GitHubIssueService, load_token
from .rate_limiter import RateLimiter

__all__ = [
    "GitHubIssueService",
    "IssuesClient",
    "IssuesClientError",
    "IssuesPermissionError",
    "RateLimiter",
    "load_token",
]
