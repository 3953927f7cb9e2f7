import logging
import random
import time
from typing import Any, Callable, Dict, Optional

import requests

from infrastructure.github_issues.rate_limiter import RateLimiter

API_URL = "https://api.github.com"

# Only these are resent after a timeout or 5xx; a lost POST may already have landed.
IDEMPOTENT_METHODS = frozenset({"get", "head", "put", "delete"})

logger = logging.getLogger("preview_gate.github")


class IssuesClientError(RuntimeError):
    pass


class IssuesPermissionError(IssuesClientError):
    pass


class IssuesClient:
    """Minimal GitHub REST client: auth header, pacing, retry of idempotent calls on 5xx / network errors."""

    def __init__(
        self,
        session: Optional[requests.Session],
        token_provider: Callable[[], Optional[str]],
        rate_limiter: Optional[RateLimiter] = None,
        base_url: str = API_URL,
        timeout: int = 30,
        max_attempts: int = 3,
    ) -> None:
        self.session = session or requests.Session()
        self.token_provider = token_provider
        self.rate_limiter = rate_limiter or RateLimiter()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max_attempts

    def request(self, method: str, path: str, payload: Dict[str, Any]) -> requests.Response:
        token = self.token_provider()
        if not token:
            raise IssuesPermissionError("GitHub token missing")
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"Authorization": f"token {token}", "Accept": "application/vnd.github+json"}
        retryable = method.lower() in IDEMPOTENT_METHODS
        attempt = 0
        delay = 1.0
        while True:
            attempt += 1
            self.rate_limiter.acquire()
            try:
                resp = getattr(self.session, method)(url, json=payload, headers=headers, timeout=self.timeout)
            except requests.RequestException as exc:
                if not retryable or attempt >= self.max_attempts:
                    raise IssuesClientError(f"GitHub API network error: {exc}") from exc
                logger.warning("GitHub %s %s retry #%s after network error: %s", method.upper(), path, attempt, exc)
                self._sleep(delay)
                delay *= 2
                continue
            self.rate_limiter.update(resp.headers)
            if resp.status_code in (401, 403):
                raise IssuesPermissionError(f"HTTP {resp.status_code}")
            if resp.status_code >= 500 and not retryable:
                raise IssuesClientError(f"GitHub API error: {resp.status_code} on {method.upper()} {path} (not retried)")
            if resp.status_code < 500 or attempt >= self.max_attempts:
                return resp
            logger.warning("GitHub %s %s retry #%s due to %s", method.upper(), path, attempt, resp.status_code)
            self._sleep(delay)
            delay *= 2

    def request_json(self, method: str, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        resp = self.request(method, path, payload)
        if resp.status_code >= 400:
            raise IssuesClientError(f"GitHub API error: {resp.status_code} {str(resp.text)[:200]}")
        data = resp.json()
        return data if isinstance(data, dict) else {"data": data}

    def _sleep(self, base_delay: float) -> None:
        time.sleep(base_delay + random.uniform(0, base_delay))
