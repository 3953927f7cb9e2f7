import pytest
import requests

import config
from core.gate.application.confirmation import ConfirmationDispatcher
from core.gate.application.execution_adapter import ExecutionAdapter
from core.gate.application.operation_registry import OperationRegistry
from core.gate.application.proposals import propose
from infrastructure.github_issues import (
    GitHubIssueService,
    IssuesClient,
    IssuesClientError,
    IssuesPermissionError,
    RateLimiter,
    load_token,
)


class DummyResponse:
    def __init__(self, status_code=200, payload=None, headers=None):
        self.status_code = status_code
        self._payload = payload or {}
        self.headers = headers or {}
        self.text = str(self._payload)

    def json(self):
        return self._payload


class FlakySession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []
        self.methods = []

    def _next(self, method, url, json, headers):
        self.calls.append((url, json, headers))
        self.methods.append(method)
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp

    def post(self, url, json=None, headers=None, timeout=None):
        return self._next("post", url, json, headers)

    def get(self, url, json=None, headers=None, timeout=None):
        return self._next("get", url, json, headers)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now
        self.slept = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.slept.append(seconds)
        self.now += seconds


def test_issues_client_retries_and_permissions(monkeypatch):
    limiter = RateLimiter()
    session = FlakySession([DummyResponse(500), DummyResponse(200, {"ok": True})])
    client = IssuesClient(session, lambda: "tok", limiter, max_attempts=2)
    monkeypatch.setattr(IssuesClient, "_sleep", lambda self, d: None)

    resp = client.request("get", "repos/o/r/issues", {"a": 1})

    assert resp.status_code == 200
    assert len(session.calls) == 2
    assert session.calls[0][0] == "https://api.github.com/repos/o/r/issues"
    assert session.calls[0][2]["Authorization"] == "token tok"

    with pytest.raises(IssuesPermissionError):
        IssuesClient(session, lambda: None, limiter).request("post", "x", {"a": 1})
    with pytest.raises(IssuesPermissionError):
        IssuesClient(FlakySession([DummyResponse(403)]), lambda: "tok", limiter).request("post", "x", {})


def test_issues_client_network_errors(monkeypatch):
    monkeypatch.setattr(IssuesClient, "_sleep", lambda self, d: None)
    session = FlakySession([requests.RequestException("boom"), DummyResponse(201, {"number": 1})])
    client = IssuesClient(session, lambda: "tok", RateLimiter(), max_attempts=2)
    assert client.request_json("get", "x", {}) == {"number": 1}

    failing = IssuesClient(FlakySession([requests.RequestException("down")]), lambda: "tok", RateLimiter(), max_attempts=1)
    with pytest.raises(IssuesClientError, match="network error"):
        failing.request("post", "x", {})


def test_request_json_raises_on_client_errors():
    client = IssuesClient(FlakySession([DummyResponse(422, {"message": "Validation Failed"})]), lambda: "tok", RateLimiter())
    with pytest.raises(IssuesClientError, match="422"):
        client.request_json("post", "x", {})


def test_rate_limiter_honours_retry_after_and_exhaustion():
    clock = FakeClock()
    limiter = RateLimiter(clock=clock, sleep=clock.sleep, max_step=2.0)

    limiter.update({"Retry-After": "3"})
    assert limiter.wait_seconds == 3.0
    limiter.acquire()
    assert clock.slept == [2.0, 1.0]
    assert limiter.wait_seconds == 0.0

    limiter.update({"x-ratelimit-remaining": "0", "x-ratelimit-reset": str(clock.now + 10)})
    assert limiter.last_remaining == 0
    assert limiter.wait_seconds == 10.0

    limiter.update({"X-RateLimit-Remaining": "1"})
    assert limiter.wait_seconds == 60.0


def test_rate_limiter_ignores_garbage_headers():
    clock = FakeClock()
    limiter = RateLimiter(clock=clock, sleep=clock.sleep)
    limiter.update({"Retry-After": "soon", "X-RateLimit-Remaining": "many"})
    assert limiter.wait_seconds == 0.0
    assert limiter.last_remaining is None


def test_issue_service_posts_issue_and_comment():
    session = FlakySession([DummyResponse(201, {"number": 5, "html_url": "u"}), DummyResponse(201, {"id": 9})])
    service = GitHubIssueService(IssuesClient(session, lambda: "tok", RateLimiter()))

    issue = service.create_issue("o/r", "Title", body="B", labels=["bug"])
    comment = service.add_comment("o/r", 5, "hello")

    assert issue["number"] == 5
    assert comment == {"id": 9}
    assert session.calls[0][0].endswith("/repos/o/r/issues")
    assert session.calls[0][1] == {"title": "Title", "body": "B", "labels": ["bug"]}
    assert session.calls[1][0].endswith("/repos/o/r/issues/5/comments")
    assert session.calls[1][1] == {"body": "hello"}


def test_issue_service_rejects_bad_slug():
    service = GitHubIssueService(IssuesClient(FlakySession([]), lambda: "tok", RateLimiter()))
    with pytest.raises(IssuesClientError):
        service.create_issue("just-a-name", "T")


def test_load_token_prefers_env_and_persists(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "USER_CONFIG_PATH", tmp_path / "cfg.yaml")
    monkeypatch.delenv("PREVIEW_GATE_GITHUB_TOKEN", raising=False)
    monkeypatch.setenv("GITHUB_TOKEN", "env-tok")

    assert load_token() == "env-tok"
    assert config.get_user_token() == "env-tok"

    monkeypatch.delenv("GITHUB_TOKEN")
    assert load_token() == "env-tok"


def test_post_is_not_resent_after_timeout(monkeypatch):
    monkeypatch.setattr(IssuesClient, "_sleep", lambda self, d: None)
    session = FlakySession([requests.ReadTimeout("read timed out"), DummyResponse(201, {"number": 1})])
    service = GitHubIssueService(IssuesClient(session, lambda: "tok", RateLimiter(), max_attempts=3))

    with pytest.raises(IssuesClientError, match="network error"):
        service.create_issue("o/r", "T")

    assert session.methods == ["post"]


def test_post_is_not_resent_after_server_error(monkeypatch):
    monkeypatch.setattr(IssuesClient, "_sleep", lambda self, d: None)
    session = FlakySession([DummyResponse(502), DummyResponse(201, {"id": 1})])
    service = GitHubIssueService(IssuesClient(session, lambda: "tok", RateLimiter(), max_attempts=3))

    with pytest.raises(IssuesClientError, match="502"):
        service.add_comment("o/r", 4, "hello")

    assert len(session.calls) == 1


def test_confirm_with_timed_out_create_fails_once(monkeypatch):
    monkeypatch.setattr(IssuesClient, "_sleep", lambda self, d: None)
    session = FlakySession([requests.ReadTimeout("read timed out"), DummyResponse(201, {"number": 1})])
    service = GitHubIssueService(IssuesClient(session, lambda: "tok", RateLimiter(), max_attempts=3))
    registry = OperationRegistry()
    dispatcher = ConfirmationDispatcher(registry, ExecutionAdapter(service, repository_resolver=lambda args: "o/r"))
    proposal = propose(registry, "issue:CreateSimple", {"initialInput": "Add dark mode"})

    decision = dispatcher.confirm(proposal.operation_id)

    assert decision.status == "error"
    assert "read timed out" in decision.message
    assert session.methods == ["post"]
    assert dispatcher.confirm(proposal.operation_id).status == "not_found"
