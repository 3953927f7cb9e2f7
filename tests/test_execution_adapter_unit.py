import pytest

from core import (
    DelegatedCall,
    ExecutionFailureError,
    LocalResult,
    PendingOperation,
    STRATEGY_DELEGATED,
    STRATEGY_LOCAL,
)
from core.gate.application.execution_adapter import (
    DELEGATED_TOOLS,
    LOCAL_TOOLS,
    ExecutionAdapter,
    strategy_for,
)


class RecordingIssueService:
    def __init__(self):
        self.issues = []
        self.comments = []
        self.fail_titles = set()
        self.fail_comment = False

    def create_issue(self, repository, title, body="", labels=None, assignees=None):
        if title in self.fail_titles:
            raise RuntimeError(f"cannot create {title}")
        number = 100 + len(self.issues)
        self.issues.append(
            {"repository": repository, "title": title, "body": body, "labels": labels, "assignees": assignees}
        )
        return {"number": number, "html_url": f"https://github.com/{repository}/issues/{number}"}

    def add_comment(self, repository, issue_number, body):
        if self.fail_comment:
            raise RuntimeError("comment rejected")
        self.comments.append({"repository": repository, "issue_number": issue_number, "body": body})
        return {"html_url": f"https://github.com/{repository}/issues/{issue_number}#issuecomment-1"}


def make_op(tool_name, args, op_type="issue_creation"):
    return PendingOperation(
        id="preview_test",
        tool_name=tool_name,
        type=op_type,
        original_args=args,
        preview_text="p",
        created_at=0.0,
        expires_at=10.0,
    )


@pytest.fixture
def service():
    return RecordingIssueService()


@pytest.fixture
def adapter(service):
    return ExecutionAdapter(service, repository_resolver=lambda args: args.get("repository") or "acme/app")


def test_strategy_is_a_function_of_tool_name():
    for tool in LOCAL_TOOLS:
        assert strategy_for(tool) == STRATEGY_LOCAL
    for tool in DELEGATED_TOOLS:
        assert strategy_for(tool) == STRATEGY_DELEGATED
    assert not set(LOCAL_TOOLS) & set(DELEGATED_TOOLS)
    with pytest.raises(ExecutionFailureError):
        strategy_for("github:DeleteRepository")


def test_simple_issue_uses_heuristics(adapter, service):
    outcome = adapter.execute(make_op("issue:CreateSimple", {"initialInput": "refactor the architecture. Soon."}))

    assert isinstance(outcome, LocalResult)
    assert outcome.payload["priority"] == "High"
    created = service.issues[0]
    assert created["repository"] == "acme/app"
    assert created["title"] == "Refactor the architecture"
    assert created["labels"] == ["architecture", "high-priority"]
    assert "## Type\n\nImprovement" in created["body"]


def test_thought_issue_honours_explicit_metadata(adapter, service):
    outcome = adapter.execute(
        make_op(
            "issue:CreateFromThought",
            {
                "thoughtContent": "cache responses",
                "category": "optimization",
                "suggestedPriority": "Low",
                "customTitle": "Response cache",
                "repository": "me/tool",
            },
        )
    )

    assert outcome.payload["title"] == "Response cache"
    assert service.issues[0]["repository"] == "me/tool"
    assert service.issues[0]["labels"] == ["optimization", "low-priority"]


def test_append_posts_section_comment(adapter, service):
    outcome = adapter.execute(
        make_op("issue:AppendToExistingIssue", {"issueNumber": "#42", "content": "more detail"}, "comment_creation")
    )

    assert outcome.payload["issueNumber"] == 42
    assert service.comments == [
        {"repository": "acme/app", "issue_number": 42, "body": "## Additional Thoughts\n\nmore detail"}
    ]


def test_sub_issues_created_and_checklisted(adapter, service):
    outcome = adapter.execute(
        make_op(
            "issue:CreateWithSubIssues",
            {"title": "Epic", "labels": ["epic"], "subIssues": [{"title": "a"}, {"title": "b", "body": "details"}]},
        )
    )

    assert [issue["title"] for issue in service.issues] == ["Epic", "[Sub-issue 1] a", "[Sub-issue 2] b"]
    assert service.issues[1]["labels"] == ["epic", "sub-issue"]
    assert service.issues[2]["body"] == "**Parent Issue:** #100\n\ndetails"
    assert service.comments[0]["body"] == "## Sub-issues\n\n- [ ] #101 a\n- [ ] #102 b"
    assert len(outcome.payload["subIssues"]) == 2


def test_sub_issue_errors_are_aggregated(adapter, service):
    service.fail_titles = {"[Sub-issue 1] a"}
    service.fail_comment = True

    with pytest.raises(ExecutionFailureError) as excinfo:
        adapter.execute(
            make_op("issue:CreateWithSubIssues", {"title": "Epic", "subIssues": [{"title": "a"}, {"title": "b"}]})
        )

    assert excinfo.value.errors == [
        "sub-issue 1 (a): cannot create [Sub-issue 1] a",
        "parent checklist comment: comment rejected",
    ]


def test_service_failure_is_wrapped(adapter, service):
    service.fail_titles = {"Boom"}
    with pytest.raises(ExecutionFailureError, match="issue:CreateSimple failed"):
        adapter.execute(make_op("issue:CreateSimple", {"initialInput": "boom"}))


def test_local_without_service_fails():
    adapter = ExecutionAdapter(None, repository_resolver=lambda args: "a/b")
    with pytest.raises(ExecutionFailureError, match="no issue service"):
        adapter.execute(make_op("issue:CreateSimple", {"initialInput": "x"}))


def test_unresolvable_repository_fails(service):
    def resolver(args):
        raise RuntimeError("remote.origin.url is not configured")

    adapter = ExecutionAdapter(service, repository_resolver=resolver)
    with pytest.raises(ExecutionFailureError, match="cannot resolve target repository"):
        adapter.execute(make_op("issue:CreateSimple", {"initialInput": "x"}))
    assert service.issues == []


@pytest.mark.parametrize(
    "tool,args,expected_tool,expected_params",
    [
        (
            "github:UpdateIssue",
            {"owner": "o", "repo": "r", "issue_number": 3, "state": "closed", "title": "", "current": {"title": "t"}},
            "mcp__github__update_issue",
            {"owner": "o", "repo": "r", "issue_number": 3, "state": "closed"},
        ),
        (
            "github:AddComment",
            {"owner": "o", "repo": "r", "issue_number": 3, "body": "hi"},
            "mcp__github__add_issue_comment",
            {"owner": "o", "repo": "r", "issue_number": 3, "body": "hi"},
        ),
        (
            "github:CreatePullRequest",
            {"owner": "o", "repo": "r", "title": "T", "head": "f", "base": "main", "reviewers": []},
            "mcp__github__create_pull_request",
            {"owner": "o", "repo": "r", "title": "T", "head": "f", "base": "main"},
        ),
        (
            "github:UpdatePullRequest",
            {"owner": "o", "repo": "r", "pullNumber": 9, "draft": False},
            "mcp__github__update_pull_request",
            {"owner": "o", "repo": "r", "pullNumber": 9, "draft": False},
        ),
    ],
)
def test_delegated_descriptors(adapter, service, tool, args, expected_tool, expected_params):
    outcome = adapter.execute(make_op(tool, args))

    assert isinstance(outcome, DelegatedCall)
    assert outcome.strategy == STRATEGY_DELEGATED
    assert outcome.tool == expected_tool
    assert outcome.parameters == expected_params
    assert service.issues == [] and service.comments == []
