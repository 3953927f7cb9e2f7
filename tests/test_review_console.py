import json

import pytest

from core import InvalidInputError
from core.gate.application.confirmation import ConfirmationDispatcher
from core.gate.application.execution_adapter import ExecutionAdapter
from core.gate.application.operation_registry import OperationRegistry
from core.gate.interface.review_console import ConsoleCommand, ReviewConsole, parse_command


class FakeSession:
    def __init__(self, lines):
        self.lines = list(lines)

    def prompt(self, message):
        if not self.lines:
            raise EOFError
        item = self.lines.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class NullIssueService:
    def __init__(self):
        self.created = []

    def create_issue(self, repository, title, body="", labels=None, assignees=None):
        self.created.append((repository, title))
        return {"number": 1, "html_url": "u"}

    def add_comment(self, repository, issue_number, body):
        return {"html_url": "u"}


@pytest.fixture
def console():
    registry = OperationRegistry()
    service = NullIssueService()
    adapter = ExecutionAdapter(service, repository_resolver=lambda args: args.get("repository") or "acme/app")
    echoed = []
    con = ReviewConsole(
        registry,
        ConfirmationDispatcher(registry, adapter),
        repository="acme/app",
        echo=lambda text, style="": echoed.append((text, style)),
    )
    con.echoed = echoed
    con.service = service
    return con


def test_parse_command_variants():
    assert parse_command("   ") is None
    assert parse_command("list") == ConsoleCommand("list")
    assert parse_command("q") == ConsoleCommand("quit")
    assert parse_command("propose add search box") == ConsoleCommand("propose", text="add search box")
    assert parse_command("revise preview_1 also on mobile") == ConsoleCommand(
        "revise", operation_id="preview_1", text="also on mobile"
    )


def test_parse_command_errors():
    with pytest.raises(InvalidInputError):
        parse_command("approve preview_1")
    with pytest.raises(InvalidInputError):
        parse_command("confirm")
    with pytest.raises(InvalidInputError):
        parse_command("propose")


def test_propose_revise_confirm_flow(console):
    text, style = console.execute(ConsoleCommand("propose", text="Add search box"))
    assert style == "ansicyan"
    op_id = text.rsplit("operation id: ", 1)[1].strip()
    assert console.registry.get(op_id).original_args["repository"] == "acme/app"

    text, _ = console.execute(ConsoleCommand("revise", operation_id=op_id, text="with autocomplete"))
    assert "with autocomplete" in text

    text, style = console.execute(ConsoleCommand("confirm", operation_id=op_id))
    assert style == "ansigreen"
    assert json.loads(text)["status"] == "confirmed"
    assert console.service.created == [("acme/app", "Add search box")]


def test_list_show_and_missing(console):
    assert console.execute(ConsoleCommand("list"))[0] == "no pending operations"
    text, _ = console.execute(ConsoleCommand("propose", text="x"))
    op_id = text.rsplit("operation id: ", 1)[1].strip()

    listing, _ = console.execute(ConsoleCommand("list"))
    assert op_id in listing
    assert "issue:CreateSimple" in listing
    assert console.execute(ConsoleCommand("show", operation_id=op_id))[0] == console.registry.get(op_id).preview_text
    assert console.execute(ConsoleCommand("show", operation_id="nope"))[1] == "ansired"
    assert console.execute(ConsoleCommand("cancel", operation_id="nope"))[1] == "ansired"


def test_run_loop_handles_errors_and_exits(console):
    session = FakeSession(["", "bogus", KeyboardInterrupt(), "help", "sweep", "quit", "list"])

    assert console.run(session=session) == 0

    texts = [text for text, _ in console.echoed]
    assert any("unknown command" in text for text in texts)
    assert any(text.startswith("Commands:") for text in texts)
    assert any(text.startswith("evicted 0") for text in texts)
    assert session.lines == ["list"]


def test_run_stops_on_eof(console):
    assert console.run(session=FakeSession([])) == 0
