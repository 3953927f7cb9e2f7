"""Interactive operator console over an in-process registry.

Lets a human draft simple issue proposals and walk them through the same
confirm / cancel / revise protocol the MCP server exposes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from prompt_toolkit import PromptSession, print_formatted_text
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.formatted_text import FormattedText

from core import GateError, InvalidInputError, OperationNotFoundError
from core.gate.application.confirmation import ConfirmationDispatcher, Decision
from core.gate.application.operation_registry import OperationRegistry
from core.gate.application.proposals import propose

COMMANDS = ("propose", "list", "show", "confirm", "cancel", "revise", "sweep", "help", "quit")
_NEEDS_ID = frozenset({"show", "confirm", "cancel", "revise"})
_NEEDS_TEXT = frozenset({"propose"})

HELP_TEXT = """Commands:
  propose <text>        draft a new issue proposal (issue:CreateSimple)
  list                  list pending operations
  show <id>             show the stored preview
  confirm <id>          execute the operation
  cancel <id>           drop the operation
  revise <id> <text>    fold more requirements into the proposal
  sweep                 evict expired operations
  quit                  leave the console"""

_STATUS_STYLE = {
    "confirmed": "ansigreen",
    "revised": "ansicyan",
    "cancelled": "ansiyellow",
    "pending": "ansicyan",
}


@dataclass(frozen=True)
class ConsoleCommand:
    name: str
    operation_id: str = ""
    text: str = ""


def parse_command(line: str) -> Optional[ConsoleCommand]:
    """Parse one console line; None for blank input."""
    parts = (line or "").strip().split(maxsplit=1)
    if not parts:
        return None
    name = parts[0].lower()
    rest = parts[1].strip() if len(parts) > 1 else ""
    if name in ("exit", "q"):
        name = "quit"
    if name not in COMMANDS:
        raise InvalidInputError(f"unknown command: {name} (try 'help')")
    if name in _NEEDS_TEXT:
        if not rest:
            raise InvalidInputError(f"{name} needs text")
        return ConsoleCommand(name, text=rest)
    if name in _NEEDS_ID:
        op_id, _, text = rest.partition(" ")
        if not op_id:
            raise InvalidInputError(f"{name} needs an operation id")
        return ConsoleCommand(name, operation_id=op_id, text=text.strip())
    return ConsoleCommand(name)


class ReviewConsole:
    def __init__(
        self,
        registry: OperationRegistry,
        dispatcher: ConfirmationDispatcher,
        repository: str = "",
        echo: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.registry = registry
        self.dispatcher = dispatcher
        self.repository = repository
        self._echo = echo or self._print

    @staticmethod
    def _print(text: str, style: str = "") -> None:
        print_formatted_text(FormattedText([(style, text)]))

    def execute(self, command: ConsoleCommand) -> Tuple[str, str]:
        """Run one command; return (text, style)."""
        if command.name == "help":
            return HELP_TEXT, ""
        if command.name == "list":
            return self._list(), ""
        if command.name == "sweep":
            return f"evicted {self.registry.sweep()} expired operation(s)", ""
        if command.name == "propose":
            args = {"initialInput": command.text}
            if self.repository:
                args["repository"] = self.repository
            proposal = propose(self.registry, "issue:CreateSimple", args)
            return f"{proposal.preview}\n\noperation id: {proposal.operation_id}", _STATUS_STYLE["pending"]
        if command.name == "show":
            try:
                return self.registry.require(command.operation_id).preview_text, ""
            except OperationNotFoundError as exc:
                return str(exc), "ansired"
        decision = self.dispatcher.handle(command.operation_id, command.name, command.text or None)
        return self._render(decision), _STATUS_STYLE.get(decision.status, "ansired")

    def _list(self) -> str:
        items = self.registry.list_pending()
        if not items:
            return "no pending operations"
        now = self.registry.now()
        lines: List[str] = []
        for item in items:
            lines.append(
                f"{item.id}  {item.tool_name:<28} {item.type:<16} expires in {int(item.remaining_seconds(now))}s"
            )
        return "\n".join(lines)

    @staticmethod
    def _render(decision: Decision) -> str:
        if decision.status == "revised":
            return f"{decision.preview}\n\noperation id: {decision.operation_id}"
        return json.dumps(decision.to_dict(), ensure_ascii=False, indent=2)

    def run(self, session: Optional[PromptSession] = None) -> int:
        session = session or PromptSession(completer=WordCompleter(list(COMMANDS), ignore_case=True))
        self._echo("preview gate review console; 'help' lists commands", "ansibrightblack")
        while True:
            try:
                line = session.prompt("preview-gate> ")
            except KeyboardInterrupt:
                continue
            except EOFError:
                break
            try:
                command = parse_command(line)
            except InvalidInputError as exc:
                self._echo(str(exc), "ansired")
                continue
            if command is None:
                continue
            if command.name == "quit":
                break
            try:
                text, style = self.execute(command)
            except GateError as exc:
                text, style = str(exc), "ansired"
            self._echo(text, style)
        return 0
