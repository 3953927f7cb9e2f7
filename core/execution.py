"""Execution outcome variants.

A confirmed operation is either executed in-process (local strategy) or handed
to a more privileged external executor as a declarative call (delegated
strategy). The two shapes are distinct types so callers branch on the type,
never on loosely shaped dicts.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Union

STRATEGY_LOCAL = "local"
STRATEGY_DELEGATED = "delegated"


@dataclass(frozen=True)
class LocalResult:
    """Result of a mutation performed by this process."""

    tool_name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    message: str = ""

    @property
    def strategy(self) -> str:
        return STRATEGY_LOCAL

    def to_response(self) -> Dict[str, Any]:
        result = dict(self.payload)
        if self.message:
            result.setdefault("message", self.message)
        return {"result": result}


@dataclass(frozen=True)
class DelegatedCall:
    """Call descriptor the host runtime must execute on our behalf."""

    tool: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    @property
    def strategy(self) -> str:
        return STRATEGY_DELEGATED

    def to_response(self) -> Dict[str, Any]:
        return {"delegation": {"tool": self.tool, "parameters": dict(self.parameters)}}


ExecutionOutcome = Union[LocalResult, DelegatedCall]
