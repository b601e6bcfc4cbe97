"""Workflow state and the value objects that flow through it."""

import time
from dataclasses import asdict, dataclass
from typing import Literal, TypedDict

from gengame.errors import GenGameError

WorkflowStatus = Literal["idle", "planning", "generating", "validating", "deployed", "failed"]
AgentTag = Literal["DIRECTOR", "ENGINEER", "QA"]

TERMINAL_STATUSES = {"deployed", "failed"}

# Accept the camelCase keys models tend to return alongside our own names.
_FIELD_ALIASES = {
    "setup_code": ("setup_code", "setupCode", "init"),
    "update_code": ("update_code", "updateCode", "update"),
}


@dataclass(frozen=True)
class Artifact:
    """A generated program: two code bodies plus display metadata.

    A repaired program is a new Artifact; instances are never mutated.
    """

    title: str
    description: str
    setup_code: str
    update_code: str

    @classmethod
    def from_dict(cls, data: dict) -> "Artifact":
        """Build an Artifact from a parsed model response.

        Raises ValueError if either code body is missing or not a string.
        """
        if not isinstance(data, dict):
            raise ValueError("Artifact payload must be a JSON object.")

        values = {}
        for field_name, keys in _FIELD_ALIASES.items():
            value = next((data[k] for k in keys if k in data), None)
            if not isinstance(value, str):
                raise ValueError(f"Artifact payload missing string field '{field_name}'.")
            values[field_name] = value

        return cls(
            title=str(data.get("title") or "Untitled"),
            description=str(data.get("description") or ""),
            **values,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Verdict:
    """Outcome of one validation run."""

    passed: bool
    error: str | None = None
    frames_run: int = 0

    @classmethod
    def ok(cls, frames_run: int) -> "Verdict":
        return cls(passed=True, error=None, frames_run=frames_run)

    @classmethod
    def fail(cls, error: str, frames_run: int = 0) -> "Verdict":
        return cls(passed=False, error=error, frames_run=frames_run)


class LogEntry(TypedDict):
    agent: AgentTag
    message: str
    timestamp: float


class WorkflowState(TypedDict):
    topic: str  # Request that started this workflow. Immutable after init.
    status: WorkflowStatus
    artifact: Artifact | None  # Current candidate; the published result once deployed.
    verdict: Verdict | None  # Latest validation outcome.
    attempts: int  # Completed validations. 0 <= attempts <= max_retries + 1.
    error: str  # Terminal failure message, empty unless status is "failed".
    failure: GenGameError | None  # Exception behind a terminal failure.
    logs: list[LogEntry]  # Append-only trail, in order.


def log_entry(agent: AgentTag, message: str) -> LogEntry:
    """Create a timestamped log entry."""
    return {"agent": agent, "message": message, "timestamp": time.time()}


def initial_state(topic: str) -> WorkflowState:
    """Fresh state for a new workflow; nothing carries over from earlier runs."""
    return {
        "topic": topic,
        "status": "idle",
        "artifact": None,
        "verdict": None,
        "attempts": 0,
        "error": "",
        "failure": None,
        "logs": [],
    }
