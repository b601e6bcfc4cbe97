"""Orchestrator — owns one workflow instance and drives the self-healing graph.

Ports are injected here; nothing is a module-level singleton. Every status
change streamed out of the graph is checked against the transition table
below, and new log entries are forwarded to the optional log sink as they
appear.
"""

from gengame.config import get_config
from gengame.errors import ArtifactRuntimeError
from gengame.graph import MAX_RETRIES, WorkflowNodes, build_graph, recursion_limit
from gengame.ports import ArtifactValidator, Fixer, Generator, LogSink
from gengame.qa.validator import Validator
from gengame.state import TERMINAL_STATUSES, Artifact, WorkflowState, initial_state, log_entry
from gengame.utils.topic import validate_topic

TRANSITIONS = {
    "idle": {"planning"},
    "planning": {"generating", "failed"},
    "generating": {"validating", "failed"},
    "validating": {"deployed", "generating", "failed"},
    "deployed": {"planning", "failed"},
    "failed": {"planning"},
}


class Orchestrator:
    def __init__(
        self,
        generator: Generator,
        fixer: Fixer,
        validator: ArtifactValidator | None = None,
        max_retries: int | None = None,
        log_sink: LogSink | None = None,
    ):
        if max_retries is None:
            max_retries = get_config().get("max_retries", MAX_RETRIES)
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0.")

        self.max_retries = max_retries
        self.validator = validator or Validator.from_config()
        self._graph = build_graph(WorkflowNodes(generator, fixer, self.validator, max_retries))
        self._log_sink = log_sink
        self._state: WorkflowState = initial_state("")

    # --- Read-only views ---

    @property
    def state(self) -> WorkflowState:
        return dict(self._state)

    @property
    def status(self) -> str:
        return self._state["status"]

    @property
    def artifact(self) -> Artifact | None:
        """The published artifact; None unless the workflow is deployed."""
        if self._state["status"] != "deployed":
            return None
        return self._state["artifact"]

    @property
    def logs(self) -> list:
        return list(self._state["logs"])

    @property
    def error(self) -> str:
        return self._state["error"]

    @property
    def failure(self):
        return self._state["failure"]

    # --- Transitions ---

    def _advance(self, new_state: WorkflowState) -> None:
        old_status, new_status = self._state["status"], new_state["status"]
        if new_status != old_status and new_status not in TRANSITIONS[old_status]:
            raise RuntimeError(f"Illegal workflow transition: {old_status} -> {new_status}")

        fresh = new_state["logs"][len(self._state["logs"]):]
        self._state = new_state

        if self._log_sink:
            for entry in fresh:
                self._log_sink(entry)

    def run(self, topic: str) -> WorkflowState:
        """Run one workflow to a terminal state and return the final state.

        Raises ValueError for an empty topic and RuntimeError if a workflow is
        already in progress on this instance.
        """
        if self.status != "idle" and self.status not in TERMINAL_STATUSES:
            raise RuntimeError(f"Workflow already in progress (status: {self.status}).")
        topic = validate_topic(topic)

        # A previous run's artifact, budget and logs are discarded; only the
        # status is kept so the first transition is checked.
        start = initial_state(topic)
        self._state = {**start, "status": self.status}

        try:
            for values in self._graph.stream(
                start,
                stream_mode="values",
                config={"recursion_limit": recursion_limit(self.max_retries)},
            ):
                if values["status"] == "idle":
                    continue
                self._advance(values)
        except Exception as exc:
            self._state = {**self._state, "status": "failed", "error": str(exc), "failure": None}
            raise

        return self.state

    def report_crash(self, error: str) -> None:
        """Record a runtime crash seen after deployment and roll the workflow back to failed."""
        if self.status != "deployed":
            raise RuntimeError("Only a deployed workflow can report a production crash.")
        failure = ArtifactRuntimeError(f"Runtime error in production: {error}")
        self._advance({
            **self._state,
            "status": "failed",
            "error": str(failure),
            "failure": failure,
            "logs": self._state["logs"] + [
                log_entry("QA", f"Runtime error detected in production: {error}"),
                log_entry("QA", "Initiating emergency rollback..."),
            ],
        })
