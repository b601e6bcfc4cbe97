"""LangGraph StateGraph definition for the generate → validate → repair loop."""

from langgraph.graph import END, StateGraph

from gengame.errors import RetriesExhaustedError, UpstreamError
from gengame.ports import ArtifactValidator, Fixer, Generator
from gengame.state import WorkflowState, log_entry

MAX_RETRIES = 2  # Fixer calls per workflow; validations are bounded by MAX_RETRIES + 1.


def route_after_validation(state: WorkflowState, max_retries: int = MAX_RETRIES) -> str:
    """Conditional edge: decide next step after the validate node.

    ``attempts`` counts completed validations, so a failing artifact is sent
    to the Fixer while ``attempts <= max_retries`` and the loop gives up once
    ``max_retries + 1`` validations have failed.
    """
    verdict = state["verdict"]
    if verdict is not None and verdict.passed:
        return "deploy"
    if state["attempts"] <= max_retries:
        return "fix"
    return "exhaust"


def _route_after_build(state: WorkflowState) -> str:
    """Conditional edge after generate/fix: an upstream failure ends the run."""
    return "end" if state["status"] == "failed" else "validate"


class WorkflowNodes:
    """Graph nodes bound to one set of injected ports.

    Every node returns a partial state update; the log trail is extended by
    copying, never mutated in place.
    """

    def __init__(
        self,
        generator: Generator,
        fixer: Fixer,
        validator: ArtifactValidator,
        max_retries: int = MAX_RETRIES,
    ):
        self.generator = generator
        self.fixer = fixer
        self.validator = validator
        self.max_retries = max_retries

    def plan(self, state: WorkflowState) -> dict:
        """Start a fresh workflow: clear any held artifact and the log trail."""
        return {
            "status": "planning",
            "artifact": None,
            "verdict": None,
            "attempts": 0,
            "error": "",
            "failure": None,
            "logs": [
                log_entry("DIRECTOR", f'Analyzing topic: "{state["topic"]}"...'),
                log_entry("DIRECTOR", "Extracting core metaphors and gameplay mechanics..."),
                log_entry("DIRECTOR", "Design brief ready. Transmitting to Engineer."),
            ],
        }

    def generate(self, state: WorkflowState) -> dict:
        logs = state["logs"] + [
            log_entry("ENGINEER", "Received brief. Generating game logic and rendering loop..."),
        ]
        try:
            artifact = self.generator.generate(state["topic"])
        except UpstreamError as exc:
            logs.append(log_entry("ENGINEER", f"Workflow halted: {exc}"))
            return {"status": "failed", "error": str(exc), "failure": exc, "logs": logs}

        logs.append(
            log_entry("ENGINEER", f'Build "{artifact.title}" compiled. Sending to QA sandbox...')
        )
        return {"status": "generating", "artifact": artifact, "logs": logs}

    def validate(self, state: WorkflowState) -> dict:
        attempt = state["attempts"] + 1
        if attempt == 1:
            opening = "Initializing headless sandbox. Running setup and frame loop verification..."
        else:
            opening = f"Re-running validation suite (Attempt {attempt}/{self.max_retries + 1})..."
        logs = state["logs"] + [log_entry("QA", opening)]

        verdict = self.validator.validate(state["artifact"])

        if verdict.passed:
            logs.append(log_entry("QA", "Smoke test passed."))
            logs.append(
                log_entry(
                    "QA",
                    f"Input fuzzing passed ({verdict.frames_run} frames of pointer/keyboard simulation).",
                )
            )
        else:
            logs.append(log_entry("QA", f"TEST FAILED: {verdict.error}"))

        return {"status": "validating", "verdict": verdict, "attempts": attempt, "logs": logs}

    def fix(self, state: WorkflowState) -> dict:
        error = state["verdict"].error or "Unknown error"
        logs = state["logs"] + [
            log_entry("QA", "Rejecting build. Sending bug report to Engineer..."),
            log_entry("ENGINEER", "Analyzing crash report. Applying hotfix..."),
        ]
        try:
            fixed = self.fixer.fix(state["artifact"], error)
        except UpstreamError as exc:
            logs.append(log_entry("ENGINEER", f"Workflow halted: {exc}"))
            return {"status": "failed", "error": str(exc), "failure": exc, "logs": logs}

        logs.append(log_entry("ENGINEER", "Hotfix applied. Re-submitting for review..."))
        return {"status": "generating", "artifact": fixed, "logs": logs}

    def deploy(self, state: WorkflowState) -> dict:
        return {
            "status": "deployed",
            "logs": state["logs"] + [log_entry("QA", "Stability verified. Authorizing deployment.")],
        }

    def exhaust(self, state: WorkflowState) -> dict:
        """Set status to failed when every allowed validation has failed."""
        exc = RetriesExhaustedError(state["verdict"].error or "Unknown error", state["attempts"])
        return {
            "status": "failed",
            "error": str(exc),
            "failure": exc,
            "logs": state["logs"] + [
                log_entry("QA", "Critical failure: max retries exceeded. Aborting."),
                log_entry("ENGINEER", f"Workflow halted: {exc}"),
            ],
        }

    def route_after_validation(self, state: WorkflowState) -> str:
        return route_after_validation(state, self.max_retries)


def build_graph(nodes: WorkflowNodes):
    """Compile the workflow graph around one set of injected ports."""
    workflow = StateGraph(WorkflowState)

    workflow.add_node("plan", nodes.plan)
    workflow.add_node("generate", nodes.generate)
    workflow.add_node("validate", nodes.validate)
    workflow.add_node("fix", nodes.fix)
    workflow.add_node("deploy", nodes.deploy)
    workflow.add_node("exhaust", nodes.exhaust)

    workflow.set_entry_point("plan")

    workflow.add_edge("plan", "generate")

    workflow.add_conditional_edges(
        "generate",
        _route_after_build,
        {"validate": "validate", "end": END},
    )
    workflow.add_conditional_edges(
        "validate",
        nodes.route_after_validation,
        {"deploy": "deploy", "fix": "fix", "exhaust": "exhaust"},
    )
    workflow.add_conditional_edges(
        "fix",
        _route_after_build,
        {"validate": "validate", "end": END},
    )

    workflow.add_edge("deploy", END)
    workflow.add_edge("exhaust", END)

    return workflow.compile()


def recursion_limit(max_retries: int) -> int:
    """Graph steps needed for the longest run: plan, generate, then validate/fix pairs."""
    return 2 * (max_retries + 1) + 6
