"""GenGame — Streamlit UI for the generate → validate → repair workflow."""

import sys
from pathlib import Path

# Add project root to path so 'gengame' package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from datetime import datetime

import streamlit as st

from gengame.agents.debugger import GameDebugger
from gengame.agents.engineer import GameEngineer
from gengame.config import get_config, project_path
from gengame.orchestrator import Orchestrator
from gengame.repository import JsonGameRepository
from gengame.state import Artifact, LogEntry

st.set_page_config(page_title="GenGame", layout="wide")
st.title("GenGame")
st.markdown(
    "Turns a news topic into a small interactive game. An **Engineer** model writes "
    "the game, a headless **QA** sandbox plays it with fuzzed input for 300 frames, "
    "and failing builds go back to a **Debugger** model for repair before anything "
    "is published."
)

st.divider()


def _repository() -> JsonGameRepository:
    config = get_config()
    return JsonGameRepository(project_path(config.get("repository_path", "./output/games.json")))


def _render_log_line(entry: LogEntry) -> str:
    stamp = datetime.fromtimestamp(entry["timestamp"]).strftime("%H:%M:%S")
    return f"`{stamp}` **{entry['agent']}** {entry['message']}"


def _render_artifact(artifact: Artifact) -> None:
    st.subheader(artifact.title)
    if artifact.description:
        st.markdown(artifact.description)
    left, right = st.columns(2)
    with left:
        st.caption("setup_code")
        st.code(artifact.setup_code, language="python")
    with right:
        st.caption("update_code")
        st.code(artifact.update_code, language="python")


def _run_workflow(topic: str) -> None:
    """Run one workflow, streaming the log trail into a status widget."""
    with st.status("Building game...", expanded=True) as status_widget:
        orchestrator = Orchestrator(
            generator=GameEngineer(),
            fixer=GameDebugger(),
            log_sink=lambda entry: st.markdown(_render_log_line(entry)),
        )
        try:
            final_state = orchestrator.run(topic)
        except ValueError as exc:
            status_widget.update(label="Invalid topic", state="error")
            st.error(str(exc))
            return

        if orchestrator.artifact is not None:
            status_widget.update(label="Deployed", state="complete", expanded=False)
        else:
            status_widget.update(label="Failed", state="error")

    st.session_state["gengame_state"] = final_state
    st.session_state["gengame_artifact"] = orchestrator.artifact


def _render_result() -> None:
    state = st.session_state.get("gengame_state")
    if not state:
        return

    artifact = st.session_state.get("gengame_artifact")
    if artifact is None:
        st.error(state["error"] or "Workflow failed.")
        if state.get("artifact"):
            with st.expander("Last rejected build"):
                _render_artifact(state["artifact"])
        return

    st.success(f"Deployed after {state['attempts']} validation attempt(s).")
    _render_artifact(artifact)
    if st.button("Save to leaderboard"):
        saved = _repository().save(artifact)
        st.toast(f"Saved as {saved.id}")


def _render_leaderboard() -> None:
    st.subheader("Leaderboard")
    games = _repository().get_all()
    if not games:
        st.markdown("*No saved games yet.*")
        return

    for rank, game in enumerate(games, 1):
        cols = st.columns([1, 6, 2])
        cols[0].markdown(f"**#{rank}**")
        cols[1].markdown(f"**{game.title}** — {game.description}")
        if cols[2].button(f"Like ({game.likes})", key=f"like_{game.id}"):
            _repository().like(game.id)
            st.rerun()


# ---------------------------------------------------------------------------
# Main flow
# ---------------------------------------------------------------------------

topic = st.text_input("Topic:", placeholder="e.g. Central bank raises interest rates")

if st.button("Generate Game", type="primary"):
    _run_workflow(topic)

_render_result()

st.divider()
_render_leaderboard()
