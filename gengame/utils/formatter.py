"""Output Formatter — renders a finished workflow as a Markdown run report."""

import re
from datetime import datetime, timezone
from pathlib import Path

from gengame.config import get_config, project_path
from gengame.state import WorkflowState


def _slug(title: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")


def _render_markdown(state: WorkflowState) -> str:
    """Convert a terminal workflow state into a Markdown report."""
    lines = []
    artifact = state.get("artifact")
    title = artifact.title if artifact else "Untitled Game"

    lines.append(f"# {title} — Build Report")
    lines.append("")
    lines.append(f"- **Topic:** {state.get('topic', '')}")
    lines.append(f"- **Status:** {state.get('status', 'unknown')}")
    lines.append(f"- **Validation attempts:** {state.get('attempts', 0)}")
    lines.append("")

    if state.get("status") == "failed" and state.get("error"):
        lines.append("## Failure")
        lines.append("")
        lines.append(state["error"])
        lines.append("")

    if artifact:
        if artifact.description:
            lines.append("## How to Play")
            lines.append("")
            lines.append(artifact.description)
            lines.append("")
        lines.append("## setup_code")
        lines.append("")
        lines.append(f"```python\n{artifact.setup_code}\n```")
        lines.append("")
        lines.append("## update_code")
        lines.append("")
        lines.append(f"```python\n{artifact.update_code}\n```")
        lines.append("")

    logs = state.get("logs", [])
    if logs:
        lines.append("## Agent Log")
        lines.append("")
        lines.append("| Time (UTC) | Agent | Message |")
        lines.append("|------------|-------|---------|")
        for entry in logs:
            stamp = datetime.fromtimestamp(entry["timestamp"], tz=timezone.utc).strftime("%H:%M:%S")
            message = entry["message"].replace("|", "\\|").replace("\n", " ")
            lines.append(f"| {stamp} | {entry['agent']} | {message} |")
        lines.append("")

    return "\n".join(lines)


def write_report(state: WorkflowState) -> Path:
    """Write the run report to the configured output directory.

    The filename is derived from the artifact title; existing files are never
    overwritten. Returns the Path to the written file.
    """
    config = get_config()
    base_path = project_path(config.get("output_path", "./output/report.md"))
    output_dir = base_path.parent
    output_dir.mkdir(parents=True, exist_ok=True)

    artifact = state.get("artifact")
    stem = _slug(artifact.title) if artifact else ""
    if not stem:
        stem = base_path.stem

    output_path = output_dir / f"{stem}.md"
    counter = 1
    while output_path.exists():
        counter += 1
        output_path = output_dir / f"{stem} ({counter}).md"

    output_path.write_text(_render_markdown(state), encoding="utf-8")
    return output_path
