"""Debugger Agent — repairs an Artifact that failed QA (the Fixer port)."""

from dataclasses import replace

from langchain_anthropic import ChatAnthropic

from gengame.agents.engineer import CAPABILITY_CONTRACT, RESPONSE_SCHEMA
from gengame.config import get_config
from gengame.errors import UpstreamError
from gengame.state import Artifact
from gengame.utils.parsing import request_artifact

SYSTEM_PROMPT = (
    "You are a Senior Game Engineer specializing in debugging. You fix runtime "
    "errors in sandboxed Python mini-games.\n\n" + CAPABILITY_CONTRACT
)

FIX_PROMPT = """\
The following game failed the automated QA run.

QA error: "{error}"

Current setup_code:
```python
{setup_code}
```

Current update_code:
```python
{update_code}
```

Task: fix the bug.
1. Analyze the error message.
2. Ensure every scratch field is initialized in setup_code before update_code reads it.
3. Remove logic errors such as division by zero, NaN arithmetic or unbounded loops.
4. Keep the title and description the same (or improve them slightly).
5. Return the FULL replacement, not a diff.

{schema}"""


class GameDebugger:
    """Fixer port backed by Claude."""

    def __init__(self, llm=None):
        if llm is None:
            config = get_config()
            llm = ChatAnthropic(
                model=config["debugger_model"],
                temperature=config.get("debugger_temperature", 0.2),
            )
        self.llm = llm

    def fix(self, artifact: Artifact, error: str) -> Artifact:
        """Return a replacement Artifact. Raises UpstreamError on any failure."""
        prompt = FIX_PROMPT.format(
            error=error,
            setup_code=artifact.setup_code,
            update_code=artifact.update_code,
            schema=RESPONSE_SCHEMA,
        )
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        try:
            fixed = request_artifact(self.llm, messages)
        except Exception as exc:
            raise UpstreamError(f"Repair failed: {exc}") from exc

        # Models sometimes drop the metadata when only the code changed.
        if fixed.title == "Untitled":
            fixed = replace(fixed, title=artifact.title)
        if not fixed.description:
            fixed = replace(fixed, description=artifact.description)
        return fixed
