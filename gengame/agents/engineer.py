"""Engineer Agent — turns a topic into a playable Artifact (the Generator port).

The model returns JSON with title, description, setup_code and update_code.
Both code bodies are Python and may only use the capabilities the sandbox
passes in: ``surface`` and ``scratch`` (plus ``input`` in update).
"""

from langchain_google_genai import ChatGoogleGenerativeAI

from gengame.config import get_config
from gengame.errors import UpstreamError
from gengame.state import Artifact
from gengame.utils.guidance import load_guidance
from gengame.utils.parsing import request_artifact

CAPABILITY_CONTRACT = """\
Both code bodies are plain Python statements (a function body, no `def` line).
They run in a sandbox: no imports, no `global`, no classes, no names or
attributes starting with an underscore, no bare `except:`. Available names:

- `surface`: drawing surface, `surface.width` / `surface.height`. Style
  attributes: fill_style, stroke_style, line_width, font, text_align,
  global_alpha. Methods: clear_rect(x, y, w, h), fill_rect(x, y, w, h),
  stroke_rect(x, y, w, h), begin_path(), close_path(), move_to(x, y),
  line_to(x, y), arc(x, y, radius, start_angle, end_angle), fill(), stroke(),
  fill_text(text, x, y), save(), restore(). Nothing else exists on it.
- `scratch`: your persistent memory, starts empty. Use attributes
  (scratch.score = 0) or items (scratch["score"]). Store nested data as
  dicts and lists, e.g. scratch.player = {"x": 100, "y": 100, "vx": 0, "vy": 0}.
- `input` (update only, read-only): input.x, input.y (pointer position),
  input.is_down (bool), input.keys (dict of bools for "up", "down", "left",
  "right", "w", "a", "s", "d", "space", "enter").
- `math` (the standard module) and `random` (a random.Random instance).
- Builtins: abs, all, any, bool, dict, divmod, enumerate, filter, float, int,
  isinstance, len, list, map, max, min, pow, range, reversed, round, set,
  sorted, str, sum, tuple, zip.

setup_code runs once. update_code runs every frame (60 fps): clear the
surface, advance the simulation, draw.
"""

RESPONSE_SCHEMA = """\
Respond with ONLY a JSON object, no markdown fences, no commentary:
{
  "title": "string",
  "description": "string — short instructions on how to play",
  "setup_code": "string — Python body for setup(surface, scratch)",
  "update_code": "string — Python body for update(surface, scratch, input)"
}
"""

SYSTEM_PROMPT = (
    "You are an autonomous Game Engine Engineer agent. Your goal is to create a "
    "playable, bug-free mini-game based on a news topic or concept from the Director. "
    "Think about the metaphor of the topic and translate it into game mechanics.\n\n"
    + CAPABILITY_CONTRACT
    + "\n"
    + RESPONSE_SCHEMA
)


class GameEngineer:
    """Generator port backed by Gemini."""

    def __init__(self, llm=None):
        if llm is None:
            config = get_config()
            llm = ChatGoogleGenerativeAI(
                model=config["engineer_model"],
                temperature=config.get("engineer_temperature", 0.5),
            )
        self.llm = llm

    def _system_content(self) -> str:
        system_content = SYSTEM_PROMPT
        guidance = load_guidance()
        if guidance:
            system_content += f"\n## Game Design Guidelines\n{guidance}\n"
        return system_content

    def generate(self, topic: str) -> Artifact:
        """Generate a new Artifact for ``topic``. Raises UpstreamError on any failure."""
        messages = [
            {"role": "system", "content": self._system_content()},
            {"role": "user", "content": f"Topic: {topic}"},
        ]
        try:
            return request_artifact(self.llm, messages)
        except Exception as exc:
            raise UpstreamError(f"Generation failed: {exc}") from exc
