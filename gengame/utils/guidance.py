"""Distilled game-design guidance for injection into the engineer prompt."""

# Imperative rules for LLM consumption. Keep in sync with the sandbox surface.
_GUIDANCE_RULES = """\
- Implement a start screen and a game-over screen, each with a clickable \
start/restart region; track the current screen in scratch.game_state \
('MENU', 'PLAYING', 'GAMEOVER').
- Default to a multi-level structure unless the topic implies otherwise; raise \
speed or difficulty as levels progress.
- Keep the game simple but fun: one core mechanic derived from the topic's \
central metaphor.
- Draw only geometric shapes (rectangles, circles, lines, text). Use neon \
colours (cyan, magenta, lime) on a dark background.
- Never divide by a value that can reach zero (distances, speeds, counts); \
guard every division.
- Keep all state on scratch; initialise every field in setup before update \
reads it.
- Bound every loop by a collection length or a constant. Never loop while \
waiting for input.\
"""


def load_guidance() -> str:
    """Return the distilled game-design rules.

    Returns an empty string if guidance is disabled in config
    (set guidance_enabled to false or remove it).
    """
    from gengame.config import get_config

    config = get_config()
    if not config.get("guidance_enabled", False):
        return ""

    return _GUIDANCE_RULES
