"""Shared fixtures for the GenGame test suite."""

from unittest.mock import patch

import pytest

from gengame.errors import UpstreamError
from gengame.qa.fuzzer import InputFuzzer
from gengame.qa.sandbox import Executor
from gengame.qa.validator import Validator
from gengame.state import Artifact


# --- Artifacts ---

@pytest.fixture
def good_artifact():
    """A small game that survives the whole frame budget."""
    return Artifact(
        title="Rate Hike Dodge",
        description="Steer the wallet away from falling rates.",
        setup_code=(
            "scratch.score = 0\n"
            "scratch.player = {'x': 400.0, 'y': 550.0, 'vx': 0.0, 'vy': 0.0, 'health': 3}\n"
            "scratch.enemies = [{'x': 100.0 * i, 'y': 0.0} for i in range(5)]\n"
        ),
        update_code=(
            "surface.clear_rect(0, 0, surface.width, surface.height)\n"
            "player = scratch.player\n"
            "player['vx'] = (input.x - player['x']) * 0.2\n"
            "if input.keys['left'] or input.keys['a']:\n"
            "    player['vx'] -= 4\n"
            "if input.keys['right'] or input.keys['d']:\n"
            "    player['vx'] += 4\n"
            "player['x'] = max(0, min(surface.width, player['x'] + player['vx']))\n"
            "for enemy in scratch.enemies:\n"
            "    enemy['y'] = (enemy['y'] + 3) % surface.height\n"
            "    surface.fill_rect(enemy['x'], enemy['y'], 10, 10)\n"
            "if input.is_down:\n"
            "    scratch.score += 1\n"
            "surface.fill_style = '#00ffff'\n"
            "surface.fill_rect(player['x'], player['y'], 20, 20)\n"
            "surface.fill_text(str(scratch.score), 10, 20)\n"
        ),
    )


@pytest.fixture
def crashing_artifact():
    """Calls a method the drawing surface does not have."""
    return Artifact(
        title="Broken",
        description="Crashes on the first frame.",
        setup_code="scratch.score = 0",
        update_code="surface.does_not_exist()",
    )


@pytest.fixture
def nan_artifact():
    """Poisons scratch.score with NaN without raising."""
    return Artifact(
        title="NaN Poison",
        description="Score becomes NaN on frame 0.",
        setup_code="scratch.score = 0",
        update_code="scratch.score = scratch.score * float('inf')",
    )


# --- QA ---

@pytest.fixture
def fast_validator():
    """Deterministic Validator with a short frame budget and no deadline."""
    return Validator(
        executor=Executor(frame_timeout=0, seed=0),
        fuzzer_factory=lambda: InputFuzzer(800, 600, seed=0),
        total_frames=60,
    )


# --- Ports ---

class ScriptedGenerator:
    """Generator port returning a fixed artifact (or raising)."""

    def __init__(self, result):
        self.result = result
        self.calls = []

    def generate(self, topic):
        self.calls.append(topic)
        if isinstance(self.result, Exception):
            raise self.result
        if isinstance(self.result, dict):
            return self.result[topic]
        return self.result


class ScriptedFixer:
    """Fixer port returning queued replacements; repeats the last one when exhausted."""

    def __init__(self, *replacements):
        self.replacements = list(replacements)
        self.calls = []

    def fix(self, artifact, error):
        self.calls.append((artifact, error))
        result = self.replacements[min(len(self.calls), len(self.replacements)) - 1]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def scripted_generator():
    return ScriptedGenerator


@pytest.fixture
def scripted_fixer():
    return ScriptedFixer


@pytest.fixture
def upstream_error():
    return UpstreamError("HTTP Error: 503 Service Unavailable")


# --- Config ---

@pytest.fixture
def mock_config(tmp_path):
    """Patch the config singleton with test-friendly values."""
    test_config = {
        "engineer_model": "gemini-test",
        "debugger_model": "claude-test",
        "llm_max_retries": 1,
        "max_retries": 2,
        "guidance_enabled": True,
        "total_frames": 30,
        "surface_width": 320,
        "surface_height": 240,
        "frame_timeout_seconds": 0,
        "fuzz_seed": 7,
        "enemy_sample": 3,
        "reject_infinity": True,
        "extra_watched_paths": ["level.speed"],
        "repository_path": str(tmp_path / "games.json"),
        "output_path": str(tmp_path / "report.md"),
    }
    with patch("gengame.config._config", test_config):
        yield test_config
