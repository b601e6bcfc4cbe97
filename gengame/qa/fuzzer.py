"""Input Fuzzer — synthetic, temporally coherent pointer and key input.

Per-frame independent randomness never holds a key long enough to exercise
continuous movement or charge-up logic, so input is generated in two tiers:
- the pointer glides toward a slowly orbiting target and clicks on a fixed cycle,
- movement keys are held in blocks while action keys are mashed at random.
"""

import math
import random
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

MOVE_KEYS = ("up", "down", "left", "right", "w", "a", "s", "d")
ACTION_KEYS = ("space", "enter")
ALL_KEYS = MOVE_KEYS + ACTION_KEYS

ORBIT_SPEED = 0.1
SMOOTHING = 0.1
CLICK_CYCLE = 60
CLICK_HOLD = 5
KEY_BLOCK = 30
NO_KEY_CHANCE = 0.3
ACTION_PRESS_CHANCE = 0.1
ACTION_RELEASE_CHANCE = 0.1


def _frozen_keys(keys: Mapping[str, bool]) -> Mapping[str, bool]:
    return MappingProxyType(dict(keys))


@dataclass(frozen=True)
class InputSnapshot:
    """One frame of input. Read-only from the artifact's point of view."""

    x: float
    y: float
    is_down: bool = False
    keys: Mapping[str, bool] = field(
        default_factory=lambda: _frozen_keys({k: False for k in ALL_KEYS})
    )

    def pressed(self) -> list[str]:
        return [k for k, held in self.keys.items() if held]


class InputFuzzer:
    """Produce one InputSnapshot per frame for a ``width`` x ``height`` surface."""

    def __init__(self, width: int = 800, height: int = 600, seed: int | None = None):
        self.width = width
        self.height = height
        self._rng = random.Random(seed)

    def initial(self) -> InputSnapshot:
        """Snapshot preceding frame 0: pointer at the centre, nothing pressed."""
        return InputSnapshot(x=self.width / 2, y=self.height / 2)

    def produce(self, frame_index: int, previous: InputSnapshot) -> InputSnapshot:
        x, y = self._steer(frame_index, previous)
        keys = dict(previous.keys)
        self._hold_movement(frame_index, keys)
        self._mash_actions(keys)
        return InputSnapshot(
            x=x,
            y=y,
            is_down=self._click(frame_index, previous.is_down),
            keys=_frozen_keys(keys),
        )

    def _steer(self, frame_index: int, previous: InputSnapshot) -> tuple[float, float]:
        cx, cy = self.width / 2, self.height / 2
        target_x = cx + (self.width / 4) * math.sin(frame_index * ORBIT_SPEED)
        target_y = cy + (self.height / 4) * math.cos(frame_index * ORBIT_SPEED)
        x = previous.x + (target_x - previous.x) * SMOOTHING
        y = previous.y + (target_y - previous.y) * SMOOTHING
        return (
            max(0.0, min(float(self.width), x)),
            max(0.0, min(float(self.height), y)),
        )

    @staticmethod
    def _click(frame_index: int, was_down: bool) -> bool:
        phase = frame_index % CLICK_CYCLE
        if phase == 0:
            return True
        if phase == CLICK_HOLD:
            return False
        return was_down

    def _hold_movement(self, frame_index: int, keys: dict) -> None:
        if frame_index % KEY_BLOCK != 0:
            return
        for k in MOVE_KEYS:
            keys[k] = False
        if self._rng.random() >= NO_KEY_CHANCE:
            keys[self._rng.choice(MOVE_KEYS)] = True

    def _mash_actions(self, keys: dict) -> None:
        if self._rng.random() < ACTION_PRESS_CHANCE:
            keys[self._rng.choice(ACTION_KEYS)] = True
        if self._rng.random() < ACTION_RELEASE_CHANCE:
            for k in ACTION_KEYS:
                keys[k] = False
