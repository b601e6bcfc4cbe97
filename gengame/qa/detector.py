"""Corruption Detector — sampled NaN/infinity check over known scratch fields.

Only an explicit list of paths is inspected. Artifact-specific data shapes are
never walked, so unknown fields cannot produce false positives.
"""

import math
from collections.abc import Mapping
from numbers import Integral, Real

from gengame.errors import CorruptionError
from gengame.qa.sandbox import Scratch

DEFAULT_WATCHED_PATHS = (
    "score",
    "player.x",
    "player.y",
    "player.vx",
    "player.vy",
    "player.health",
)
ENEMY_COLLECTION = "enemies"
ENEMY_FIELDS = ("x", "y")

_MISSING = object()


def _step(container, segment: str):
    """Resolve one path segment through a mapping or a public attribute."""
    if isinstance(container, (Mapping, Scratch)):
        return container[segment] if segment in container else _MISSING
    if container is None or segment.startswith("_"):
        return _MISSING
    return getattr(container, segment, _MISSING)


def _resolve(root, path: str):
    value = root
    for segment in path.split("."):
        value = _step(value, segment)
        if value is _MISSING:
            return _MISSING
    return value


class CorruptionDetector:
    def __init__(
        self,
        watched_paths=DEFAULT_WATCHED_PATHS,
        enemy_sample: int = 3,
        reject_infinity: bool = True,
    ):
        self.watched_paths = tuple(watched_paths)
        self.enemy_sample = enemy_sample
        self.reject_infinity = reject_infinity

    def _is_invalid(self, value) -> bool:
        # Integers are exact and may exceed float range, so they are never NaN or inf.
        if isinstance(value, Integral) or not isinstance(value, Real):
            return False
        try:
            if math.isnan(value):
                return True
            return self.reject_infinity and math.isinf(value)
        except OverflowError:
            return False

    def _inspect(self, path: str, value) -> None:
        if value is not _MISSING and self._is_invalid(value):
            raise CorruptionError(f"scratch.{path}", value)

    def check(self, scratch) -> None:
        """Raise CorruptionError for the first watched field holding an invalid number."""
        for path in self.watched_paths:
            self._inspect(path, _resolve(scratch, path))

        enemies = _resolve(scratch, ENEMY_COLLECTION)
        if isinstance(enemies, (list, tuple)):
            for i, enemy in enumerate(enemies[: self.enemy_sample]):
                for name in ENEMY_FIELDS:
                    value = _step(enemy, name)
                    if value is not _MISSING and self._is_invalid(value):
                        raise CorruptionError(f"scratch.{ENEMY_COLLECTION}[{i}].{name}", value)
