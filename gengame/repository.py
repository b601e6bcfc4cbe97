"""JSON-file repository for deployed games, ranked by likes."""

import json
import time
import uuid
from dataclasses import asdict, dataclass
from pathlib import Path

from gengame.state import Artifact

LEADERBOARD_SIZE = 50


@dataclass(frozen=True)
class PersistedArtifact:
    id: str
    title: str
    description: str
    setup_code: str
    update_code: str
    likes: int = 0
    timestamp: float = 0.0

    @property
    def artifact(self) -> Artifact:
        return Artifact(self.title, self.description, self.setup_code, self.update_code)


class JsonGameRepository:
    """Stores PersistedArtifacts in a single JSON file.

    An unreadable or missing file reads as an empty collection.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> list[PersistedArtifact]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return [PersistedArtifact(**item) for item in raw]
        except (OSError, json.JSONDecodeError, TypeError):
            return []

    def _store(self, games: list[PersistedArtifact]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps([asdict(g) for g in games], indent=2), encoding="utf-8"
        )

    def save(self, artifact: Artifact | PersistedArtifact) -> PersistedArtifact:
        """Persist a new game. Saving an already-persisted game counts as a like."""
        games = self._load()

        if isinstance(artifact, PersistedArtifact):
            if any(g.id == artifact.id for g in games):
                return self.like(artifact.id)
            artifact = artifact.artifact

        saved = PersistedArtifact(
            id=uuid.uuid4().hex[:9],
            likes=0,
            timestamp=time.time(),
            **artifact.to_dict(),
        )
        self._store([saved] + games)
        return saved

    def get_all(self) -> list[PersistedArtifact]:
        """Return up to LEADERBOARD_SIZE games, most liked first (newest first on ties)."""
        games = sorted(self._load(), key=lambda g: (g.likes, g.timestamp), reverse=True)
        return games[:LEADERBOARD_SIZE]

    def like(self, game_id: str) -> PersistedArtifact:
        """Increment a game's likes. Raises KeyError for an unknown id."""
        games = self._load()
        for i, game in enumerate(games):
            if game.id == game_id:
                games[i] = PersistedArtifact(**{**asdict(game), "likes": game.likes + 1})
                self._store(games)
                return games[i]
        raise KeyError(game_id)
