"""Ports consumed by the Orchestrator. Adapters live in agents/ and repository.py."""

from typing import Protocol

from gengame.repository import PersistedArtifact
from gengame.state import Artifact, LogEntry, Verdict


class Generator(Protocol):
    def generate(self, topic: str) -> Artifact:
        """Return a new Artifact. Raises UpstreamError on transport or parse failure."""
        ...


class Fixer(Protocol):
    def fix(self, artifact: Artifact, error: str) -> Artifact:
        """Return a complete replacement Artifact. Raises UpstreamError on failure."""
        ...


class ArtifactValidator(Protocol):
    def validate(self, artifact: Artifact) -> Verdict: ...


class LogSink(Protocol):
    def __call__(self, entry: LogEntry) -> None: ...


class Repository(Protocol):
    """Storage for deployed games. Implemented by JsonGameRepository."""

    def save(self, artifact: Artifact | PersistedArtifact) -> PersistedArtifact: ...

    def get_all(self) -> list[PersistedArtifact]: ...

    def like(self, game_id: str) -> PersistedArtifact: ...
