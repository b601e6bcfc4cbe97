"""Validator — single-pass pass/fail verdict for one Artifact.

Compile both bodies, run setup once, then drive update for a fixed number of
frames with fuzzed input, checking watched scratch fields after every frame.
The first failure anywhere ends the run; frames after it never execute.
"""

from typing import Callable

from gengame.config import get_config
from gengame.errors import ArtifactRuntimeError, CompileError, CorruptionError
from gengame.qa.detector import DEFAULT_WATCHED_PATHS, CorruptionDetector
from gengame.qa.fuzzer import InputFuzzer
from gengame.qa.sandbox import Executor, Scratch, Surface
from gengame.state import Artifact, Verdict

TOTAL_FRAMES = 300  # ~5 seconds at 60 fps


class Validator:
    def __init__(
        self,
        executor: Executor | None = None,
        fuzzer_factory: Callable[[], InputFuzzer] | None = None,
        detector: CorruptionDetector | None = None,
        total_frames: int = TOTAL_FRAMES,
        width: int = 800,
        height: int = 600,
    ):
        self.executor = executor or Executor()
        self.fuzzer_factory = fuzzer_factory or (lambda: InputFuzzer(width, height))
        self.detector = detector or CorruptionDetector()
        self.total_frames = total_frames
        self.width = width
        self.height = height

    @classmethod
    def from_config(cls, seed: int | None = None) -> "Validator":
        """Build a Validator from config.yaml; ``seed`` overrides ``fuzz_seed``."""
        config = get_config()
        width = config.get("surface_width", 800)
        height = config.get("surface_height", 600)
        if seed is None:
            seed = config.get("fuzz_seed")

        watched = tuple(DEFAULT_WATCHED_PATHS) + tuple(config.get("extra_watched_paths") or ())
        return cls(
            executor=Executor(
                frame_timeout=config.get("frame_timeout_seconds", 1.0),
                seed=seed,
            ),
            fuzzer_factory=lambda: InputFuzzer(width, height, seed=seed),
            detector=CorruptionDetector(
                watched_paths=watched,
                enemy_sample=config.get("enemy_sample", 3),
                reject_infinity=config.get("reject_infinity", True),
            ),
            total_frames=config.get("total_frames", TOTAL_FRAMES),
            width=width,
            height=height,
        )

    def validate(self, artifact: Artifact) -> Verdict:
        """Return a Verdict. Never raises for faults in the artifact itself."""
        try:
            program = self.executor.compile_artifact(artifact)
        except CompileError as exc:
            return Verdict.fail(f"Syntax Error during compilation: {exc}")

        # Owned by this run only; discarded on return.
        surface = Surface(self.width, self.height)
        scratch = Scratch()

        try:
            program.setup(surface, scratch)
        except ArtifactRuntimeError as exc:
            return Verdict.fail(f"Setup crashed: {exc}")

        fuzzer = self.fuzzer_factory()
        snapshot = fuzzer.initial()

        for frame in range(self.total_frames):
            snapshot = fuzzer.produce(frame, snapshot)
            try:
                program.update(surface, scratch, snapshot)
                self.detector.check(scratch)
            except (ArtifactRuntimeError, CorruptionError) as exc:
                return Verdict.fail(f"Frame {frame}: {exc}", frames_run=frame)

        return Verdict.ok(frames_run=self.total_frames)
