"""Error taxonomy for the generate → validate → repair pipeline."""


class GenGameError(Exception):
    """Base class for all pipeline errors."""


class CompileError(GenGameError):
    """A code body is not a valid procedure body, or uses a forbidden construct."""


class ArtifactRuntimeError(GenGameError):
    """An exception escaped while running setup or update."""


class CorruptionError(GenGameError):
    """A watched numeric field in scratch memory became invalid after a frame."""

    def __init__(self, path: str, value: float):
        self.path = path
        self.value = value
        label = "NaN" if value != value else repr(value)
        super().__init__(f"Game State Corruption: '{path}' became {label}.")


class UpstreamError(GenGameError):
    """A Generator/Fixer call failed or returned unusable data."""


class RetriesExhaustedError(GenGameError):
    """Validation failed on every attempt up to the retry bound."""

    def __init__(self, last_error: str, attempts: int):
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(
            f"QA check failed after {attempts} attempt(s): {last_error}"
        )
