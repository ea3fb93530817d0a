"""
Contracts for collaborators that live outside the engine.

The engine only depends on these shapes, never on an implementation.
"""

from dataclasses import dataclass, field
from typing import Optional, Protocol


@dataclass
class ParsedError:
    """A single structured error extracted from check output."""
    file: str
    message: str
    line: Optional[int] = None
    code: Optional[str] = None


@dataclass
class KnownPatternMatch:
    known_errors: list[ParsedError] = field(default_factory=list)
    has_new_errors: bool = False


class LogTriage(Protocol):
    """Classifies raw check output. Called after a failed validation pass."""

    def classify(self, raw_output: str) -> list[ParsedError]:
        ...

    def match_known_patterns(self, output: str) -> KnownPatternMatch:
        ...
