"""Error types and the diagnostic trail attached to parse results.

Only `open_archive` and archive reads raise to callers. Everything found
while parsing is recorded as a Diagnostic and parsing carries on.
"""

from dataclasses import dataclass
from enum import Enum, auto


class NotFound(FileNotFoundError):
    """An expected archive entry is absent."""


class MalformedRecord(ValueError):
    """A record matched a command prefix but its numbers did not parse."""

    def __init__(self, message: str, line: str = ""):
        super().__init__(message)
        self.line = line


class DiagnosticKind(Enum):
    NOT_FOUND = auto()
    MALFORMED_RECORD = auto()
    UNRESOLVED_SYMBOL = auto()
    EMPTY_RESULT = auto()
    PARSE_FAILURE = auto()


@dataclass
class Diagnostic:
    kind: DiagnosticKind
    message: str
    source: str = ""  # archive path or layer name
    line: int = 0  # 1-based line number, 0 when not line-specific

    def __str__(self):
        where = self.source
        if self.line:
            where = f"{where}:{self.line}"
        if where:
            return f"{self.kind.name} {where}: {self.message}"
        return f"{self.kind.name}: {self.message}"
