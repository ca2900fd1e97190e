"""Core data models for the Clean Code engine."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from functools import cached_property
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from clean_code.core.exceptions import UnsupportedLanguageError


class IssueType(str, Enum):
    """Closed set of issue families reported by the analyzers."""

    COMPLEXITY = "complexity"
    NAMING = "naming"
    DUPLICATE_CODE = "duplicate-code"
    DEAD_CODE = "dead-code"
    SOLID_VIOLATION = "solid-violation"
    ANTI_PATTERN = "anti-pattern"
    COGNITIVE_COMPLEXITY = "cognitive-complexity"
    DEPENDENCY = "dependency"


class IssueSeverity(IntEnum):
    """Diagnostic severity, ordered most to least severe."""

    ERROR = 0
    WARNING = 1
    INFORMATION = 2
    HINT = 3


class AnalyzerPriority(IntEnum):
    """
    Execution tier of an analyzer.

    - HIGH: quick syntactic checks, run immediately
    - MEDIUM: moderate cost, run after a short delay
    - LOW: expensive structural checks, run last
    """

    HIGH = 0
    MEDIUM = 1
    LOW = 2


class Position(BaseModel):
    """Zero-based line/column position."""

    line: int = Field(ge=0)
    character: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)


class Range(BaseModel):
    """Half-open text range between two positions."""

    start: Position
    end: Position

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_order(self) -> "Range":
        """End must not precede start."""
        if (self.end.line, self.end.character) < (self.start.line, self.start.character):
            raise ValueError("Range end must not precede range start")
        return self

    @classmethod
    def from_coords(
        cls, start_line: int, start_character: int, end_line: int, end_character: int
    ) -> "Range":
        return cls(
            start=Position(line=start_line, character=start_character),
            end=Position(line=end_line, character=end_character),
        )

    def shifted(self, line_delta: int) -> "Range":
        """Return a copy moved by ``line_delta`` lines."""
        if line_delta == 0:
            return self
        return Range.from_coords(
            self.start.line + line_delta,
            self.start.character,
            self.end.line + line_delta,
            self.end.character,
        )


class CodeIssue(BaseModel):
    """One detected problem, positioned in document coordinates."""

    type: IssueType
    message: str
    range: Range
    severity: IssueSeverity = IssueSeverity.WARNING
    suggestions: List[str] = Field(default_factory=list)
    documentation: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def shifted(self, line_delta: int) -> "CodeIssue":
        """Return a copy whose range is moved by ``line_delta`` lines."""
        if line_delta == 0:
            return self
        return self.model_copy(update={"range": self.range.shifted(line_delta)})

    def same_diagnostic(self, other: "CodeIssue") -> bool:
        """Equality as far as the rendered diagnostic is concerned."""
        return (
            self.message == other.message
            and self.severity == other.severity
            and self.type == other.type
            and self.range == other.range
        )


LANGUAGE_BY_SUFFIX = {
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascriptreact",
}


@dataclass(frozen=True)
class DocumentSnapshot:
    """Immutable view of a document at one version."""

    uri: str
    version: int
    text: str
    language_id: str = "typescript"

    @cached_property
    def lines(self) -> List[str]:
        # Editor semantics: a trailing newline opens one more (empty) line
        return [line[:-1] if line.endswith("\r") else line for line in self.text.split("\n")]

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @property
    def cache_key(self) -> str:
        return f"{self.uri}_v{self.version}"

    def line_at(self, line_number: int) -> str:
        """Text of a line, or an empty string past the end of the document."""
        if 0 <= line_number < self.line_count:
            return self.lines[line_number]
        return ""

    @classmethod
    def from_path(cls, path: Path, version: int = 1) -> "DocumentSnapshot":
        """Read a file from disk into a snapshot."""
        path = Path(path)
        language_id = LANGUAGE_BY_SUFFIX.get(path.suffix.lower())
        if language_id is None:
            raise UnsupportedLanguageError(str(path), path.suffix)
        text = path.read_text(encoding="utf-8", errors="replace")
        return cls(uri=path.resolve().as_uri(), version=version, text=text, language_id=language_id)


@dataclass(frozen=True)
class Block:
    """A contiguous, inclusive line range of a document and its text."""

    start_line: int
    end_line: int
    content: str

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def __str__(self) -> str:
        return f"{self.start_line}-{self.end_line}"


@dataclass(frozen=True)
class LineSpan:
    """Inclusive line range of one duplicate occurrence."""

    start_line: int
    end_line: int

    @property
    def size(self) -> int:
        return self.end_line - self.start_line + 1


@dataclass
class DuplicateGroup:
    """Two or more line ranges sharing identical trimmed content."""

    blocks: List[LineSpan]
    content: str

    @property
    def block_size(self) -> int:
        return self.blocks[0].size if self.blocks else 0


@dataclass
class CacheEntry:
    """Cached issues for one block, stored relative to the block start."""

    issues: List[CodeIssue]
    timestamp: float
    start_line: int
    end_line: int
    hits: int = field(default=0)
