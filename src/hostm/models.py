"""Domain models."""

from dataclasses import dataclass, field
from enum import Enum, auto


@dataclass(frozen=True)
class MappingLine:
    """A hosts line binding exactly one domain to an IP address.

    ``original_text`` is what gets written back while the line is untouched,
    so spacing, tabs and comments in hand-edited files survive.  ``ending`` is
    the line's own terminator (``"\\n"``, ``"\\r\\n"`` or ``""`` for an
    unterminated last line).
    """

    ip: str
    domain: str
    comment: str | None = None
    original_text: str = ""
    ending: str = ""

    @property
    def text(self) -> str:
        return self.original_text

    def matches(self, domain: str) -> bool:
        """Return True if the domain token equals ``domain`` exactly."""
        return self.domain == domain


@dataclass(frozen=True)
class OpaqueLine:
    """Any line that is not a single mapping: blank, comment, or unrecognised."""

    text: str
    ending: str = ""

    def matches(self, domain: str) -> bool:
        return False


HostLine = MappingLine | OpaqueLine


@dataclass
class HostsDocument:
    """Ordered lines of a hosts file.

    ``newline`` is the terminator used for lines added by a mutation; existing
    lines keep their own.
    """

    lines: list[HostLine] = field(default_factory=list)
    newline: str = "\n"

    @property
    def trailing_newline(self) -> bool:
        return not self.lines or self.lines[-1].ending != ""

    def mappings(self) -> list[MappingLine]:
        return [line for line in self.lines if isinstance(line, MappingLine)]


@dataclass(frozen=True)
class MutationRequest:
    """A single change keyed by domain.

    An ``ip`` selects an upsert; ``None`` selects a delete.
    """

    domain: str
    ip: str | None = None

    @property
    def kind(self) -> "MutationKind":
        return MutationKind.DELETE if self.ip is None else MutationKind.UPSERT


class MutationKind(Enum):
    UPSERT = auto()
    DELETE = auto()


class MutationOutcome(Enum):
    REPLACED = auto()
    APPENDED = auto()
    DELETED = auto()
    UNCHANGED = auto()


@dataclass
class MutationResult:
    """The document produced by a mutation and what happened to get there.

    ``line_numbers`` are 1-based positions in the input document of the lines
    that were replaced or deleted; for an append it holds the new line's
    position in the output.
    """

    document: HostsDocument
    outcome: MutationOutcome
    line_numbers: list[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.outcome is not MutationOutcome.UNCHANGED
