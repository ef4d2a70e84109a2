"""Pure domain functions for parsing and mutating hosts file content.

Nothing here touches the filesystem.  Content goes in as text, comes out as
text, and every line the mutation does not involve is written back exactly as
it was read.
"""

import re
from dataclasses import replace
from datetime import datetime

from hostm.constants import (
    APP_NAME,
    CREATED_ANNOTATION,
    TIMESTAMP_FORMAT,
    UPDATED_ANNOTATION,
)
from hostm.models import (
    HostLine,
    HostsDocument,
    MappingLine,
    MutationOutcome,
    MutationRequest,
    MutationResult,
    OpaqueLine,
)

# "<ipv4> <domain> [# comment]", one domain only.  Lines with aliases,
# IPv6 addresses or anything else stay opaque.
_MAPPING_RE = re.compile(
    r"^\s*(?P<ip>\d+(?:\.\d+){3})\s+(?P<domain>[^\s#]+)\s*(?:#(?P<comment>.*))?$"
)

_TERMINATOR_RE = re.compile(r"(\r?\n)")


def detect_newline(content: str) -> str:
    """Return the first line terminator in the content, ``"\\n"`` if there is none."""
    match = _TERMINATOR_RE.search(content)
    return match.group(1) if match else "\n"


def parse_line(text: str, ending: str = "") -> HostLine:
    """Classify a single physical line given without its terminator."""
    match = _MAPPING_RE.match(text)
    if match is None:
        return OpaqueLine(text=text, ending=ending)
    comment = match.group("comment")
    return MappingLine(
        ip=match.group("ip"),
        domain=match.group("domain"),
        comment=comment.strip() if comment is not None else None,
        original_text=text,
        ending=ending,
    )


def parse_hosts(content: str) -> HostsDocument:
    """Split hosts file content into an ordered HostsDocument.

    Each physical line keeps its own terminator, so files mixing LF and CRLF
    are classified line by line and written back unchanged.  Never raises:
    anything that is not a plain single-domain mapping becomes an OpaqueLine
    carrying its exact text.  An empty string yields a document with no lines.
    """
    parts = _TERMINATOR_RE.split(content)
    # split() with a capture group alternates text and terminator and always
    # ends with the (possibly empty) text after the last terminator.
    lines = [parse_line(text, ending) for text, ending in zip(parts[::2], parts[1::2])]
    if parts[-1]:
        lines.append(parse_line(parts[-1]))
    return HostsDocument(lines=lines, newline=detect_newline(content))


def render_hosts(document: HostsDocument) -> str:
    """Serialise a document back to text, each line with its own terminator."""
    return "".join(line.text + line.ending for line in document.lines)


def find_matches(lines: list[HostLine], domain: str) -> list[int]:
    """Return the indices of every mapping line whose domain is ``domain``.

    Matching is whole-token and case-sensitive, so ``notexample.com`` never
    matches ``example.com``.  Duplicates in a malformed file are all reported.
    """
    return [index for index, line in enumerate(lines) if line.matches(domain)]


def format_annotation(
    template: str,
    tool: str = APP_NAME,
    now: datetime | None = None,
) -> str:
    """Build the provenance comment, optionally stamped with local time."""
    annotation = template.format(tool=tool)
    if now is not None:
        annotation = f"{annotation} {now.strftime(TIMESTAMP_FORMAT)}"
    return annotation


def build_mapping(ip: str, domain: str, annotation: str, ending: str = "\n") -> MappingLine:
    """Construct a fresh tool-managed mapping line."""
    return MappingLine(
        ip=ip,
        domain=domain,
        comment=annotation,
        original_text=f"{ip} {domain} # {annotation}",
        ending=ending,
    )


def apply_mutation(
    document: HostsDocument,
    request: MutationRequest,
    tool: str = APP_NAME,
    now: datetime | None = None,
) -> MutationResult:
    """Apply an upsert or delete to a document and return the new one.

    - Delete removes every mapping for the domain.  Deleting an absent domain
      returns the document unchanged.
    - Upsert replaces the first mapping for the domain in file order, keeping
      its position.  Later duplicates are left alone rather than removed.
    - Upsert with no existing mapping appends one line at the end.

    The input document is not modified.
    """
    matches = find_matches(document.lines, request.domain)
    lines = list(document.lines)

    if request.ip is None:
        if not matches:
            return MutationResult(document=document, outcome=MutationOutcome.UNCHANGED)
        doomed = set(matches)
        lines = [line for index, line in enumerate(lines) if index not in doomed]
        return MutationResult(
            document=replace(document, lines=lines),
            outcome=MutationOutcome.DELETED,
            line_numbers=[index + 1 for index in matches],
        )

    if matches:
        first = matches[0]
        annotation = format_annotation(UPDATED_ANNOTATION, tool, now)
        lines[first] = build_mapping(
            request.ip, request.domain, annotation, ending=lines[first].ending
        )
        return MutationResult(
            document=replace(document, lines=lines),
            outcome=MutationOutcome.REPLACED,
            line_numbers=[first + 1],
        )

    annotation = format_annotation(CREATED_ANNOTATION, tool, now)
    ending = document.newline
    if lines and not lines[-1].ending:
        # Unterminated files stay unterminated after the append.
        lines[-1] = replace(lines[-1], ending=document.newline)
        ending = ""
    lines.append(build_mapping(request.ip, request.domain, annotation, ending=ending))
    return MutationResult(
        document=replace(document, lines=lines),
        outcome=MutationOutcome.APPENDED,
        line_numbers=[len(lines)],
    )


def search_lines(document: HostsDocument, query: str) -> list[tuple[int, str]]:
    """Return ``(line_number, text)`` for every line containing ``query``.

    Unlike the matcher this is a plain substring search over all lines,
    comments included, for browsing the file.
    """
    return [
        (number, line.text)
        for number, line in enumerate(document.lines, start=1)
        if query in line.text
    ]
