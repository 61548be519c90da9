"""
Line codec for the project log.

Each line records one status transition:

    [[name]],YYYY-MM-DD,HH:MM:SS,old,new

Backfilled lines leave the time empty and carry a single status:

    [[name]],YYYY-MM-DD,,status

Decoding never raises. Lines that do not fit the grammar are reported
as failed ParseResults and skipped by callers.
"""

import re
from dataclasses import dataclass
from typing import Any

from ..models import LogEntry

# Bracketed name prefix, e.g. "[[alpha]],"
NAME_PATTERN = re.compile(r"^\[\[([^\]]+)\]\],")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

NULL = "null"


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing one log line.

    `name` is set whenever the bracketed prefix matched, even if the rest
    of the line is malformed, so indexing stays tolerant of partial lines.
    """

    ok: bool
    name: str | None = None
    entry: LogEntry | None = None
    reason: str = ""


def record_name(record_id: str) -> str:
    """Derive the log name of a record: last path segment without `.md`."""
    segment = record_id.split("/")[-1]
    name = re.sub(r"\.md$", "", segment)
    return name or record_id


def format_status(value: Any) -> str:
    """Render a status value for a change line.

    Falsy values (missing, empty, False, 0) become "null". Booleans are
    lowercase and whole floats drop their fraction, so YAML values read
    from frontmatter render the same way note editors show them.
    """
    if not value:
        return NULL
    if isinstance(value, bool):
        return "true"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def encode(entry: LogEntry) -> str:
    """Serialize an entry to a newline-terminated log line."""
    if entry.backfill:
        # Four fields, not five: the empty third field is the time and
        # there is no old-status column. Existing logs use this shape.
        return f"[[{entry.record_name}]],{entry.date},,{entry.new_status}\n"
    return (
        f"[[{entry.record_name}]],{entry.date},{entry.time},"
        f"{format_status(entry.old_status)},{format_status(entry.new_status)}\n"
    )


def decode_name(line: str) -> str | None:
    """Return the bracketed record name of a line, or None if absent."""
    match = NAME_PATTERN.match(line)
    if match:
        return match.group(1)
    return None


def _null_to_none(value: str) -> str | None:
    return None if value == NULL else value


def parse_line(line: str) -> ParseResult:
    """Parse a full log line into a LogEntry."""
    match = NAME_PATTERN.match(line)
    if not match:
        return ParseResult(ok=False, reason="missing [[name]] prefix")

    name = match.group(1)
    fields = line[match.end():].rstrip("\r\n").split(",")

    if not DATE_PATTERN.match(fields[0]):
        return ParseResult(ok=False, name=name, reason=f"bad date: {fields[0]!r}")

    if len(fields) == 3:
        date, time, status = fields
        entry = LogEntry(
            record_name=name,
            date=date,
            time=time,
            new_status=status,
            backfill=True,
        )
    elif len(fields) == 4:
        date, time, old, new = fields
        entry = LogEntry(
            record_name=name,
            date=date,
            time=time,
            old_status=_null_to_none(old),
            new_status=_null_to_none(new),
        )
    else:
        return ParseResult(ok=False, name=name, reason=f"expected 3 or 4 fields, got {len(fields)}")

    return ParseResult(ok=True, name=name, entry=entry)


def iter_lines(content: str):
    """Yield non-blank lines of log content."""
    for line in content.split("\n"):
        if line.strip():
            yield line
