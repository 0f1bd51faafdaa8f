"""Node Serialization - Header/body text codec and JSON export.

Persisted nodes are plain text files with a delimited header block:

    ---
    title: Write report
    type: task
    links: ["notes/outline.md", "projects/q3.md"]
    dueDate: 2024-05-01
    completed: false
    ---

    Free-form body text.

``decode`` never fails: missing or malformed fields fall back to defaults
and every header line that was not consumed is kept on the result so
callers can see what a re-encode will drop.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from nodeweave.graph.GraphNode import GraphNode

DELIMITER = "---"

KNOWN_KEYS = ("title", "type", "links", "duedate", "completed")

_HEADER_LINE = re.compile(r"^\s*([A-Za-z_][\w-]*)\s*:\s*(.*?)\s*$")
_LINK_LIST = re.compile(r"^\[(.*)\]$")
_QUOTES = "\"'"
_OPEN_DELIMITER = re.compile(r"---[ \t]*\r?\n")
_CLOSE_DELIMITER = re.compile(r"^---[ \t]*\r?$", re.MULTILINE)


@dataclass
class DecodedRecord:
    """Structured form of one node's text.

    Attributes:
        title: Header title, or None when absent.
        kind: Lower-cased header ``type`` value, or None. Not validated.
        links: Linked ids in header order.
        due_date: Parsed ``dueDate``, or None when absent or unparseable.
        completed: True iff the header says ``completed: true``.
        body: Text after the header, trimmed.
        unknown_fields: Header lines with a key this codec does not know.
        ignored_lines: Every non-blank header line that was not consumed,
            including unknown_fields and malformed known fields.
    """

    title: str | None = None
    kind: str | None = None
    links: list[str] = field(default_factory=list)
    due_date: date | None = None
    completed: bool = False
    body: str = ""
    unknown_fields: list[str] = field(default_factory=list)
    ignored_lines: list[str] = field(default_factory=list)


def _unquote(value: str) -> str:
    """Strip one leading and one trailing quote character."""
    if value[:1] in _QUOTES:
        value = value[1:]
    if value[-1:] in _QUOTES:
        value = value[:-1]
    return value


def _split_header(text: str) -> tuple[str, str] | None:
    """Return (header, rest) or None when the text has no complete header.

    Both delimiters must be a line of exactly ``---`` (trailing blanks allowed).
    """
    opener = _OPEN_DELIMITER.match(text)
    if opener is None:
        return None
    closer = _CLOSE_DELIMITER.search(text, opener.end())
    if closer is None:
        return None
    return text[opener.end() : closer.start()], text[closer.end() :]


def _parse_links(value: str) -> list[str] | None:
    match = _LINK_LIST.match(value)
    if not match:
        return None
    links = []
    for item in match.group(1).split(","):
        item = _unquote(item.strip()).strip()
        if item:
            links.append(item)
    return links


def _parse_date(value: str) -> date | None:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def decode(text: str) -> DecodedRecord:
    """Parse a node's text into a DecodedRecord.

    Args:
        text: Full file content.

    Returns:
        The decoded record. Text without a header yields default fields
        and the whole text as body.
    """
    split = _split_header(text)
    if split is None:
        return DecodedRecord(body=text)

    header, rest = split
    record = DecodedRecord(body=rest.strip())

    for raw_line in header.split("\n"):
        line = raw_line.rstrip("\r")
        if not line.strip():
            continue
        match = _HEADER_LINE.match(line)
        if not match:
            record.ignored_lines.append(line)
            continue

        key = match.group(1).lower()
        value = match.group(2)

        if key not in KNOWN_KEYS:
            record.unknown_fields.append(line)
            record.ignored_lines.append(line)
            continue

        if key == "title" and value:
            record.title = _unquote(value).strip()
        elif key == "type" and value:
            record.kind = value.lower()
        elif key == "links":
            links = _parse_links(value)
            if links is None:
                record.ignored_lines.append(line)
            else:
                record.links = links
        elif key == "duedate" and value:
            parsed = _parse_date(value)
            if parsed is None:
                record.ignored_lines.append(line)
            else:
                record.due_date = parsed
        elif key == "completed":
            record.completed = value.lower() == "true"
        else:
            record.ignored_lines.append(line)

    return record


def _quote_title(title: str) -> str:
    # Titles with a leading or trailing quote would lose it on decode.
    if title[:1] in _QUOTES or title[-1:] in _QUOTES:
        return f"'{title}'" if '"' in (title[:1], title[-1:]) else f'"{title}"'
    return title


def encode(record: DecodedRecord, preserve_unknown: bool = False) -> str:
    """Serialize a record back to header + body text.

    Fields are written in a fixed order: title, type, links, dueDate,
    completed. Links are sorted. ``completed`` is written for tasks and
    whenever it is true.

    Args:
        record: The record to encode.
        preserve_unknown: Re-emit ``record.unknown_fields`` after the
            known fields instead of dropping them.

    Returns:
        The encoded text.
    """
    lines: list[str] = []
    if record.title is not None:
        lines.append(f"title: {_quote_title(record.title)}")
    if record.kind is not None:
        lines.append(f"type: {record.kind}")
    links = sorted(record.links)
    lines.append("links: [" + ", ".join(f'"{link}"' for link in links) + "]")
    if record.due_date is not None:
        lines.append(f"dueDate: {record.due_date.isoformat()}")
    if record.kind == "task" or record.completed:
        lines.append(f"completed: {'true' if record.completed else 'false'}")
    if preserve_unknown:
        lines.extend(record.unknown_fields)

    header = "\n".join(lines)
    return f"{DELIMITER}\n{header}\n{DELIMITER}\n\n{record.body}"


def record_from_node(node: GraphNode) -> DecodedRecord:
    """Build the record that encodes a live node."""
    return DecodedRecord(
        title=node.title,
        kind=node.kind.value,
        links=list(node.iter_links()),
        due_date=node.due_date if node.is_task else None,
        completed=node.completed if node.is_task else False,
        body=node.description,
        unknown_fields=list(node._extra_headers),
    )


def encode_node(node: GraphNode, preserve_unknown: bool = False) -> str:
    """Encode a live node to its persisted text."""
    return encode(record_from_node(node), preserve_unknown=preserve_unknown)


def serialize_node(node: GraphNode) -> dict[str, Any]:
    """Serialize a GraphNode to a JSON-compatible dict.

    Args:
        node: The node to serialize.

    Returns:
        Dict suitable for JSON serialization.
    """
    result: dict[str, Any] = {
        "id": node.id,
        "kind": node.kind.value,
        "class": node.node_class.value,
        "title": node.title,
        "description": node.description,
        "links": list(node.iter_links()),
    }
    if node.is_task:
        result["actionable"] = node.actionable
        result["due_date"] = node.due_date.isoformat() if node.due_date else None
        result["completed"] = node.completed
    if node.origin is not None:
        result["path"] = str(node.origin.path)
        result["relative_path"] = node.origin.relative_path
    return result
