"""Token level helpers for flat ``set`` configuration lines.

Handles value quoting, quote-aware token splitting, strict integer parsing
and extraction of the statement region from query output.
"""
import re
from typing import Optional

from ..errors import ParseNumericFailure
from .schema import Operation, Statement

START_MARKER = "<configuration-output>"
END_MARKER = "</configuration-output>"
LEADER = "set "

RESERVED_CHARS = set(";{}#[]")

_TOKEN_RE = re.compile(r'"[^"]*"|\S+')
_INT_RE = re.compile(r"^-?[0-9]+$")


def needs_quotes(value: str) -> bool:
    if value == "":
        return True
    return any(c.isspace() or c in RESERVED_CHARS for c in value)


def render_value(value: str, force: bool = False) -> str:
    """Render a value token, quoting it when required.

    Embedded double quotes are emitted as-is.
    """
    if force or needs_quotes(value):
        return f'"{value}"'
    return value


def unquote(token: str) -> str:
    if len(token) >= 2 and token.startswith('"') and token.endswith('"'):
        return token[1:-1]
    return token


def split_tokens(line: str) -> list[str]:
    """Split a line on whitespace, keeping a quoted token whole."""
    return _TOKEN_RE.findall(line)


def parse_int(text: str, path=None) -> int:
    """Parse a decimal integer, rejecting anything ``int()`` would be lenient about."""
    if not _INT_RE.match(text):
        raise ParseNumericFailure(f"failed to convert value from '{text}' to integer", path=path)
    return int(text)


def snapshot_lines(text: str) -> list[str]:
    """Return the trimmed statement lines of a query output.

    Only the region between START_MARKER and END_MARKER is kept. Text with no
    start marker at all is taken whole, as a plain set-file dump.
    """
    raw = text.replace("\r", "").split("\n")
    if any(START_MARKER in item for item in raw):
        inside = False
    else:
        inside = True

    lines = []
    for item in raw:
        if START_MARKER in item:
            inside = True
            continue
        if END_MARKER in item:
            break
        if not inside:
            continue
        item = item.strip()
        if not item:
            continue
        if item.startswith(LEADER):
            item = item[len(LEADER):]
        lines.append(item)
    return lines


def parse_statement(text: str) -> Optional[Statement]:
    """Parse ``set ...`` / ``delete ...`` text back into a Statement."""
    tokens = split_tokens(text.strip())
    if len(tokens) < 2:
        return None
    for op in Operation:
        if tokens[0] == op.value:
            return Statement(op, tuple(tokens[1:]))
    return None


def render_as_snapshot(statements: list[Statement], prefix: tuple[str, ...] = ()) -> str:
    """Render ADD statements the way a relative ``display set`` query returns them."""
    body = [
        s.relative_to(prefix).text
        for s in statements
        if s.operation == Operation.ADD
    ]
    return "\n".join([START_MARKER, *body, END_MARKER]) + "\n"
