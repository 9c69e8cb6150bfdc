"""Split outbound text into IRC-sized lines at word boundaries."""

from __future__ import annotations


def split_lines(text: str, max_bytes: int = 400) -> list[str]:
    """Split text into lines, each at most max_bytes of UTF-8.

    Embedded CR/LF start a new line (IRC has no multi-line PRIVMSG).
    Blank lines are dropped. Never splits inside a multi-byte character.
    """
    lines: list[str] = []
    for line in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if line.strip():
            lines.extend(_split_one(line, max_bytes))
    return lines


def _split_one(line: str, max_bytes: int) -> list[str]:
    encoded = line.encode("utf-8", errors="replace")
    if len(encoded) <= max_bytes:
        return [line]

    chunks: list[str] = []
    start = 0
    while start < len(encoded):
        end = min(start + max_bytes, len(encoded))
        chunk = _valid_prefix(encoded[start:end])
        if not chunk:
            # Invalid byte at start; take it alone and let decode replace it
            chunk = encoded[start : start + 1]
        elif start + len(chunk) < len(encoded):
            space = chunk.rfind(b" ")
            if space > max_bytes // 2:
                chunk = chunk[: space + 1]
        chunks.append(chunk.decode("utf-8", errors="replace").rstrip(" "))
        start += len(chunk)
    return [c for c in chunks if c.strip()]


def _valid_prefix(data: bytes) -> bytes:
    """Longest prefix of data that decodes as strict UTF-8."""
    while data:
        try:
            data.decode("utf-8", errors="strict")
            return data
        except UnicodeDecodeError:
            data = data[:-1]
    return data
