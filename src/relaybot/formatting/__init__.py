"""Text formatting helpers for outbound IRC lines."""

from relaybot.formatting.line_split import split_lines

__all__ = ["split_lines"]
