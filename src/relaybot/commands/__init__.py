"""Command handlers and the dispatcher that runs them."""

from relaybot.commands.base import COMMANDS, CommandContext, CommandTable, parse_command
from relaybot.commands import basic, timer  # noqa: F401  (registers handlers)
from relaybot.commands.dispatcher import CommandDispatcher
from relaybot.commands.timer import TimerManager
from relaybot.commands.urltitle import UrlTitleFetcher

__all__ = [
    "COMMANDS",
    "CommandContext",
    "CommandDispatcher",
    "CommandTable",
    "TimerManager",
    "UrlTitleFetcher",
    "parse_command",
]
