"""Tests for the h33h3 trigger."""

from __future__ import annotations

import asyncio
import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from relaybot.commands import h33h3
from relaybot.commands.dispatcher import CommandDispatcher
from relaybot.events import Act, ChannelAddress, InboundEvent, ProtocolMessage, Say
from relaybot.gateway.channels import ActionSender, Channel
from tests.mocks import privmsg, recv


class ScriptedRandom(random.Random):
    """randint() returns the given values in order."""

    def __init__(self, *values: int) -> None:
        super().__init__(0)
        self._values = list(values)

    def randint(self, a: int, b: int) -> int:
        value = self._values.pop(0)
        assert a <= value <= b
        return value


class TestTrigger:
    def test_case_insensitive_exact_match(self):
        assert h33h3.is_trigger("h33h3")
        assert h33h3.is_trigger("H33H3")
        assert not h33h3.is_trigger("h33h3!")
        assert not h33h3.is_trigger("well h33h3")


class TestPickReplies:
    def test_good_day(self):
        assert h33h3.pick_replies(ScriptedRandom(23), "alice") == [
            Say("GOOD DAY alice, YOU LOSE AT THE INTTER NETS")
        ]

    def test_fixed_lines(self):
        assert h33h3.pick_replies(ScriptedRandom(28), "alice") == [Say("hngggg")]
        assert h33h3.pick_replies(ScriptedRandom(29), "alice") == [Say("h33h3")]

    def test_extra_line_comes_first(self):
        assert h33h3.pick_replies(ScriptedRandom(30, 7), "alice") == [
            Say("<W> har har har"),
            Act("am cry"),
        ]
        assert h33h3.pick_replies(ScriptedRandom(31, 8), "alice") == [
            Say("<W> HAR VITUN HAR"),
            Say("fail"),
        ]

    def test_numeric_answer(self):
        assert h33h3.pick_replies(ScriptedRandom(0, 3, 5), "alice") == [Say("5")]

    def test_fallback_zero(self):
        assert h33h3.pick_replies(ScriptedRandom(100, 9), "alice") == [Say("0")]

    def test_seeded_rng_is_reproducible(self):
        first = [h33h3.pick_replies(random.Random(42), "bob") for _ in range(5)]
        second = [h33h3.pick_replies(random.Random(42), "bob") for _ in range(5)]
        assert first == second
        assert all(1 <= len(replies) <= 2 for replies in first)


class TestDispatch:
    @pytest.mark.asyncio
    async def test_trigger_answered_in_channel(self):
        actions: Channel = Channel(10, name="actions")
        dispatcher = CommandDispatcher(
            Channel(10, name="inbound"),
            ActionSender(actions),
            MagicMock(is_admin=AsyncMock(return_value=False)),
            rng=ScriptedRandom(30, 2),
        )
        evt = InboundEvent("irc1", ProtocolMessage.from_frame(privmsg("#test", "H33h3")))
        await asyncio.gather(*dispatcher.handle(evt))
        first = await recv(actions)
        second = await recv(actions)
        assert first.target == ChannelAddress("irc1", "#test")
        assert first.payload == Say("<W> har har har")
        assert second.payload == Say(".____________.")

    @pytest.mark.asyncio
    async def test_trigger_without_nick_ignored(self):
        dispatcher = CommandDispatcher(
            Channel(10, name="inbound"),
            ActionSender(Channel(10, name="actions")),
            MagicMock(),
        )
        evt = InboundEvent("irc1", ProtocolMessage.from_frame(privmsg("#test", "h33h3", source="irc.server")))
        assert dispatcher.handle(evt) == []
