"""Test channels and the two submission handles built on them."""

from __future__ import annotations

import asyncio

import pytest

from relaybot.core.errors import ChannelClosed
from relaybot.events import Act, AdminQuery, ChannelAddress, Say, Sender
from relaybot.gateway.channels import ActionSender, AdminQueryClient, Channel
from tests.mocks import recv

ALICE = Sender("alice", "a", "host")


class TestChannel:
    @pytest.mark.asyncio
    async def test_fifo(self):
        ch: Channel[int] = Channel(10)
        for i in range(5):
            await ch.send(i)
        assert [await ch.recv() for _ in range(5)] == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_send_blocks_when_full(self):
        ch: Channel[int] = Channel(1)
        await ch.send(1)
        blocked = asyncio.create_task(ch.send(2))
        await asyncio.sleep(0)
        assert not blocked.done()
        assert await ch.recv() == 1
        await asyncio.wait_for(blocked, 1.0)
        assert await ch.recv() == 2

    @pytest.mark.asyncio
    async def test_send_nowait_full_raises(self):
        ch: Channel[int] = Channel(1)
        ch.send_nowait(1)
        with pytest.raises(asyncio.QueueFull):
            ch.send_nowait(2)

    @pytest.mark.asyncio
    async def test_close_wakes_receiver(self):
        ch: Channel[int] = Channel(1)
        waiter = asyncio.create_task(ch.recv())
        await asyncio.sleep(0)
        ch.close()
        with pytest.raises(ChannelClosed):
            await asyncio.wait_for(waiter, 1.0)

    @pytest.mark.asyncio
    async def test_close_then_drain_remaining(self):
        ch: Channel[int] = Channel(5)
        await ch.send(1)
        await ch.send(2)
        ch.close()
        assert await ch.recv() == 1
        assert await ch.recv() == 2
        with pytest.raises(ChannelClosed):
            await ch.recv()

    @pytest.mark.asyncio
    async def test_send_after_close_raises(self):
        ch: Channel[int] = Channel(1)
        ch.close()
        with pytest.raises(ChannelClosed):
            await ch.send(1)
        with pytest.raises(ChannelClosed):
            ch.send_nowait(1)

    @pytest.mark.asyncio
    async def test_drain_skips_close_marker(self):
        ch: Channel[int] = Channel(5)
        await ch.send(7)
        assert ch.drain() == [7]
        ch.close()
        assert ch.drain() == []

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        ch: Channel[int] = Channel(1)
        ch.close()
        ch.close()
        assert ch.closed


class TestActionSender:
    @pytest.mark.asyncio
    async def test_say_and_act(self):
        ch = Channel(10)
        sender = ActionSender(ch)
        target = ChannelAddress("irc1", "#a")
        assert await sender.say(target, "hi")
        assert await sender.act(target, "waves")
        first = await recv(ch)
        second = await recv(ch)
        assert first.target == target and first.payload == Say("hi")
        assert second.payload == Act("waves")

    @pytest.mark.asyncio
    async def test_submit_after_close_returns_false(self):
        ch = Channel(10)
        ch.close()
        assert await ActionSender(ch).say(ChannelAddress("irc1", "#a"), "hi") is False

    @pytest.mark.asyncio
    async def test_single_task_order_preserved(self):
        ch = Channel(100)
        sender = ActionSender(ch)
        target = ChannelAddress("irc1", "#a")
        for i in range(20):
            await sender.say(target, str(i))
        got = [(await recv(ch)).payload.text for _ in range(20)]
        assert got == [str(i) for i in range(20)]


class TestAdminQueryClient:
    @pytest.mark.asyncio
    async def test_no_sender_is_never_admin_and_sends_nothing(self):
        ch: Channel[AdminQuery] = Channel(10)
        assert await AdminQueryClient(ch).is_admin("irc1", None) is False
        assert ch.qsize() == 0

    @pytest.mark.asyncio
    async def test_answer_true(self):
        ch: Channel[AdminQuery] = Channel(10)
        client = AdminQueryClient(ch)
        pending = asyncio.create_task(client.is_admin("irc1", ALICE))
        query = await recv(ch)
        assert query.network == "irc1"
        assert query.identity_mask == "alice!a@host"
        query.reply_to.set_result(True)
        assert await pending is True

    @pytest.mark.asyncio
    async def test_dropped_query_is_not_admin(self):
        ch: Channel[AdminQuery] = Channel(10)
        client = AdminQueryClient(ch)
        pending = asyncio.create_task(client.is_admin("irc1", ALICE))
        query = await recv(ch)
        query.reply_to.cancel()
        assert await asyncio.wait_for(pending, 1.0) is False

    @pytest.mark.asyncio
    async def test_timeout_is_not_admin(self):
        ch: Channel[AdminQuery] = Channel(10)
        client = AdminQueryClient(ch, timeout=0.01)
        assert await client.is_admin("irc1", ALICE) is False
        query = await recv(ch)
        # The asker gave up; its reply slot is already done
        assert query.reply_to.done()

    @pytest.mark.asyncio
    async def test_closed_channel_is_not_admin(self):
        ch: Channel[AdminQuery] = Channel(10)
        ch.close()
        assert await AdminQueryClient(ch).is_admin("irc1", ALICE) is False

    @pytest.mark.asyncio
    async def test_cancelling_the_asker_propagates(self):
        ch: Channel[AdminQuery] = Channel(10)
        client = AdminQueryClient(ch, timeout=None)
        pending = asyncio.create_task(client.is_admin("irc1", ALICE))
        await recv(ch)
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending
