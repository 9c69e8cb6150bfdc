"""Property-based tests using hypothesis."""

import asyncio

from hypothesis import given, strategies as st

from relaybot.commands.basic import parse_roll
from relaybot.core.errors import ChannelClosed
from relaybot.events import ProtocolMessage, Sender
from relaybot.formatting import split_lines
from relaybot.gateway.admins import AdminRegistry
from relaybot.gateway.channels import Channel
from tests.mocks import privmsg

masks = st.builds(
    lambda n, u, h: f"{n}!{u}@{h}",
    st.text("abcxyz", min_size=1, max_size=5),
    st.text("abcxyz", min_size=1, max_size=5),
    st.text("abc.xyz", min_size=1, max_size=8),
)


class TestPropertyBased:
    """Property-based tests for invariants."""

    @given(st.text(), st.integers(min_value=8, max_value=400))
    def test_split_lines_respects_byte_limit(self, text, max_bytes):
        """Property: every line fits, none is blank, none contains a line break."""
        for line in split_lines(text, max_bytes):
            assert len(line.encode("utf-8")) <= max_bytes
            assert line.strip()
            assert "\n" not in line and "\r" not in line

    @given(st.text(alphabet="ab ", min_size=1, max_size=200))
    def test_split_lines_keeps_characters(self, text):
        """Property: splitting ASCII text only ever drops spaces."""
        joined = "".join(split_lines(text, 16))
        assert joined.replace(" ", "") == text.replace(" ", "")

    @given(st.lists(masks, max_size=5), masks)
    def test_admin_is_exact_membership(self, configured, candidate):
        """Property: admin iff the mask is literally configured for that network."""
        admins = AdminRegistry({"net": configured})
        assert admins.is_admin("net", candidate) == (candidate in configured)
        assert admins.is_admin("other", candidate) is False

    @given(st.integers(-1000, 1000), st.integers(-1000, 1000))
    def test_parse_roll_requires_increasing_bounds(self, low, high):
        expected = (low, high) if low < high else None
        assert parse_roll(f"{low} {high}") == expected

    @given(masks)
    def test_sender_mask_round_trip(self, mask):
        assert Sender.parse(mask).mask == mask

    @given(st.text())
    def test_privmsg_text_preserved(self, text):
        message = ProtocolMessage.from_frame(privmsg("#c", text))
        assert message.is_privmsg
        assert message.text == text

    @given(st.lists(st.integers(), max_size=50))
    def test_channel_is_fifo(self, items):
        """Property: a channel delivers items in send order, then reports closed."""

        async def scenario():
            channel = Channel(len(items) + 1)
            for item in items:
                await channel.send(item)
            channel.close()
            received = []
            while True:
                try:
                    received.append(await channel.recv())
                except ChannelClosed:
                    return received

        assert asyncio.run(scenario()) == items
