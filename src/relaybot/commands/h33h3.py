"""Canned replies to a bare "h33h3" in a channel."""

from __future__ import annotations

import random

from relaybot.events import Act, ActionPayload, ChannelAddress, OutboundAction, Say
from relaybot.gateway.channels import ActionSender

TRIGGER = "h33h3"


def is_trigger(text: str) -> bool:
    return text.lower() == TRIGGER


def _eight_ball(rng: random.Random) -> ActionPayload:
    roll = rng.randint(1, 20)
    if roll in (1, 14):
        return Say(str(rng.randint(0, 4)))
    if roll in (3, 20):
        return Say(str(rng.randint(0, 5)))
    if roll in (4, 12):
        return Say(str(rng.randint(0, 2)))
    if roll in (5, 11, 15):
        return Say(str(rng.randint(0, 1)))
    if roll in (6, 13):
        return Say(str(rng.randint(0, 3)))
    return {
        2: Say(".____________."),
        7: Act("am cry"),
        8: Say("fail"),
        17: Say("::|"),
        18: Say("h3-- not."),
    }.get(roll, Say("0"))


def pick_replies(rng: random.Random, nick: str) -> list[ActionPayload]:
    """One or two payloads, in send order."""
    roll = rng.randint(0, 100)
    if roll in (23, 55):
        return [Say(f"GOOD DAY {nick}, YOU LOSE AT THE INTTER NETS")]
    if roll == 28:
        return [Say("hngggg")]
    if roll == 29:
        return [Say("h33h3")]
    if roll == 30:
        return [Say("<W> har har har"), _eight_ball(rng)]
    if roll == 31:
        return [Say("<W> HAR VITUN HAR"), _eight_ball(rng)]
    return [_eight_ball(rng)]


async def answer(
    actions: ActionSender,
    source: ChannelAddress,
    nick: str,
    rng: random.Random | None = None,
) -> None:
    for payload in pick_replies(rng or random.Random(), nick):
        await actions.submit(OutboundAction(source, payload))
