"""
Direct-message channel naming.

A DM channel is an ordinary ``channels`` row whose name has the exact form
``dm:<low>-<high>`` with ``low < high`` the two participant user ids. The
name is parsed once into a ``ChannelKind`` so callers branch on a type
instead of on string patterns.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

DM_PREFIX = "dm:"
DM_NAME_PATTERN = re.compile(r"dm:([0-9]+)-([0-9]+)")


@dataclass(frozen=True)
class OrdinaryChannel:
    """Any channel that is not a two-party DM."""

    is_dm = False


@dataclass(frozen=True)
class DirectMessageChannel:
    """A two-party DM channel. ``low < high`` always holds."""

    low: int
    high: int

    is_dm = True

    @property
    def participants(self) -> frozenset[int]:
        return frozenset((self.low, self.high))

    def has_participant(self, user_id: int) -> bool:
        return user_id == self.low or user_id == self.high


ChannelKind = Union[OrdinaryChannel, DirectMessageChannel]

ORDINARY = OrdinaryChannel()


def resolve_channel_kind(name: str) -> ChannelKind:
    """Classify a channel by its name.

    Tolerates the ids in either order (``dm:9-3`` resolves like ``dm:3-9``).
    A name naming the same user twice is not a DM.
    """
    match = DM_NAME_PATTERN.fullmatch(name)
    if not match:
        return ORDINARY
    a, b = int(match.group(1)), int(match.group(2))
    if a == b:
        return ORDINARY
    return DirectMessageChannel(low=min(a, b), high=max(a, b))


def dm_channel_name(user_a: int, user_b: int) -> str:
    """Build the normalized DM channel name for two distinct users."""
    if user_a == user_b:
        raise ValueError("A DM channel needs two distinct users")
    low, high = sorted((user_a, user_b))
    return f"{DM_PREFIX}{low}-{high}"


def is_reserved_name(name: str) -> bool:
    """Names in the ``dm:`` namespace are only created by the DM flow."""
    return name.strip().lower().startswith(DM_PREFIX)
