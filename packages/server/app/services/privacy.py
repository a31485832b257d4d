"""
Channel privacy mutations.

Stricter than viewing. Admins and managers may change any channel's privacy
flag, member list and posting restriction, DM channels included. Everyone
else may only touch a DM channel they take part in, and even then only to
re-affirm its fixed shape: private, with exactly its two participants as
members.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Actor
from app.core.errors import DenialReason, Forbidden, ValidationFailed
from app.models.channel import Channel
from app.services.access import can_manage
from app.services.channels import find_missing_user_ids, replace_membership, update_channel_flags
from app.services.dm import DirectMessageChannel, resolve_channel_kind
from teamchat_shared.schemas.channels import ChannelPrivacyUpdateRequest

log = structlog.get_logger()


@dataclass(frozen=True)
class PrivacyChange:
    """A normalized privacy request. ``member_ids`` is deduplicated."""

    is_private: bool
    member_ids: frozenset[int]
    posting_restricted: Optional[bool] = None

    @classmethod
    def build(
        cls,
        is_private: bool,
        member_ids: Iterable[int] = (),
        posting_restricted: Optional[bool] = None,
    ) -> "PrivacyChange":
        return cls(
            is_private=is_private,
            member_ids=frozenset(member_ids),
            posting_restricted=posting_restricted,
        )

    @classmethod
    def from_request(cls, body: ChannelPrivacyUpdateRequest) -> "PrivacyChange":
        return cls.build(body.is_private, body.member_ids, body.posting_restricted)

    @property
    def effective_member_ids(self) -> frozenset[int]:
        """Members to store: none when the channel goes public."""
        return self.member_ids if self.is_private else frozenset()


def _dm_shape_violation(
    kind: DirectMessageChannel, change: PrivacyChange
) -> Optional[DenialReason]:
    if not change.is_private:
        return DenialReason.DM_MUST_STAY_PRIVATE
    if change.member_ids != kind.participants:
        return DenialReason.DM_MEMBERSHIP_FIXED
    return None


def evaluate_privacy_change(
    actor: Actor, channel: Channel, change: PrivacyChange
) -> Optional[DenialReason]:
    """Decide whether the actor may make this change. Returns None when allowed.

    Pure: no I/O. Admins and managers get the change as requested.
    """
    if can_manage(actor):
        return None

    if change.posting_restricted is not None:
        return DenialReason.POSTING_FLAG_PRIVILEGED

    kind = resolve_channel_kind(channel.name)
    if not isinstance(kind, DirectMessageChannel):
        return DenialReason.NOT_PRIVILEGED
    if not kind.has_participant(actor.id):
        return DenialReason.NOT_DM_PARTICIPANT
    return _dm_shape_violation(kind, change)


async def validate_privacy_change(session: AsyncSession, change: PrivacyChange) -> None:
    """Request checks that hold for every actor: member ids must name real users."""
    missing = await find_missing_user_ids(session, change.effective_member_ids)
    if missing:
        raise ValidationFailed(f"Unknown user ids in member_ids: {missing}")


async def apply_privacy_change(
    session: AsyncSession, actor: Actor, channel: Channel, change: PrivacyChange
) -> Channel:
    """Check and apply a privacy change.

    Raises ``Forbidden`` or ``ValidationFailed``. On success the flag update
    and the membership replacement are flushed in the caller's transaction.
    """
    reason = evaluate_privacy_change(actor, channel, change)
    if reason is not None:
        raise Forbidden(reason)

    await validate_privacy_change(session, change)

    await update_channel_flags(
        session,
        channel,
        is_private=change.is_private,
        posting_restricted=change.posting_restricted,
    )
    await replace_membership(session, channel.id, change.effective_member_ids)

    log.info(
        "channel.privacy_updated",
        channel_id=channel.id,
        actor_id=actor.id,
        is_private=change.is_private,
        member_count=len(change.effective_member_ids),
    )
    return channel
