"""
Integration tests for the channel endpoints.

Tests cover:
- Visibility-filtered listing
- Channel detail, member listing and privacy updates (404 before 403)
- Channel registry (create, rename, delete)
- Direct message initiation
- Error envelope, including that denial reasons are never rendered
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from app.core.auth import Actor
from app.services import channels as channel_service
from app.services.channels import find_channel_by_id, find_channel_by_name, list_member_ids
from teamchat_shared.schemas.common import Role

from conftest import make_channel


async def _seed(session) -> dict[str, int]:
    """Seed a mix of channels and return their ids by name."""
    general = await make_channel(session, "general")
    leads = await make_channel(session, "leads", is_private=True, members=(1, 2))
    dm = await make_channel(session, "dm:3-9", is_private=True, members=(3, 9))
    announcements = await make_channel(session, "announcements", posting_restricted=True)
    return {
        "general": general.id,
        "leads": leads.id,
        "dm": dm.id,
        "announcements": announcements.id,
    }


# ---------------------------------------------------------------------------
# Authentication and error envelope
# ---------------------------------------------------------------------------


class TestUnauthenticated:
    async def test_list_requires_actor(self, users, client):
        resp = await client.get("/api/v1/channels")
        assert resp.status_code == 401
        assert resp.json() == {
            "error": {
                "code": "UNAUTHENTICATED",
                "message": "Authentication required.",
                "status": 401,
            }
        }

    async def test_privacy_requires_actor(self, users, client):
        ids = await _seed(users)
        resp = await client.put(
            f"/api/v1/channels/{ids['dm']}/privacy",
            json={"is_private": True, "member_ids": [3, 9]},
        )
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Listing and detail
# ---------------------------------------------------------------------------


class TestListChannels:
    async def test_member_sees_public_and_own_private(self, users, client, act_as):
        await _seed(users)
        act_as(1)
        resp = await client.get("/api/v1/channels")
        assert resp.status_code == 200
        names = [c["name"] for c in resp.json()["data"]]
        assert names == ["announcements", "general", "leads"]

    async def test_dm_participant_sees_dm_flagged(self, users, client, act_as):
        await _seed(users)
        act_as(9)
        resp = await client.get("/api/v1/channels")
        dm = next(c for c in resp.json()["data"] if c["name"] == "dm:3-9")
        assert dm["is_dm"] is True
        assert dm["is_private"] is True

    async def test_manager_sees_everything(self, users, client, act_as):
        await _seed(users)
        act_as(101, Role.MANAGER)
        resp = await client.get("/api/v1/channels")
        assert len(resp.json()["data"]) == 4


class TestGetChannel:
    async def test_missing_channel_is_404(self, users, client, act_as):
        act_as(1)
        resp = await client.get("/api/v1/channels/999")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"

    async def test_private_channel_hidden_from_non_member(self, users, client, act_as):
        ids = await _seed(users)
        act_as(4)
        resp = await client.get(f"/api/v1/channels/{ids['leads']}")
        assert resp.status_code == 403
        assert resp.json() == {
            "error": {
                "code": "FORBIDDEN",
                "message": "You do not have permission to perform this action.",
                "status": 403,
            }
        }

    async def test_private_channel_visible_to_member(self, users, client, act_as):
        ids = await _seed(users)
        act_as(2)
        resp = await client.get(f"/api/v1/channels/{ids['leads']}")
        assert resp.status_code == 200
        assert resp.json()["name"] == "leads"

    async def test_dm_visible_to_admin(self, users, client, act_as):
        ids = await _seed(users)
        act_as(100, Role.ADMIN)
        resp = await client.get(f"/api/v1/channels/{ids['dm']}")
        assert resp.status_code == 200


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


class TestListMembers:
    async def test_manager_lists_members(self, users, client, act_as):
        ids = await _seed(users)
        act_as(101, Role.MANAGER)
        resp = await client.get(f"/api/v1/channels/{ids['leads']}/members")
        assert resp.status_code == 200
        assert resp.json() == {"is_private": True, "member_ids": [1, 2]}

    async def test_member_of_channel_still_denied(self, users, client, act_as):
        ids = await _seed(users)
        act_as(1)
        resp = await client.get(f"/api/v1/channels/{ids['leads']}/members")
        assert resp.status_code == 403

    async def test_missing_channel_is_404_before_role_check(self, users, client, act_as):
        act_as(1)
        resp = await client.get("/api/v1/channels/999/members")
        assert resp.status_code == 404

    async def test_reports_stored_privacy_flag(self, users, client, act_as):
        channel = await make_channel(users, "dm:1-5", is_private=False, members=(1, 5))
        channel_id = channel.id
        act_as(100, Role.ADMIN)
        resp = await client.get(f"/api/v1/channels/{channel_id}/members")
        assert resp.json() == {"is_private": False, "member_ids": [1, 5]}


# ---------------------------------------------------------------------------
# Privacy
# ---------------------------------------------------------------------------


class TestUpdatePrivacy:
    async def test_participant_reaffirms_dm(self, users, client, act_as, published):
        ids = await _seed(users)
        act_as(3)
        resp = await client.put(
            f"/api/v1/channels/{ids['dm']}/privacy",
            json={"is_private": True, "member_ids": [9, 3]},
        )
        assert resp.status_code == 200
        assert resp.json() == {"is_private": True, "member_ids": [3, 9]}
        published.assert_awaited_once()
        assert published.await_args.args[:2] == (ids["dm"], "channel.privacy_updated")

    async def test_participant_cannot_add_member(self, users, client, act_as, published):
        ids = await _seed(users)
        act_as(3)
        resp = await client.put(
            f"/api/v1/channels/{ids['dm']}/privacy",
            json={"is_private": True, "member_ids": [3, 9, 4]},
        )
        assert resp.status_code == 403
        assert "reason" not in resp.json()["error"]
        published.assert_not_awaited()
        assert await list_member_ids(users, ids["dm"]) == {3, 9}

    async def test_participant_cannot_make_dm_public(self, users, client, act_as):
        ids = await _seed(users)
        act_as(9)
        resp = await client.put(
            f"/api/v1/channels/{ids['dm']}/privacy",
            json={"is_private": False, "member_ids": []},
        )
        assert resp.status_code == 403

    async def test_non_participant_denied_without_leaking_reason(self, users, client, act_as):
        ids = await _seed(users)
        act_as(5)
        resp = await client.put(
            f"/api/v1/channels/{ids['dm']}/privacy",
            json={"is_private": True, "member_ids": [3, 9]},
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["message"] == "You do not have permission to perform this action."

    async def test_member_cannot_change_ordinary_channel(self, users, client, act_as):
        ids = await _seed(users)
        act_as(1)
        resp = await client.put(
            f"/api/v1/channels/{ids['leads']}/privacy",
            json={"is_private": True, "member_ids": [1, 2, 4]},
        )
        assert resp.status_code == 403
        assert await list_member_ids(users, ids["leads"]) == {1, 2}

    async def test_missing_channel_is_404_for_anyone(self, users, client, act_as):
        act_as(5)
        resp = await client.put(
            "/api/v1/channels/999/privacy",
            json={"is_private": True, "member_ids": [3, 9]},
        )
        assert resp.status_code == 404

    async def test_manager_makes_channel_private(self, users, client, act_as):
        ids = await _seed(users)
        act_as(101, Role.MANAGER)
        resp = await client.put(
            f"/api/v1/channels/{ids['general']}/privacy",
            json={"is_private": True, "member_ids": [4, 1, 4]},
        )
        assert resp.status_code == 200
        assert resp.json() == {"is_private": True, "member_ids": [1, 4]}
        assert await list_member_ids(users, ids["general"]) == {1, 4}

        act_as(2)
        resp = await client.get(f"/api/v1/channels/{ids['general']}")
        assert resp.status_code == 403

    async def test_manager_makes_channel_public(self, users, client, act_as):
        ids = await _seed(users)
        act_as(100, Role.ADMIN)
        resp = await client.put(
            f"/api/v1/channels/{ids['leads']}/privacy",
            json={"is_private": False, "member_ids": [1, 2]},
        )
        assert resp.json() == {"is_private": False, "member_ids": []}
        assert await list_member_ids(users, ids["leads"]) == set()

    async def test_manager_makes_dm_public(self, users, client, act_as):
        ids = await _seed(users)
        act_as(101, Role.MANAGER)
        resp = await client.put(
            f"/api/v1/channels/{ids['dm']}/privacy",
            json={"is_private": False, "member_ids": []},
        )
        assert resp.status_code == 200
        assert resp.json() == {"is_private": False, "member_ids": []}
        assert await list_member_ids(users, ids["dm"]) == set()

        for uid in (3, 9, 5):
            act_as(uid)
            resp = await client.get(f"/api/v1/channels/{ids['dm']}")
            assert resp.status_code == 200

    async def test_failed_membership_write_rolls_back_flag(self, users, client, act_as):
        ids = await _seed(users)
        act_as(101, Role.MANAGER)
        failing = AsyncMock(side_effect=RuntimeError("membership write failed"))
        with patch("app.services.privacy.replace_membership", failing):
            with pytest.raises(RuntimeError):
                await client.put(
                    f"/api/v1/channels/{ids['leads']}/privacy",
                    json={"is_private": False, "member_ids": []},
                )
        failing.assert_awaited_once()

        await users.rollback()
        channel = await find_channel_by_id(users, ids["leads"])
        assert channel.is_private is True
        assert await list_member_ids(users, ids["leads"]) == {1, 2}

    async def test_unknown_member_rejected(self, users, client, act_as):
        ids = await _seed(users)
        act_as(101, Role.MANAGER)
        resp = await client.put(
            f"/api/v1/channels/{ids['leads']}/privacy",
            json={"is_private": True, "member_ids": [1, 404]},
        )
        assert resp.status_code == 422
        assert await list_member_ids(users, ids["leads"]) == {1, 2}

    async def test_malformed_member_ids_rejected(self, users, client, act_as):
        ids = await _seed(users)
        act_as(101, Role.MANAGER)
        resp = await client.put(
            f"/api/v1/channels/{ids['leads']}/privacy",
            json={"is_private": True, "member_ids": ["one"]},
        )
        assert resp.status_code == 422

    async def test_posting_flag_needs_privilege(self, users, client, act_as):
        ids = await _seed(users)
        act_as(3)
        resp = await client.put(
            f"/api/v1/channels/{ids['dm']}/privacy",
            json={"is_private": True, "member_ids": [3, 9], "posting_restricted": True},
        )
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestChannelRegistry:
    async def test_member_creates_public_channel(self, users, client, act_as):
        act_as(1)
        resp = await client.post("/api/v1/channels", json={"name": "  design "})
        assert resp.status_code == 201
        body = resp.json()
        assert body["name"] == "design"
        assert body["is_private"] is False
        assert body["is_dm"] is False

    async def test_viewer_cannot_create(self, users, client, act_as):
        act_as(8, Role.VIEWER)
        resp = await client.post("/api/v1/channels", json={"name": "design"})
        assert resp.status_code == 403

    @pytest.mark.parametrize("name", ["dm:1-2", "DM:anything", "   "])
    async def test_reserved_or_blank_name_rejected(self, users, client, act_as, name):
        act_as(1)
        resp = await client.post("/api/v1/channels", json={"name": name})
        assert resp.status_code == 422
        assert await find_channel_by_name(users, "dm:1-2") is None

    async def test_duplicate_name_rejected(self, users, client, act_as):
        await _seed(users)
        act_as(1)
        resp = await client.post("/api/v1/channels", json={"name": "general"})
        assert resp.status_code == 422

    async def test_rename_requires_privilege(self, users, client, act_as):
        ids = await _seed(users)
        act_as(1)
        resp = await client.put(f"/api/v1/channels/{ids['general']}", json={"name": "lobby"})
        assert resp.status_code == 403

    async def test_manager_renames(self, users, client, act_as):
        ids = await _seed(users)
        act_as(101, Role.MANAGER)
        resp = await client.put(f"/api/v1/channels/{ids['general']}", json={"name": "lobby"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "lobby"

    async def test_dm_cannot_be_renamed(self, users, client, act_as):
        ids = await _seed(users)
        act_as(100, Role.ADMIN)
        resp = await client.put(f"/api/v1/channels/{ids['dm']}", json={"name": "chat"})
        assert resp.status_code == 422

    async def test_rename_into_dm_namespace_rejected(self, users, client, act_as):
        ids = await _seed(users)
        act_as(100, Role.ADMIN)
        resp = await client.put(f"/api/v1/channels/{ids['general']}", json={"name": "dm:1-4"})
        assert resp.status_code == 422

    async def test_manager_deletes_channel(self, users, client, act_as):
        ids = await _seed(users)
        act_as(101, Role.MANAGER)
        resp = await client.delete(f"/api/v1/channels/{ids['leads']}")
        assert resp.status_code == 204
        assert await find_channel_by_id(users, ids["leads"]) is None
        assert await list_member_ids(users, ids["leads"]) == set()

    async def test_member_cannot_delete(self, users, client, act_as):
        ids = await _seed(users)
        act_as(1)
        resp = await client.delete(f"/api/v1/channels/{ids['leads']}")
        assert resp.status_code == 403

    async def test_delete_missing_is_404(self, users, client, act_as):
        act_as(1)
        resp = await client.delete("/api/v1/channels/999")
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Direct messages
# ---------------------------------------------------------------------------


class TestDirectMessages:
    async def test_open_creates_then_returns_existing(self, users, client, act_as):
        act_as(9)
        first = await client.post("/api/v1/dm/3")
        assert first.status_code == 201
        body = first.json()
        assert body["name"] == "dm:3-9"
        assert body["is_dm"] is True
        assert body["is_private"] is True

        act_as(3)
        second = await client.post("/api/v1/dm/9")
        assert second.status_code == 200
        assert second.json()["id"] == body["id"]
        assert await list_member_ids(users, body["id"]) == {3, 9}

    async def test_dm_hidden_from_third_party(self, users, client, act_as):
        act_as(1)
        created = await client.post("/api/v1/dm/2")
        channel_id = created.json()["id"]

        act_as(5)
        resp = await client.get(f"/api/v1/channels/{channel_id}")
        assert resp.status_code == 403

    async def test_concurrent_create_returns_existing_channel(self, users):
        existing = await make_channel(users, "dm:3-9", is_private=True, members=(3, 9))
        existing_id = existing.id
        real_lookup = channel_service.find_channel_by_name
        lookups = []

        async def racing_lookup(session, name):
            # The first lookup misses, as it would for a request racing the creator.
            lookups.append(name)
            if len(lookups) == 1:
                return None
            return await real_lookup(session, name)

        with patch("app.services.channels.find_channel_by_name", racing_lookup):
            channel, created = await channel_service.get_or_create_dm_channel(
                users, Actor(id=9, role=Role.MEMBER), 3
            )

        assert created is False
        assert channel.id == existing_id
        assert lookups == ["dm:3-9", "dm:3-9"]
        await users.commit()
        assert await list_member_ids(users, existing_id) == {3, 9}

    async def test_cannot_dm_yourself(self, users, client, act_as):
        act_as(4)
        resp = await client.post("/api/v1/dm/4")
        assert resp.status_code == 422

    async def test_unknown_user_is_404(self, users, client, act_as):
        act_as(4)
        resp = await client.post("/api/v1/dm/999")
        assert resp.status_code == 404


class TestUsers:
    async def test_lists_active_users(self, users, client, act_as):
        act_as(1)
        resp = await client.get("/api/v1/users")
        assert resp.status_code == 200
        ids = {u["id"] for u in resp.json()["data"]}
        assert ids == set(range(1, 10)) | {100, 101}
