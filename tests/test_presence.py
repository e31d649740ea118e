"""PresenceTracker: heartbeat TTL, sign-off and the online set."""

from ephemera.services.keys import ONLINE_USERS_KEY, presence_key


class TestHeartbeat:

    async def test_online_then_offline(self, presence):
        assert await presence.set_user_online("u1") is True
        assert await presence.is_user_online("u1") is True

        assert await presence.set_user_offline("u1") is True
        assert await presence.is_user_online("u1") is False
        assert "u1" not in await presence.get_online_users()

    async def test_presence_expires_without_heartbeat(self, presence, fake_store):
        await presence.set_user_online("u1")

        fake_store.advance(119)
        assert await presence.is_user_online("u1") is True
        fake_store.advance(1)
        assert await presence.is_user_online("u1") is False

    async def test_heartbeat_extends_presence(self, presence, fake_store):
        await presence.set_user_online("u1")
        fake_store.advance(100)
        await presence.set_user_online("u1")
        fake_store.advance(100)

        assert await presence.is_user_online("u1") is True

    async def test_record_contents_and_ttls(self, presence, cache):
        await presence.set_user_online("u1", {"device": "web", "page": "/lesson/3"})

        record = await presence.get_presence("u1")
        assert record["online"] is True
        assert record["lastSeen"]
        assert record["device"] == "web"
        assert await cache.ttl(presence_key("u1")) == 120
        assert await cache.ttl(ONLINE_USERS_KEY) == 300

    async def test_heartbeat_is_one_round_trip(self, presence, fake_store):
        await presence.set_user_online("u1")
        assert len(fake_store.requests) == 1


class TestOnlineSet:

    async def test_members(self, presence):
        for user_id in ("u1", "u2", "u3"):
            await presence.set_user_online(user_id)

        assert sorted(await presence.get_online_users()) == ["u1", "u2", "u3"]

    async def test_set_can_hold_stale_ids(self, presence, fake_store):
        await presence.set_user_online("idle")
        fake_store.advance(150)
        await presence.set_user_online("active")

        # The set TTL was refreshed by the other user's heartbeat
        assert sorted(await presence.get_online_users()) == ["active", "idle"]
        assert await presence.is_user_online("idle") is False

    async def test_verify_prunes_stale_ids(self, presence, fake_store):
        await presence.set_user_online("idle")
        fake_store.advance(150)
        await presence.set_user_online("active")

        assert await presence.get_online_users(verify=True) == ["active"]
        assert await presence.get_online_users() == ["active"]

    async def test_set_expires_when_nobody_heartbeats(self, presence, fake_store):
        await presence.set_user_online("u1")
        fake_store.advance(300)
        assert await presence.get_online_users() == []


class TestFailSoft:

    async def test_defaults(self, presence, fake_store):
        fake_store.unreachable = True

        assert await presence.set_user_online("u1") is False
        assert await presence.set_user_offline("u1") is False
        assert await presence.is_user_online("u1") is False
        assert await presence.get_online_users() == []
        assert await presence.get_presence("u1") is None
