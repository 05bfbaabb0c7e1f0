"""Tests for the session broker, without sockets."""

import asyncio
import random

import pytest

from relay.protocol import JoinGamePayload, Message, MessageType, make_message
from relay.sessions import (
    SESSION_CODE_ALPHABET,
    SessionNotFound,
    SessionRegistry,
    SessionRequired,
    generate_session_code,
)


class FakeConnection:
    """Records what the broker sends."""

    def __init__(self, fail: bool = False):
        self.sent: list[dict] = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason=None):
        pass

    def types(self) -> list[str]:
        return [m["type"] for m in self.sent]

    def last(self) -> dict:
        return self.sent[-1]


def _join(player_id: str, name: str) -> Message:
    return make_message(MessageType.JOIN_GAME, {"playerId": player_id, "playerName": name})


async def _session_with_player(code="AB12CD"):
    registry = SessionRegistry()
    host = FakeConnection()
    player = FakeConnection()
    await registry.connect_host(code, host)
    bound = await registry.handle_player_message(code, player, None, _join("dev-1", "Alice"))
    return registry, host, player, bound


def test_generate_session_code():
    code = generate_session_code(rng=random.Random(1))
    assert len(code) == 6
    assert all(c in SESSION_CODE_ALPHABET for c in code)
    assert generate_session_code(existing=[code], rng=random.Random(1)) != code


@pytest.mark.asyncio
async def test_host_creates_session():
    registry = SessionRegistry()
    host = FakeConnection()
    await registry.connect_host("AB12CD", host)
    assert "AB12CD" in registry
    assert host.types() == ["host_connected"]
    assert host.last()["payload"] == {"sessionId": "AB12CD"}


@pytest.mark.asyncio
async def test_session_required():
    registry = SessionRegistry()
    with pytest.raises(SessionRequired) as exc_info:
        await registry.connect_host(None, FakeConnection())
    assert exc_info.value.close_code == 4001
    with pytest.raises(SessionRequired):
        registry.open_player_session("")


@pytest.mark.asyncio
async def test_player_unknown_session():
    registry = SessionRegistry()
    with pytest.raises(SessionNotFound) as exc_info:
        registry.open_player_session("ZZZZZZ")
    assert exc_info.value.close_code == 4004
    with pytest.raises(SessionNotFound):
        await registry.join_player("ZZZZZZ", FakeConnection(), JoinGamePayload(playerId="p", playerName="P"))


@pytest.mark.asyncio
async def test_join_notifies_host():
    registry, host, _, bound = await _session_with_player()
    assert bound == "dev-1"
    joined = host.last()
    assert joined["type"] == "player_joined"
    assert joined["payload"] == {"playerId": "dev-1", "playerName": "Alice"}
    assert joined["playerId"] == "dev-1"
    assert "targetPlayerId" not in joined


@pytest.mark.asyncio
async def test_player_messages_go_to_host_tagged():
    registry, host, player, bound = await _session_with_player()
    vote = make_message(MessageType.SUBMIT_VOTE, {"targetId": "player_3"}, player_id="spoofed")
    await registry.handle_player_message("AB12CD", player, bound, vote)
    forwarded = host.last()
    assert forwarded["type"] == "submit_vote"
    assert forwarded["playerId"] == "dev-1"
    assert forwarded["payload"] == {"targetId": "player_3"}
    assert player.sent == []


@pytest.mark.asyncio
async def test_messages_before_join_dropped():
    registry, host, _, _ = await _session_with_player()
    stranger = FakeConnection()
    sent_before = len(host.sent)
    bound = await registry.handle_player_message(
        "AB12CD", stranger, None, make_message(MessageType.SUBMIT_VOTE, {"targetId": "x"})
    )
    assert bound is None
    assert len(host.sent) == sent_before


@pytest.mark.asyncio
async def test_malformed_join_ignored():
    registry, host, _, _ = await _session_with_player()
    bad = make_message(MessageType.JOIN_GAME, {"playerName": "NoId"})
    assert await registry.handle_player_message("AB12CD", FakeConnection(), None, bad) is None
    assert len(registry.get("AB12CD").players) == 1


@pytest.mark.asyncio
async def test_host_unicast_and_broadcast():
    registry, host, alice, _ = await _session_with_player()
    bob = FakeConnection()
    await registry.handle_player_message("AB12CD", bob, None, _join("dev-2", "Bob"))

    await registry.route_host_message(
        "AB12CD", make_message(MessageType.REQUEST_VOTE, {}, target_player_id="dev-2")
    )
    assert alice.sent == []
    assert bob.types() == ["request_vote"]

    await registry.route_host_message("AB12CD", make_message(MessageType.PHASE_CHANGE, {"phase": "Night"}))
    assert alice.types() == ["phase_change"]
    assert bob.types() == ["request_vote", "phase_change"]


@pytest.mark.asyncio
async def test_unicast_to_disconnected_player_dropped():
    registry, _, alice, bound = await _session_with_player()
    await registry.disconnect_player("AB12CD", bound, alice)
    await registry.route_host_message(
        "AB12CD", make_message(MessageType.REQUEST_ACTION, {}, target_player_id="dev-1")
    )
    assert alice.sent == []


@pytest.mark.asyncio
async def test_assign_game_role_binds_and_forwards():
    registry, _, alice, _ = await _session_with_player()
    assign = make_message(
        MessageType.ASSIGN_GAME_ROLE,
        {"targetPlayerId": "dev-1", "gamePlayerId": "player_3", "gameRole": "Doctor"},
    )
    await registry.route_host_message("AB12CD", assign)
    session = registry.get("AB12CD")
    record = session.players["dev-1"]
    assert session.game_started
    assert record.game_player_id == "player_3"
    assert record.game_role == "Doctor"
    assert alice.last()["type"] == "assign_game_role"
    assert alice.last()["targetPlayerId"] == "dev-1"


@pytest.mark.asyncio
async def test_reconnect_keeps_binding():
    registry, host, alice, bound = await _session_with_player()
    await registry.route_host_message(
        "AB12CD",
        make_message(
            MessageType.ASSIGN_GAME_ROLE,
            {"targetPlayerId": "dev-1", "gamePlayerId": "player_3", "gameRole": "Doctor"},
        ),
    )
    await registry.disconnect_player("AB12CD", bound, alice)
    gone = host.last()
    assert gone["type"] == "player_disconnected"
    assert gone["payload"] == {"playerId": "dev-1", "playerName": "Alice", "canReconnect": True}
    assert registry.sweep() == []

    again = FakeConnection()
    await registry.handle_player_message("AB12CD", again, None, _join("dev-1", "Alice"))
    back = host.last()
    assert back["type"] == "player_reconnected"
    assert back["payload"]["gamePlayerId"] == "player_3"
    assert back["payload"]["gameRole"] == "Doctor"
    assert again.types() == ["rejoin_game"]
    assert again.last()["payload"] == {"gamePlayerId": "player_3", "gameRole": "Doctor", "gameStarted": True}
    assert len(registry.get("AB12CD").players) == 1


@pytest.mark.asyncio
async def test_reconnect_before_game_start_sends_no_rejoin():
    registry, host, alice, bound = await _session_with_player()
    await registry.disconnect_player("AB12CD", bound, alice)
    again = FakeConnection()
    await registry.handle_player_message("AB12CD", again, None, _join("dev-1", "Alice"))
    assert host.last()["type"] == "player_reconnected"
    assert again.sent == []


@pytest.mark.asyncio
async def test_stale_close_does_not_disconnect_new_socket():
    registry, host, alice, bound = await _session_with_player()
    newer = FakeConnection()
    await registry.handle_player_message("AB12CD", newer, None, _join("dev-1", "Alice"))
    await registry.disconnect_player("AB12CD", bound, alice)
    record = registry.get("AB12CD").players["dev-1"]
    assert record.connected
    assert record.connection is newer
    assert host.last()["type"] == "player_reconnected"


@pytest.mark.asyncio
async def test_host_disconnect_notifies_players_and_keeps_session():
    registry, host, alice, _ = await _session_with_player()
    await registry.disconnect_host("AB12CD", host)
    assert alice.last()["type"] == "host_disconnected"
    assert registry.sweep() == []
    assert "AB12CD" in registry

    new_host = FakeConnection()
    await registry.connect_host("AB12CD", new_host)
    assert registry.get("AB12CD").host is new_host


@pytest.mark.asyncio
async def test_player_messages_without_host_dropped():
    registry, host, alice, bound = await _session_with_player()
    await registry.disconnect_host("AB12CD", host)
    sent_before = len(host.sent)
    await registry.handle_player_message("AB12CD", alice, bound, make_message(MessageType.SUBMIT_VOTE, {"targetId": "x"}))
    assert len(host.sent) == sent_before


@pytest.mark.asyncio
async def test_sweep_removes_abandoned_sessions():
    registry = SessionRegistry()
    host = FakeConnection()
    await registry.connect_host("EMPTY1", host)
    assert registry.sweep() == []
    await registry.disconnect_host("EMPTY1", host)
    assert registry.sweep() == ["EMPTY1"]
    assert "EMPTY1" not in registry


@pytest.mark.asyncio
async def test_sweep_keeps_session_with_socket_waiting_to_join():
    registry = SessionRegistry()
    host = FakeConnection()
    player = FakeConnection()
    await registry.connect_host("WAIT01", host)
    await registry.disconnect_host("WAIT01", host)
    registry.open_player_session("WAIT01", player)
    assert registry.sweep() == []

    bound = await registry.handle_player_message("WAIT01", player, None, _join("dev-1", "Alice"))
    assert bound == "dev-1"
    assert registry.get("WAIT01").waiting == {}


@pytest.mark.asyncio
async def test_sweep_after_waiting_socket_leaves():
    registry = SessionRegistry()
    host = FakeConnection()
    player = FakeConnection()
    await registry.connect_host("WAIT02", host)
    await registry.disconnect_host("WAIT02", host)
    registry.open_player_session("WAIT02", player)
    await registry.disconnect_player("WAIT02", None, player)
    assert registry.sweep() == ["WAIT02"]
    with pytest.raises(SessionNotFound):
        await registry.join_player("WAIT02", player, JoinGamePayload(playerId="dev-1", playerName="Alice"))


@pytest.mark.asyncio
async def test_run_sweeper():
    registry = SessionRegistry()
    host = FakeConnection()
    await registry.connect_host("EMPTY1", host)
    await registry.disconnect_host("EMPTY1", host)
    task = asyncio.create_task(registry.run_sweeper(0.01))
    await asyncio.sleep(0.1)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_send_failure_is_not_fatal():
    registry = SessionRegistry()
    host = FakeConnection(fail=True)
    await registry.connect_host("AB12CD", host)
    player = FakeConnection()
    bound = await registry.handle_player_message("AB12CD", player, None, _join("dev-1", "Alice"))
    assert bound == "dev-1"
    assert "dev-1" in registry.get("AB12CD").players
