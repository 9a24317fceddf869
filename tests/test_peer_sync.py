"""Tests for the peer synchronization protocol."""

import json

import pytest

from conftest import PLAYER_GUID
from keystonesync.errors import ProtocolViolation
from keystonesync.events import LibraryEvent
from keystonesync.host.api import Distribution
from keystonesync.sync import InstanceResetMessage, PeerSyncProtocol, SessionStartedMessage
from keystonesync.sync.messages import KNOWN_EVENTS

PEER_GUID = "Player-9-0009"
PREFIX = "KeystoneSync"


@pytest.fixture()
def protocol(host, channel, bus, machine, config):
    protocol = PeerSyncProtocol(host, channel, bus, machine, config)
    protocol.attach()
    return protocol


def envelope(event, sender=PEER_GUID, payload=None):
    data = {"event": event, "senderId": sender}
    if payload is not None:
        data["payload"] = payload
    return json.dumps(data)


def session_payload(machine):
    return {"session": machine.get_active_session().model_dump(mode="json")}


class TestInbound:
    """Decoding and applying peer messages."""

    def test_peer_reset_abandons_active_session(self, protocol, channel, machine, recorder_for) -> None:
        abandoned = recorder_for(LibraryEvent.SESSION_ABANDONED)
        machine.on_challenge_started()

        message = channel.deliver(PREFIX, envelope("KeystoneSync.InstanceReset"))

        assert isinstance(message, InstanceResetMessage)
        assert message.sender_id == PEER_GUID
        assert not machine.is_active()
        assert abandoned.last.reason == "PeerInstanceReset"

    def test_peer_reset_without_session(self, protocol, channel, machine, recorder_for) -> None:
        abandoned = recorder_for(LibraryEvent.SESSION_ABANDONED)
        channel.deliver(PREFIX, envelope("KeystoneSync.InstanceReset"))
        assert abandoned.count == 0

    @pytest.mark.parametrize("event", sorted(KNOWN_EVENTS))
    def test_own_messages_are_ignored(self, protocol, channel, machine, event) -> None:
        """Echoes of our own broadcasts never change local state."""
        machine.on_challenge_started()

        result = channel.deliver(PREFIX, envelope(event, sender=PLAYER_GUID))

        assert result is None
        assert machine.is_active()

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", "42", None, ""])
    def test_undecodable_messages_dropped(self, protocol, channel, raw) -> None:
        assert channel.deliver(PREFIX, raw) is None

    def test_missing_sender_raises(self, protocol, channel) -> None:
        with pytest.raises(ProtocolViolation):
            channel.deliver(PREFIX, json.dumps({"event": "KeystoneSync.InstanceReset"}))

    def test_empty_sender_raises(self, protocol, channel) -> None:
        with pytest.raises(ProtocolViolation):
            channel.deliver(PREFIX, envelope("KeystoneSync.InstanceReset", sender=""))

    def test_non_string_sender_dropped(self, protocol, channel, machine) -> None:
        """A present but falsy sender is malformed, not missing."""
        machine.on_challenge_started()

        assert channel.deliver(PREFIX, envelope("KeystoneSync.InstanceReset", sender=0)) is None
        assert machine.is_active()

    def test_unknown_event_ignored(self, protocol, channel, machine) -> None:
        machine.on_challenge_started()
        assert channel.deliver(PREFIX, envelope("KeystoneSync.FutureThing", payload={"x": 1})) is None
        assert machine.is_active()

    def test_invalid_payload_dropped(self, protocol, channel) -> None:
        assert channel.deliver(PREFIX, envelope("KeystoneSync.KeystoneSlotted", payload={})) is None

    def test_session_update_from_peer(self, protocol, channel, machine) -> None:
        machine.on_challenge_started()
        raw = envelope("KeystoneSync.SessionStarted", payload=session_payload(machine))

        message = channel.deliver(PREFIX, raw, Distribution.GUILD)

        assert isinstance(message, SessionStartedMessage)
        assert message.payload.session.keystone.map_id == 375
        assert machine.is_active()


class TestOutbound:
    """Broadcasting local session facts."""

    def sent(self, channel):
        return [(json.loads(message), distribution) for _prefix, message, distribution in channel.sent]

    def test_keystone_slotted_goes_to_party(self, protocol, channel, host, machine) -> None:
        host.slotted = (376, 7)
        machine.on_keystone_slotted()

        (message, distribution), = self.sent(channel)
        assert distribution == Distribution.PARTY
        assert message["event"] == "KeystoneSync.KeystoneSlotted"
        assert message["senderId"] == PLAYER_GUID
        assert message["payload"]["keystone"]["map_id"] == 376

    def test_instance_reset_goes_to_party(self, protocol, channel, machine) -> None:
        machine.on_challenge_started()
        machine.on_system_message("Mists of Tirna Scithe has been reset.")

        events = [(message["event"], distribution) for message, distribution in self.sent(channel)]
        assert ("KeystoneSync.InstanceReset", Distribution.PARTY) in events

    def test_session_events_need_guild(self, protocol, channel, machine) -> None:
        machine.on_challenge_started()
        machine.on_challenge_completed()
        assert channel.sent == []

    def test_session_events_go_to_guild(self, protocol, channel, host, machine) -> None:
        host.in_guild = True
        machine.on_challenge_started()
        machine.on_challenge_completed()
        machine.on_challenge_started()
        machine.abandon("InstanceReset")

        events = [(message["event"], distribution) for message, distribution in self.sent(channel)]
        assert events == [
            ("KeystoneSync.SessionStarted", Distribution.GUILD),
            ("KeystoneSync.SessionCompleted", Distribution.GUILD),
            ("KeystoneSync.SessionStarted", Distribution.GUILD),
            ("KeystoneSync.SessionAbandoned", Distribution.GUILD),
        ]

    def test_own_broadcast_roundtrip_is_ignored(self, protocol, channel, machine) -> None:
        machine.on_challenge_started()
        machine.on_system_message("Mists of Tirna Scithe has been reset.")
        machine.on_challenge_started()

        _prefix, message, _distribution = channel.sent[-1]
        assert channel.deliver(PREFIX, message) is None
        assert machine.is_active()

    def test_detach(self, protocol, channel, host, machine) -> None:
        host.in_guild = True
        protocol.detach()
        machine.on_challenge_started()

        assert channel.sent == []
        assert PREFIX not in channel.handlers
