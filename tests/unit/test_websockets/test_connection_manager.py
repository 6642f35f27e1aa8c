"""
Unit tests for the relay's client registry and call pairing.
"""

import pytest
from websockets.protocol import State

from call_relay.infrastructure.exceptions import ConfigurationError
from call_relay.websockets.core import ConnectionManager
from tests.conftest import SequenceRandom, make_websocket


class TestIdentifierAllocation:
    """Test cases for identifier generation."""

    @pytest.mark.unit
    def test_register_assigns_id_in_range(self, connections):
        """Test that registered ids are five-digit strings in the default space."""
        client_id = connections.register(make_websocket())

        assert isinstance(client_id, str)
        assert 10000 <= int(client_id) <= 99999
        assert connections.is_registered(client_id)

    @pytest.mark.unit
    def test_register_never_reuses_live_id(self):
        """Test that a colliding random draw is retried."""
        manager = ConnectionManager(rng=SequenceRandom([12345, 12345, 67890]))

        first = manager.register(make_websocket())
        second = manager.register(make_websocket())

        assert first == "12345"
        assert second == "67890"

    @pytest.mark.unit
    def test_falls_back_to_scan_when_random_keeps_colliding(self):
        """Test the linear scan after repeated collisions."""
        manager = ConnectionManager(id_min=1, id_max=5, rng=SequenceRandom([1]))

        assert manager.register(make_websocket()) == "1"
        assert manager.register(make_websocket()) == "2"
        assert manager.register(make_websocket()) == "3"

    @pytest.mark.unit
    def test_exhausted_space_raises(self):
        """Test that a full identifier space is reported."""
        manager = ConnectionManager(id_min=1, id_max=2)
        manager.register(make_websocket())
        manager.register(make_websocket())

        with pytest.raises(ConfigurationError, match="exhausted"):
            manager.register(make_websocket())

    @pytest.mark.unit
    def test_released_id_can_be_reused(self):
        """Test that an id becomes available again after unregister."""
        manager = ConnectionManager(id_min=7, id_max=7)
        client_id = manager.register(make_websocket())
        manager.unregister(client_id)

        assert manager.register(make_websocket()) == client_id

    @pytest.mark.unit
    def test_invalid_range_rejected(self):
        """Test that an inverted identifier range is rejected."""
        with pytest.raises(ConfigurationError):
            ConnectionManager(id_min=10, id_max=5)


class TestPairing:
    """Test cases for call pairing."""

    @pytest.mark.unit
    def test_pair_is_symmetric(self, connections, registered_pair):
        """Test that pairing records both directions."""
        displaced = connections.pair("67890", "12345")

        assert displaced == []
        assert connections.get_partner("12345") == "67890"
        assert connections.get_partner("67890") == "12345"
        assert connections.get_stats()["active_calls"] == 1

    @pytest.mark.unit
    def test_pair_dissolves_previous_calls(self, connections, registered_pair):
        """Test that a new pairing displaces both members' old partners."""
        connections.clients["55555"] = make_websocket()
        connections.clients["44444"] = make_websocket()
        connections.pair("12345", "55555")
        connections.pair("67890", "44444")

        displaced = connections.pair("12345", "67890")

        assert sorted(displaced) == [("44444", "67890"), ("55555", "12345")]
        assert not connections.is_in_call("55555")
        assert not connections.is_in_call("44444")
        assert connections.calls == {"12345": "67890", "67890": "12345"}

    @pytest.mark.unit
    def test_re_pairing_same_clients_displaces_nobody(self, connections, registered_pair):
        """Test that pairing an existing pair again is a no-op for others."""
        connections.pair("12345", "67890")

        assert connections.pair("67890", "12345") == []
        assert connections.get_partner("12345") == "67890"

    @pytest.mark.unit
    def test_end_call_removes_both_directions(self, connections, registered_pair):
        """Test that ending a call clears the partner's entry too."""
        connections.pair("12345", "67890")

        assert connections.end_call("67890") == "12345"
        assert connections.calls == {}
        assert connections.end_call("67890") is None

    @pytest.mark.unit
    def test_unregister_dissolves_call(self, connections, registered_pair):
        """Test that removing a client returns and releases its partner."""
        connections.pair("12345", "67890")

        assert connections.unregister("12345") == "67890"
        assert not connections.is_registered("12345")
        assert not connections.is_in_call("67890")

    @pytest.mark.unit
    def test_unregister_is_idempotent(self, connections, registered_pair):
        """Test that unregistering twice is harmless."""
        connections.unregister("12345")

        assert connections.unregister("12345") is None
        assert connections.get_stats() == {"connected_clients": 1, "active_calls": 0}


class TestLookups:
    """Test cases for connection lookups."""

    @pytest.mark.unit
    def test_open_websocket_requires_open_state(self, connections):
        """Test that closing connections are treated as unavailable."""
        connections.clients["11111"] = make_websocket(State.CLOSING)
        connections.clients["22222"] = make_websocket()

        assert connections.get_open_websocket("11111") is None
        assert connections.get_open_websocket("22222") is connections.clients["22222"]
        assert connections.get_client_websocket("11111") is connections.clients["11111"]

    @pytest.mark.unit
    def test_open_websocket_unknown_or_missing_id(self, connections):
        """Test lookups for absent identifiers."""
        assert connections.get_open_websocket("99999") is None
        assert connections.get_open_websocket(None) is None
