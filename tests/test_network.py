"""
Unit tests for addressing, topology, clock and delivery statistics.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.mac.header import Mac48Address, MacHeader, AddressType, Packet
from src.mac.blocked_destinations import QosBlockedDestinations
from src.network.clock import SimulationClock
from src.network.topology import GridTopology
from src.utils.metrics import DeliveryStatistics, DeliveryStatisticsRegistry, DeliveryReport


class TestAddressing:
    """Tests for MAC addresses, headers and packets."""

    def test_address_string_round_trip(self):
        """Test parsing and formatting a MAC address."""
        addr = Mac48Address.from_string("00:00:00:00:00:2a")

        assert addr.value == 42
        assert str(addr) == "00:00:00:00:00:2a"

    def test_invalid_address(self):
        """Test out-of-range and malformed addresses are rejected."""
        with pytest.raises(ValueError):
            Mac48Address(1 << 48)
        with pytest.raises(ValueError):
            Mac48Address.from_string("00:11")

    def test_broadcast(self):
        """Test the broadcast address."""
        assert Mac48Address.broadcast().is_broadcast()
        assert not Mac48Address.from_index(0).is_broadcast()

    def test_header_roles(self):
        """Test selecting header addresses by role."""
        a, b, c = (Mac48Address.from_index(i) for i in range(3))
        header = MacHeader(addr1=a, addr2=b, addr3=c, qos_tid=6)

        assert header.get_address(AddressType.ADDR1) == a
        assert header.get_address(AddressType.ADDR2) == b
        assert header.get_address(AddressType.ADDR3) == c
        assert header.is_qos_data

    def test_non_qos_header(self):
        """Test a header without a traffic class."""
        header = MacHeader(addr1=Mac48Address(1), addr2=Mac48Address(2))

        assert not header.is_qos_data
        assert header.get_address(AddressType.ADDR3) is None

    def test_invalid_tid(self):
        """Test traffic identifiers above 15 are rejected."""
        with pytest.raises(ValueError):
            MacHeader(addr1=Mac48Address(1), addr2=Mac48Address(2), qos_tid=16)

    def test_packet_identity(self):
        """Test a delay-marked copy keeps the packet identity."""
        packet = Packet(size=512, created_at=1.5)
        marked = packet.mark_delayed()

        assert marked == packet
        assert hash(marked) == hash(packet)
        assert marked.delayed and not packet.delayed
        assert marked.size == 512
        assert Packet() != Packet()

    def test_blocked_destinations(self):
        """Test blocking and unblocking a destination and class."""
        blocked = QosBlockedDestinations()
        dest = Mac48Address(7)
        blocked.block(dest, 2)

        assert blocked.is_blocked(dest, 2)
        assert blocked(dest, 2)
        assert not blocked(dest, 3)

        blocked.unblock(dest, 2)
        assert len(blocked) == 0


class TestSimulationClock:
    """Tests for the simulated clock."""

    def test_advance(self):
        """Test advancing the clock."""
        clock = SimulationClock()

        assert clock.advance(1.5) == 1.5
        assert clock.now() == 1.5

    def test_monotonic(self):
        """Test the clock refuses to move backwards."""
        clock = SimulationClock(start_time=2.0)

        with pytest.raises(ValueError):
            clock.advance(-0.1)
        with pytest.raises(ValueError):
            clock.set_time(1.0)


class TestGridTopology:
    """Tests for the grid distance oracle."""

    def test_gateway_and_distances(self):
        """Test gateway placement and Euclidean distances."""
        grid = GridTopology(width=7, height=7, spacing=100)

        assert grid.node_count == 49
        assert grid.gateway == Mac48Address.from_index(0)
        assert grid.distance(grid.address_of(1), grid.gateway) == pytest.approx(100.0)
        assert grid.distance(grid.address_of(7), grid.gateway) == pytest.approx(100.0)
        assert grid.distance(grid.address_of(8), grid.gateway) == pytest.approx(141.421356)

    def test_hops_to_gateway(self):
        """Test hop counts of the named source nodes."""
        grid = GridTopology(width=7, height=7, spacing=100)
        corners = grid.corner_nodes()

        assert grid.hops_to_gateway(corners['gateway_neighbour']) == 1
        assert grid.hops_to_gateway(corners['last_row_start']) == 6
        assert grid.hops_to_gateway(corners['far_corner']) == 8

    def test_unknown_node(self):
        """Test distance to an unknown node raises KeyError."""
        grid = GridTopology(width=2, height=2)

        with pytest.raises(KeyError):
            grid.distance(Mac48Address(999), grid.gateway)

    def test_invalid_dimensions(self):
        """Test empty grids are rejected."""
        with pytest.raises(ValueError):
            GridTopology(width=0, height=3)


class TestDeliveryStatistics:
    """Tests for sink counters."""

    def test_counters(self):
        """Test received, lost, PDR and delay statistics."""
        stats = DeliveryStatistics(keep_samples=True)
        stats.record_received(0.2, timestamp=1.0, uid=1)
        stats.record_received(0.4, timestamp=2.0, uid=2)
        stats.record_lost(2)

        assert stats.received == 2
        assert stats.lost == 2
        assert stats.pdr == pytest.approx(0.5)
        assert stats.mean_delay == pytest.approx(0.3)
        assert stats.get_delay_percentiles()['median'] == pytest.approx(0.3)

    def test_empty_report(self):
        """Test a sink with no traffic."""
        report = DeliveryStatistics().report()

        assert report == DeliveryReport(received=0, lost=0, total_delay=0.0)
        assert report.pdr == 0.0
        assert report.mean_delay == 0.0

    def test_negative_delay_rejected(self):
        """Test negative delays are rejected."""
        with pytest.raises(ValueError):
            DeliveryStatistics().record_received(-1.0)

    def test_registry(self):
        """Test sink lookup, unknown sinks and unregistering."""
        registry = DeliveryStatisticsRegistry()
        stats = registry.register("gw")
        stats.record_received(1.0)

        assert registry.delivery_stats("gw").received == 1
        assert registry.delivery_stats("other") is None
        assert registry.unregister("gw")
        assert registry.delivery_stats("gw") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
