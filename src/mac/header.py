"""
MAC Header and Packet Structures

This module defines the link layer addressing used by the transmit
queue: 48-bit MAC addresses, the three header address roles, the
QoS traffic identifier and the immutable packet handle.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional
import itertools


class AddressType(Enum):
    """Address role in the MAC header."""
    ADDR1 = 1   # receiver / next hop
    ADDR2 = 2   # transmitter
    ADDR3 = 3   # final destination


@dataclass(frozen=True, order=True)
class Mac48Address:
    """
    48-bit MAC address.

    Attributes:
        value: Address as an integer in [0, 2^48)
    """
    value: int

    BROADCAST_VALUE = 0xFFFFFFFFFFFF

    def __post_init__(self):
        """Validate address range."""
        if not 0 <= self.value <= self.BROADCAST_VALUE:
            raise ValueError("MAC address out of range (48 bits)")

    @classmethod
    def from_string(cls, text: str) -> 'Mac48Address':
        """Parse 'aa:bb:cc:dd:ee:ff'."""
        octets = text.split(':')
        if len(octets) != 6:
            raise ValueError(f"Invalid MAC address: {text!r}")
        return cls(int(''.join(octets), 16))

    @classmethod
    def from_index(cls, index: int) -> 'Mac48Address':
        """Address allocated to the node with the given index (00:..:01 for node 0)."""
        return cls(index + 1)

    @classmethod
    def broadcast(cls) -> 'Mac48Address':
        return cls(cls.BROADCAST_VALUE)

    def is_broadcast(self) -> bool:
        return self.value == self.BROADCAST_VALUE

    def __str__(self) -> str:
        raw = f"{self.value:012x}"
        return ':'.join(raw[i:i + 2] for i in range(0, 12, 2))


@dataclass(frozen=True)
class MacHeader:
    """
    Link layer header.

    Attributes:
        addr1: Receiver address (next hop)
        addr2: Transmitter address
        addr3: Final destination address
        qos_tid: Traffic identifier, None for non-QoS frames
    """
    addr1: Mac48Address
    addr2: Mac48Address
    addr3: Optional[Mac48Address] = None
    qos_tid: Optional[int] = None

    def __post_init__(self):
        if self.qos_tid is not None and not 0 <= self.qos_tid <= 15:
            raise ValueError("QoS TID must be in [0, 15]")

    @property
    def is_qos_data(self) -> bool:
        """True if the frame carries a traffic class."""
        return self.qos_tid is not None

    def get_address(self, address_type: AddressType) -> Optional[Mac48Address]:
        """Get the address at the given role."""
        if address_type is AddressType.ADDR1:
            return self.addr1
        if address_type is AddressType.ADDR2:
            return self.addr2
        return self.addr3


_packet_ids = itertools.count()


@dataclass(frozen=True)
class Packet:
    """
    Immutable packet handle.

    Equality and hashing use the uid only, so a delay-marked copy is
    still the same packet for removal purposes.

    Attributes:
        uid: Unique packet identifier
        size: Packet size in bytes
        created_at: Simulated time the application generated the packet
        delayed: Whether a bias delay was already applied to this packet
    """
    uid: int = field(default_factory=lambda: next(_packet_ids))
    size: int = field(default=0, compare=False)
    created_at: float = field(default=0.0, compare=False)
    delayed: bool = field(default=False, compare=False)

    def mark_delayed(self) -> 'Packet':
        """Return a copy carrying the delay mark."""
        return replace(self, delayed=True)
