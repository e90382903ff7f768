"""
MAC package - Link layer addressing.

Contains implementations for:
- MAC addresses and header address roles
- Immutable packet handles
- Blocked destination tracking
"""

from .header import Mac48Address, MacHeader, AddressType, Packet
from .blocked_destinations import QosBlockedDestinations

__all__ = [
    'Mac48Address',
    'MacHeader',
    'AddressType',
    'Packet',
    'QosBlockedDestinations'
]
