"""
Blocked Destinations

Tracks (destination, traffic class) pairs the MAC may not serve right
now, e.g. while a block acknowledgment is outstanding.
"""

from typing import Set, Tuple

from src.mac.header import Mac48Address


class QosBlockedDestinations:
    """Set of blocked (destination, tid) pairs."""

    def __init__(self):
        self.blocked: Set[Tuple[Mac48Address, int]] = set()

    def block(self, dest: Mac48Address, tid: int):
        self.blocked.add((dest, tid))

    def unblock(self, dest: Mac48Address, tid: int):
        self.blocked.discard((dest, tid))

    def is_blocked(self, dest: Mac48Address, tid: int) -> bool:
        return (dest, tid) in self.blocked

    def __call__(self, dest: Mac48Address, tid: int) -> bool:
        """Use the set directly as a blocked predicate."""
        return self.is_blocked(dest, tid)

    def __len__(self) -> int:
        return len(self.blocked)
