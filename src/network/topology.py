"""
Grid Mesh Topology

This module places mesh routers on a regular grid and answers distance
queries between their MAC addresses. Node 0, at the origin, is the
gateway.
"""

from typing import Dict, List, Optional
import numpy as np
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from config import GRID_X, GRID_Y, SEPARATION_DISTANCE
from src.mac.header import Mac48Address


class GridTopology:
    """
    Row-first grid of mesh routers.

    Attributes:
        width: Nodes in x-direction
        height: Nodes in y-direction
        spacing: Distance between neighbours in meters
        positions: (n, 2) array of node coordinates
    """

    def __init__(
        self,
        width: int = GRID_X,
        height: int = GRID_Y,
        spacing: float = SEPARATION_DISTANCE
    ):
        """
        Initialize grid.

        Args:
            width: Nodes per row
            height: Number of rows
            spacing: Grid step in meters
        """
        if width <= 0 or height <= 0:
            raise ValueError("Grid dimensions must be positive")

        self.width = width
        self.height = height
        self.spacing = spacing

        index = np.arange(width * height)
        self.positions = np.column_stack((
            (index % width) * spacing,
            (index // width) * spacing
        )).astype(float)

        self.addresses: List[Mac48Address] = [
            Mac48Address.from_index(i) for i in range(self.node_count)
        ]
        self._index_by_address: Dict[Mac48Address, int] = {
            addr: i for i, addr in enumerate(self.addresses)
        }

    @property
    def node_count(self) -> int:
        return self.width * self.height

    @property
    def gateway(self) -> Mac48Address:
        """Address of the gateway (first device on the channel)."""
        return self.addresses[0]

    def address_of(self, index: int) -> Mac48Address:
        return self.addresses[index]

    def index_of(self, address: Mac48Address) -> Optional[int]:
        return self._index_by_address.get(address)

    def distance(self, node_a: Mac48Address, node_b: Mac48Address) -> float:
        """
        Euclidean distance between two nodes.

        Args:
            node_a: First node address
            node_b: Second node address

        Returns:
            Distance in meters
        """
        ia = self._index_by_address.get(node_a)
        ib = self._index_by_address.get(node_b)
        if ia is None or ib is None:
            raise KeyError(f"Unknown node {node_a if ia is None else node_b}")
        return float(np.linalg.norm(self.positions[ia] - self.positions[ib]))

    def hops_to_gateway(self, address: Mac48Address) -> int:
        """Hop count to the gateway using the separation distance."""
        return int(self.distance(address, self.gateway) / self.spacing)

    def corner_nodes(self) -> Dict[str, Mac48Address]:
        """Named source positions used by the reference scenario."""
        n = self.node_count
        return {
            'far_corner': self.addresses[n - 1],
            'gateway_neighbour': self.addresses[1 % n],
            'last_row_start': self.addresses[n - self.width],
        }
