"""Spatial lookup of candidate Dirichlet vertices."""

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial import cKDTree

from .dirich_vtx import DirichVtx


class VertexIndex:
    """
    Index over a fixed list of candidate vertices.

    Candidates are looked up by location, then filtered on closed state,
    domain identity and neighbour pair. The list must not grow or be
    reordered while the index is in use; closed flags may change.
    """

    def __init__(self, vertices: List[DirichVtx], tolerance: float):
        self.vertices = vertices
        self.tolerance = tolerance
        self._tree = None
        if vertices:
            self._tree = cKDTree(np.array([vtx.v for vtx in vertices], dtype=float))

    def at(self, coord: Sequence[float]) -> List[int]:
        """Indices (ascending) of candidates located at coord."""
        if self._tree is None:
            return []
        # Ball wide enough to cover the per-axis tolerance box
        hits = self._tree.query_ball_point([coord[0], coord[1]], r=self.tolerance * math.sqrt(2.0))
        return sorted(i for i in hits if self.vertices[i].compare(coord))

    def find_open(self, coord: Sequence[float], f: float,
                  neighb: Tuple[float, float]) -> Optional[DirichVtx]:
        """First unclosed candidate at coord with identity f and neighbour pair neighb."""
        for i in self.at(coord):
            vtx = self.vertices[i]
            if not vtx.closed and vtx.matches(f, neighb):
                return vtx
        return None
