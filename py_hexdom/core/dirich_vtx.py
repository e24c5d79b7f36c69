"""Dirichlet domain vertices."""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

Coord = Tuple[float, float]

# Identity used in a vertex's neighbour pair where there is no domain,
# i.e. beyond the edge of the grid.
NO_DOMAIN = -1.0


@dataclass
class DirichVtx:
    """A candidate (or confirmed) vertex of a Dirichlet domain.

    The vertex lies at a hex corner where three identities meet (or two,
    at the grid boundary). neighb holds the identities on either side of
    the edges leaving the vertex: neighb[0] is the domain shared along the
    edge to the next vertex of this domain, neighb[1] the one shared along
    the edge arriving from the previous vertex.
    """

    v: Coord                   # location
    f: float                   # identity of the domain this vertex belongs to
    neighb: Tuple[float, float]
    hi: int                    # index of the owning cell
    tolerance: float
    on_boundary: bool = False
    path_to_next: List[Coord] = field(default_factory=list)
    path_to_neighbour: List[Coord] = field(default_factory=list)
    neighbour_vertex: Optional[Coord] = None
    _closed: bool = field(default=False, repr=False)

    @property
    def closed(self) -> bool:
        return self._closed

    def mark_closed(self) -> None:
        """Mark the vertex as consumed by domain assembly. Never undone."""
        self._closed = True

    def compare(self, coord: Sequence[float]) -> bool:
        """True if coord is at this vertex's location to within tolerance."""
        return (abs(self.v[0] - coord[0]) < self.tolerance
                and abs(self.v[1] - coord[1]) < self.tolerance)

    def matches(self, f: float, neighb: Tuple[float, float]) -> bool:
        return self.f == f and self.neighb[0] == neighb[0] and self.neighb[1] == neighb[1]
