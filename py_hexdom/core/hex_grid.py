"""Hexagonal grid generation and connectivity.

Cells are pointy-topped hexagons laid out on an axial (q, r) lattice, so
rows are horizontal and each cell has up to six neighbours. Neighbour
directions are numbered anticlockwise starting from east:

    0=E, 1=NE, 2=NW, 3=W, 4=SW, 5=SE

Corner k of a cell sits between neighbour directions k and k+1:

    0=NE, 1=N, 2=NW, 3=SW, 4=S, 5=SE

The grid is built once and is read-only afterwards. Connectivity is held
in an arena of cell records addressed by integer index, with -1 standing
in for an absent neighbour.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import structlog
from scipy.spatial import cKDTree
from shapely.geometry import Point, Polygon

logger = structlog.get_logger()

Coord = Tuple[float, float]

# Names for neighbour directions and corners, used in messages
NEIGHBOUR_NAMES = ("E", "NE", "NW", "W", "SW", "SE")
CORNER_NAMES = ("NE", "N", "NW", "SW", "S", "SE")

# Axial (dq, dr) step for each neighbour direction
AXIAL_STEPS = ((1, 0), (0, 1), (-1, 1), (-1, 0), (0, -1), (1, -1))

NO_NEIGHBOUR = -1

# Coordinate comparisons are made to this fraction of the long radius
COORD_TOLERANCE = 1e-3


class GridShape(str, Enum):
    """Overall shape of the lattice."""
    RECTANGLE = "rectangle"
    HEXAGON = "hexagon"
    PARALLELOGRAM = "parallelogram"


class GridConfig(NamedTuple):
    """Configuration for grid generation."""
    d: float                                # centre-to-centre spacing
    shape: GridShape = GridShape.RECTANGLE
    rows: int = 10                          # RECTANGLE / PARALLELOGRAM
    cols: int = 10                          # RECTANGLE / PARALLELOGRAM
    rings: int = 5                          # HEXAGON


@dataclass(frozen=True)
class Hex:
    """One cell of the lattice."""

    vi: int
    q: int
    r: int
    x: float
    y: float
    neighbours: Tuple[int, ...]
    boundary_hex: bool
    inside_boundary: bool = True

    def output_rg(self) -> str:
        missing = [NEIGHBOUR_NAMES[k] for k, n in enumerate(self.neighbours) if n == NO_NEIGHBOUR]
        edge = f", no {'/'.join(missing)} neighbour" if missing else ""
        return f"Hex {self.vi} ({self.q},{self.r}) at ({self.x:.4f},{self.y:.4f}){edge}"


@dataclass
class HexGrid:
    """Hexagonal lattice with per-cell records and flattened arrays.

    The flattened arrays (d_x, d_y, d_neighbours, d_boundary) are marked
    read-only so they can be handed to consumers such as renderers.
    """

    d: float
    shape: GridShape
    cells: List[Hex]
    d_x: np.ndarray
    d_y: np.ndarray
    d_neighbours: np.ndarray     # (num, 6) cell indices, -1 where absent
    d_boundary: np.ndarray       # 1 for cells on the outer boundary
    _lookup: Dict[Tuple[int, int], int] = field(default_factory=dict, repr=False)
    _tree: Optional[cKDTree] = field(default=None, repr=False)

    @property
    def sr(self) -> float:
        """Short radius: centre to edge midpoint."""
        return self.d / 2.0

    @property
    def lr(self) -> float:
        """Long radius: centre to corner."""
        return self.d / math.sqrt(3.0)

    @property
    def vne(self) -> float:
        """Vertical offset from centre to the NE corner."""
        return self.lr / 2.0

    @property
    def tolerance(self) -> float:
        return COORD_TOLERANCE * self.lr

    def num(self) -> int:
        return len(self.cells)

    def __len__(self) -> int:
        return len(self.cells)

    def __iter__(self) -> Iterator[Hex]:
        return iter(self.cells)

    def __getitem__(self, vi: int) -> Hex:
        return self.cells[vi]

    def neighbour(self, vi: int, direction: int) -> int:
        return int(self.d_neighbours[vi, direction % 6])

    def has_neighbour(self, vi: int, direction: int) -> bool:
        return bool(self.d_neighbours[vi, direction % 6] != NO_NEIGHBOUR)

    def is_boundary(self, vi: int) -> bool:
        return bool(self.d_boundary[vi])

    def centre(self, vi: int) -> Coord:
        return (float(self.d_x[vi]), float(self.d_y[vi]))

    def corner_offsets(self) -> Tuple[Coord, ...]:
        sr, lr, vne = self.sr, self.lr, self.vne
        return ((sr, vne), (0.0, lr), (-sr, vne), (-sr, -vne), (0.0, -lr), (sr, -vne))

    def corner(self, vi: int, k: int) -> Coord:
        """Coordinate of corner k of cell vi."""
        dx, dy = self.corner_offsets()[k % 6]
        return (float(self.d_x[vi] + dx), float(self.d_y[vi] + dy))

    def corners(self, vi: int) -> np.ndarray:
        offsets = np.array(self.corner_offsets())
        return offsets + np.array([self.d_x[vi], self.d_y[vi]])

    def compare_coord(self, a: Sequence[float], b: Sequence[float]) -> bool:
        """True if two points coincide to within the grid tolerance."""
        tol = self.tolerance
        return abs(a[0] - b[0]) < tol and abs(a[1] - b[1]) < tol

    def corner_index(self, vi: int, point: Sequence[float]) -> Optional[int]:
        """Which corner of cell vi lies at point, or None."""
        for k in range(6):
            if self.compare_coord(self.corner(vi, k), point):
                return k
        return None

    def index_of(self, q: int, r: int) -> Optional[int]:
        return self._lookup.get((q, r))

    def find_cell(self, x: float, y: float) -> int:
        """Index of the cell whose centre is nearest to (x, y)."""
        if self._tree is None:
            self._tree = cKDTree(np.column_stack([self.d_x, self.d_y]))
        _, idx = self._tree.query([x, y])
        return int(idx)


def _shape_coordinates(config: GridConfig) -> List[Tuple[int, int]]:
    """Axial coordinates of every cell, bottom row first, left to right."""
    coords = []
    if config.shape == GridShape.RECTANGLE:
        # Odd rows are shifted half a cell to the right
        for row in range(config.rows):
            for col in range(config.cols):
                coords.append((col - (row - (row & 1)) // 2, row))
    elif config.shape == GridShape.PARALLELOGRAM:
        for r in range(config.rows):
            for q in range(config.cols):
                coords.append((q, r))
    elif config.shape == GridShape.HEXAGON:
        n = config.rings
        for r in range(-n, n + 1):
            for q in range(-n, n + 1):
                if abs(q + r) <= n:
                    coords.append((q, r))
    else:
        raise ValueError(f"Unknown grid shape: {config.shape}")
    return coords


def _validate_config(config: GridConfig) -> None:
    if config.d <= 0:
        raise ValueError(f"Hex spacing must be positive, got {config.d}")
    if config.shape in (GridShape.RECTANGLE, GridShape.PARALLELOGRAM):
        if config.rows < 1 or config.cols < 1:
            raise ValueError(f"Grid needs at least one row and column, got {config.rows}x{config.cols}")
    elif config.shape == GridShape.HEXAGON and config.rings < 0:
        raise ValueError(f"Ring count must not be negative, got {config.rings}")


def build_neighbours(coords: Sequence[Tuple[int, int]]) -> Tuple[np.ndarray, Dict[Tuple[int, int], int]]:
    """
    Build the neighbour table for a set of axial coordinates.

    Args:
        coords: Axial (q, r) coordinate of each cell, in index order

    Returns:
        Tuple of ((n, 6) neighbour index array, coordinate -> index lookup)
    """
    lookup = {c: i for i, c in enumerate(coords)}
    neighbours = np.full((len(coords), 6), NO_NEIGHBOUR, dtype=np.int64)
    for i, (q, r) in enumerate(coords):
        for direction, (dq, dr) in enumerate(AXIAL_STEPS):
            neighbours[i, direction] = lookup.get((q + dq, r + dr), NO_NEIGHBOUR)
    return neighbours, lookup


def _hexagon(x: float, y: float, d: float) -> Polygon:
    lr = d / math.sqrt(3.0)
    sr, vne = d / 2.0, lr / 2.0
    return Polygon([(x + sr, y + vne), (x, y + lr), (x - sr, y + vne),
                    (x - sr, y - vne), (x, y - lr), (x + sr, y - vne)])


def build_hex_grid(config: GridConfig,
                   boundary: Optional[Sequence[Tuple[float, float]]] = None) -> HexGrid:
    """
    Generate a hexagonal grid.

    The lattice is centred on the centroid of its cell centres. If a
    boundary polygon is given (in the centred frame), cells whose hexagon
    lies wholly outside it are discarded and the rest are flagged
    inside_boundary according to whether their centre is inside.

    Args:
        config: Grid configuration
        boundary: Optional polygon as a sequence of (x, y) points

    Returns:
        Read-only HexGrid
    """
    _validate_config(config)
    logger.info("Generating hex grid", d=config.d, shape=config.shape.value,
                rows=config.rows, cols=config.cols, rings=config.rings)

    coords = _shape_coordinates(config)
    row_step = config.d * math.sqrt(3.0) / 2.0
    xs = np.array([config.d * (q + r / 2.0) for q, r in coords])
    ys = np.array([row_step * r for _, r in coords])
    xs -= xs.mean()
    ys -= ys.mean()

    inside = np.ones(len(coords), dtype=bool)
    if boundary is not None:
        polygon = Polygon(boundary)
        if polygon.is_empty or not polygon.is_valid:
            raise ValueError("Boundary polygon is empty or invalid")
        keep = np.array([polygon.intersects(_hexagon(x, y, config.d)) for x, y in zip(xs, ys)])
        if not keep.any():
            raise ValueError("Boundary polygon excludes every cell")
        inside = np.array([polygon.contains(Point(x, y)) for x, y in zip(xs, ys)])
        coords = [c for c, k in zip(coords, keep) if k]
        xs, ys, inside = xs[keep], ys[keep], inside[keep]
        logger.info("Boundary applied", kept=len(coords), discarded=int((~keep).sum()))

    neighbours, lookup = build_neighbours(coords)
    boundary_flags = (neighbours == NO_NEIGHBOUR).any(axis=1).astype(np.uint8)

    cells = [
        Hex(vi=i, q=q, r=r, x=float(xs[i]), y=float(ys[i]),
            neighbours=tuple(int(n) for n in neighbours[i]),
            boundary_hex=bool(boundary_flags[i]),
            inside_boundary=bool(inside[i]))
        for i, (q, r) in enumerate(coords)
    ]

    for arr in (xs, ys, neighbours, boundary_flags):
        arr.setflags(write=False)

    logger.info("Hex grid built", cells=len(cells), boundary_cells=int(boundary_flags.sum()))
    return HexGrid(
        d=config.d,
        shape=config.shape,
        cells=cells,
        d_x=xs,
        d_y=ys,
        d_neighbours=neighbours,
        d_boundary=boundary_flags,
        _lookup=lookup,
    )
