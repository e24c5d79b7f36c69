"""
Pattern analysis on hexagonal grids.

This module handles:
- Threshold contours of scalar fields
- Winner-take-all labelling of a set of fields into an identity field
- Detection of Dirichlet vertices (corners where three identities meet,
  or two at the grid boundary)
- Walking the edge between two domains from one vertex to the next
- Assembling vertices into closed, ordered Dirichlet domains
"""

import math
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import structlog
from shapely.geometry import Polygon

from ..config import settings
from .dirich_vtx import NO_DOMAIN, Coord, DirichVtx
from .exceptions import ClosureLimitError, EdgeWalkError
from .hex_grid import CORNER_NAMES, NEIGHBOUR_NAMES, NO_NEIGHBOUR, Hex, HexGrid
from .vertex_index import VertexIndex

logger = structlog.get_logger()

# Sense of rotation around the A-side cell while walking an edge
ANTICLOCKWISE = 1
CLOCKWISE = -1


class EdgeWalk(NamedTuple):
    """Result of walking one edge."""
    end: Coord                      # where the edge terminates
    next_dom: float                 # identity found there, NO_DOMAIN at the grid edge
    next_coord: Optional[Coord]     # centre of the cell carrying next_dom


@dataclass
class DirichDomain:
    """One closed Dirichlet domain: its identity and perimeter vertices in order."""

    identity: float
    vertices: List[DirichVtx]

    def __len__(self) -> int:
        return len(self.vertices)

    def vertex_coords(self) -> np.ndarray:
        return np.array([vtx.v for vtx in self.vertices])

    def polygon(self) -> np.ndarray:
        """Perimeter as an (n, 2) array of hex corners, without repeating the first point."""
        coords = []
        for vtx in self.vertices:
            # Each path ends where the next one starts
            coords.extend(vtx.path_to_next[:-1])
        return np.array(coords)

    def to_shapely(self) -> Polygon:
        return Polygon(self.polygon())


class DomainSet(NamedTuple):
    """Closed domains plus every candidate vertex found on the way."""
    domains: List[DirichDomain]
    vertices: List[DirichVtx]


def _as_fields(grid: HexGrid, fields) -> np.ndarray:
    arr = np.asarray(fields, dtype=float)
    if arr.ndim != 2 or arr.shape[0] == 0:
        raise ValueError("Expected a non-empty list of per-cell fields")
    if arr.shape[1] != grid.num():
        raise ValueError(f"Fields have {arr.shape[1]} values, grid has {grid.num()} cells")
    return arr


def _as_identity_field(grid: HexGrid, f) -> np.ndarray:
    arr = np.asarray(f, dtype=float)
    if arr.shape != (grid.num(),):
        raise ValueError(f"Identity field has shape {arr.shape}, grid has {grid.num()} cells")
    if np.any(arr == NO_DOMAIN):
        raise ValueError(f"Identity field must not contain the reserved value {NO_DOMAIN}")
    return arr


def get_contours(grid: HexGrid, fields: Sequence[Sequence[float]], threshold: float) -> List[List[Hex]]:
    """
    Find the cells on the threshold contour of each field.

    All fields are normalised together to [0, 1] using one global min and
    max. A cell belongs to the contour of field i if its normalised value
    exceeds threshold and it either sits on the grid boundary or has at
    least one neighbour at or below threshold.

    Args:
        grid: The hex grid
        fields: N per-cell scalar fields
        threshold: Contour level in [0, 1]

    Returns:
        N lists of member cells, in grid order
    """
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"Threshold must be in [0, 1], got {threshold}")
    arr = _as_fields(grid, fields)

    minf, maxf = arr.min(), arr.max()
    span = maxf - minf
    if span > 0:
        norm = (arr - minf) / span
    else:
        norm = np.zeros_like(arr)

    nbrs = grid.d_neighbours
    present = nbrs != NO_NEIGHBOUR
    safe = np.where(present, nbrs, 0)
    boundary = grid.d_boundary.astype(bool)

    contours = []
    for i in range(arr.shape[0]):
        low_neighbour = ((norm[i][safe] <= threshold) & present).any(axis=1)
        members = (norm[i] > threshold) & (boundary | low_neighbour)
        contours.append([grid.cells[vi] for vi in np.flatnonzero(members)])

    logger.info("Contours extracted", fields=arr.shape[0], threshold=threshold,
                members=[len(c) for c in contours])
    return contours


def dirichlet_regions(grid: HexGrid, fields: Sequence[Sequence[float]]) -> np.ndarray:
    """
    Label every cell with the index of the field that is largest there.

    Ties go to the first field holding the maximum. The label for field i
    of N is i/N.

    Returns:
        Identity field, one value per cell
    """
    arr = _as_fields(grid, fields)
    n_fields = arr.shape[0]
    # argmax returns the first index of the maximum
    return np.argmax(arr, axis=0) / float(n_fields)


def _vertex(grid: HexGrid, vi: int, corner: int, f: float,
            neighb: Tuple[float, float], on_boundary: bool = False) -> DirichVtx:
    return DirichVtx(
        v=grid.corner(vi, corner),
        f=float(f),
        neighb=(float(neighb[0]), float(neighb[1])),
        hi=vi,
        tolerance=grid.tolerance,
        on_boundary=on_boundary,
    )


def vertex_test(grid: HexGrid, f: np.ndarray, vi: int, vertices: List[DirichVtx]) -> None:
    """
    Test whether any corner of cell vi is a Dirichlet vertex.

    Vertices found are appended to vertices. A corner is an interior
    vertex when the cell and the two neighbours flanking that corner all
    carry different identities. On a boundary cell, a corner where a
    differing neighbour meets the edge of the grid is a boundary vertex.
    """
    cell = grid.cells[vi]
    own = f[vi]
    nbrs = cell.neighbours

    ids = {own}
    for n in nbrs:
        if n != NO_NEIGHBOUR:
            ids.add(f[n])

    needed = 2 if cell.boundary_hex else 3
    if len(ids) < needed:
        return

    if cell.boundary_hex:
        for ni in range(6):
            n = nbrs[ni]
            if n == NO_NEIGHBOUR or f[n] == own:
                continue
            if not grid.has_neighbour(vi, ni + 1):
                vertices.append(_vertex(grid, vi, ni, own, (NO_DOMAIN, f[n]), on_boundary=True))
            elif not grid.has_neighbour(vi, ni - 1):
                vertices.append(_vertex(grid, vi, (ni - 1) % 6, own, (f[n], NO_DOMAIN), on_boundary=True))

    for ni in range(6):
        n = nbrs[ni]
        if n == NO_NEIGHBOUR or f[n] == own:
            continue
        n1 = nbrs[(ni + 1) % 6]
        if n1 != NO_NEIGHBOUR and f[n1] != own and f[n1] != f[n]:
            vertices.append(_vertex(grid, vi, ni, own, (f[n1], f[n])))


def find_vertices(grid: HexGrid, f) -> List[DirichVtx]:
    """Run vertex_test over every cell, in grid order."""
    f = _as_identity_field(grid, f)
    vertices: List[DirichVtx] = []
    for vi in range(grid.num()):
        vertex_test(grid, f, vi, vertices)
    logger.info("Vertex detection complete", vertices=len(vertices),
                boundary_vertices=sum(1 for v in vertices if v.on_boundary))
    return vertices


def _shared_corner(direction: int, sense: int) -> int:
    """Corner between neighbour `direction` and the neighbour visited just before it."""
    if sense == ANTICLOCKWISE:
        return (direction - 1) % 6
    return direction % 6


def _seed_edge(grid: HexGrid, f: np.ndarray, v: DirichVtx, edgedoms: Tuple[float, float],
               next_neighb_coord: Optional[Coord]) -> Tuple[int, int, int]:
    """
    Find where an edge walk starts.

    Returns the A-side cell, the direction from it to the B-side cell and
    the sense of rotation that leads away from the vertex.
    """
    dom_a, dom_b = edgedoms
    vx, vy = v.v

    # The cells meeting at v are those whose centre is one long radius away
    cell_a = None
    for ci in [v.hi] + [n for n in grid.cells[v.hi].neighbours if n != NO_NEIGHBOUR]:
        distance = math.hypot(grid.d_x[ci] - vx, grid.d_y[ci] - vy)
        if abs(distance - grid.lr) < grid.tolerance and f[ci] == dom_a:
            cell_a = ci
            break
    if cell_a is None:
        raise EdgeWalkError(f"No cell with identity {dom_a} meets vertex {v.v}")

    corner = grid.corner_index(cell_a, v.v)
    if corner is None:
        raise EdgeWalkError(f"Vertex {v.v} is not a corner of {grid.cells[cell_a].output_rg()}")

    # The B-side cell flanks that corner, after it (anticlockwise) or before it
    for direction, sense in (((corner + 1) % 6, ANTICLOCKWISE), (corner, CLOCKWISE)):
        cell_b = grid.neighbour(cell_a, direction)
        if cell_b == NO_NEIGHBOUR or f[cell_b] != dom_b:
            continue
        if next_neighb_coord is not None and not grid.compare_coord(grid.centre(cell_b), next_neighb_coord):
            continue
        return cell_a, direction, sense

    raise EdgeWalkError(
        f"No cell with identity {dom_b} flanks the {CORNER_NAMES[corner]} corner of "
        f"{grid.cells[cell_a].output_rg()} at {v.v}"
    )


def walk_common(grid: HexGrid, f: np.ndarray, v: DirichVtx, path: List[Coord],
                edgedoms: Tuple[float, float], next_neighb_coord: Optional[Coord] = None,
                max_steps: Optional[int] = None) -> EdgeWalk:
    """
    Walk the edge between domains edgedoms[0] (A) and edgedoms[1] (B) from vertex v.

    The walk rotates around the current A-side cell, recording the corner
    shared with each B neighbour. Meeting another A cell moves the walk on
    to that cell. The edge ends at the grid boundary or where a third
    identity appears.

    Args:
        grid: The hex grid
        f: Identity field
        v: Vertex the edge leaves from
        path: Receives every corner along the edge, v first
        edgedoms: (A, B) identities either side of the edge
        next_neighb_coord: If set, the B-side cell at v must be centred here
        max_steps: Cap on neighbour tests before giving up

    Returns:
        EdgeWalk with the end point, the identity found there and the
        centre of the cell carrying it

    Raises:
        EdgeWalkError: The lattice around the edge is not as v describes
    """
    dom_a, dom_b = edgedoms
    if max_steps is None:
        max_steps = settings.walk_step_factor * 6 * grid.num()

    cell, db, sense = _seed_edge(grid, f, v, edgedoms, next_neighb_coord)
    last_b = grid.neighbour(cell, db)
    logger.debug("Edge walk started", start=v.v, edgedoms=edgedoms, cell=cell,
                 sense="anticlockwise" if sense == ANTICLOCKWISE else "clockwise")

    steps = 0
    while True:
        pivot = NO_NEIGHBOUR
        for k in range(6):
            steps += 1
            if steps > max_steps:
                raise EdgeWalkError(f"Edge walk from {v.v} exceeded {max_steps} steps")

            direction = (db + sense * k) % 6
            point = grid.corner(cell, _shared_corner(direction, sense))
            nb = grid.neighbour(cell, direction)

            if nb == NO_NEIGHBOUR:
                path.append(point)
                logger.debug("Edge reached grid boundary", end=point)
                return EdgeWalk(point, NO_DOMAIN, None)

            if f[nb] == dom_b:
                path.append(point)
                last_b = nb
            elif f[nb] == dom_a:
                pivot = nb
                break
            else:
                path.append(point)
                logger.debug("Edge reached new domain", end=point, next_dom=float(f[nb]))
                return EdgeWalk(point, float(f[nb]), grid.centre(nb))

        if pivot == NO_NEIGHBOUR:
            raise EdgeWalkError(f"Rotated fully around {grid.cells[cell].output_rg()} without leaving it")

        # Continue around the new A cell, starting from the last B cell
        db = (direction + 3 + sense) % 6
        if grid.neighbour(pivot, db) != last_b:
            raise EdgeWalkError(
                f"Cell {last_b} is not the {NEIGHBOUR_NAMES[db]} neighbour of {grid.cells[pivot].output_rg()}"
            )
        cell = pivot


def walk_to_next(grid: HexGrid, f: np.ndarray, v: DirichVtx,
                 next_neighb_coord: Optional[Coord] = None) -> EdgeWalk:
    """Walk from v along the edge it shares with v.neighb[0], into v.path_to_next."""
    v.path_to_next.clear()
    return walk_common(grid, f, v, v.path_to_next, (v.f, v.neighb[0]), next_neighb_coord)


def walk_to_neighbour(grid: HexGrid, f: np.ndarray, v: DirichVtx,
                      next_neighb_coord: Optional[Coord] = None) -> Optional[EdgeWalk]:
    """
    Walk out from v along the edge between its two neighbouring domains.

    The end point is stored in v.neighbour_vertex and the path in
    v.path_to_neighbour. Boundary vertices have no such edge; None is
    returned for them.
    """
    if NO_DOMAIN in v.neighb:
        return None
    v.path_to_neighbour.clear()
    result = walk_common(grid, f, v, v.path_to_neighbour, v.neighb, next_neighb_coord)
    v.neighbour_vertex = result.end
    return result


def process_domain(grid: HexGrid, f, start: DirichVtx, vertices: List[DirichVtx],
                   index: Optional[VertexIndex] = None, max_steps: Optional[int] = None,
                   walk_neighbours: bool = False) -> Optional[List[DirichVtx]]:
    """
    Follow the perimeter of the domain that start belongs to.

    From each vertex, walk to the next one and look it up among the open
    candidates, until the walk arrives back at start.

    Args:
        grid: The hex grid
        f: Identity field
        start: Unclosed, non-boundary vertex to begin from
        vertices: All candidate vertices; closed flags are updated in place
        index: Lookup over vertices, built if not supplied
        max_steps: Cap on vertices visited, defaults to
            settings.closure_step_factor * len(vertices)
        walk_neighbours: Also walk each vertex's neighbour edge

    Returns:
        Ordered vertices of the closed domain, or None if the perimeter
        could not be closed

    Raises:
        ValueError: start is already closed or lies on the grid boundary
        ClosureLimitError: More than max_steps vertices were visited
        EdgeWalkError: An edge walk found an inconsistent lattice
    """
    if start.closed:
        raise ValueError(f"Vertex at {start.v} already belongs to a domain")
    if start.on_boundary:
        raise ValueError(f"Vertex at {start.v} is on the grid boundary and cannot start a domain")
    f = _as_identity_field(grid, f)
    if index is None:
        index = VertexIndex(vertices, grid.tolerance)
    if max_steps is None:
        max_steps = max(1, settings.closure_step_factor * len(vertices))

    domain: List[DirichVtx] = []
    dv = start
    next_neighb_coord = None
    for _ in range(max_steps):
        dv.mark_closed()
        domain.append(dv)

        step = walk_to_next(grid, f, dv, next_neighb_coord)
        if walk_neighbours:
            walk_to_neighbour(grid, f, dv)

        if start.compare(step.end):
            logger.debug("Domain closed", identity=start.f, vertices=len(domain))
            return domain

        match = index.find_open(step.end, dv.f, (step.next_dom, dv.neighb[0]))
        if match is None:
            logger.debug("No open vertex at end of edge", end=step.end, identity=dv.f,
                         next_dom=step.next_dom)
            return None
        if match.on_boundary:
            logger.debug("Reached boundary vertex before closing", end=step.end, identity=dv.f)
            return None

        dv = match
        next_neighb_coord = step.next_coord

    raise ClosureLimitError(f"Domain starting at {start.v} not closed after {max_steps} steps")


def dirichlet_vertices(grid: HexGrid, f, walk_neighbours: bool = False) -> DomainSet:
    """
    Find every closed Dirichlet domain in an identity field.

    All candidate vertices are detected first. Each open candidate that
    is neither a boundary vertex nor owned by a boundary cell is then used
    to start a closure attempt. Domains that close are collected; partial
    ones are dropped.

    Args:
        grid: The hex grid
        f: Identity field, one value per cell
        walk_neighbours: Also walk each domain vertex's neighbour edge

    Returns:
        DomainSet of closed domains and all candidate vertices
    """
    f = _as_identity_field(grid, f)
    vertices = find_vertices(grid, f)
    index = VertexIndex(vertices, grid.tolerance)
    max_steps = max(1, settings.closure_step_factor * len(vertices))

    domains: List[DirichDomain] = []
    attempts = 0
    for dv in vertices:
        if dv.closed or dv.on_boundary or grid.cells[dv.hi].boundary_hex:
            continue
        attempts += 1
        result = process_domain(grid, f, dv, vertices, index, max_steps, walk_neighbours)
        if result is None:
            continue
        domains.append(DirichDomain(identity=dv.f, vertices=result))

    logger.info("Dirichlet domains extracted", domains=len(domains), attempts=attempts,
                vertices=len(vertices))
    return DomainSet(domains, vertices)


def dirichlet_domains_from_fields(grid: HexGrid, fields: Sequence[Sequence[float]],
                                  walk_neighbours: bool = False) -> DomainSet:
    """Label cells by winner-take-all over fields, then extract the domains."""
    return dirichlet_vertices(grid, dirichlet_regions(grid, fields), walk_neighbours)


def dirichlet_save_vertex_set(sink, name: str, domain: DirichDomain) -> None:
    """Hand the vertices of one domain to a persistence sink under name."""
    sink.write_domain(name, domain)
