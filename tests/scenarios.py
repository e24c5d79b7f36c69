"""Identity-field builders shared by the analysis tests."""

import math

import numpy as np


# Identities used by the scenario fields
P, Q, R, Z = 0.0, 0.25, 0.5, 0.75


def cluster_field(grid, centre=None):
    """
    Seven-cell P cluster around centre (axial origin by default),
    surrounded by six angular sectors alternating Q and R out to the
    grid edge.

    Sector k covers angles [60k - 15, 60k + 45) degrees around the centre
    cell, so each sector meets the cluster along three hex edges and the
    cluster closes as a domain with six vertices.
    """
    if centre is None:
        centre = grid.index_of(0, 0)
    cx, cy = grid.centre(centre)
    cluster = {centre} | {n for n in grid.cells[centre].neighbours if n >= 0}

    f = np.empty(grid.num())
    for cell in grid:
        if cell.vi in cluster:
            f[cell.vi] = P
            continue
        angle = math.degrees(math.atan2(cell.y - cy, cell.x - cx))
        sector = int(math.floor((angle + 15.0) / 60.0)) % 6
        f[cell.vi] = Q if sector % 2 == 0 else R
    return f


def island_field(grid, centres):
    """
    Single-cell P islands on a Z background. Each island's six neighbours
    alternate Q and R by direction, so every corner of the island cell is
    a vertex.
    """
    f = np.full(grid.num(), Z)
    for vi in centres:
        f[vi] = P
        for direction, n in enumerate(grid.cells[vi].neighbours):
            f[n] = Q if direction % 2 == 0 else R
    return f


def fields_from_identity(f, identities):
    """One indicator field per identity, in the order given."""
    return [(f == ident).astype(float) for ident in identities]


