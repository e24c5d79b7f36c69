"""
Dirichlet domain extraction on hexagonal grids.

Build a grid, label its cells from a set of scalar fields, and recover the
closed polygonal domains where each label wins.
"""

from .core import (
    GridConfig, GridShape, Hex, HexGrid, build_hex_grid,
    DirichVtx, NO_DOMAIN,
    DirichDomain, DomainSet, EdgeWalk,
    get_contours, dirichlet_regions, find_vertices, dirichlet_vertices,
    dirichlet_domains_from_fields,
    ShapeAnalysisError, EdgeWalkError, ClosureLimitError,
)

__version__ = "0.1.0"

__all__ = [
    'GridConfig', 'GridShape', 'Hex', 'HexGrid', 'build_hex_grid',
    'DirichVtx', 'NO_DOMAIN',
    'DirichDomain', 'DomainSet', 'EdgeWalk',
    'get_contours', 'dirichlet_regions', 'find_vertices', 'dirichlet_vertices',
    'dirichlet_domains_from_fields',
    'ShapeAnalysisError', 'EdgeWalkError', 'ClosureLimitError',
]
