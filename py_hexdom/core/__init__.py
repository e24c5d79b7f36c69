"""
Core grid and shape analysis functionality.
"""

from .hex_grid import GridConfig, GridShape, Hex, HexGrid, build_hex_grid, NO_NEIGHBOUR
from .dirich_vtx import DirichVtx, NO_DOMAIN
from .exceptions import ShapeAnalysisError, EdgeWalkError, ClosureLimitError
from .vertex_index import VertexIndex
from .shape_analysis import (
    ANTICLOCKWISE, CLOCKWISE, DirichDomain, DomainSet, EdgeWalk,
    get_contours, dirichlet_regions, vertex_test, find_vertices,
    walk_common, walk_to_next, walk_to_neighbour, process_domain,
    dirichlet_vertices, dirichlet_domains_from_fields, dirichlet_save_vertex_set,
)

__all__ = ['GridConfig', 'GridShape', 'Hex', 'HexGrid', 'build_hex_grid', 'NO_NEIGHBOUR',
           'DirichVtx', 'NO_DOMAIN', 'VertexIndex',
           'ShapeAnalysisError', 'EdgeWalkError', 'ClosureLimitError',
           'ANTICLOCKWISE', 'CLOCKWISE', 'DirichDomain', 'DomainSet', 'EdgeWalk',
           'get_contours', 'dirichlet_regions', 'vertex_test', 'find_vertices',
           'walk_common', 'walk_to_next', 'walk_to_neighbour', 'process_domain',
           'dirichlet_vertices', 'dirichlet_domains_from_fields', 'dirichlet_save_vertex_set']
