"""Errors raised by the shape analysis."""


class ShapeAnalysisError(Exception):
    """Base class for analysis failures."""


class EdgeWalkError(ShapeAnalysisError):
    """The lattice around an edge is inconsistent with the vertex being walked.

    Raised when the cells implied by a vertex's location and identities
    cannot be found, or when a step of the walk breaks adjacency. This is
    not the same thing as a domain failing to close.
    """


class ClosureLimitError(ShapeAnalysisError):
    """Domain closure took more steps than the configured limit."""
