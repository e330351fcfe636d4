"""
plz_show/errors.py — Exceptions raised by the public API.

Only malformed references are errors. "No path", "no cycles", an empty
reachable set, an empty graph and degenerate hull inputs are normal results
and never raise.
"""


class PlzShowError(Exception):
    """Base class for every plz_show exception."""


class NotFound(PlzShowError, KeyError):
    """A referenced node id is absent from the graph."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(node_id)

    def __str__(self) -> str:
        return f"Node not found in graph: {self.node_id!r}"


class LayoutCancelled(PlzShowError):
    """A layout computation was superseded before it finished."""
