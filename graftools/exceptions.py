"""Errors raised while reading GrAF graphs and converting them to Salt.

GrafError (base)
├── FloatingNodeError - node has neither links nor outgoing edges
├── UnanchorableNodeError - floating node without any real leaf around it
├── LayerNotPresentError - requested annotation layer missing from a document
├── InconsistentMappingError - an id expected in a conversion map is missing
├── CyclicGraphError - out-edges form a cycle where a tree is required
└── ConversionError - a document failed, wraps one of the above
"""


class GrafError(Exception):
    """Base class, optionally carries the id of the offending graph node."""

    kind = "graf-error"

    def __init__(self, message, node_id=None, cause=None):
        super().__init__(message)
        self.node_id = node_id
        self.cause = cause

    def __str__(self):
        if self.cause is not None:
            return f"{super().__str__()} (caused by: {self.cause})"
        return super().__str__()


class FloatingNodeError(GrafError):
    kind = "floating-node"


class UnanchorableNodeError(GrafError):
    kind = "unanchorable-node"


class LayerNotPresentError(GrafError):
    kind = "layer-not-present"

    def __init__(self, message, layers=(), **kwargs):
        super().__init__(message, **kwargs)
        self.layers = list(layers)


class InconsistentMappingError(GrafError):
    kind = "inconsistent-mapping"


class CyclicGraphError(GrafError):
    kind = "cyclic-graph"


class ConversionError(GrafError):
    """A single document could not be converted.

    ``kind`` is taken over from the wrapped error so that a failure report
    names the document, the node and what went wrong.
    """

    def __init__(self, message, document_id=None, node_id=None, cause=None):
        if node_id is None and isinstance(cause, GrafError):
            node_id = cause.node_id
        super().__init__(message, node_id=node_id, cause=cause)
        self.document_id = document_id
        if isinstance(cause, GrafError):
            self.kind = cause.kind
        elif cause is not None:
            self.kind = type(cause).__name__
        else:
            self.kind = "conversion-error"

    def report(self):
        """One-line description used by the importer when a document fails."""
        return f"document={self.document_id} node={self.node_id} kind={self.kind}: {self}"
