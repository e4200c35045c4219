"""Character offsets covered by GrAF nodes."""
from graftools.exceptions import CyclicGraphError, FloatingNodeError
from graftools.graph import is_floating

def region_offsets(regions):
    """``(min start, max end)`` over one or more regions.

    A single link may target several regions, e.g. "state-of-the-art" is
    tokenized into seven consecutive regions in MASC.
    """
    regions = list(regions)
    if not regions:
        raise ValueError("Can't compute offsets of an empty list of regions")
    return (min(r.start for r in regions), max(r.end for r in regions))

class OffsetResolver:
    """Resolves ``(start, end)`` for nodes of one graph.

    Results are cached per instance; create one resolver per document and
    don't reuse it after the graph was changed.
    """

    def __init__(self):
        self._cache = {}
        self._active = set()

    def resolve(self, node):
        if node.id in self._cache:
            return self._cache[node.id]
        if node.links:
            # only the first link counts
            offsets = region_offsets(node.links[0].regions)
        elif is_floating(node):
            raise FloatingNodeError(f"Node {node.id} is floating. It doesn't cover any primary text.", node_id=node.id)
        else:
            if node.id in self._active:
                raise CyclicGraphError(f"Node {node.id} reaches itself via outgoing edges", node_id=node.id)
            self._active.add(node.id)
            try:
                children = [self.resolve(edge.to_node) for edge in node.out_edges]
            finally:
                self._active.discard(node.id)
            offsets = (min(start for start, _ in children), max(end for _, end in children))
        self._cache[node.id] = offsets
        return offsets

def node_offsets(node):
    """One-shot resolution without keeping a cache around."""
    return OffsetResolver().resolve(node)
