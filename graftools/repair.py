"""Anchors floating nodes to the primary text.

GrAF allows nodes with neither outgoing edges nor links (e.g. empty
FrameNet elements). They get a zero-width region at the start of the next
real leaf node in their tree, or at the end of the previous one if there is
no next leaf.
"""
import logging

from graftools.dfs import DepthFirstSearch
from graftools.exceptions import UnanchorableNodeError
from graftools.graph import is_floating
from graftools.offsets import OffsetResolver

logger = logging.getLogger(__name__)


def floating_nodes(graph):
    return [node for node in graph.nodes if is_floating(node)]


def floating_node_offsets(graph, node, resolver=None):
    """Returns the zero-width ``(offset, offset)`` anchor for a floating node."""
    if resolver is None:
        resolver = OffsetResolver()
    search = DepthFirstSearch(graph, node)
    succeeding = search.succeeding_leaf(node)
    if succeeding is not None:
        start, _ = resolver.resolve(succeeding)
        return (start, start)
    preceding = search.preceding_leaf(node)
    if preceding is not None:
        _, end = resolver.resolve(preceding)
        return (end, end)
    raise UnanchorableNodeError(f"Can't produce fake offsets for floating node {node.id}", node_id=node.id)


def _region_id(graph, layer, count):
    region_id = f"floating-{layer}-node-{count}"
    while graph.find_region(region_id) is not None:
        count += 1
        region_id = f"floating-{layer}-node-{count}"
    return region_id, count


def repair_floating_nodes(graph):
    """Links every floating node to a new synthetic region (mutates ``graph``).

    All anchors are computed before any of them is attached. Returns the list
    of regions that were created; running it again creates none.
    """
    resolver = OffsetResolver()
    anchors = [(node, floating_node_offsets(graph, node, resolver)) for node in floating_nodes(graph)]

    created = []
    count = 0
    for node, (start, end) in anchors:
        region_id, count = _region_id(graph, node.layer or "none", count)
        region = graph.add_region(region_id, start, end, synthetic=True)
        graph.add_link(node, [region])
        created.append(region)
        count += 1
        logger.debug("Anchored floating node %s at %d (%s)", node.id, start, region_id)
    if created:
        logger.info("Anchored %d floating node(s)", len(created))
    return created
