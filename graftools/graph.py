"""In-memory GrAF annotation graph: nodes, edges, regions, links and annotations.

A node is a *leaf* if it has no outgoing edges but links to at least one
region, and *floating* if it has neither outgoing edges nor links. Outgoing
edges come in no particular order, so everything that cares about document
order goes through :func:`outbound_nodes`, which sorts them by edge id.
"""
import re
from collections import OrderedDict

DIGITS = re.compile(r"(\d+)")


class Region:
    """A half-open character range ``[start, end)`` of the primary text."""

    def __init__(self, region_id, start, end, synthetic=False):
        if start > end:
            raise ValueError(f"Region {region_id} starts after it ends ({start} > {end})")
        self.id = region_id
        self.start = start
        self.end = end
        self.synthetic = synthetic
        self.nodes = [] # nodes linking to this region

    def __repr__(self):
        return f"Region({self.id!r}, {self.start}, {self.end})"


class Link:
    def __init__(self, regions):
        self.regions = list(regions)


class Annotation:
    """A labelled feature structure, e.g. ``tok`` with ``msd=NNP``."""

    def __init__(self, label, features=None, space=None):
        self.label = label
        self.features = OrderedDict(features or ())
        self.space = space

    @property
    def namespace(self):
        """Salt namespace for the features: the annotation label, e.g. "tok"."""
        return self.label


class Edge:
    def __init__(self, edge_id, from_node, to_node):
        self.id = edge_id
        self.from_node = from_node
        self.to_node = to_node

    def __repr__(self):
        return f"Edge({self.id!r}, {self.from_node.id!r} -> {self.to_node.id!r})"


class Node:
    def __init__(self, node_id, layer=None):
        self.id = node_id
        self.layer = layer
        self.annotations = []
        self.out_edges = []
        self.in_edges = []
        self.links = []

    @property
    def annotation(self):
        """The default annotation (MASC has exactly one per node)."""
        return self.annotations[0] if self.annotations else None

    def __repr__(self):
        return f"Node({self.id!r}, layer={self.layer!r})"


class AnnotationGraph:
    """A GrAF graph for one document, together with its primary text."""

    def __init__(self, content=""):
        self.content = content
        self._nodes = OrderedDict()
        self._regions = OrderedDict()
        self._edges = OrderedDict()
        self.dependencies = OrderedDict() # layer -> layers it depends on

    @property
    def nodes(self):
        return list(self._nodes.values())

    @property
    def regions(self):
        return list(self._regions.values())

    @property
    def edges(self):
        return list(self._edges.values())

    @property
    def layers(self):
        """Names of all annotation layers that have at least one node, in load order."""
        return list(OrderedDict.fromkeys(n.layer for n in self._nodes.values() if n.layer))

    def find_node(self, node_id):
        return self._nodes.get(node_id)

    def find_region(self, region_id):
        return self._regions.get(region_id)

    def add_node(self, node_id, layer=None):
        if node_id in self._nodes:
            raise ValueError(f"Duplicate node id {node_id}")
        node = Node(node_id, layer)
        self._nodes[node_id] = node
        return node

    def add_region(self, region_id, start, end, synthetic=False):
        if region_id in self._regions:
            raise ValueError(f"Duplicate region id {region_id}")
        region = Region(region_id, start, end, synthetic=synthetic)
        self._regions[region_id] = region
        return region

    def add_edge(self, edge_id, from_node, to_node):
        if edge_id in self._edges:
            raise ValueError(f"Duplicate edge id {edge_id}")
        edge = Edge(edge_id, from_node, to_node)
        from_node.out_edges.append(edge)
        to_node.in_edges.append(edge)
        self._edges[edge_id] = edge
        return edge

    def add_link(self, node, regions):
        link = Link(regions)
        node.links.append(link)
        for region in link.regions:
            if node not in region.nodes:
                region.nodes.append(node)
        return link

    def add_annotation(self, node, label, features=None, space=None):
        annotation = Annotation(label, features, space)
        node.annotations.append(annotation)
        return annotation


#################################################
                # Queries #
#################################################

def natural_key(identifier):
    """Sort key that orders ``ptb-e9`` before ``ptb-e10``."""
    return tuple(int(part) if part.isdigit() else part for part in DIGITS.split(identifier))


def sort_by_id(elements):
    """Sorts nodes, edges or regions by their id.

    GrAF gives no order guarantee; ordering by id is the MASC convention that
    yields left-to-right document order.
    """
    return sorted(elements, key=lambda element: natural_key(element.id))


def is_leaf(node):
    return not node.out_edges and bool(node.links)


def is_floating(node):
    return not node.out_edges and not node.links


def outbound_nodes(node):
    """Nodes the given node points to, ordered by edge id."""
    return [edge.to_node for edge in sort_by_id(node.out_edges)]


def inbound_nodes(node):
    return [edge.from_node for edge in sort_by_id(node.in_edges)]


def root_nodes(graph, nodes=None):
    """Tree roots: internal nodes without an in-edge from within ``nodes``.

    ``nodes`` defaults to the whole graph. Restricting it to a view (e.g. the
    syntax layer) ignores in-edges coming from outside that view.
    """
    if nodes is None:
        nodes = graph.nodes
    members = set(n.id for n in nodes)
    roots = []
    for node in nodes:
        if not node.out_edges:
            continue
        if not any(edge.from_node.id in members for edge in node.in_edges):
            roots.append(node)
    return sort_by_id(roots)


def root_of(node):
    """Walks the first (by id) in-edge upwards until a node without parents is reached."""
    seen = set()
    current = node
    while current.id not in seen:
        seen.add(current.id)
        parents = [parent for parent in inbound_nodes(current) if parent.id not in seen]
        if not parents:
            break
        current = parents[0]
    return current


def reachable_nodes(graph, seeds):
    """The seeds plus everything reachable from them via out-edges, in graph order."""
    reached = set()
    stack = list(seeds)
    while stack:
        node = stack.pop()
        if node.id in reached:
            continue
        reached.add(node.id)
        stack.extend(edge.to_node for edge in node.out_edges)
    return [node for node in graph.nodes if node.id in reached]


def nodes_of_layer(graph, layer):
    return [node for node in graph.nodes if node.layer == layer]


def regions_of_layers(graph, layers):
    """Regions that are linked by at least one node of the given layers."""
    layers = set(layers)
    return [region for region in graph.regions if any(n.layer in layers for n in region.nodes)]
