"""Reads GrAF standoff annotations (as used by MASC) into an AnnotationGraph.

A GrAF document consists of a header (``*.hdr``), a primary text file and
one XML file per annotation layer ("f.id"), e.g. "f.seg", "f.penn",
"f.ptb". Layer files may depend on other layers (``<dependsOn>``), e.g.
"f.penn" links to the regions defined in "f.seg".
"""
import logging
import os.path
from collections import OrderedDict

import lxml.etree

from graftools.exceptions import InconsistentMappingError, LayerNotPresentError
from graftools.graph import AnnotationGraph

logger = logging.getLogger(__name__)

GRAF_NS = "http://www.xces.org/ns/GrAF/1.0/"
XML_NS = "http://www.w3.org/XML/1998/namespace"
NSMAP = {"g": GRAF_NS}


def xmlid(element):
    return element.get(f"{{{XML_NS}}}id") or element.get("id")


class GrafDocumentHeader:
    """The header of one GrAF document: id, title and where its files are."""

    def __init__(self, path):
        self.path = path
        self.directory = os.path.dirname(os.path.abspath(path))
        self.tree = lxml.etree.parse(path)
        self.root = self.tree.getroot()

    @property
    def document_id(self):
        return self.root.get("docId")

    @property
    def title(self):
        title = self.root.find("g:fileDesc/g:sourceDesc/g:title", NSMAP)
        if title is None or title.text is None:
            return None
        return title.text.strip()

    def _annotations(self):
        annotations = OrderedDict()
        for element in self.root.iterfind(".//g:annotations/g:annotation", NSMAP):
            annotations[element.get("f.id")] = element.get("loc")
        return annotations

    @property
    def annotation_types(self):
        """The annotation layers ("f.ids") the document has, in header order."""
        return list(self._annotations())

    def annotation_location(self, f_id):
        loc = self._annotations().get(f_id)
        if loc is None:
            raise LayerNotPresentError(f"Document {self.document_id} has no annotation layer {f_id}", layers=[f_id])
        return os.path.join(self.directory, loc)

    @property
    def primary_data_location(self):
        element = self.root.find(".//g:primaryData", NSMAP)
        if element is None:
            raise ValueError(f"Document header {self.path} doesn't declare any primary data")
        return os.path.join(self.directory, element.get("loc"))


def load_primary_text(header):
    # no newline translation, GrAF offsets count every character
    with open(header.primary_data_location, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _dependencies(path):
    tree = lxml.etree.parse(path)
    return [element.get("f.id") for element in tree.iterfind(".//g:dependsOn", NSMAP)]


def _layers_to_load(header, layers):
    """Requested layers plus everything they depend on, dependencies first."""
    available = header.annotation_types
    missing = [layer for layer in layers if layer not in available]
    if missing:
        raise LayerNotPresentError(
            f"Document {header.document_id} was not annotated with {', '.join(missing)}", layers=missing)

    ordered = OrderedDict()
    dependencies = {}

    def visit(layer, trail):
        if layer in ordered:
            return
        if layer in trail:
            logger.warning("Circular layer dependency %s in document %s", " -> ".join(trail + [layer]),
                           header.document_id)
            return
        if layer not in available:
            raise LayerNotPresentError(
                f"Document {header.document_id} lacks layer {layer}, required by {trail[-1]}", layers=[layer])
        dependencies[layer] = _dependencies(header.annotation_location(layer))
        for dependency in dependencies[layer]:
            visit(dependency, trail + [layer])
        ordered[layer] = True

    for layer in layers:
        visit(layer, [])
    return list(ordered), dependencies


def parse_graph_file(graph, path, layer, pending=None):
    """Adds the regions, nodes, edges, links and annotations of one layer file.

    References (link targets, edge ends, annotation refs) may point into
    other layer files. If ``pending`` is given they are appended to it and
    resolved later by :func:`resolve_references`, otherwise they are
    resolved right away.
    """
    resolve_now = pending is None
    if resolve_now:
        pending = []
    tree = lxml.etree.parse(path)
    root = tree.getroot()

    for element in root.iterfind("g:region", NSMAP):
        anchors = element.get("anchors", "").split()
        if len(anchors) != 2:
            raise InconsistentMappingError(f"Region {xmlid(element)} in {path} needs a start and an end anchor")
        graph.add_region(xmlid(element), int(anchors[0]), int(anchors[1]))

    for element in root.iterfind("g:node", NSMAP):
        node = graph.add_node(xmlid(element), layer)
        for link in element.iterfind("g:link", NSMAP):
            pending.append(("link", node.id, link.get("targets", "").split()))

    for i, element in enumerate(root.iterfind("g:edge", NSMAP)):
        edge_id = xmlid(element) or f"{layer}-edge-{i}"
        pending.append(("edge", edge_id, (element.get("from"), element.get("to"))))

    for element in root.iterfind("g:a", NSMAP):
        features = OrderedDict()
        for feature in element.iterfind(".//g:f", NSMAP):
            value = feature.get("value")
            if value is None:
                value = (feature.text or "").strip()
            features[feature.get("name")] = value
        pending.append(("annotation", element.get("ref"), (element.get("label"), features, element.get("as"))))

    if resolve_now:
        resolve_references(graph, pending)
    return pending


def resolve_references(graph, pending):
    """Wires up links, edges and annotations once all regions and nodes exist."""
    for kind, ref, payload in pending:
        if kind == "link":
            node = graph.find_node(ref)
            if not payload:
                raise InconsistentMappingError(f"Node {ref} has a link without targets", node_id=ref)
            regions = []
            for target in payload:
                region = graph.find_region(target)
                if region is None:
                    raise InconsistentMappingError(f"Node {ref} links to unknown region {target}", node_id=ref)
                regions.append(region)
            graph.add_link(node, regions)
        elif kind == "edge":
            from_id, to_id = payload
            from_node, to_node = graph.find_node(from_id), graph.find_node(to_id)
            if from_node is None or to_node is None:
                raise InconsistentMappingError(f"Edge {ref} connects unknown nodes {from_id} -> {to_id}",
                                               node_id=from_id if from_node is None else to_id)
            graph.add_edge(ref, from_node, to_node)
        else:
            node = graph.find_node(ref)
            if node is None:
                # annotations on edges are not converted
                logger.debug("Annotation refers to %s, which is not a node; skipping", ref)
                continue
            label, features, space = payload
            graph.add_annotation(node, label, features, space)


def load_graph(header, layers=None):
    """Loads the given annotation layers (default: all) of a document into a new graph.

    Layers the requested ones depend on are loaded as well. The primary text
    becomes the graph's content.
    """
    if layers is None:
        layers = header.annotation_types
    ordered, dependencies = _layers_to_load(header, list(layers))
    graph = AnnotationGraph(load_primary_text(header))
    pending = []
    for layer in ordered:
        path = header.annotation_location(layer)
        logger.debug("Reading layer %s of document %s from %s", layer, header.document_id, path)
        parse_graph_file(graph, path, layer, pending)
        graph.dependencies[layer] = dependencies.get(layer, [])
    resolve_references(graph, pending)
    logger.info("Loaded document %s: %d nodes, %d edges, %d regions (%s)", header.document_id,
                len(graph.nodes), len(graph.edges), len(graph.regions), ", ".join(ordered))
    return graph
