"""GrAF to Salt conversion of a single document.

The GrAF graph of a document (regions of the primary text, nodes linking to
them, edges between nodes) is turned into Salt tokens, spans and syntax
structures:

1. floating nodes are anchored to the text (see :mod:`graftools.repair`)
2. every region becomes one or more tokens
3. every node that covers more than one region becomes a span
4. node annotations are copied onto the tokens/spans they map to
5. the syntax layer becomes a tree of structures under one synthetic root

The maps built along the way (region id -> token ids, node id -> token/span
ids) are plain return values; nothing is kept between two documents.
"""
import logging
from bisect import bisect_left, bisect_right
from collections import OrderedDict
from enum import Enum

from graftools.exceptions import ConversionError, CyclicGraphError, GrafError, InconsistentMappingError
from graftools.graph import is_floating, natural_key, nodes_of_layer, outbound_nodes, reachable_nodes, root_nodes
from graftools.repair import repair_floating_nodes
from graftools.salt import NOT_ANNOTATED, add_annotation

logger = logging.getLogger(__name__)

DEFAULT_SYNTAX_LAYER = "f.ptb"
DEFAULT_TOKENIZATION_LAYER = "f.seg"


class RegionHandling(str, Enum):
    """How regions become tokens when several layers segment the same text.

    MASC has several segmentations of its primary texts (e.g. "f.seg" for
    words, "f.s" for sentences) and a Salt token can't belong to two
    incompatible annotation layers.

    ALL_TOKEN_LEVELS
        one token per (region, layer linking to it); parallel token layers
    WORD_SEGMENTATION_ONLY
        one token per region, in the tokenization layer if it links to the
        region, else in the first layer that does
    APPROXIMATE_MATCH
        only regions of the tokenization layer become tokens; other regions
        are mapped onto the tokenization tokens they overlap and only get a
        token of their own if they overlap none
    """

    ALL_TOKEN_LEVELS = "all_token_levels"
    WORD_SEGMENTATION_ONLY = "word_segmentation_only"
    APPROXIMATE_MATCH = "approximate_match"


def region_sort_key(region):
    return (region.start, region.end, natural_key(region.id))


def layers_of_region(region, layer_order):
    """Distinct layers of the nodes that link to a region, in graph layer order."""
    layers = OrderedDict.fromkeys(node.layer for node in region.nodes if node.layer)
    return sorted(layers, key=lambda layer: layer_order.get(layer, len(layer_order)))


#################################################
                # Tokens #
#################################################

def add_regions_to_document(graph, document, region_handling=RegionHandling.ALL_TOKEN_LEVELS,
                            tokenization_layer=DEFAULT_TOKENIZATION_LAYER):
    """Turns the regions of a graph into tokens.

    Each token is named after its region (e.g. 'seg-r91') and anchored to the
    primary text of the document. Returns a map from region id to the ids of
    the tokens that represent it.
    """
    region_handling = RegionHandling(region_handling)
    text_length = len(document.textual_ds.text)
    layer_order = {layer: i for i, layer in enumerate(graph.layers)}
    for layer in graph.layers:
        document.add_layer(layer)
    unannotated = document.add_layer(NOT_ANNOTATED)

    regions = sorted(graph.regions, key=region_sort_key)
    for region in regions:
        if region.end > text_length:
            raise InconsistentMappingError(
                f"Region {region.id} [{region.start},{region.end}) exceeds the primary text ({text_length} chars)")

    region_map = OrderedDict()
    if region_handling is RegionHandling.APPROXIMATE_MATCH:
        deferred = []
        canonical = []
        for region in regions:
            layers = layers_of_region(region, layer_order)
            if not layers:
                region_map[region.id] = [document.create_token(region.start, region.end, unannotated, region.id).id]
            elif tokenization_layer in layers:
                token = document.create_token(region.start, region.end, document.layers[tokenization_layer], region.id)
                canonical.append((region.start, region.end, token))
                region_map[region.id] = [token.id]
            else:
                deferred.append((region, layers))
        starts = [start for start, _, _ in canonical]
        longest = max((end - start for start, end, _ in canonical), default=0)
        for region, layers in deferred:
            matches = [token.id for token in
                       _overlapping_tokens(canonical, starts, longest, region.start, region.end)]
            if not matches:
                logger.debug("Region %s overlaps no %s token, creating a token for it", region.id, tokenization_layer)
                matches = [document.create_token(region.start, region.end, document.layers[layers[0]], region.id).id]
            region_map[region.id] = matches
        return region_map

    for region in regions:
        layers = layers_of_region(region, layer_order)
        if not layers:
            # there's a special layer for all unannotated regions
            token_layers = [unannotated]
        elif region_handling is RegionHandling.WORD_SEGMENTATION_ONLY:
            chosen = tokenization_layer if tokenization_layer in layers else layers[0]
            token_layers = [document.layers[chosen]]
        else:
            token_layers = [document.layers[layer] for layer in layers]
        region_map[region.id] = [
            document.create_token(region.start, region.end, layer, region.id).id for layer in token_layers
        ]
    return region_map


def _overlapping_tokens(canonical, starts, longest, start, end):
    """Tokens of ``canonical`` (sorted by start) that overlap ``[start, end)``.

    ``longest`` is the length of the longest canonical token; it bounds how far
    before ``start`` an overlapping token can begin. A zero-width region
    matches the token containing its position, else the token ending there
    (e.g. an anchor behind the last word of a text).
    """
    if start == end:
        candidates = canonical[bisect_left(starts, start - longest):bisect_right(starts, start)]
        matches = [token for s, e, token in candidates if s <= start < e]
        return matches or [token for s, e, token in candidates if e == start]
    candidates = canonical[bisect_left(starts, start - longest + 1):bisect_left(starts, end)]
    return [token for s, e, token in candidates if s < end and start < e]


#################################################
                # Spans #
#################################################

def regions_covered_by_node(node):
    """Regions a node covers via its links or, recursively, via its outgoing edges.

    Duplicates are removed and the result is ordered by text position.
    """
    covered = OrderedDict()
    active = set()

    def collect(current):
        if current.id in active:
            raise CyclicGraphError(f"Node {current.id} reaches itself via outgoing edges", node_id=current.id)
        active.add(current.id)
        for child in outbound_nodes(current):
            collect(child)
        active.discard(current.id)
        for link in current.links:
            for region in link.regions:
                covered[region.id] = region

    collect(node)
    return sorted(covered.values(), key=region_sort_key)


def _tokens_of_regions(regions, region_map, document, node):
    tokens = OrderedDict()
    for region in regions:
        if region.id not in region_map:
            raise InconsistentMappingError(f"There's no token mapped to the region {region.id}", node_id=node.id)
        for token_id in region_map[region.id]:
            tokens[token_id] = document.get_node(token_id)
    return list(tokens.values())


def add_spans_to_document(graph, document, region_map):
    """Maps every node to the token(s) or span it represents.

    A node covering a single region maps to that region's token(s); a node
    covering several regions gets a new span over all of their tokens, e.g.
    an "f.ne" node pointing to the "f.penn" nodes for 'Tony' and 'Hall'.
    Returns a map from node id to a list of token/span ids.
    """
    node_map = OrderedDict()
    for node in graph.nodes:
        regions = regions_covered_by_node(node)
        if not regions:
            if is_floating(node):
                logger.warning("Node %s is still floating, skipping it", node.id)
            else:
                logger.debug("Node %s doesn't cover any regions but is not a floating node either", node.id)
            continue
        if len(regions) == 1:
            region = regions[0]
            if region.id not in region_map:
                raise InconsistentMappingError(f"Region {region.id} can't be found in the region map", node_id=node.id)
            node_map[node.id] = list(region_map[region.id])
            continue

        tokens = _tokens_of_regions(regions, region_map, document, node)
        if len(tokens) == 1:
            # several regions approximated by the same token
            node_map[node.id] = [tokens[0].id]
            continue
        layers = OrderedDict()
        for token in tokens:
            for layer in token.layers:
                layers[layer.name] = layer
        span = document.create_span(tokens, layers.values(), name=node.id)
        node_map[node.id] = [span.id]
    return node_map


#################################################
                # Annotations #
#################################################

def add_annotations_to_node(graf_node, salt_node):
    """Copies the features of a node's default annotation onto a Salt node.

    Returns the number of annotations that were actually added.
    """
    annotation = graf_node.annotation
    if annotation is None:
        return 0
    added = 0
    for name, value in annotation.features.items():
        if add_annotation(salt_node, name, value, annotation.namespace):
            added += 1
    return added


def add_annotations_to_document(graph, node_map, document):
    """Adds the annotations of all mapped nodes to their tokens/spans.

    Several nodes may point to the same token; an annotation name that is
    already present is kept as is.
    """
    added = 0
    for node_id, salt_ids in node_map.items():
        graf_node = graph.find_node(node_id)
        if graf_node is None:
            raise InconsistentMappingError(f"Node {node_id} is mapped but not part of the graph", node_id=node_id)
        for salt_id in salt_ids:
            salt_node = document.get_node(salt_id)
            if salt_node is None:
                raise InconsistentMappingError(f"Can't find element '{salt_id}' in the document", node_id=node_id)
            added += add_annotations_to_node(graf_node, salt_node)
    return added


#################################################
                # Syntax #
#################################################

def syntax_view(graph, syntax_layer=DEFAULT_SYNTAX_LAYER):
    """Nodes of the syntax layer plus everything they dominate (e.g. "f.ptbtok" nodes)."""
    return reachable_nodes(graph, nodes_of_layer(graph, syntax_layer))


def add_syntax_to_document(graph, document, region_map, syntax_layer=DEFAULT_SYNTAX_LAYER):
    """Builds the syntax trees of a document.

    Every syntax node with outgoing edges becomes a structure. Since the
    roots a GrAF graph reports are unreliable, a synthetic 'root' structure
    dominates the roots found by :func:`graftools.graph.root_nodes`.
    Returns that root, or None if the graph has no nodes in ``syntax_layer``.
    """
    view = syntax_view(graph, syntax_layer)
    if not view:
        return None
    layer = document.add_layer(syntax_layer)

    structures = OrderedDict()
    for node in view:
        if node.out_edges:
            structure = document.create_structure(name=node.id)
            layer.add_node(structure)
            add_annotations_to_node(node, structure)
            structures[node.id] = structure

    root = document.create_structure(name="root")
    layer.add_node(root)
    for tree_root in root_nodes(graph, view):
        document.add_dominance(root, structures[tree_root.id])

    for node in view:
        if not node.out_edges:
            continue
        source = structures[node.id]
        for child in outbound_nodes(node):
            if child.out_edges:
                if child.id not in structures:
                    raise InconsistentMappingError(f"No structure was created for syntax node {child.id}", node_id=child.id)
                document.add_dominance(source, structures[child.id])
            elif child.links:
                for link in child.links:
                    for region in link.regions:
                        if region.id not in region_map:
                            raise InconsistentMappingError(
                                f"There's no token mapped to the region {region.id}", node_id=child.id)
                        for token_id in region_map[region.id]:
                            document.add_dominance(source, document.get_node(token_id))
            else:
                # e.g. PTB trace nodes that were not anchored
                logger.debug("Syntax node %s has neither outgoing edges nor links, skipping it", child.id)
    return root


#################################################
                # Conversion #
#################################################

def convert(graph, primary_text, document, **kwargs):
    """Converts a GrAF graph into the given Salt document (in place).

    kwargs: ``syntax_layer``, ``tokenization_layer``, ``region_handling``.
    GrAF errors and invalid values (e.g. an unknown region handling) are
    re-raised as a ConversionError that names the document and, where known,
    the offending node.
    """
    syntax_layer = kwargs.get("syntax_layer", DEFAULT_SYNTAX_LAYER)
    tokenization_layer = kwargs.get("tokenization_layer", DEFAULT_TOKENIZATION_LAYER)
    region_handling = kwargs.get("region_handling", RegionHandling.ALL_TOKEN_LEVELS)
    try:
        if document.textual_ds is None:
            document.create_textual_ds(primary_text)
        elif document.textual_ds.text != primary_text:
            raise InconsistentMappingError(f"Document {document.id} already has a different primary text")
        repair_floating_nodes(graph)
        region_map = add_regions_to_document(graph, document, region_handling, tokenization_layer)
        node_map = add_spans_to_document(graph, document, region_map)
        add_annotations_to_document(graph, node_map, document)
        if syntax_layer:
            add_syntax_to_document(graph, document, region_map, syntax_layer)
    except (GrafError, ValueError) as e:
        raise ConversionError(f"Cannot convert document '{document.id}'", document_id=document.id, cause=e) from e
    logger.debug("Converted document %s: %d tokens, %d spans, %d structures",
                 document.id, len(document.tokens), len(document.spans), len(document.structures))
