"""A minimal Salt document graph: tokens, spans, structures and their relations.

Only the parts of Salt that a GrAF conversion produces are modelled. Node
kinds are separate classes (``SToken``, ``SSpan``, ``SStructure``) and
consumers dispatch on them with ``isinstance``.
"""
from collections import OrderedDict

NOT_ANNOTATED = "not-annotated"


class SAnnotation:
    def __init__(self, namespace, name, value):
        self.namespace = namespace
        self.name = name
        self.value = value

    @property
    def qname(self):
        return f"{self.namespace}::{self.name}" if self.namespace else self.name

    def __repr__(self):
        return f"SAnnotation({self.qname}={self.value!r})"


class SNode:
    """Common part of everything that lives in a document graph."""

    def __init__(self, node_id, name=None):
        self.id = node_id
        self.name = name if name is not None else node_id
        self.annotations = OrderedDict() # name -> SAnnotation
        self.layers = []

    def get_annotation(self, name):
        return self.annotations.get(name)

    def __repr__(self):
        return f"{type(self).__name__}({self.id!r}, name={self.name!r})"


class STextualDS(SNode):
    def __init__(self, node_id, text):
        super().__init__(node_id)
        self.text = text


class SToken(SNode):
    pass


class SSpan(SNode):
    def __init__(self, node_id, tokens, name=None):
        super().__init__(node_id, name)
        self.tokens = list(tokens)


class SStructure(SNode):
    pass


class SLayer:
    def __init__(self, layer_id, name):
        self.id = layer_id
        self.name = name
        self.nodes = []

    def add_node(self, node):
        if self not in node.layers:
            node.layers.append(self)
            self.nodes.append(node)

    def __repr__(self):
        return f"SLayer({self.name!r}, {len(self.nodes)} nodes)"


class SRelation:
    def __init__(self, relation_id, source, target):
        self.id = relation_id
        self.source = source
        self.target = target


class STextualRelation(SRelation):
    def __init__(self, relation_id, source, target, start, end):
        super().__init__(relation_id, source, target)
        self.start = start
        self.end = end


class SSpanningRelation(SRelation):
    pass


class SDominanceRelation(SRelation):
    pass


class SDocumentGraph:
    """The Salt graph of one document.

    Owns all of its nodes and relations; nothing is shared between documents.
    Ids are assigned per document (``sTok1``, ``sSpan1``, ``sStruct1``, ...).
    """

    def __init__(self, document_id, name=None):
        self.id = document_id
        self.name = name if name is not None else document_id
        self.textual_ds = None
        self.layers = OrderedDict() # name -> SLayer
        self.nodes = OrderedDict() # id -> SNode
        self.relations = []
        self._counters = {}
        self._offsets = {} # token id -> (start, end)

    def _next_id(self, prefix):
        self._counters[prefix] = self._counters.get(prefix, 0) + 1
        return f"{prefix}{self._counters[prefix]}"

    def _add_node(self, node):
        self.nodes[node.id] = node
        return node

    @property
    def tokens(self):
        return [n for n in self.nodes.values() if isinstance(n, SToken)]

    @property
    def spans(self):
        return [n for n in self.nodes.values() if isinstance(n, SSpan)]

    @property
    def structures(self):
        return [n for n in self.nodes.values() if isinstance(n, SStructure)]

    def relations_of_type(self, relation_type):
        return [r for r in self.relations if isinstance(r, relation_type)]

    @property
    def textual_relations(self):
        return self.relations_of_type(STextualRelation)

    @property
    def spanning_relations(self):
        return self.relations_of_type(SSpanningRelation)

    @property
    def dominance_relations(self):
        return self.relations_of_type(SDominanceRelation)

    def get_node(self, node_id):
        return self.nodes.get(node_id)

    def create_textual_ds(self, text):
        if self.textual_ds is not None:
            raise ValueError(f"Document {self.id} already has a primary text")
        self.textual_ds = self._add_node(STextualDS(self._next_id("sText"), text))
        return self.textual_ds

    def add_layer(self, name):
        """Returns the layer with the given name, creating it if necessary."""
        if name not in self.layers:
            self.layers[name] = SLayer(self._next_id("sLayer"), name)
        return self.layers[name]

    def create_token(self, start, end, layer=None, name=None):
        """Adds a token anchored to ``[start, end)`` of the primary text."""
        if self.textual_ds is None:
            raise ValueError(f"Document {self.id} has no primary text to anchor tokens to")
        token = self._add_node(SToken(self._next_id("sTok"), name))
        if layer is not None:
            layer.add_node(token)
        self.relations.append(STextualRelation(self._next_id("sTextRel"), token, self.textual_ds, start, end))
        self._offsets[token.id] = (start, end)
        return token

    def create_span(self, tokens, layers=(), name=None):
        span_id = self._next_id("sSpan")
        span = self._add_node(SSpan(span_id, tokens, name))
        for layer in layers:
            layer.add_node(span)
        for token in span.tokens:
            self.relations.append(SSpanningRelation(self._next_id("sSpanRel"), span, token))
        return span

    def create_structure(self, name=None):
        return self._add_node(SStructure(self._next_id("sStruct"), name))

    def add_dominance(self, source, target):
        for node in (source, target):
            if self.nodes.get(node.id) is not node:
                raise ValueError(f"{node!r} doesn't belong to document {self.id}")
        relation = SDominanceRelation(self._next_id("sDomRel"), source, target)
        self.relations.append(relation)
        return relation

    def token_offsets(self, token):
        return self._offsets.get(token.id)

    def text_of(self, node):
        """Primary text covered by a token or span."""
        if isinstance(node, SToken):
            start, end = self.token_offsets(node)
        elif isinstance(node, SSpan):
            offsets = [self.token_offsets(token) for token in node.tokens]
            start, end = min(s for s, _ in offsets), max(e for _, e in offsets)
        else:
            raise TypeError(f"Can't get the text of {node!r}")
        return self.textual_ds.text[start:end]

    def tokens_by_offsets(self, start, end):
        """Tokens whose text range lies within ``[start, end)``."""
        return [r.source for r in self.textual_relations if start <= r.start and r.end <= end]

    def incoming_dominance(self, node):
        return [r for r in self.dominance_relations if r.target is node]

    def outgoing_dominance(self, node):
        return [r for r in self.dominance_relations if r.source is node]


def add_annotation(node, name, value, namespace=None):
    """Adds an annotation unless one with the same name exists (first writer wins).

    Returns True if the annotation was added.
    """
    if name in node.annotations:
        return False
    node.annotations[name] = SAnnotation(namespace, name, value)
    return True
