"""Writes a converted SDocumentGraph as Salt XML, which Pepper can read for further conversion."""
import logging
import os

import lxml.etree
from lxml.builder import ElementMaker

from graftools.salt import (SDominanceRelation, SSpan, SSpanningRelation, SStructure, STextualDS,
                            STextualRelation, SToken)

logger = logging.getLogger(__name__)

E = ElementMaker(nsmap={"sDocumentStructure":"sDocumentStructure", "xmi":"http://www.omg.org/XMI", "xsi": "http://www.w3.org/2001/XMLSchema-instance", "saltCore":"saltCore","saltCommon":"saltCommon", "sCorpusStructure":"sCorpusStructure" })
XSI_TYPE = "{http://www.w3.org/2001/XMLSchema-instance}type"

NODE_TYPES = {
    STextualDS: "sDocumentStructure:STextualDS",
    SToken: "sDocumentStructure:SToken",
    SSpan: "sDocumentStructure:SSpan",
    SStructure: "sDocumentStructure:SStructure",
}

RELATION_TYPES = {
    STextualRelation: "sDocumentStructure:STextualRelation",
    SSpanningRelation: "sDocumentStructure:SSpanningRelation",
    SDominanceRelation: "sDocumentStructure:SDominanceRelation",
}


#################################################
                # Labels #
#################################################

def convert_identifier(document, element_id, **kwargs):
    yield E.labels({
        XSI_TYPE: "saltCore:SElementId",
        "namespace": "salt",
        "name": "id",
        "value": "T::salt:/" + kwargs.get('corpusprefix', 'corpus') + "/" + document.id + '#' + element_id
    })


def convert_feature(name, value, namespace="salt"):
    return E.labels({
        XSI_TYPE: "saltCore:SFeature",
        "namespace": namespace,
        "name": name,
        "value": value
    })


def convert_annotations(node):
    """Converts the annotations of a node to SAnnotation labels"""
    for annotation in node.annotations.values():
        attribs = {
            XSI_TYPE: "saltCore:SAnnotation",
            "name": annotation.name,
            "value": "T::" + str(annotation.value)
        }
        if annotation.namespace:
            attribs["namespace"] = annotation.namespace
        yield E.labels(attribs)


#################################################
                # Elements #
#################################################

def convert_node(document, node, layer_ix, **kwargs):
    attribs = {XSI_TYPE: NODE_TYPES[type(node)]}
    if node.layers:
        attribs["layers"] = " ".join(f"//@layers.{layer_ix[layer.id]}" for layer in node.layers)
    labels = list(convert_identifier(document, node.id, **kwargs))
    if isinstance(node, STextualDS):
        labels.append(convert_feature("SDATA", "T::" + node.text, namespace="saltCommon")) #this can be huge!
    labels.append(convert_feature("SNAME", "T::" + str(node.name)))
    labels.extend(convert_annotations(node))
    return E.nodes(attribs, *labels)


def convert_relation(document, relation, node_ix, **kwargs):
    labels = list(convert_identifier(document, relation.id, **kwargs))
    labels.append(convert_feature("SNAME", "T::" + relation.id))
    if isinstance(relation, STextualRelation):
        labels.append(convert_feature("SSTART", f"N::{relation.start}"))
        labels.append(convert_feature("SEND", f"N::{relation.end}"))
    return E.edges({
            XSI_TYPE: RELATION_TYPES[type(relation)],
            "source": f"//@nodes.{node_ix[relation.source.id]}",
            "target": f"//@nodes.{node_ix[relation.target.id]}"
        },
        *labels)


def convert_layer(layer, node_ix):
    return E.layers({
            XSI_TYPE: "saltCore:SLayer",
            "nodes": " ".join(f"//@nodes.{node_ix[node.id]}" for node in layer.nodes)
        },
        E.labels({
            XSI_TYPE: "saltCore:SElementId",
            "namespace": "salt",
            "name": "id",
            "value": "T::" + layer.id
        }),
        convert_feature("SNAME", "T::" + layer.name)
    )


def document_to_xml(document, **kwargs):
    """Builds the sDocumentStructure:SDocumentGraph element of a document.

    Nodes, edges and layers refer to each other by position (``//@nodes.3``),
    so the order of ``document.nodes`` and ``document.relations`` is kept.
    """
    node_ix = {node_id: i for i, node_id in enumerate(document.nodes)}
    layer_ix = {layer.id: i for i, layer in enumerate(document.layers.values())}
    nodes = [convert_node(document, node, layer_ix, **kwargs) for node in document.nodes.values()]
    edges = [convert_relation(document, relation, node_ix, **kwargs) for relation in document.relations]
    layers = [convert_layer(layer, node_ix) for layer in document.layers.values()]

    return getattr(E,"{sDocumentStructure}SDocumentGraph")(
        {"{http://www.omg.org/XMI}version":"2.0"},
        E.labels({ # document ID
            XSI_TYPE: "saltCore:SElementId",
            "namespace": "salt",
            "name": "id",
            "value": "T::salt:/" + kwargs.get('corpusprefix', 'corpus') + "/" + document.id
        }),
        *nodes,
        *edges,
        *layers)


def write_document(document, outputdir, corpusprefix):
    """Writes ``<outputdir>/<corpusprefix>/<document id>.salt`` and returns its path"""
    saltdoc = document_to_xml(document, corpusprefix=corpusprefix)
    os.makedirs(os.path.join(outputdir, corpusprefix), exist_ok=True)
    outputfile = os.path.join(outputdir, corpusprefix, document.id + ".salt")
    xml = lxml.etree.tostring(saltdoc, xml_declaration=True, pretty_print=True, encoding='utf-8')
    with open(outputfile,'wb') as f:
        f.write(xml)
    logger.info("Wrote %s", outputfile)
    return outputfile
