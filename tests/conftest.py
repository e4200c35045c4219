"""Shared fixtures: small GrAF graphs built in code and a tiny GrAF document on disk."""

import textwrap

import pytest

from graftools.graph import AnnotationGraph
from graftools.salt import SDocumentGraph

TEXT = "Tom likes Mary. She smiles."
WORDS = [(0, 3), (4, 9), (10, 14), (14, 15), (16, 19), (20, 26), (26, 27)]
PENN = ["NNP", "VBZ", "NNP", ".", "PRP", "VBZ", "."]


def add_leaf(graph, node_id, layer, region_ids, label=None, space=None, **features):
    """Adds a node that links to the given regions, optionally with an annotation."""
    node = graph.add_node(node_id, layer)
    graph.add_link(node, [graph.find_region(r) for r in region_ids])
    if label is not None:
        graph.add_annotation(node, label, features, space)
    return node


def add_internal(graph, node_id, layer, children, edge_ids, label=None, space=None, **features):
    """Adds a node with outgoing edges to the given (already added) nodes."""
    node = graph.add_node(node_id, layer)
    for child_id, edge_id in zip(children, edge_ids):
        graph.add_edge(edge_id, node, graph.find_node(child_id))
    if label is not None:
        graph.add_annotation(node, label, features, space)
    return node


def build_masc_graph():
    """Two sentences with word segmentation, POS tags and PTB-style syntax trees.

    Every word region is linked by a "f.seg", a "f.penn" and a "f.ptbtok"
    node; the "f.ptb" trees sit on top of the "f.ptbtok" nodes.
    """
    graph = AnnotationGraph(TEXT)
    for i, (start, end) in enumerate(WORDS):
        graph.add_region(f"seg-r{i}", start, end)
    for i in range(len(WORDS)):
        add_leaf(graph, f"seg-n{i}", "f.seg", [f"seg-r{i}"])
    for i, msd in enumerate(PENN):
        add_leaf(graph, f"penn-n{i}", "f.penn", [f"seg-r{i}"], label="tok", space="xces", msd=msd)
    for i in range(len(WORDS)):
        add_leaf(graph, f"ptbtok-n{i}", "f.ptbtok", [f"seg-r{i}"])

    # (S (NP Tom) (VP likes (NP Mary)) .)
    add_internal(graph, "ptb-n01", "f.ptb", ["ptbtok-n0"], ["ptb-e01"], label="NP", space="PTB", cat="NP")
    add_internal(graph, "ptb-n03", "f.ptb", ["ptbtok-n2"], ["ptb-e04"], label="NP", space="PTB", cat="NP")
    add_internal(graph, "ptb-n02", "f.ptb", ["ptbtok-n1", "ptb-n03"], ["ptb-e02", "ptb-e03"],
                 label="VP", space="PTB", cat="VP")
    add_internal(graph, "ptb-n00", "f.ptb", ["ptb-n01", "ptb-n02", "ptbtok-n3"], ["ptb-e00", "ptb-e05", "ptb-e06"],
                 label="S", space="PTB", cat="S")
    # (S (NP She) (VP smiles) .)
    add_internal(graph, "ptb-n11", "f.ptb", ["ptbtok-n4"], ["ptb-e11"], label="NP", space="PTB", cat="NP")
    add_internal(graph, "ptb-n12", "f.ptb", ["ptbtok-n5"], ["ptb-e12"], label="VP", space="PTB", cat="VP")
    add_internal(graph, "ptb-n10", "f.ptb", ["ptb-n11", "ptb-n12", "ptbtok-n6"], ["ptb-e10", "ptb-e13", "ptb-e14"],
                 label="S", space="PTB", cat="S")
    return graph


@pytest.fixture
def masc_graph():
    return build_masc_graph()


@pytest.fixture
def document():
    document = SDocumentGraph("doc1")
    document.create_textual_ds(TEXT)
    return document


@pytest.fixture
def frame_graph():
    """A FrameNet-like tree with a floating frame element between two leaves.

    fn-n0 -> fn-n1 [10,15), fn-n5 (floating), fn-n2 [20,25)
    """
    graph = AnnotationGraph("x" * 30)
    graph.add_region("fn-r1", 10, 15)
    graph.add_region("fn-r2", 20, 25)
    add_leaf(graph, "fn-n1", "f.fn", ["fn-r1"], label="FE", name="Agent")
    add_leaf(graph, "fn-n2", "f.fn", ["fn-r2"], label="FE", name="Theme")
    graph.add_node("fn-n5", "f.fn")
    add_internal(graph, "fn-n0", "f.fn", ["fn-n1", "fn-n5", "fn-n2"], ["fn-e0", "fn-e1", "fn-e2"], label="frame")
    return graph


def write_graf_document(directory, text=TEXT, extra_header=""):
    """Writes a GrAF document with "f.seg", "f.penn" and "f.ptb" layers; returns the header path."""
    (directory / "doc1.txt").write_text(text, encoding="utf-8")

    regions = "\n".join(f'  <region xml:id="seg-r{i}" anchors="{s} {e}"/>' for i, (s, e) in enumerate(WORDS))
    (directory / "doc1-seg.xml").write_text(textwrap.dedent("""\
        <?xml version="1.0" encoding="UTF-8"?>
        <graph xmlns="http://www.xces.org/ns/GrAF/1.0/">
          <graphHeader>
            <labelsDecl/>
          </graphHeader>
        """) + regions + "\n</graph>\n", encoding="utf-8")

    penn = []
    for i, msd in enumerate(PENN):
        penn.append(f'  <node xml:id="penn-n{i}"><link targets="seg-r{i}"/></node>')
        penn.append(f'  <a label="tok" ref="penn-n{i}" as="xces"><fs><f name="msd" value="{msd}"/></fs></a>')
    (directory / "doc1-penn.xml").write_text(textwrap.dedent("""\
        <?xml version="1.0" encoding="UTF-8"?>
        <graph xmlns="http://www.xces.org/ns/GrAF/1.0/">
          <graphHeader>
            <dependencies><dependsOn f.id="f.seg"/></dependencies>
          </graphHeader>
        """) + "\n".join(penn) + "\n</graph>\n", encoding="utf-8")

    (directory / "doc1-ptb.xml").write_text(textwrap.dedent("""\
        <?xml version="1.0" encoding="UTF-8"?>
        <graph xmlns="http://www.xces.org/ns/GrAF/1.0/">
          <graphHeader>
            <dependencies><dependsOn f.id="f.penn"/></dependencies>
          </graphHeader>
          <node xml:id="ptb-n00"/>
          <a label="S" ref="ptb-n00" as="PTB"><fs><f name="cat" value="S"/></fs></a>
          <node xml:id="ptb-n01"/>
          <a label="NP" ref="ptb-n01" as="PTB"><fs><f name="cat" value="NP"/></fs></a>
          <node xml:id="ptb-n02"/>
          <a label="VP" ref="ptb-n02" as="PTB"><fs><f name="cat" value="VP"/></fs></a>
          <edge xml:id="ptb-e0" from="ptb-n00" to="ptb-n01"/>
          <edge xml:id="ptb-e1" from="ptb-n01" to="penn-n0"/>
          <edge xml:id="ptb-e2" from="ptb-n00" to="ptb-n02"/>
          <edge xml:id="ptb-e3" from="ptb-n02" to="penn-n1"/>
          <edge xml:id="ptb-e4" from="ptb-n02" to="penn-n2"/>
          <edge xml:id="ptb-e5" from="ptb-n00" to="penn-n3"/>
        </graph>
        """), encoding="utf-8")

    header = directory / "doc1.hdr"
    header.write_text(textwrap.dedent(f"""\
        <?xml version="1.0" encoding="UTF-8"?>
        <documentHeader xmlns="http://www.xces.org/ns/GrAF/1.0/" docId="MASC-doc1" version="1.0.4">
          <fileDesc>
            <sourceDesc>
              <title>A tiny test document</title>
            </sourceDesc>
          </fileDesc>
          <profileDesc>
            <primaryData f.id="f.text" loc="doc1.txt"/>
            <annotations>
              <annotation f.id="f.seg" loc="doc1-seg.xml"/>
              <annotation f.id="f.penn" loc="doc1-penn.xml"/>
              <annotation f.id="f.ptb" loc="doc1-ptb.xml"/>
              {extra_header}
            </annotations>
          </profileDesc>
        </documentHeader>
        """), encoding="utf-8")
    return header


@pytest.fixture
def graf_document(tmp_path):
    return write_graf_document(tmp_path)
