"""Imports GrAF documents (e.g. from MASC) as Salt document graphs.

Every document is loaded and converted on its own; a document that fails is
reported with its id and never stops the others.
"""
import logging
import os.path
from concurrent.futures import ThreadPoolExecutor

import lxml.etree

from graftools.config import ImporterProperties
from graftools.exceptions import ConversionError
from graftools.graf2salt import convert
from graftools.grafreader import GrafDocumentHeader, load_graph
from graftools.salt import SDocumentGraph
from graftools.saltxml import write_document

logger = logging.getLogger(__name__)


class GrAFImporter:
    def __init__(self, properties=None):
        self.properties = properties if properties is not None else ImporterProperties()

    def document_id(self, header_path):
        """Fallback document id: the header's file name without its ending."""
        name = os.path.basename(header_path)
        if name.endswith(self.properties.header_ending):
            name = name[:-len(self.properties.header_ending)]
        return name

    def annotation_layers(self, header):
        """The layers to load for a document.

        All layers the header declares, unless ``annotation_layers`` is
        configured; a configured layer the document lacks makes loading fail.
        """
        if self.properties.annotation_layers is None:
            return header.annotation_types
        return list(self.properties.annotation_layers)

    def is_pos_tagged(self, header):
        """Whether a document has both the tokenization and the POS layer."""
        annotation_types = header.annotation_types
        return (self.properties.tokenization_layer in annotation_types
                and self.properties.pos_layer in annotation_types)

    def pos_tagged_headers(self, header_paths):
        """The header paths of the tokenized and POS tagged documents.

        Headers that can't be read are kept, so that importing them reports
        the failure with the document id.
        """
        selected = []
        for path in header_paths:
            try:
                header = GrafDocumentHeader(path)
            except (OSError, lxml.etree.XMLSyntaxError):
                selected.append(path)
                continue
            if self.is_pos_tagged(header):
                selected.append(path)
            else:
                logger.info("Skipping %s: it lacks layer %s or %s", path,
                            self.properties.tokenization_layer, self.properties.pos_layer)
        return selected

    def import_document(self, header_path):
        """Loads and converts one document.

        Returns the SDocumentGraph; any failure is raised as a ConversionError
        carrying the document id.
        """
        document_id = self.document_id(header_path)
        try:
            header = GrafDocumentHeader(header_path)
            document_id = header.document_id or document_id
            graph = load_graph(header, self.annotation_layers(header))
            document = SDocumentGraph(document_id)
            convert(graph, graph.content, document,
                    syntax_layer=self.properties.syntax_layer,
                    tokenization_layer=self.properties.tokenization_layer,
                    region_handling=self.properties.region_handling)
            if self.properties.outputdir is not None:
                write_document(document, self.properties.outputdir, self.properties.corpusprefix)
        except ConversionError:
            raise
        except Exception as e:
            raise ConversionError(f"Cannot import document '{document_id}' from {header_path}",
                                  document_id=document_id, cause=e) from e
        return document

    def import_documents(self, header_paths):
        """Imports several documents, ``num_parallel_documents`` at a time.

        Returns ``(documents, failures)``: the converted documents in input
        order and a ConversionError for each document that failed. With
        ``pos_tagged_only`` set, documents lacking the tokenization or the POS
        layer are skipped.
        """
        header_paths = list(header_paths)
        if self.properties.pos_tagged_only:
            header_paths = self.pos_tagged_headers(header_paths)
        documents = []
        failures = []
        with ThreadPoolExecutor(max_workers=self.properties.num_parallel_documents) as executor:
            futures = [executor.submit(self.import_document, path) for path in header_paths]
            for path, future in zip(header_paths, futures):
                try:
                    documents.append(future.result())
                except ConversionError as e:
                    logger.error("Failed to import %s: %s", path, e.report())
                    failures.append(e)
        logger.info("Imported %d of %d document(s)", len(documents), len(header_paths))
        return documents, failures
