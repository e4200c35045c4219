"""Configuration of the GrAF importer."""

from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class ImporterProperties(BaseModel):
    """Settings for converting GrAF documents to Salt."""

    syntax_layer: str = Field(default="f.ptb", description="Annotation layer (f.id) holding the syntax trees")
    tokenization_layer: str = Field(default="f.seg", description="Annotation layer (f.id) holding the word segmentation")
    pos_layer: str = Field(default="f.penn", description="Annotation layer (f.id) holding part-of-speech annotations")
    pos_tagged_only: bool = Field(
        default=False,
        description="Only import documents that have both the tokenization and the POS layer"
    )
    header_ending: str = ".hdr"
    region_handling: Literal["all_token_levels", "word_segmentation_only", "approximate_match"] = "all_token_levels"
    annotation_layers: Optional[List[str]] = Field(
        default=None,
        description="Layers to load; all layers of a document if unset"
    )
    num_parallel_documents: int = Field(default=1, ge=1)
    corpusprefix: str = "corpus"
    outputdir: Optional[Path] = None

    @field_validator("outputdir", mode="before")
    @classmethod
    def convert_to_path(cls, v):
        """Convert string to Path."""
        if v is None:
            return None
        return Path(v) if isinstance(v, str) else v

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ImporterProperties":
        """Load the properties from a YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls(**(data or {}))
