"""GrAF (MASC) to Salt conversion tools."""

VERSION = "0.3.0"
