"""Pith workbench: DuckDB analytics with a local language model assistant."""

__version__ = "0.1.0"
