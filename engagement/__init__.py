"""Audit engagement review workflow and trial-balance ingestion."""

__version__ = "0.1.0"
