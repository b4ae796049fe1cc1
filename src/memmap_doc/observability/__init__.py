"""Public observability primitives: logging setup shared by the CLI and library callers."""

from memmap_doc.observability.logging import ROOT_LOGGER_NAME, setup_logging

__all__ = ["ROOT_LOGGER_NAME", "setup_logging"]
