"""UI package exports for the CLI and its plain-text renderer."""

from memmap_doc.ui.cli import CLIError, build_parser, run_cli
from memmap_doc.ui.render import CLIRenderer, create_renderer

__all__ = [
    "CLIError",
    "CLIRenderer",
    "build_parser",
    "create_renderer",
    "run_cli",
]
