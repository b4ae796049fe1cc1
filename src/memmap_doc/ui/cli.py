"""Command-line interface router for memmap-doc."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from memmap_doc import __version__
from memmap_doc.config import (
    ConfigLoadError,
    ConfigValidationError,
    dump_effective_config,
    load_config,
)
from memmap_doc.constants import (
    DEFAULT_DOC_DIR,
    DOCUMENT_SUFFIXES,
    LOG_FORMATS,
    LOG_LEVELS,
    WRITABLE_FORMATS,
)
from memmap_doc.document import (
    DocumentLoadError,
    detect_format,
    dump_memory_map_schema,
    dumps_document,
    is_memory_map_payload,
    load_document,
    read_payload,
    save_document,
)
from memmap_doc.domain.models import DecodeError, Field, MemoryMap
from memmap_doc.elaboration import ElaborationError
from memmap_doc.observability import setup_logging
from memmap_doc.ui.render import CLIRenderer, create_renderer
from memmap_doc.utils.fs import atomic_write, ensure_directory, list_files_with_suffix

logger = structlog.get_logger(__name__)

EXIT_REJECTED = 1
EXIT_INPUT_ERROR = 2


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="memmap",
        description=(
            "memmap-doc: resolve register addresses, access and ranges of memory maps.\n\n"
            "Common workflows:\n"
            "  memmap elaborate regs.yaml          Print the elaborated map as JSON\n"
            "  memmap elaborate regs.yaml --summary\n"
            "  memmap doc --source-path maps       Elaborate every map into ./doc\n"
            "  memmap schema -o memmap.schema.json\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to memmap TOML config (default: ./memmap.toml if present).",
    )
    common.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Override logging.level.",
    )
    common.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Override logging.format.",
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # elaborate -----------------------------------------------------------
    elaborate_parser = subparsers.add_parser(
        "elaborate",
        parents=[common],
        help="Resolve addresses, access and ranges of a memory map",
        description=(
            "Load a memory map, elaborate it, and write the result.\n\n"
            "Examples:\n"
            "  memmap elaborate regs.json\n"
            "  memmap elaborate regs.toml -o regs.elaborated.yaml\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    elaborate_parser.add_argument("input", help="Memory map document (.json, .yaml, .yml, .toml).")
    elaborate_parser.add_argument(
        "-o", "--output", default=None, help="Write here instead of stdout."
    )
    elaborate_parser.add_argument(
        "--format",
        dest="output_format",
        choices=WRITABLE_FORMATS,
        default=None,
        help="Output encoding (default: from the output suffix, then output.format).",
    )
    elaborate_parser.add_argument(
        "--summary",
        action="store_true",
        default=False,
        help="Print a field table instead of the document.",
    )
    elaborate_parser.set_defaults(handler=_cmd_elaborate)

    # convert -------------------------------------------------------------
    convert_parser = subparsers.add_parser(
        "convert",
        parents=[common],
        help="Re-encode a memory map without elaborating it",
    )
    convert_parser.add_argument("input", help="Source document.")
    convert_parser.add_argument("output", help="Destination document (.json, .yaml, .yml, .toml).")
    convert_parser.add_argument(
        "--format",
        dest="output_format",
        choices=WRITABLE_FORMATS,
        default=None,
        help="Output encoding (default: from the output suffix).",
    )
    convert_parser.set_defaults(handler=_cmd_convert)

    # schema --------------------------------------------------------------
    schema_parser = subparsers.add_parser(
        "schema",
        parents=[common],
        help="Emit the JSON Schema of memory map documents",
    )
    schema_parser.add_argument(
        "-o", "--output", default=None, help="Write here instead of stdout."
    )
    schema_parser.set_defaults(handler=_cmd_schema)

    # doc -----------------------------------------------------------------
    doc_parser = subparsers.add_parser(
        "doc",
        parents=[common],
        help="Elaborate every memory map in a directory into a doc directory",
    )
    doc_parser.add_argument(
        "--source-path",
        default=None,
        help="Directory holding memory map documents (default: current directory).",
    )
    doc_parser.add_argument(
        "--doc-path",
        default=None,
        help=f"Output directory (default: ./{DEFAULT_DOC_DIR}).",
    )
    doc_parser.set_defaults(handler=_cmd_doc)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show the effective configuration",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return EXIT_INPUT_ERROR

    try:
        result = handler(namespace)
    except CLIError as exc:
        _get_renderer(namespace).error(str(exc))
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_elaborate(args: argparse.Namespace) -> int:
    config = _prepare(args)
    document = _load(Path(args.input))
    _elaborate(document)

    if args.summary:
        _render_summary(_get_renderer(args), document)
        return 0

    output = Path(args.output) if args.output else None
    fmt = _output_format(args, config, output)
    _write(document, output, fmt, indent=config["output"]["indent"])
    return 0


def _cmd_convert(args: argparse.Namespace) -> int:
    config = _prepare(args)
    document = _load(Path(args.input))
    output = Path(args.output)
    fmt = _output_format(args, config, output)
    _write(document, output, fmt, indent=config["output"]["indent"])
    return 0


def _cmd_schema(args: argparse.Namespace) -> int:
    config = _prepare(args)
    rendered = dump_memory_map_schema(indent=config["output"]["indent"])
    if args.output:
        try:
            atomic_write(Path(args.output), rendered)
        except OSError as exc:
            raise CLIError(f"unable to write {args.output}: {exc}", EXIT_INPUT_ERROR) from exc
    else:
        sys.stdout.write(rendered)
    return 0


def _cmd_doc(args: argparse.Namespace) -> int:
    config = _prepare(args)
    renderer = _get_renderer(args)
    source_dir = Path(args.source_path) if args.source_path else Path.cwd()
    doc_dir = Path(args.doc_path) if args.doc_path else Path.cwd() / DEFAULT_DOC_DIR

    if not source_dir.is_dir():
        raise CLIError(f"source path is not a directory: {source_dir}", EXIT_INPUT_ERROR)
    try:
        doc_dir = ensure_directory(doc_dir)
    except OSError as exc:
        raise CLIError(f"unable to create doc path {doc_dir}: {exc}", EXIT_INPUT_ERROR) from exc

    renderer.kv("Source path", source_dir.resolve())
    renderer.kv("Doc path", doc_dir)

    exit_code = 0
    written: dict[str, Path] = {}
    for candidate in list_files_with_suffix(source_dir, DOCUMENT_SUFFIXES):
        try:
            payload = read_payload(candidate)
        except DocumentLoadError as exc:
            renderer.error(str(exc))
            exit_code = max(exit_code, EXIT_INPUT_ERROR)
            continue
        if not is_memory_map_payload(payload):
            logger.debug("document_skipped", path=str(candidate), reason="no protocol key")
            continue
        if candidate.stem in written:
            renderer.warning(
                f"{candidate.name}: skipped, {written[candidate.stem].name} "
                f"already produced {candidate.stem}.json"
            )
            continue

        try:
            document = MemoryMap.from_dict(payload)
            _elaborate(document)
        except DecodeError as exc:
            renderer.error(f"{candidate}: {exc}")
            exit_code = max(exit_code, EXIT_INPUT_ERROR)
            continue
        except CLIError as exc:
            renderer.error(f"{candidate}: {exc}")
            exit_code = max(exit_code, exc.exit_code)
            continue

        destination = doc_dir / f"{candidate.stem}.json"
        try:
            _write(document, destination, "json", indent=config["output"]["indent"])
        except CLIError as exc:
            renderer.error(f"{candidate}: {exc}")
            exit_code = max(exit_code, exc.exit_code)
            continue
        written[candidate.stem] = candidate
        renderer.text(f"{candidate.name} -> {destination.name}")

    if not written and exit_code == 0:
        renderer.warning(f"no memory map documents found in {source_dir}")
    return exit_code


def _cmd_config(args: argparse.Namespace) -> int:
    config = _prepare(args)
    print(dump_effective_config(config))
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _prepare(args: argparse.Namespace) -> dict[str, Any]:
    """Load the effective config and configure logging from it."""

    overrides = {
        "logging.level": getattr(args, "log_level", None),
        "logging.format": getattr(args, "log_format", None),
    }
    try:
        config = load_config(getattr(args, "config_path", None), cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=EXIT_INPUT_ERROR) from exc

    logging_config = config["logging"]
    setup_logging(
        logging_config["level"],
        logging_config["format"],
        logging_config.get("file"),
    )
    return config


def _load(path: Path) -> MemoryMap:
    try:
        return load_document(path)
    except (DocumentLoadError, DecodeError) as exc:
        raise CLIError(str(exc), exit_code=EXIT_INPUT_ERROR) from exc


def _elaborate(document: MemoryMap) -> None:
    try:
        document.elaborate()
    except ElaborationError as exc:
        raise CLIError(str(exc), exit_code=EXIT_REJECTED) from exc


def _output_format(args: argparse.Namespace, config: dict[str, Any], output: Path | None) -> str:
    if args.output_format:
        return str(args.output_format)
    if output is not None and output.suffix.lower() in DOCUMENT_SUFFIXES:
        try:
            return detect_format(output)
        except DocumentLoadError as exc:
            raise CLIError(str(exc), exit_code=EXIT_INPUT_ERROR) from exc
    return str(config["output"]["format"])


def _write(document: MemoryMap, output: Path | None, fmt: str, *, indent: int) -> None:
    try:
        if output is None:
            sys.stdout.write(dumps_document(document, fmt, indent=indent))
        else:
            save_document(document, output, fmt, indent=indent)
    except DocumentLoadError as exc:
        raise CLIError(str(exc), exit_code=EXIT_INPUT_ERROR) from exc


def _render_summary(renderer: CLIRenderer, document: MemoryMap) -> None:
    protocol = document.protocol
    if protocol.name:
        renderer.kv("Protocol", protocol.name)
    renderer.kv("Address max", f"{protocol.address_max:#x}")
    renderer.kv("Data min", protocol.data_min)
    renderer.table(
        ("NAME", "TYPE", "ADDRESS", "ACCESS", "RANGE"),
        _summary_rows(document.root),
        title="Fields:",
    )


def _summary_rows(field: Field, depth: int = 0) -> list[tuple[str, str, str, str, str]]:
    rows = [
        (
            "  " * depth + field.name,
            str(field.field_type),
            "" if field.address is None else f"{field.address:#x}",
            "" if field.access is None else field.access.value,
            field.range or "",
        )
    ]
    for child in field.children:
        rows.extend(_summary_rows(child, depth + 1))
    return rows


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    """Retrieve or create a CLI renderer from the parsed namespace."""

    return create_renderer(no_color=bool(getattr(args, "no_color", False)))


__all__ = ["CLIError", "build_parser", "run_cli"]
