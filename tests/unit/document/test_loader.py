"""
memmap-doc — unit tests for document loading and saving

File: tests/unit/document/test_loader.py

Purpose
- Validate suffix-driven decoding of JSON, YAML and TOML documents and atomic output.

What this test file should cover
- The same memory map in every readable encoding decodes to the same model.
- Syntax errors, unsupported suffixes and non-object roots raise ``DocumentLoadError``.
- Shape errors surface as ``DecodeError``.
- Output is newline terminated, keeps key order and replaces the target atomically.
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path

import pytest
import yaml

from memmap_doc.document.loader import (
    DocumentLoadError,
    detect_format,
    dumps_document,
    is_memory_map_payload,
    load_document,
    loads_document,
    read_payload,
    save_document,
)
from memmap_doc.domain.models import DecodeError, MemoryMap

ASSETS = Path(__file__).resolve().parents[2] / "assets"


def _reference() -> MemoryMap:
    return load_document(ASSETS / "memory_map.json")


@pytest.mark.parametrize(
    ("name", "fmt"),
    [("memory_map.json", "json"), ("memory_map.yaml", "yaml"), ("memory_map.toml", "toml")],
)
def test_every_readable_encoding_decodes_to_the_same_model(name: str, fmt: str) -> None:
    assert detect_format(ASSETS / name) == fmt

    document = load_document(ASSETS / name)

    assert document.to_dict() == _reference().to_dict()


def test_detect_format_is_case_insensitive_and_accepts_yml() -> None:
    assert detect_format("MAP.JSON") == "json"
    assert detect_format("map.yml") == "yaml"


@pytest.mark.parametrize("name", ["map.xml", "Makefile"])
def test_unsupported_suffix_is_rejected(name: str) -> None:
    with pytest.raises(DocumentLoadError, match="unsupported document suffix"):
        detect_format(name)


def test_explicit_format_overrides_the_suffix(tmp_path: Path) -> None:
    source = tmp_path / "map.txt"
    source.write_text((ASSETS / "memory_map.yaml").read_text(encoding="utf-8"), encoding="utf-8")

    document = load_document(source, "yaml")

    assert document.root.name == "device"


@pytest.mark.parametrize(
    ("text", "fmt", "fragment"),
    [
        ('{"protocol": ', "json", "invalid JSON"),
        ("protocol: [unclosed", "yaml", "invalid YAML"),
        ("protocol = ", "toml", "invalid TOML"),
        ("[1, 2]", "json", "document root must be an object, got list"),
        ("- a\n- b\n", "yaml", "document root must be an object, got list"),
    ],
)
def test_syntax_and_root_errors_raise_document_load_error(
    text: str, fmt: str, fragment: str
) -> None:
    with pytest.raises(DocumentLoadError, match=fragment):
        loads_document(text, fmt)


def test_shape_errors_surface_as_decode_errors() -> None:
    with pytest.raises(DecodeError, match="missing required fields"):
        loads_document('{"name": "device", "type": "set"}')


def test_missing_file_raises_document_load_error(tmp_path: Path) -> None:
    with pytest.raises(DocumentLoadError, match="unable to read document") as exc_info:
        load_document(tmp_path / "absent.json")
    assert exc_info.value.path == tmp_path / "absent.json"


def test_is_memory_map_payload_checks_for_protocol_key() -> None:
    assert is_memory_map_payload(read_payload(ASSETS / "memory_map.toml"))
    assert not is_memory_map_payload({"name": "device"})
    assert not is_memory_map_payload(["protocol"])


def test_json_output_uses_the_requested_indent_and_key_order() -> None:
    rendered = dumps_document(_reference(), "json", indent=2)

    assert rendered.endswith("}\n")
    assert rendered.startswith('{\n  "protocol": {\n    "name": "demo-bus"')
    assert list(json.loads(rendered))[:4] == ["protocol", "name", "access", "type"]


def test_yaml_output_is_block_style_and_keeps_key_order() -> None:
    rendered = dumps_document(_reference(), "yaml")

    assert rendered.startswith("protocol:\n  name: demo-bus\n  addressMax: 256\n")
    assert "{" not in rendered
    assert loads_document(rendered, "yaml").to_dict() == _reference().to_dict()


def test_toml_output_roundtrips_from_toml_and_json() -> None:
    from_toml = load_document(ASSETS / "memory_map.toml")
    from_json = load_document(ASSETS / "memory_map.json")

    toml_text = dumps_document(from_toml, "toml")
    json_to_toml = dumps_document(from_json, "toml")

    assert loads_document(toml_text, "toml").to_dict() == from_toml.to_dict()
    assert loads_document(json_to_toml, "toml").to_dict() == from_json.to_dict()
    assert tomllib.loads(json_to_toml)["protocol"] == {
        "name": "demo-bus",
        "addressMax": 256,
        "dataMin": 1,
    }


def test_elaborated_document_survives_a_toml_roundtrip(tmp_path: Path) -> None:
    document = _reference()
    document.elaborate()
    destination = save_document(document, tmp_path / "device.toml")

    reloaded = load_document(destination)
    payload = tomllib.loads(destination.read_text(encoding="utf-8"))

    assert payload["contains"][3]["address"] == 16
    assert payload["contains"][1]["contains"][1]["range"] == "0: EN, 1: IRQ, 2..7: Reserved"
    assert reloaded.root.children[3].address == 16
    reloaded.elaborate()
    assert [field.address for field in reloaded.root.walk()] == [
        field.address for field in document.root.walk()
    ]


def test_unknown_output_format_is_rejected() -> None:
    with pytest.raises(DocumentLoadError, match="unsupported output format 'xml'"):
        dumps_document(_reference(), "xml")


def test_save_document_writes_atomically_and_picks_format_from_suffix(tmp_path: Path) -> None:
    destination = tmp_path / "out.yaml"
    destination.write_text("stale", encoding="utf-8")

    written = save_document(_reference(), destination)

    assert written == destination
    assert yaml.safe_load(destination.read_text(encoding="utf-8"))["name"] == "device"
    assert sorted(path.name for path in tmp_path.iterdir()) == ["out.yaml"]


def test_save_document_reports_missing_directories(tmp_path: Path) -> None:
    with pytest.raises(DocumentLoadError, match="unable to write document"):
        save_document(_reference(), tmp_path / "missing" / "out.json")


def test_elaborated_ranges_are_emitted_after_a_roundtrip(tmp_path: Path) -> None:
    document = _reference()
    document.elaborate()
    destination = save_document(document, tmp_path / "device.json")

    payload = json.loads(destination.read_text(encoding="utf-8"))

    assert payload["range"] == "0x0..0x15"
    assert payload["contains"][3]["range"] == "0..4294967295"
    assert load_document(destination).root.range is None
