"""
memmap-doc — CLI subprocess smoke contracts

File: tests/integration/test_cli_smoke.py

Purpose
- Enforce CLI behavior for `python -m memmap_doc` across every subcommand.
- Verify exit codes, stdout/stderr separation, and files written to disk.
"""

from __future__ import annotations

import json
import os
import shutil
import subprocess
import sys
import tomllib
from pathlib import Path

import yaml

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"
ASSETS = PROJECT_ROOT / "tests" / "assets"


def _run_cli(cwd: Path, *args: str) -> subprocess.CompletedProcess[str]:
    env = {key: value for key, value in os.environ.items() if not key.startswith("MEMMAP_")}
    existing_pythonpath = env.get("PYTHONPATH")
    src_pythonpath = str(SRC_PATH)
    env["PYTHONPATH"] = (
        src_pythonpath if not existing_pythonpath else f"{src_pythonpath}:{existing_pythonpath}"
    )
    env["NO_COLOR"] = "1"
    return subprocess.run(
        [sys.executable, "-m", "memmap_doc", *args],
        cwd=cwd,
        text=True,
        capture_output=True,
        check=False,
        env=env,
    )


def _overflowing_map() -> dict[str, object]:
    return {
        "protocol": {"addressMax": "0x10", "dataMin": 4},
        "name": "block",
        "type": "set",
        "contains": [
            {"name": "a", "type": {"unsigned": 32}, "address": "0x8"},
            {"name": "b", "type": {"unsigned": 64}},
        ],
    }


def test_elaborate_prints_json_document_on_stdout(tmp_path: Path) -> None:
    completed = _run_cli(tmp_path, "elaborate", str(ASSETS / "memory_map.yaml"))

    assert completed.returncode == 0, completed.stderr
    payload = json.loads(completed.stdout)
    assert payload["range"] == "0x0..0x15"
    counter = payload["contains"][3]
    assert counter["address"] == 16
    assert counter["range"] == "0..4294967295"
    assert completed.stdout.startswith('{\n    "protocol"')


def test_elaborate_summary_renders_a_field_table(tmp_path: Path) -> None:
    completed = _run_cli(tmp_path, "elaborate", str(ASSETS / "memory_map.json"), "--summary")

    assert completed.returncode == 0, completed.stderr
    lines = completed.stdout.splitlines()
    assert "Protocol: demo-bus" in lines
    assert "Address max: 0x100" in lines
    assert any(line.startswith("NAME") and "RANGE" in line for line in lines)
    flags_row = next(line for line in lines if line.lstrip().startswith("flags"))
    assert flags_row.startswith("    flags")
    assert "0: EN, 1: IRQ, 2..7: Reserved" in flags_row


def test_elaborate_writes_yaml_chosen_by_suffix(tmp_path: Path) -> None:
    output = tmp_path / "out" / "device.yml"
    output.parent.mkdir()

    completed = _run_cli(
        tmp_path, "elaborate", str(ASSETS / "memory_map.toml"), "-o", str(output)
    )

    assert completed.returncode == 0, completed.stderr
    assert completed.stdout == ""
    payload = yaml.safe_load(output.read_text(encoding="utf-8"))
    assert payload["contains"][1]["contains"][0]["range"] == "IDLE=0, RUN=1, TEST=2"


def test_convert_keeps_the_document_unelaborated(tmp_path: Path) -> None:
    output = tmp_path / "device.json"

    completed = _run_cli(tmp_path, "convert", str(ASSETS / "memory_map.yaml"), str(output))

    assert completed.returncode == 0, completed.stderr
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["protocol"]["addressMax"] == 256
    assert "range" not in payload
    assert "address" not in payload["contains"][0]


def test_schema_command_prints_json_schema(tmp_path: Path) -> None:
    completed = _run_cli(tmp_path, "schema")

    assert completed.returncode == 0, completed.stderr
    schema = json.loads(completed.stdout)
    assert schema["title"] == "MemoryMap"
    assert "FieldType" in schema["$defs"]


def test_doc_command_elaborates_every_memory_map_in_a_directory(tmp_path: Path) -> None:
    source = tmp_path / "maps"
    source.mkdir()
    shutil.copy(ASSETS / "memory_map.yaml", source / "device.yaml")
    shutil.copy(ASSETS / "memory_map.json", source / "device.json")
    (source / "settings.json").write_text('{"unrelated": true}', encoding="utf-8")
    (source / "notes.txt").write_text("ignored", encoding="utf-8")

    completed = _run_cli(tmp_path, "doc", "--source-path", str(source))

    assert completed.returncode == 0, completed.stderr
    assert "device.json -> device.json" in completed.stdout
    assert "warning: device.yaml: skipped" in completed.stderr
    produced = sorted(path.name for path in (tmp_path / "doc").iterdir())
    assert produced == ["device.json"]
    payload = json.loads((tmp_path / "doc" / "device.json").read_text(encoding="utf-8"))
    assert payload["contains"][4]["range"] == "-2048..2047"


def test_doc_command_reports_rejected_maps_and_continues(tmp_path: Path) -> None:
    source = tmp_path / "maps"
    source.mkdir()
    shutil.copy(ASSETS / "memory_map.json", source / "good.json")
    (source / "overflow.json").write_text(json.dumps(_overflowing_map()), encoding="utf-8")

    completed = _run_cli(
        tmp_path, "doc", "--source-path", str(source), "--doc-path", str(tmp_path / "out")
    )

    assert completed.returncode == 1
    assert "Field b with address 12 and length 8" in completed.stderr
    assert sorted(path.name for path in (tmp_path / "out").iterdir()) == ["good.json"]


def test_overflow_is_rejected_with_exit_code_one(tmp_path: Path) -> None:
    source = tmp_path / "overflow.json"
    source.write_text(json.dumps(_overflowing_map()), encoding="utf-8")

    completed = _run_cli(tmp_path, "elaborate", str(source))

    assert completed.returncode == 1
    assert completed.stdout == ""
    assert completed.stderr.strip() == (
        "error: Field b with address 12 and length 8 would overflow "
        "the protocol maximum address 16"
    )


def test_malformed_documents_exit_with_code_two(tmp_path: Path) -> None:
    source = tmp_path / "broken.json"
    source.write_text('{"protocol": {"addressMax": "ffff", "dataMin": 1}}', encoding="utf-8")

    completed = _run_cli(tmp_path, "elaborate", str(source))

    assert completed.returncode == 2
    assert completed.stderr.startswith("error: ")
    assert "ffff" in completed.stderr


def test_missing_input_exits_with_code_two(tmp_path: Path) -> None:
    completed = _run_cli(tmp_path, "elaborate", str(tmp_path / "absent.json"))

    assert completed.returncode == 2
    assert "unable to read document" in completed.stderr


def test_config_command_reflects_file_env_and_flags(tmp_path: Path) -> None:
    (tmp_path / "memmap.toml").write_text('[output]\nformat = "yaml"\n', encoding="utf-8")

    completed = _run_cli(tmp_path, "config", "--log-level", "info")

    assert completed.returncode == 0, completed.stderr
    config = json.loads(completed.stdout)
    assert config["output"]["format"] == "yaml"
    assert config["logging"]["level"] == "INFO"


def test_invalid_config_exits_with_code_two(tmp_path: Path) -> None:
    (tmp_path / "memmap.toml").write_text("[output]\nindent = 99\n", encoding="utf-8")

    completed = _run_cli(tmp_path, "schema")

    assert completed.returncode == 2
    assert "output.indent" in completed.stderr


def test_convert_writes_toml_that_reads_back(tmp_path: Path) -> None:
    output = tmp_path / "device.toml"

    completed = _run_cli(tmp_path, "convert", str(ASSETS / "memory_map.json"), str(output))

    assert completed.returncode == 0, completed.stderr
    payload = tomllib.loads(output.read_text(encoding="utf-8"))
    assert payload["protocol"]["addressMax"] == 256
    assert payload["contains"][1]["contains"][0]["value"] == "RUN"

    back = tmp_path / "device.json"
    reference = tmp_path / "reference.json"
    assert _run_cli(tmp_path, "convert", str(output), str(back)).returncode == 0
    source = str(ASSETS / "memory_map.json")
    assert _run_cli(tmp_path, "convert", source, str(reference)).returncode == 0

    assert json.loads(back.read_text(encoding="utf-8")) == json.loads(
        reference.read_text(encoding="utf-8")
    )


def test_doc_command_continues_after_a_failed_write(tmp_path: Path) -> None:
    source = tmp_path / "maps"
    source.mkdir()
    shutil.copy(ASSETS / "memory_map.json", source / "alpha.json")
    shutil.copy(ASSETS / "memory_map.yaml", source / "beta.yaml")
    out = tmp_path / "out"
    (out / "alpha.json").mkdir(parents=True)

    completed = _run_cli(tmp_path, "doc", "--source-path", str(source), "--doc-path", str(out))

    assert completed.returncode == 2
    assert "alpha.json: unable to write document" in completed.stderr
    assert "beta.yaml -> beta.json" in completed.stdout
    assert (out / "beta.json").is_file()
