"""
memmap-doc — unit tests for config schema validation

File: tests/unit/config/test_schema.py

Purpose
- Validate strict config schema behavior and structured errors.

What this test file should cover
- Built-in defaults validate.
- Unknown keys, bad enums and out-of-range integers are reported with their paths.
- Deep merge is non-destructive.
"""

from __future__ import annotations

import pytest

from memmap_doc.config.schema import (
    ConfigSchemaVersion,
    ConfigValidationError,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)


def _issue_paths(config: object) -> list[str]:
    return [issue.path for issue in validate_config(config).issues]


def test_default_config_is_valid() -> None:
    result = validate_config(default_config())

    assert result.is_valid
    assert result.config == {
        "meta": {"schema_version": ConfigSchemaVersion},
        "logging": {"level": "WARNING", "format": "text"},
        "output": {"format": "json", "indent": 4},
    }


def test_log_level_is_case_insensitive() -> None:
    config = merge_config(default_config(), {"logging": {"level": "debug"}})

    assert assert_valid_config(config)["logging"]["level"] == "DEBUG"


def test_unknown_sections_and_keys_are_rejected() -> None:
    config = merge_config(
        default_config(),
        {"plugins": {}, "output": {"colour": True}},
    )

    assert _issue_paths(config) == ["plugins", "output.colour"]


@pytest.mark.parametrize(
    ("overlay", "path", "fragment"),
    [
        ({"logging": {"level": "TRACE"}}, "logging.level", "expected one of: DEBUG, ERROR"),
        ({"logging": {"format": "xml"}}, "logging.format", "expected one of: json, text"),
        ({"logging": {"file": "  "}}, "logging.file", "must not be empty"),
        ({"output": {"format": "csv"}}, "output.format", "expected one of: json, toml, yaml"),
        ({"output": {"indent": -1}}, "output.indent", "must be >= 0"),
        ({"output": {"indent": 64}}, "output.indent", "must be <= 16"),
        ({"output": {"indent": True}}, "output.indent", "expected integer, got bool"),
        ({"meta": {"schema_version": 99}}, "meta.schema_version", "newer than supported"),
    ],
)
def test_invalid_values_report_path_and_reason(
    overlay: dict[str, object], path: str, fragment: str
) -> None:
    result = validate_config(merge_config(default_config(), overlay))

    assert not result.is_valid
    assert [issue.path for issue in result.issues] == [path]
    assert fragment in result.issues[0].message


def test_missing_required_keys_are_reported() -> None:
    assert _issue_paths({"meta": {"schema_version": 1}, "logging": {}}) == [
        "output",
        "logging.format",
        "logging.level",
    ]


def test_assert_valid_config_renders_every_issue() -> None:
    config = merge_config(default_config(), {"output": {"indent": -2, "format": "csv"}})

    with pytest.raises(ConfigValidationError) as exc_info:
        assert_valid_config(config)

    message = str(exc_info.value)
    assert message.startswith("invalid config:\n")
    assert "- output.format:" in message
    assert "- output.indent: must be >= 0" in message
    assert len(exc_info.value.issues) == 2


def test_non_mapping_root_is_rejected() -> None:
    assert _issue_paths(["logging"]) == ["<root>"]


def test_merge_config_does_not_mutate_inputs() -> None:
    base = default_config()
    overlay = {"logging": {"level": "ERROR"}}

    merged = merge_config(base, overlay)

    assert merged["logging"] == {"level": "ERROR", "format": "text"}
    assert base["logging"]["level"] == "WARNING"
    merged["output"]["indent"] = 0
    assert base["output"]["indent"] == 4


def test_migration_guidance_mentions_direction() -> None:
    assert "older than supported" in migration_guidance(ConfigSchemaVersion - 1)
    assert "newer than supported" in migration_guidance(ConfigSchemaVersion + 1)
    assert migration_guidance(ConfigSchemaVersion) == "schema version is current"
