#!/usr/bin/env python3
"""Tests for validate_manifest.py - required/recommended manifest fields and the trim fix."""

import json
import subprocess
import sys
from pathlib import Path

import pytest
from hypothesis import given
from hypothesis import strategies as st

from validate_manifest import apply_manifest_fixes, is_valid_id, is_valid_version, validate_manifest
from vibe_manifest import Manifest

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
SCRIPT_PATH = PROJECT_ROOT / "scripts" / "validate_manifest.py"


def make_manifest(**overrides: object) -> Manifest:
    """Build a fully valid app manifest with optional field overrides."""
    payload: dict[str, object] = {
        "id": "com.example.myapp",
        "name": "My App",
        "version": "1.0.0",
        "type": "app",
        "description": "An example",
        "author": "Jane",
    }
    payload.update(overrides)
    return Manifest.from_dict({k: v for k, v in payload.items() if v is not None})


class TestRequiredFields:
    """Tests for id, name, version and type checks."""

    def test_valid_manifest_has_no_diagnostics(self) -> None:
        """A complete manifest produces neither errors nor warnings."""
        result = validate_manifest(make_manifest())
        assert result.valid
        assert result.codes() == []

    def test_all_missing_reports_every_required_field(self) -> None:
        """A manifest with only a name reports missing id, version and type together."""
        result = validate_manifest(Manifest.from_dict({"name": "x"}))
        codes = [d.code for d in result.errors]
        assert codes == ["manifest-missing-id", "manifest-missing-version", "manifest-missing-type"]
        assert not result.valid

    def test_every_field_malformed(self) -> None:
        """Bad id, empty name, short version and unknown type give four errors in field order."""
        manifest = Manifest.from_dict({"id": "bad id", "name": "", "version": "1.0", "type": "widget"})
        result = validate_manifest(manifest)
        assert [d.code for d in result.errors] == [
            "manifest-invalid-id",
            "manifest-missing-name",
            "manifest-invalid-version",
            "manifest-invalid-type",
        ]
        assert [d.code for d in result.warnings] == ["manifest-missing-description", "manifest-missing-author"]

    def test_invalid_id_reported_instead_of_missing(self) -> None:
        """A present but malformed id yields invalid-id, never missing-id."""
        result = validate_manifest(make_manifest(id="MyApp"))
        assert [d.code for d in result.errors] == ["manifest-invalid-id"]
        assert result.errors[0].path == "id"

    def test_invalid_id_and_missing_version(self) -> None:
        """Bad id plus missing version produce exactly those two errors, in field order."""
        manifest = Manifest.from_dict(
            {"id": "MyApp", "name": "x", "type": "app", "description": "d", "author": "a"}
        )
        result = validate_manifest(manifest)
        assert [d.code for d in result.errors] == ["manifest-invalid-id", "manifest-missing-version"]
        assert result.warnings == ()
        assert not result.valid

    def test_prerelease_version_is_invalid(self) -> None:
        """Pre-release suffixes are rejected; only x.y.z is accepted."""
        result = validate_manifest(make_manifest(version="1.0.0-beta"))
        assert result.codes() == ["manifest-invalid-version"]

    def test_empty_type_is_invalid_not_missing(self) -> None:
        """An empty-string type is an invalid type, while an absent one is missing."""
        assert validate_manifest(make_manifest(type="")).codes() == ["manifest-invalid-type"]
        assert validate_manifest(make_manifest(type=None)).codes() == ["manifest-missing-type"]

    def test_unknown_type_is_invalid(self) -> None:
        """Types outside app/plugin/agent are rejected."""
        assert validate_manifest(make_manifest(type="widget")).codes() == ["manifest-invalid-type"]

    def test_numeric_id_is_invalid(self) -> None:
        """A non-string id is reported as invalid, not coerced."""
        assert validate_manifest(make_manifest(id=42)).codes() == ["manifest-invalid-id"]

    @given(st.text(min_size=1, max_size=80))
    def test_present_id_never_reported_missing(self, value: str) -> None:
        """Any non-empty id yields at most invalid-id, never missing-id."""
        codes = validate_manifest(make_manifest(id=value)).codes()
        assert "manifest-missing-id" not in codes
        assert ("manifest-invalid-id" in codes) == (not is_valid_id(value))

    def test_overlong_id_is_rejected_quickly(self) -> None:
        """Huge id values fail the length cap instead of reaching the pattern."""
        assert not is_valid_id("a." + "b" * 100_000)
        assert not is_valid_version("1" * 100_000 + ".0.0")


class TestRecommendedFields:
    """Tests for description and author warnings."""

    def test_missing_description_and_author_are_warnings(self) -> None:
        """Missing recommended fields warn but keep the manifest valid."""
        result = validate_manifest(make_manifest(description=None, author=None))
        assert result.valid
        assert [d.code for d in result.warnings] == [
            "manifest-missing-description",
            "manifest-missing-author",
        ]
        assert all(d.severity == "warning" for d in result.warnings)


class TestFixes:
    """Tests for the whitespace-trim fix rule."""

    def test_fix_trims_whitespace(self) -> None:
        """Surrounding whitespace on id, version and type is stripped when the result is valid."""
        manifest = make_manifest(id=" com.example.myapp ", version="1.0.0\n", type=" app")
        changed = apply_manifest_fixes(manifest)
        assert changed == ["id", "version", "type"]
        assert manifest.id == "com.example.myapp"
        assert validate_manifest(manifest).valid

    def test_fix_leaves_unfixable_values(self) -> None:
        """A value that stays invalid after trimming is not touched."""
        manifest = make_manifest(id=" My App ")
        assert apply_manifest_fixes(manifest) == []
        assert manifest.id == " My App "

    def test_without_fix_manifest_is_not_mutated(self) -> None:
        """Validation without fix never changes the manifest."""
        manifest = make_manifest(id=" com.example.myapp ")
        before = manifest.to_dict()
        result = validate_manifest(manifest)
        assert manifest.to_dict() == before
        assert result.codes() == ["manifest-invalid-id"]

    def test_fix_is_idempotent(self) -> None:
        """Running the fix pass twice gives the same manifest and result."""
        manifest = make_manifest(version=" 2.0.0 ")
        first = validate_manifest(manifest, fix=True)
        snapshot = manifest.to_dict()
        second = validate_manifest(manifest, fix=True)
        assert first == second
        assert manifest.to_dict() == snapshot


class TestCli:
    """Tests for the standalone manifest validator script."""

    def test_cli_fix_saves_manifest(self, tmp_path: Path) -> None:
        """--fix writes the trimmed manifest back and exits 0."""
        data = {
            "id": "com.example.myapp ",
            "name": "x",
            "version": "1.0.0",
            "type": "app",
            "description": "d",
            "author": "a",
            "extraKey": {"kept": True},
        }
        (tmp_path / "manifest.json").write_text(json.dumps(data))

        result = subprocess.run(
            [sys.executable, str(SCRIPT_PATH), str(tmp_path), "--fix", "--json"],
            capture_output=True,
            text=True,
            timeout=30,
        )
        assert result.returncode == 0, result.stderr
        assert json.loads(result.stdout)["valid"] is True
        saved = json.loads((tmp_path / "manifest.json").read_text())
        assert saved["id"] == "com.example.myapp"
        assert saved["extraKey"] == {"kept": True}

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
    def test_cli_unloadable_manifest_exits_one(self, tmp_path: Path, content: str) -> None:
        """Malformed or non-object manifests exit 1 with a message."""
        (tmp_path / "manifest.json").write_text(content)
        result = subprocess.run(
            [sys.executable, str(SCRIPT_PATH), str(tmp_path)],
            capture_output=True,
            text=True,
            timeout=30,
        )
        assert result.returncode == 1
        assert "Error:" in result.stderr


class TestManifestRecord:
    """Tests for the Manifest record itself."""

    @pytest.mark.parametrize("raw", ["memory", {"type": "memory"}, 7])
    def test_non_array_permissions_kept_raw(self, raw: object) -> None:
        """A permissions value that is not an array survives a load and save unchanged."""
        manifest = Manifest.from_dict({"id": "com.example.myapp", "permissions": raw})
        assert manifest.permissions == raw
        assert manifest.to_dict()["permissions"] == raw
