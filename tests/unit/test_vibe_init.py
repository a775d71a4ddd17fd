#!/usr/bin/env python3
"""Tests for vibe_init.py - project creation from templates."""

import json
import os
import subprocess
import sys
from pathlib import Path

from vibe_init import project_id_for, stamp_package_json
from vibe_validation_common import ID_PATTERN

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
SCRIPT_PATH = PROJECT_ROOT / "scripts" / "vibe_init.py"
VALIDATE_PATH = PROJECT_ROOT / "scripts" / "vibe_validate.py"


def run_init(*args: str, templates_dir: Path | None = None) -> subprocess.CompletedProcess[str]:
    """Run vibe_init.py with given args and return result."""
    env = {**os.environ, "VIBE_CONFIG": os.devnull}
    env.pop("VIBE_TEMPLATES_DIR", None)
    if templates_dir is not None:
        env["VIBE_TEMPLATES_DIR"] = str(templates_dir)
    return subprocess.run(
        [sys.executable, str(SCRIPT_PATH), *args],
        capture_output=True,
        text=True,
        timeout=60,
        env=env,
    )


def make_templates(root: Path) -> Path:
    """Create a templates directory with a minimal 'app' template."""
    app = root / "templates" / "app"
    (app / "src").mkdir(parents=True)
    (app / "manifest.json").write_text(
        json.dumps({"id": "com.example.template", "name": "Template", "version": "0.1.0", "type": "app"})
    )
    (app / "package.json").write_text(json.dumps({"name": "template", "version": "9.9.9"}))
    (app / "src" / "index.ts").write_text("export {};\n")
    (app / ".env").write_text("SECRET=1")
    return root / "templates"


class TestProjectId:
    """Tests for id derivation from the project name."""

    def test_name_is_lowercased_and_stripped(self) -> None:
        """Non-alphanumerics are removed and the rest lowercased."""
        assert project_id_for("My Cool-App_2") == "com.example.mycoolapp2"

    def test_empty_segment_falls_back(self) -> None:
        """A name with no usable characters gets a placeholder segment."""
        assert project_id_for("---") == "com.example.project"

    def test_derived_ids_are_valid(self) -> None:
        """Derived ids pass the manifest id pattern."""
        for name in ("a", "Hello World", "123", "ünïcode"):
            assert ID_PATTERN.match(project_id_for(name))


class TestInitCli:
    """Tests for the vibe_init.py entry point."""

    def test_creates_project_and_stamps_identity(self, tmp_path: Path) -> None:
        """The template is copied, credentials skipped and identity fields rewritten."""
        templates = make_templates(tmp_path)
        workdir = tmp_path / "work"
        workdir.mkdir()

        result = run_init("My App", "--directory", str(workdir), templates_dir=templates)

        assert result.returncode == 0, result.stderr
        project = workdir / "My App"
        manifest = json.loads((project / "manifest.json").read_text())
        assert manifest["name"] == "My App"
        assert manifest["id"] == "com.example.myapp"
        assert manifest["description"] == "A Vibe Marketplace project"
        package = json.loads((project / "package.json").read_text())
        assert package == {"name": "My App", "version": "0.1.0", "description": "A Vibe Marketplace project"}
        assert (project / "src" / "index.ts").is_file()
        assert not (project / ".env").exists()
        assert "Next steps:" in result.stdout

    def test_existing_directory_without_force_fails(self, tmp_path: Path) -> None:
        """An existing target exits 1 and is left untouched."""
        templates = make_templates(tmp_path)
        existing = tmp_path / "proj"
        existing.mkdir()
        (existing / "mine.txt").write_text("keep")

        result = run_init("proj", "--directory", str(tmp_path), templates_dir=templates)

        assert result.returncode == 1
        assert "already exists" in result.stderr
        assert (existing / "mine.txt").read_text() == "keep"
        assert not (existing / "manifest.json").exists()

    def test_force_replaces_existing_directory(self, tmp_path: Path) -> None:
        """--force removes the old directory before copying."""
        templates = make_templates(tmp_path)
        existing = tmp_path / "proj"
        existing.mkdir()
        (existing / "stale.txt").write_text("old")

        result = run_init("proj", "--directory", str(tmp_path), "--force", templates_dir=templates)

        assert result.returncode == 0, result.stderr
        assert not (existing / "stale.txt").exists()
        assert (existing / "manifest.json").is_file()

    def test_force_into_template_directory_is_refused(self, tmp_path: Path) -> None:
        """A project directory inside the template is rejected and the template survives."""
        templates = make_templates(tmp_path)
        app = templates / "app"

        for name, directory in (("app", templates), ("nested", app)):
            result = run_init(name, "--directory", str(directory), "--force", templates_dir=templates)
            assert result.returncode == 1
            assert "inside the template" in result.stderr

        assert (app / "manifest.json").is_file()
        assert (app / "src" / "index.ts").is_file()
        assert not (app / "nested").exists()

    def test_unknown_template_fails(self, tmp_path: Path) -> None:
        """A template that does not exist exits 1."""
        templates = make_templates(tmp_path)
        result = run_init("proj", "--directory", str(tmp_path), "--template", "nope", templates_dir=templates)
        assert result.returncode == 1
        assert not (tmp_path / "proj").exists()

    def test_template_name_cannot_escape(self, tmp_path: Path) -> None:
        """A template name climbing out of the templates directory is rejected."""
        templates = make_templates(tmp_path)
        result = run_init("proj", "--directory", str(tmp_path), "--template", "../..", templates_dir=templates)
        assert result.returncode == 1
        assert "invalid template name" in result.stderr

    def test_bundled_template_passes_validation(self, tmp_path: Path) -> None:
        """A project created from a bundled template validates cleanly."""
        created = run_init("demo", "--type", "plugin", "--directory", str(tmp_path))
        assert created.returncode == 0, created.stderr

        checked = subprocess.run(
            [sys.executable, str(VALIDATE_PATH), str(tmp_path / "demo"), "--json"],
            capture_output=True,
            text=True,
            timeout=60,
            env={**os.environ, "VIBE_CONFIG": os.devnull},
        )
        assert checked.returncode == 0, checked.stdout
        assert json.loads(checked.stdout)["errors"] == []


def test_stamp_package_json_without_file(tmp_path: Path) -> None:
    """A template without package.json is left as is."""
    assert stamp_package_json(tmp_path, "x", None) is False
    assert not (tmp_path / "package.json").exists()
