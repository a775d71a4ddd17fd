#!/usr/bin/env python3
"""
Vibe Submission Tools - Project Initializer

Creates a new app, plugin or agent project from a bundled template, then
stamps the new project's identity into its manifest.json and package.json.

Usage:
    python scripts/vibe_init.py my-project                 # app template
    python scripts/vibe_init.py my-plugin --type plugin
    python scripts/vibe_init.py my-agent --template agent --directory ~/work
    python scripts/vibe_init.py my-project --force         # replace an existing directory

Exit codes:
    0 - Project created
    1 - Project not created (existing directory, unknown template, I/O error)
"""

from __future__ import annotations

import argparse
import json
import re
import shutil
import sys
from pathlib import Path
from typing import Any

from secure_walker import resolve_within
from template_materializer import MaterializationError, TemplateMaterializer, target_inside_template
from vibe_config import ConfigError, configure_logging, load_config
from vibe_manifest import MANIFEST_FILENAME, ManifestLoadError, load_manifest, save_manifest
from vibe_validation_common import EXIT_INVALID, EXIT_OK, VALID_PROJECT_TYPES, print_result

DEFAULT_DESCRIPTION = "A Vibe Marketplace project"
DEFAULT_PACKAGE_VERSION = "0.1.0"

# Characters dropped when turning a project name into the last id segment
_ID_STRIP = re.compile(r"[^a-z0-9]")


def project_id_for(name: str) -> str:
    """Derive a reverse-domain id from a project name."""
    segment = _ID_STRIP.sub("", name.lower())[:63]
    return f"com.example.{segment or 'project'}"


def stamp_manifest(project_root: Path, name: str) -> str | None:
    """Rewrite the copied manifest's identity fields.

    Returns:
        The manifest description, or None when the template has no manifest
    """
    if not (project_root / MANIFEST_FILENAME).is_file():
        return None
    manifest = load_manifest(project_root)
    manifest.name = name
    manifest.id = project_id_for(name)
    if manifest.description is None:
        manifest.description = DEFAULT_DESCRIPTION
    save_manifest(manifest, project_root)
    return str(manifest.description)


def stamp_package_json(project_root: Path, name: str, description: str | None) -> bool:
    """Rewrite the copied package.json's name, version and description.

    Returns:
        True if a package.json was updated
    """
    package_path = project_root / "package.json"
    if not package_path.is_file():
        return False
    data: Any = json.loads(package_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        return False
    data["name"] = name
    data["version"] = DEFAULT_PACKAGE_VERSION
    if description is not None:
        data["description"] = description
    package_path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return True


def print_next_steps(name: str) -> None:
    """Print what to do after the project is created."""
    print("\nNext steps:")
    print(f"  cd {name}")
    print("  npm install")
    print("  vibe-validate")


def main() -> int:
    """CLI entry point for project creation."""
    parser = argparse.ArgumentParser(description="Create a new project")
    parser.add_argument("name", help="Project name (also the directory created)")
    parser.add_argument(
        "-t",
        "--type",
        choices=sorted(VALID_PROJECT_TYPES),
        default="app",
        help="Project type (default: app)",
    )
    parser.add_argument("--template", help="Use a specific template instead of the type's default")
    parser.add_argument("--directory", type=Path, default=Path.cwd(), help="Parent directory (default: cwd)")
    parser.add_argument("-f", "--force", action="store_true", help="Replace the target directory if it exists")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()


    try:
        config = load_config()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID

    configure_logging(args.debug or config.debug)

    # Both the template and the new project must stay inside their parents
    template_name = args.template or args.type
    template_root = resolve_within(config.templates_dir, template_name)
    target_root = resolve_within(args.directory.resolve(), args.name)
    if template_root is None or template_root == Path(config.templates_dir).resolve():
        print(f"Error: invalid template name: {template_name}", file=sys.stderr)
        return EXIT_INVALID
    if target_root is None or target_root == args.directory.resolve():
        print(f"Error: invalid project name: {args.name}", file=sys.stderr)
        return EXIT_INVALID
    if target_inside_template(template_root, target_root):
        print(f"Error: project directory {target_root} lies inside the template {template_root}", file=sys.stderr)
        return EXIT_INVALID

    if target_root.exists() and not args.force:
        print(f"Error: directory {target_root} already exists (use --force to overwrite)", file=sys.stderr)
        return EXIT_INVALID

    try:
        if target_root.is_symlink():
            target_root.unlink()
        elif target_root.exists():
            shutil.rmtree(target_root)
        result = TemplateMaterializer(config.extra_ignore_names).copy(template_root, target_root)
        description = stamp_manifest(target_root, args.name)
        stamp_package_json(target_root, args.name, description)
    except (MaterializationError, ManifestLoadError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: failed to create project: {e}", file=sys.stderr)
        return EXIT_INVALID

    if result.diagnostics.errors or result.diagnostics.warnings:
        print_result(result.diagnostics, title="Template Copy Diagnostics")

    print(f"Project created at {target_root} ({result.files_copied} files)")
    print_next_steps(args.name)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
