#!/usr/bin/env python3
"""
Vibe Submission Tools - Manifest Model

Explicit record types for a project's manifest.json and the loader/saver
used by the command-line entry points. Validators only ever read these
records; the fix pass is the one place that may change a field.

Raw JSON values are kept as-is (a numeric ``id`` stays numeric) so the
validators can report them instead of the loader silently coercing them.
Keys the model does not know about are preserved in ``extra`` and written
back untouched.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

MANIFEST_FILENAME = "manifest.json"

# Keys modelled explicitly; everything else round-trips through ``extra``
_MANIFEST_KEYS = ("id", "name", "version", "type", "description", "author", "permissions")
_PERMISSION_KEYS = ("type", "access", "scope", "purpose")


class ManifestLoadError(Exception):
    """Raised when a manifest file is missing or is not a JSON object."""


@dataclass
class Permission:
    """One declared capability grant."""

    type: Any = None
    access: list[Any] | None = None
    scope: Any = None
    purpose: Any = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Any) -> Permission:
        """Build a permission from a raw JSON value.

        Non-object entries become a permission with no fields so the
        validator reports them as missing a type.
        """
        if not isinstance(payload, Mapping):
            return cls()
        access = payload.get("access")
        if isinstance(access, str):
            access = [access]
        elif access is not None and not isinstance(access, list):
            access = None
        return cls(
            type=payload.get("type"),
            access=list(access) if access is not None else None,
            scope=payload.get("scope"),
            purpose=payload.get("purpose"),
            extra={k: v for k, v in payload.items() if k not in _PERMISSION_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, omitting absent optional fields."""
        result: dict[str, Any] = {}
        for key in _PERMISSION_KEYS:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        result.update(self.extra)
        return result


@dataclass
class Manifest:
    """Declarative description of an app, plugin or agent project.

    Attributes:
        id: Reverse-domain identifier (e.g. com.example.myapp)
        name: Display name
        version: Semver triple (e.g. 1.0.0)
        type: Discriminant, one of app / plugin / agent
        description: Optional description
        author: Optional author, a string or a {name, email, url} mapping
        permissions: Declared capability grants (None when the key is absent;
            a non-array JSON value is kept raw for the validator to report)
        extra: Unmodelled keys, preserved verbatim
    """

    id: Any = None
    name: Any = None
    version: Any = None
    type: Any = None
    description: Any = None
    author: Any = None
    permissions: list[Permission] | Any = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Manifest:
        """Build a manifest from a parsed JSON object."""
        permissions = payload.get("permissions")
        if isinstance(permissions, list):
            permissions = [Permission.from_dict(item) for item in permissions]
        return cls(
            id=payload.get("id"),
            name=payload.get("name"),
            version=payload.get("version"),
            type=payload.get("type"),
            description=payload.get("description"),
            author=payload.get("author"),
            permissions=permissions,
            extra={k: v for k, v in payload.items() if k not in _MANIFEST_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, omitting absent optional fields."""
        result: dict[str, Any] = {}
        for key in _MANIFEST_KEYS:
            value = getattr(self, key)
            if value is None:
                continue
            if key == "permissions" and isinstance(value, list):
                value = [p.to_dict() for p in value]
            result[key] = value
        result.update(self.extra)
        return result


def load_manifest(project_root: Path) -> Manifest:
    """Load ``manifest.json`` from a project directory.

    Raises:
        ManifestLoadError: if the file is missing, unreadable or not a JSON object
    """
    manifest_path = project_root / MANIFEST_FILENAME
    if not manifest_path.is_file():
        raise ManifestLoadError(
            f"Not a vibe project directory: {project_root} (no {MANIFEST_FILENAME} found)"
        )
    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ManifestLoadError(f"Invalid JSON in {MANIFEST_FILENAME}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestLoadError(f"Cannot read {manifest_path}: {e}") from e
    if not isinstance(data, dict):
        raise ManifestLoadError(f"{MANIFEST_FILENAME} must contain a JSON object")
    return Manifest.from_dict(data)


def save_manifest(manifest: Manifest, project_root: Path) -> Path:
    """Write the manifest back to ``manifest.json`` (2-space indent)."""
    manifest_path = project_root / MANIFEST_FILENAME
    manifest_path.write_text(json.dumps(manifest.to_dict(), indent=2) + "\n", encoding="utf-8")
    return manifest_path
