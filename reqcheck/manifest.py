"""
Pinned version lookup from vcpkg port manifests.
"""

from __future__ import annotations

import json
from pathlib import Path

from .common import ReqcheckError

# Manifest keys holding the port version, in lookup order
VERSION_KEYS = ("version-semver", "version", "version-string")


class ManifestError(ReqcheckError):
    """Raised when a port manifest is missing or carries no version."""
    pass


def port_manifest_path(vcpkg_path: str | Path, name: str) -> Path:
    return Path(vcpkg_path) / "ports" / name / "vcpkg.json"


def read_vcpkg_version(vcpkg_path: str | Path, name: str) -> str:
    """Read the pinned version of a port.

    Args:
        vcpkg_path: Root of the vcpkg registry (contains ports/)
        name: Port name

    Returns:
        Version string as written in the manifest

    Raises:
        ManifestError: If the manifest cannot be read or has no version
    """
    path = port_manifest_path(vcpkg_path, name)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ManifestError(f"could not read {name} config file {path}: {e}") from e

    if isinstance(data, dict):
        for key in VERSION_KEYS:
            value = data.get(key)
            if isinstance(value, str) and value:
                return value

    raise ManifestError(f"could not find version string for {name} in {path}")
