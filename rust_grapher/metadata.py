"""Package metadata loading from ``cargo metadata`` JSON.

The document is either read from a file (``--metadata-file``) or produced
by running ``cargo metadata --format-version 1`` against a manifest. Only
the parts the dependency builder needs are kept: package identity, the
workspace member list and the resolved direct dependencies with their
kinds.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .errors import MetadataError
from .models import DepKind, PackageFact, PackageMetadata

logger = logging.getLogger(__name__)

CARGO_COMMAND = "cargo"

_KIND_MAP: Dict[Optional[str], DepKind] = {
    None: DepKind.NORMAL,
    "normal": DepKind.NORMAL,
    "dev": DepKind.DEV,
    "build": DepKind.BUILD,
}


def dependency_kind(dep: Dict[str, Any]) -> DepKind:
    """Kind of a resolved dependency entry; the first declared kind wins."""
    dep_kinds = dep.get("dep_kinds") or []
    if not dep_kinds:
        return DepKind.NORMAL
    first = dep_kinds[0] or {}
    return _KIND_MAP.get(first.get("kind"), DepKind.NORMAL)


def _resolved_dependencies(node: Dict[str, Any]) -> List[Tuple[str, DepKind]]:
    deps = node.get("deps")
    if deps is None:
        # format without per-dependency kinds
        return [(pkg_id, DepKind.NORMAL) for pkg_id in node.get("dependencies", [])]
    return [(dep["pkg"], dependency_kind(dep)) for dep in deps if "pkg" in dep]


def parse_metadata(payload: Dict[str, Any]) -> PackageMetadata:
    """Turn a decoded ``cargo metadata`` document into :class:`PackageMetadata`.

    Raises:
        MetadataError: the document does not have the expected shape.
    """
    try:
        metadata = _parse_payload(payload)
    except KeyError as exc:
        raise MetadataError(f"Malformed cargo metadata: missing {exc}") from exc
    except (TypeError, AttributeError) as exc:
        raise MetadataError(f"Malformed cargo metadata: {exc}") from exc

    logger.debug(
        "Loaded metadata: %d packages, %d workspace members, resolve=%s",
        len(metadata.packages), len(metadata.workspace_members), metadata.has_resolve,
    )
    return metadata


def _parse_payload(payload: Dict[str, Any]) -> PackageMetadata:
    raw_packages = payload["packages"]
    members: List[str] = list(payload.get("workspace_members") or [])

    member_set = set(members)
    packages: Dict[str, PackageFact] = {}
    for raw in raw_packages:
        try:
            package_id = raw["id"]
            name = raw["name"]
        except KeyError as exc:
            raise MetadataError(f"Malformed package entry: missing {exc}") from exc
        packages[package_id] = PackageFact(
            package_id=package_id,
            name=name,
            version=str(raw.get("version", "")),
            is_workspace_member=package_id in member_set,
        )

    resolve = payload.get("resolve")
    has_resolve = isinstance(resolve, dict)
    if has_resolve:
        for node in resolve.get("nodes") or []:
            fact = packages.get(node.get("id"))
            if fact is not None:
                fact.dependencies = _resolved_dependencies(node)

    return PackageMetadata(packages=packages, workspace_members=members, has_resolve=has_resolve)


def read_metadata_file(path: Path) -> PackageMetadata:
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise MetadataError(f"Cannot read metadata file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise MetadataError(f"Invalid JSON in {path}: {exc}") from exc
    return parse_metadata(payload)


def run_cargo_metadata(manifest_path: Path) -> PackageMetadata:
    """Run ``cargo metadata`` for *manifest_path* and parse its output."""
    cmd = [
        CARGO_COMMAND, "metadata",
        "--format-version", "1",
        "--manifest-path", str(manifest_path),
    ]
    logger.debug("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError as exc:
        raise MetadataError(f"'{CARGO_COMMAND}' not found on PATH") from exc

    if result.returncode != 0:
        detail = result.stderr.strip() or f"exit status {result.returncode}"
        raise MetadataError(f"cargo metadata failed: {detail}")

    try:
        payload = json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        raise MetadataError(f"cargo metadata produced invalid JSON: {exc}") from exc
    return parse_metadata(payload)


def load_metadata(
    manifest_path: Path = Path("Cargo.toml"),
    metadata_file: Optional[Path] = None,
) -> PackageMetadata:
    """Load metadata from *metadata_file* when given, else by running cargo."""
    if metadata_file is not None:
        return read_metadata_file(metadata_file)
    return run_cargo_metadata(manifest_path)
