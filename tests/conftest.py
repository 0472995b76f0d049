"""Pytest configuration and fixtures for rust-grapher tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, Iterable, List, Optional, Tuple, Union

import pytest

from rust_grapher.models import DepKind, PackageFact, PackageMetadata

FIXTURES = Path(__file__).parent / "fixtures"

EdgeSpec = Union[str, Tuple[str, DepKind]]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def metadata_path() -> Path:
    """``cargo metadata`` output for a two-member workspace."""
    return FIXTURES / "metadata.json"


@pytest.fixture
def sample_crate_path() -> Path:
    return FIXTURES / "sample_crate"


@pytest.fixture
def sample_source_dir(sample_crate_path: Path) -> Path:
    return sample_crate_path / "src"


def _metadata(
    edges: Dict[str, Iterable[EdgeSpec]],
    members: Optional[List[str]] = None,
    has_resolve: bool = True,
) -> PackageMetadata:
    """Build metadata where package ids equal package names.

    ``edges`` maps a package to its dependencies, each either a name
    (normal dependency) or a ``(name, DepKind)`` pair. Packages that only
    appear as dependencies are created too.
    """
    names: List[str] = []
    for name, deps in edges.items():
        names.append(name)
        for dep in deps:
            dep_name = dep if isinstance(dep, str) else dep[0]
            names.append(dep_name)

    members = list(members) if members is not None else [next(iter(edges))]
    packages: Dict[str, PackageFact] = {}
    for name in names:
        if name not in packages:
            packages[name] = PackageFact(
                package_id=name,
                name=name,
                version="1.0.0",
                is_workspace_member=name in members,
            )

    for name, deps in edges.items():
        packages[name].dependencies = [
            (dep, DepKind.NORMAL) if isinstance(dep, str) else (dep[0], dep[1])
            for dep in deps
        ]
    return PackageMetadata(packages=packages, workspace_members=members, has_resolve=has_resolve)


@pytest.fixture
def make_metadata() -> Callable[..., PackageMetadata]:
    """Factory for small synthetic package sets."""
    return _metadata
