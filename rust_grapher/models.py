"""Core data models shared by the builders, the reducer and the renderers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class DepKind(str, Enum):
    NORMAL = "normal"
    DEV = "dev"
    BUILD = "build"


class CallKind(str, Enum):
    DIRECT = "direct"
    METHOD = "method"


class OutputFormat(str, Enum):
    MERMAID = "mermaid"
    DOT = "dot"
    JSON = "json"


class Theme(str, Enum):
    DEFAULT = "default"
    LIGHT = "light"
    DARK = "dark"


# ------------------------------------------------------------------
# Dependency graph
# ------------------------------------------------------------------

@dataclass
class PackageFact:
    package_id: str
    name: str
    version: str
    is_workspace_member: bool = False
    dependencies: List[Tuple[str, DepKind]] = field(default_factory=list)


@dataclass
class PackageMetadata:
    """Resolved package set for one workspace."""

    packages: Dict[str, PackageFact]
    workspace_members: List[str]
    has_resolve: bool = True


@dataclass
class DependencyNode:
    name: str
    version: str
    is_workspace_member: bool = False


# ------------------------------------------------------------------
# Function call graph
# ------------------------------------------------------------------

@dataclass
class FunctionFact:
    name: str
    qualified_name: str
    is_public: bool = False
    is_async: bool = False
    signature: str = ""
    file_path: str = ""
    line: int = 0


@dataclass
class CallFact:
    caller: str
    callee: str
    kind: CallKind = CallKind.DIRECT


@dataclass
class FunctionNode:
    name: str
    qualified_name: str
    file_path: str
    line: int
    is_public: bool
    is_async: bool
    signature: Optional[str] = None


# ------------------------------------------------------------------
# Options
# ------------------------------------------------------------------

@dataclass
class DepsOptions:
    max_depth: int = 0
    no_dev: bool = False
    no_build: bool = False
    exclude: List[str] = field(default_factory=list)
    include: List[str] = field(default_factory=list)
    workspace_only: bool = False
    no_transitive: bool = False
    dedup: bool = False


@dataclass
class FnGraphOptions:
    public_only: bool = False
    exclude: List[str] = field(default_factory=list)
    show_signatures: bool = False
    focus: Optional[str] = None
    depth: int = 0


@dataclass
class RenderOptions:
    direction: str = "LR"
    theme: Theme = Theme.DEFAULT
    fence: bool = True
    group_by_kind: bool = False
    highlight: List[str] = field(default_factory=list)
    show_versions: bool = False
    show_signatures: bool = False
