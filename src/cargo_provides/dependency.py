from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SourceKind(Enum):
    """Where a locked crate comes from."""

    REGISTRY = "registry"
    GIT = "git"
    PATH = "path"
    WORKSPACE_LOCAL = "workspace-local"


@dataclass(frozen=True)
class DependencyRecord:
    """One resolved ``[[package]]`` entry of a lockfile."""

    name: str
    version: str
    source: SourceKind
    source_url: Optional[str] = None
    checksum: Optional[str] = None

    @property
    def is_bundled(self) -> bool:
        return self.source is not SourceKind.WORKSPACE_LOCAL


@dataclass(frozen=True)
class ProvidesEntry:
    """A ``Provides: bundled(...)`` declaration for an RPM spec file."""

    subject: str
    version: str

    def render(self) -> str:
        return f"Provides: bundled({self.subject}) = {self.version}"
