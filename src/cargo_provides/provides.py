from typing import Iterable, List, Optional

from .cli_config import get_config
from .dependency import DependencyRecord, ProvidesEntry
from .structured_logging import get_provides_logger
from .versions import normalize_version

CRATE_NAMESPACE = "crate"


def make_subject(name: str, namespace: str = CRATE_NAMESPACE) -> str:
    """Virtual capability name of a bundled package, e.g. ``crate(serde)``."""
    return f"{namespace}({name})"


def generate(
    records: Iterable[DependencyRecord], namespace: Optional[str] = None
) -> List[ProvidesEntry]:
    """
    Build the ``Provides: bundled(...)`` entries for a set of locked packages.

    Workspace crates are dropped, versions are rewritten into RPM grammar and
    every distinct (subject, version) pair is kept once, so a crate locked at
    two versions yields two entries. The result is sorted by subject, then
    version, and does not depend on the order of ``records``.

    Both keys compare as plain strings, so ``0.2.10`` sorts before ``0.2.9``.
    RPM does not care about the order of Provides lines; only stability matters.

    Args:
        records: Parsed lockfile records
        namespace: Subject namespace, defaults to the configured one

    Returns:
        List[ProvidesEntry]: Sorted, duplicate free entries
    """
    if namespace is None:
        namespace = get_config().output.namespace

    entries = {
        ProvidesEntry(
            subject=make_subject(record.name, namespace),
            version=normalize_version(record.version),
        )
        for record in records
        if record.is_bundled
    }
    result = sorted(entries, key=lambda entry: (entry.subject, entry.version))

    get_provides_logger().debug(
        "provides_generated", namespace=namespace, count=len(result)
    )
    return result


def render_provides(entries: Iterable[ProvidesEntry]) -> List[str]:
    return [entry.render() for entry in entries]
