from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

import toml

from .cli_config import get_config
from .dependency import DependencyRecord, SourceKind
from .error_handling import (
    ErrorCallback,
    ErrorCategory,
    NotFound,
    ParseError,
    ReadError,
    SchemaError,
    get_error_handler,
    report_read_error,
)
from .structured_logging import describe_context, get_lockfile_logger
from .versions import is_semver

SOURCE_PREFIXES = {
    "registry+": SourceKind.REGISTRY,
    "sparse+": SourceKind.REGISTRY,
    "git+": SourceKind.GIT,
    "path+": SourceKind.PATH,
}


def resolve_lockfile_path(path: Union[str, Path]) -> Path:
    """
    Turn a user supplied path into the lockfile to read.

    Args:
        path: The lockfile itself or a directory expected to contain it

    Returns:
        Path: Path of an existing lockfile

    Raises:
        NotFound: If there is no lockfile at the resolved path
    """
    config = get_config()
    candidate = Path(path)
    if candidate.is_dir():
        candidate = candidate / config.lockfile.filename

    if not candidate.exists():
        raise NotFound("lockfile not found", candidate)
    if not candidate.is_file():
        raise NotFound("lockfile is not a regular file", candidate)

    get_lockfile_logger().debug("lockfile_resolved", path=str(candidate))
    return candidate


def read_text_file(path: Path) -> str:
    """
    Read a TOML document with a size limit.

    Raises:
        ReadError: If the file is too large or cannot be read
        ParseError: If the file is not UTF-8
    """
    max_file_size = get_config().lockfile.max_file_size_bytes
    try:
        file_size = path.stat().st_size
        if file_size > max_file_size:
            raise ReadError(
                f"File too large: {file_size} bytes (max: {max_file_size})", path
            )
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ParseError("File contains invalid UTF-8 characters", path) from e
    except PermissionError as e:
        raise ReadError("Permission denied reading file", path) from e
    except OSError as e:
        raise ReadError(f"Error reading file: {e.strerror or e}", path) from e


def load_toml(content: str, path: Union[str, Path]) -> Dict[str, Any]:
    try:
        return toml.loads(content)
    except toml.TomlDecodeError as e:
        raise ParseError(
            f"Invalid TOML format: {e.msg}", path, line=e.lineno, column=e.colno
        ) from e
    except Exception as e:
        # The toml decoder raises plain errors on some truncated documents
        raise ParseError(f"Invalid TOML format: {e}", path) from e


DEPENDENCY_TABLES = ("dependencies", "dev-dependencies", "build-dependencies")


def _package_name(data: Dict[str, Any]) -> Optional[str]:
    package = data.get("package")
    if isinstance(package, dict) and isinstance(package.get("name"), str):
        return package["name"]
    return None


def _path_dependency_dirs(data: Dict[str, Any], base: Path) -> List[Path]:
    """Directories of every ``path`` dependency declared by a manifest."""
    tables = [data.get(name) for name in DEPENDENCY_TABLES]
    targets = data.get("target")
    if isinstance(targets, dict):
        for target in targets.values():
            if isinstance(target, dict):
                tables.extend(target.get(name) for name in DEPENDENCY_TABLES)

    dirs = []
    for table in tables:
        if not isinstance(table, dict):
            continue
        for spec in table.values():
            if isinstance(spec, dict) and isinstance(spec.get("path"), str):
                dirs.append((base / spec["path"]).resolve())
    return dirs


def find_workspace_members(root: Union[str, Path]) -> Optional[Set[str]]:
    """
    Collect the crate names that make up the workspace rooted at ``root``.

    The root manifest's own ``[package]`` counts, as does every crate matched
    by ``[workspace].members`` that is not listed in ``exclude``. Inside a
    ``[workspace]``, path dependencies of members that live under ``root``
    are members too, the same way cargo adds them implicitly.

    Args:
        root: Directory holding the lockfile

    Returns:
        Optional[Set[str]]: Workspace crate names, or None if there is no
        readable workspace manifest
    """
    root = Path(root)
    manifest_filename = get_config().lockfile.manifest_filename
    manifest = root / manifest_filename
    if not manifest.is_file():
        return None

    error_handler = get_error_handler()
    try:
        data = load_toml(read_text_file(manifest), manifest)
    except ReadError as e:
        error_handler.warning(
            ErrorCategory.PARSING,
            f"Ignoring unreadable workspace manifest: {e}",
            "parsers",
            "find_workspace_members",
            exception=e,
            details={"file_path": str(manifest)},
            suggestions=[
                "Crates without a source are treated as workspace members",
            ],
        )
        return None

    members: Set[str] = set()
    root_name = _package_name(data)
    if root_name:
        members.add(root_name)

    workspace = data.get("workspace")
    if not isinstance(workspace, dict):
        get_lockfile_logger().debug(
            "workspace_members", manifest=str(manifest), members=sorted(members)
        )
        return members

    resolved_root = root.resolve()
    excluded = {
        (root / entry).resolve()
        for entry in workspace.get("exclude", [])
        if isinstance(entry, str)
    }
    patterns = workspace.get("members", [])
    if not isinstance(patterns, list):
        patterns = []

    pending: List[Path] = []
    for pattern in patterns:
        if not isinstance(pattern, str):
            continue
        if pattern in ("", "."):
            continue
        if Path(pattern).is_absolute():
            error_handler.warning(
                ErrorCategory.CONFIGURATION,
                f"Skipping absolute workspace member pattern {pattern!r}",
                "parsers",
                "find_workspace_members",
                details={"file_path": str(manifest)},
            )
            continue
        pending.extend(path.resolve() for path in sorted(root.glob(pattern)))
    pending.extend(_path_dependency_dirs(data, resolved_root))

    seen = {resolved_root}
    while pending:
        member_dir = pending.pop(0)
        if member_dir in seen or member_dir in excluded:
            continue
        seen.add(member_dir)
        if member_dir != resolved_root and resolved_root not in member_dir.parents:
            continue
        member_manifest = member_dir / manifest_filename
        if not member_manifest.is_file():
            continue
        try:
            member_data = load_toml(read_text_file(member_manifest), member_manifest)
        except ReadError as e:
            error_handler.warning(
                ErrorCategory.PARSING,
                f"Ignoring unreadable member manifest: {e}",
                "parsers",
                "find_workspace_members",
                exception=e,
                details={"file_path": str(member_manifest)},
            )
            continue
        name = _package_name(member_data)
        if name:
            members.add(name)
        pending.extend(_path_dependency_dirs(member_data, member_dir))

    get_lockfile_logger().debug(
        "workspace_members", manifest=str(manifest), members=sorted(members)
    )
    return members


def classify_source(
    source: Optional[str], name: str, workspace_members: Optional[Set[str]] = None
) -> SourceKind:
    """
    Classify a lockfile ``source`` value.

    Entries without a source are local crates. Without workspace information
    they are all taken to be part of the project; otherwise only workspace
    members are, and the rest are path dependencies that get bundled.
    """
    if source is None:
        if workspace_members is None or name in workspace_members:
            return SourceKind.WORKSPACE_LOCAL
        return SourceKind.PATH

    for prefix, kind in SOURCE_PREFIXES.items():
        if source.startswith(prefix):
            return kind

    get_lockfile_logger().warning("unknown_source_kind", crate=name, source=source)
    return SourceKind.REGISTRY


def _required_string(package: Dict[str, Any], key: str, origin, index: int) -> str:
    value = package.get(key)
    if value is None:
        raise SchemaError(f"missing required '{key}'", origin, field=key, index=index)
    if not isinstance(value, str) or not value.strip():
        raise SchemaError(
            f"'{key}' must be a non-empty string", origin, field=key, index=index
        )
    return value


def parse_lockfile_text(
    content: str,
    origin: Union[str, Path] = "Cargo.lock",
    workspace_members: Optional[Set[str]] = None,
) -> List[DependencyRecord]:
    """
    Parse the text of a Cargo.lock into dependency records.

    Args:
        content: Lockfile text
        origin: Path reported in errors
        workspace_members: Workspace crate names, see ``find_workspace_members``

    Returns:
        List[DependencyRecord]: One record per ``[[package]]`` entry, in file order

    Raises:
        ParseError: If the text is not valid TOML
        SchemaError: If the package array or a required field is missing
    """
    data = load_toml(content, origin)

    packages = data.get("package")
    if packages is None:
        raise SchemaError("missing top-level [[package]] array", origin, field="package")
    if not isinstance(packages, list):
        raise SchemaError(
            "'package' must be an array of tables", origin, field="package"
        )

    logger = get_lockfile_logger()
    records = []
    # Entries are numbered from 1 in error messages
    for index, package in enumerate(packages, 1):
        if not isinstance(package, dict):
            raise SchemaError("entry is not a table", origin, index=index)

        name = _required_string(package, "name", origin, index)
        version = _required_string(package, "version", origin, index)
        if not is_semver(version):
            raise SchemaError(
                f"version {version!r} is not a semantic version",
                origin,
                field="version",
                index=index,
            )

        source = package.get("source")
        if source is not None and not isinstance(source, str):
            raise SchemaError(
                "'source' must be a string", origin, field="source", index=index
            )
        checksum = package.get("checksum")

        record = DependencyRecord(
            name=name,
            version=version,
            source=classify_source(source, name, workspace_members),
            source_url=source,
            checksum=checksum if isinstance(checksum, str) else None,
        )
        logger.debug(
            "package_record",
            **describe_context(
                crate=record.name,
                version=record.version,
                source=record.source.value,
                source_url=record.source_url,
            ),
        )
        records.append(record)

    return records


def read_lockfile(
    path: Union[str, Path], error_callback: Optional[ErrorCallback] = None
) -> List[DependencyRecord]:
    """
    Locate, read and parse a Cargo.lock.

    Args:
        path: The lockfile or the directory holding it
        error_callback: Optional callback for handling reading errors

    Returns:
        List[DependencyRecord]: Every resolved package, workspace crates included

    Raises:
        NotFound: If no lockfile exists at the resolved path
        ParseError: If the lockfile is not valid TOML
        SchemaError: If required sections or fields are missing
        ReadError: If the file cannot be read
    """
    error_handler = get_error_handler()
    if error_callback:
        error_handler.register_callback(error_callback)

    try:
        lockfile = resolve_lockfile_path(path)
        content = read_text_file(lockfile)
        workspace_members = find_workspace_members(lockfile.parent)
        records = parse_lockfile_text(content, lockfile, workspace_members)
    except ReadError as e:
        report_read_error(e, "parsers", "read_lockfile", exception=e.__cause__)
        raise
    finally:
        if error_callback:
            error_handler.unregister_callback(error_callback)

    get_lockfile_logger().info(
        "lockfile_parsed", path=str(lockfile), count=len(records)
    )
    return records
