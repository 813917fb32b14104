"""
License summary for vendored crates.

Reads the ``license`` field of every vendored crate manifest and folds the
results into a single ``License:`` tag for the spec file.
"""

from pathlib import Path
from typing import Iterable, List, Optional, Union

from .cli_config import get_config
from .dependency import DependencyRecord
from .error_handling import ErrorCategory, get_error_handler
from .parsers import load_toml, read_text_file
from .structured_logging import get_license_logger

# Spellings that mean the same expression
LICENSE_ALIASES = {
    "( MIT OR Apache-2.0 )": "( Apache-2.0 OR MIT )",
}


def normalize_license(expression: str) -> str:
    """
    Normalize a Cargo license expression for an RPM ``License:`` tag.

    The legacy ``/`` separator becomes ``OR`` and compound expressions are
    parenthesized so they can be joined with ``AND``.
    """
    license_expr = expression.replace(" / ", " OR ").replace("/", " OR ")

    if "OR" in license_expr or "AND" in license_expr:
        license_expr = f"( {license_expr} )"

    return LICENSE_ALIASES.get(license_expr, license_expr)


def vendored_crate_dir(vendor_dir: Path, record: DependencyRecord) -> Path:
    """Directory of a crate inside a ``cargo vendor`` tree."""
    versioned = vendor_dir / f"{record.name}-{record.version}"
    if versioned.is_dir():
        return versioned
    return vendor_dir / record.name


def check_crate_license(crate_dir: Path) -> Optional[str]:
    """
    Read the license of a single vendored crate.

    Args:
        crate_dir: Directory holding the crate's Cargo.toml

    Returns:
        Optional[str]: Normalized license expression, or None if it has to be
        checked by hand

    Raises:
        ParseError: If the manifest is not valid TOML
    """
    manifest = crate_dir / get_config().lockfile.manifest_filename
    logger = get_license_logger()
    error_handler = get_error_handler()
    logger.debug("license_checked", manifest=str(manifest))

    if not manifest.is_file():
        error_handler.warning(
            ErrorCategory.LICENSE,
            f"Unable to check license from {manifest}. You may need to check this manually",
            "licenses",
            "check_crate_license",
            details={"file_path": str(manifest)},
        )
        return None

    data = load_toml(read_text_file(manifest), manifest)
    package = data.get("package")
    if not isinstance(package, dict):
        package = {}

    license_expr = package.get("license")
    license_file = package.get("license-file")

    if isinstance(license_expr, str) and license_expr.strip():
        return normalize_license(license_expr.strip())

    if isinstance(license_file, str) and license_file:
        message = (
            f"Unable to find license in {manifest}. "
            f"You may need to check {crate_dir / license_file} for details."
        )
    else:
        message = f"Unable to determine license for {manifest}. You must manually investigate!"

    logger.debug("license_missing", manifest=str(manifest))
    error_handler.warning(
        ErrorCategory.LICENSE,
        message,
        "licenses",
        "check_crate_license",
        details={"file_path": str(manifest)},
    )
    return None


def collect_licenses(
    records: Iterable[DependencyRecord], vendor_dir: Union[str, Path]
) -> List[str]:
    """
    Collect the distinct licenses of every bundled crate found in ``vendor_dir``.

    Args:
        records: Parsed lockfile records
        vendor_dir: Root of the vendored sources

    Returns:
        List[str]: Sorted, de-duplicated license expressions
    """
    vendor_dir = Path(vendor_dir)
    licenses = set()
    for record in records:
        if not record.is_bundled:
            continue
        license_expr = check_crate_license(vendored_crate_dir(vendor_dir, record))
        if license_expr:
            licenses.add(license_expr)
    return sorted(licenses)


def render_license_line(licenses: List[str]) -> Optional[str]:
    if not licenses:
        return None
    return "License: " + " AND ".join(licenses)
