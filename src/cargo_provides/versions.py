"""
Cargo (SemVer) to RPM version mapping.

RPM forbids ``-`` in a Version tag and orders ``~`` before the empty string,
so SemVer pre-releases map onto the tilde convention and stay ordered below
their release. Build metadata keeps its ``+`` marker. Hyphens inside
identifiers become ``_``, a character SemVer identifiers never contain, which
keeps the mapping injective.
"""

import re
from typing import Dict

SEMVER_PATTERN = re.compile(
    r"^(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

RPM_VERSION_PATTERN = re.compile(r"^[A-Za-z0-9._+~^]+$")

RPM_VERSION_SUBSTITUTIONS: Dict[str, str] = {
    "pre_release_separator": "~",
    "pre_release_hyphen": "_",
    "build_separator": "+",
    "build_hyphen": "_",
}


def is_semver(version: str) -> bool:
    return bool(SEMVER_PATTERN.match(version))


def is_rpm_version(version: str) -> bool:
    return bool(RPM_VERSION_PATTERN.match(version))


def normalize_version(version: str) -> str:
    """
    Rewrite a Cargo version into the RPM version grammar.

    ``1.0.0-alpha.1`` becomes ``1.0.0~alpha.1``, ``0.3.0-rc-2`` becomes
    ``0.3.0~rc_2`` and ``1.0.0-beta+exp-sha.5`` becomes ``1.0.0~beta+exp_sha.5``.
    A version that already fits the RPM grammar is returned unchanged.

    Args:
        version: Version string from the lockfile

    Returns:
        str: The RPM rendering

    Raises:
        ValueError: If the result still is not a valid RPM version
    """
    table = RPM_VERSION_SUBSTITUTIONS

    release, has_build, build = version.partition("+")
    core, has_pre, pre = release.partition("-")

    normalized = core
    if has_pre:
        normalized += table["pre_release_separator"] + pre.replace(
            "-", table["pre_release_hyphen"]
        )
    if has_build:
        normalized += table["build_separator"] + build.replace(
            "-", table["build_hyphen"]
        )

    if not is_rpm_version(normalized):
        raise ValueError(f"Cannot express version {version!r} in RPM grammar")
    return normalized
