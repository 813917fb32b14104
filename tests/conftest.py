"""
Shared fixtures for cargo-provides tests.
"""

import os

import pytest

from cargo_provides.cli_config import reset_config
from cargo_provides.error_handling import setup_error_handling
from cargo_provides.structured_logging import configure_logging

REGISTRY = "registry+https://github.com/rust-lang/crates.io-index"

SIMPLE_LOCK = f"""# This file is automatically @generated by Cargo.
# It is not intended for manual editing.
version = 3

[[package]]
name = "app"
version = "0.1.0"
dependencies = [
 "serde",
]

[[package]]
name = "serde"
version = "1.0.210"
source = "{REGISTRY}"
checksum = "c8e3592472072e6e22e0a54d5904d9febf8508f65fb8552499a1abc7d1078c3a"
"""

WORKSPACE_LOCK = f"""version = 3

[[package]]
name = "app"
version = "0.1.0"
dependencies = [
 "libc 0.2.100",
 "libc 0.2.150",
 "serde",
 "tokio",
]

[[package]]
name = "libc"
version = "0.2.150"
source = "{REGISTRY}"

[[package]]
name = "libc"
version = "0.2.100"
source = "{REGISTRY}"

[[package]]
name = "serde"
version = "1.0.210"
source = "{REGISTRY}"

[[package]]
name = "tokio"
version = "1.0.0-alpha.1"
source = "{REGISTRY}"
"""

MALFORMED_LOCK = """version = 3

[[package]]
name = "serde"
version = "1.0.210"

[[package
name = "app"
version = "0.1.0"
"""


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep user config, environment and global state out of every test."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for key in list(os.environ):
        if key.startswith("CARGO_PROVIDES_"):
            monkeypatch.delenv(key)
    reset_config()
    setup_error_handling()
    configure_logging()
    yield
    reset_config()


@pytest.fixture
def temp_dir(tmp_path):
    """Temporary working directory."""
    return tmp_path


@pytest.fixture
def sample_cargo_lock(temp_dir):
    """Project with one workspace crate and one registry dependency."""
    project = temp_dir / "project"
    project.mkdir()
    (project / "Cargo.lock").write_text(SIMPLE_LOCK)
    return project


@pytest.fixture
def malformed_cargo_lock(temp_dir):
    """Project whose lockfile has an unterminated table header."""
    project = temp_dir / "broken"
    project.mkdir()
    (project / "Cargo.lock").write_text(MALFORMED_LOCK)
    return project


@pytest.fixture
def vendored_workspace(temp_dir):
    """Workspace with a lockfile, a root manifest and a vendor tree."""
    project = temp_dir / "workspace"
    project.mkdir()
    (project / "Cargo.lock").write_text(WORKSPACE_LOCK)
    (project / "Cargo.toml").write_text(
        '[package]\nname = "app"\nversion = "0.1.0"\nlicense = "GPL-3.0-or-later"\n'
    )

    vendor = project / "vendor"
    manifests = {
        "serde": ("serde", "1.0.210", "MIT OR Apache-2.0"),
        "libc": ("libc", "0.2.150", "MIT OR Apache-2.0"),
        "libc-0.2.100": ("libc", "0.2.100", "MIT/Apache-2.0"),
        "tokio": ("tokio", "1.0.0-alpha.1", "MIT"),
    }
    for directory, (name, version, license_expr) in manifests.items():
        crate_dir = vendor / directory
        crate_dir.mkdir(parents=True)
        (crate_dir / "Cargo.toml").write_text(
            f'[package]\nname = "{name}"\nversion = "{version}"\n'
            f'license = "{license_expr}"\n'
        )
    return project
