"""
Configuration management for cargo-provides.

Settings come from built-in defaults, then the first config file found
(JSON or YAML), then ``CARGO_PROVIDES_*`` environment variables. Command-line
flags are applied on top by the CLI.
"""

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console

console = Console(stderr=True)

ENV_PREFIX = "CARGO_PROVIDES_"


@dataclass
class LockfileConfig:
    """Where to find the lockfile and how much of it to accept."""

    filename: str = "Cargo.lock"
    manifest_filename: str = "Cargo.toml"
    max_file_size_mb: int = 10

    @property
    def max_file_size_bytes(self) -> int:
        """Convert MB to bytes for internal use."""
        return self.max_file_size_mb * 1024 * 1024


@dataclass
class OutputConfig:
    """What ends up on stdout."""

    namespace: str = "crate"
    emit_licenses: bool = True
    vendor_dir_name: str = "vendor"


@dataclass
class LoggingConfig:
    """Diagnostics written to stderr."""

    log_level: str = "WARNING"
    log_format: str = "%(levelname)s -> %(name)s: %(message)s"
    enable_json: bool = False


@dataclass
class ProvidesConfig:
    """Main configuration containing all subsections."""

    lockfile: LockfileConfig = field(default_factory=LockfileConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTION_TYPES = {
    "lockfile": LockfileConfig,
    "output": OutputConfig,
    "logging": LoggingConfig,
}

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# Global configuration instance
_global_config: Optional[ProvidesConfig] = None


def _type_errors(section_name: str, section: Any) -> List[str]:
    errors = []
    for spec in fields(section):
        expected = type(spec.default)
        value = getattr(section, spec.name)
        # bool is an int subclass
        if not isinstance(value, expected) or (
            expected is int and isinstance(value, bool)
        ):
            errors.append(
                f"{section_name}.{spec.name} must be of type {expected.__name__}, "
                f"got {type(value).__name__}"
            )
    return errors


def validate_config_values(config: ProvidesConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    A section holding a value of the wrong type is reported once per field
    and skips the value checks below.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []
    mistyped = set()
    for section_name in _SECTION_TYPES:
        section_errors = _type_errors(section_name, getattr(config, section_name))
        if section_errors:
            mistyped.add(section_name)
            errors.extend(section_errors)

    if "lockfile" not in mistyped:
        if not config.lockfile.filename or "/" in config.lockfile.filename:
            errors.append("lockfile.filename must be a bare file name")
        if (
            not config.lockfile.manifest_filename
            or "/" in config.lockfile.manifest_filename
        ):
            errors.append("lockfile.manifest_filename must be a bare file name")
        if config.lockfile.max_file_size_mb <= 0:
            errors.append("lockfile.max_file_size_mb must be a positive integer")

    if "output" not in mistyped:
        namespace = config.output.namespace
        if not namespace or any(ch in namespace for ch in "() \t"):
            errors.append(
                "output.namespace must be non-empty without spaces or parentheses"
            )
        if not config.output.vendor_dir_name:
            errors.append("output.vendor_dir_name must not be empty")

    if "logging" not in mistyped and (
        config.logging.log_level.upper() not in _VALID_LOG_LEVELS
    ):
        errors.append(
            f"logging.log_level must be one of {', '.join(sorted(_VALID_LOG_LEVELS))}"
        )

    return errors


def _section_of(error: str) -> str:
    return error.split(".", 1)[0]


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from file."""
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            if config_path.suffix.lower() in [".yaml", ".yml"]:
                data = yaml.safe_load(f)
            elif config_path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                return None
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(
            f"⚠️  Error loading config from {config_path}: {e}", style="yellow"
        )
        return None

    if not isinstance(data, dict):
        console.print(
            f"⚠️  Ignoring config {config_path}: top level must be a mapping",
            style="yellow",
        )
        return None
    return data


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".cargo-provides.json",
        Path.cwd() / ".cargo-provides.yaml",
        Path.cwd() / ".cargo-provides.yml",
        Path.home() / ".config" / "cargo-provides" / "config.json",
        Path.home() / ".config" / "cargo-provides" / "config.yaml",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: ProvidesConfig) -> None:
    """Load ``CARGO_PROVIDES_*`` environment variable overrides."""

    def get_env_bool(key: str, default: bool) -> bool:
        value = os.environ.get(ENV_PREFIX + key, "").lower()
        return value in ["true", "1", "yes", "on"] if value else default

    def get_env_int(key: str) -> Optional[int]:
        try:
            return int(os.environ[ENV_PREFIX + key]) if ENV_PREFIX + key in os.environ else None
        except ValueError:
            console.print(
                f"⚠️  Invalid integer value for {ENV_PREFIX + key}, using default",
                style="yellow",
            )
            return None

    if filename := os.environ.get(ENV_PREFIX + "LOCKFILE_NAME"):
        config.lockfile.filename = filename
    if max_file_size := get_env_int("MAX_FILE_SIZE_MB"):
        config.lockfile.max_file_size_mb = max_file_size

    if namespace := os.environ.get(ENV_PREFIX + "NAMESPACE"):
        config.output.namespace = namespace
    if vendor_dir := os.environ.get(ENV_PREFIX + "VENDOR_DIR"):
        config.output.vendor_dir_name = vendor_dir
    config.output.emit_licenses = get_env_bool(
        "EMIT_LICENSES", config.output.emit_licenses
    )

    if log_level := os.environ.get(ENV_PREFIX + "LOG_LEVEL"):
        config.logging.log_level = log_level.upper()
    config.logging.enable_json = get_env_bool("LOG_JSON", config.logging.enable_json)


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """Apply configuration from dictionary to config section."""
    if not isinstance(section_data, dict):
        console.print(
            f"⚠️  Config section {section_name} must be a mapping, ignoring",
            style="yellow",
        )
        return

    for key, value in section_data.items():
        if hasattr(config, key):
            setattr(config, key, value)
        else:
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )


def load_config() -> ProvidesConfig:
    """Load configuration from file and environment."""
    global _global_config

    if _global_config is not None:
        return _global_config

    config = ProvidesConfig()

    config_file = find_config_file()
    if config_file:
        file_config = load_config_file(config_file)
        if file_config:
            for section_name in _SECTION_TYPES:
                if section_name in file_config:
                    apply_config_section(
                        getattr(config, section_name),
                        file_config[section_name],
                        section_name,
                    )

    load_environment_overrides(config)

    validation_errors = validate_config_values(config)
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")
        console.print("Using default values for invalid settings.", style="yellow")
        for section_name in sorted({_section_of(e) for e in validation_errors}):
            setattr(config, section_name, _SECTION_TYPES[section_name]())

    _global_config = config
    return config


def get_config() -> ProvidesConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _global_config
    _global_config = None


def create_sample_config() -> str:
    """Generate a sample configuration file holding the defaults."""
    return json.dumps(asdict(ProvidesConfig()), indent=2)
