import sys
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.markup import escape

from .cli_config import create_sample_config, load_config
from .error_handling import ErrorCategory, ReadError, get_error_handler
from .licenses import collect_licenses, render_license_line
from .parsers import read_lockfile
from .provides import generate, render_provides
from .structured_logging import EventLogger, configure_logging

__version__ = "1.0.0"

# cargo runs `cargo-provides provides ...` for `cargo provides ...`
CARGO_SUBCOMMAND = "provides"

console = Console(stderr=True)
logger = EventLogger("cli")


def build_output(
    workdir: Path,
    vendor_dir: Optional[Path] = None,
    namespace: Optional[str] = None,
    emit_licenses: Optional[bool] = None,
) -> List[str]:
    """
    Produce every stdout line for one run.

    All reading happens here, so a failure leaves nothing half printed.

    Args:
        workdir: Directory holding Cargo.lock, or the lockfile itself
        vendor_dir: Vendored sources; defaults to ``<workdir>/vendor``
        namespace: Subject namespace override
        emit_licenses: Whether to add the ``License:`` line

    Returns:
        List[str]: ``Provides:`` lines followed by an optional ``License:`` line

    Raises:
        ReadError: If the lockfile or a vendored manifest cannot be read
    """
    config = load_config()
    if emit_licenses is None:
        emit_licenses = config.output.emit_licenses

    records = read_lockfile(workdir)
    lines = render_provides(generate(records, namespace))

    if not emit_licenses:
        return lines

    base_dir = workdir if workdir.is_dir() else workdir.parent
    explicit = vendor_dir is not None
    if vendor_dir is None:
        vendor_dir = base_dir / config.output.vendor_dir_name

    if vendor_dir.is_dir():
        logger.debug("vendor_dir_found", path=str(vendor_dir))
        license_line = render_license_line(collect_licenses(records, vendor_dir))
        if license_line:
            lines.append(license_line)
    elif explicit:
        get_error_handler().error(
            ErrorCategory.FILESYSTEM,
            f"could not find vendor dir {vendor_dir}",
            "main",
            "build_output",
            details={"file_path": str(vendor_dir)},
            suggestions=["Run `cargo vendor` first or drop the vendor directory argument"],
        )
    else:
        logger.debug("vendor_dir_missing", path=str(vendor_dir))

    return lines


@click.command(name="cargo-provides")
@click.argument("workdir", required=False, type=click.Path(path_type=Path))
@click.argument("vendordir", required=False, type=click.Path(path_type=Path))
@click.option(
    "--vendor-dir",
    "vendor_dir_option",
    type=click.Path(path_type=Path),
    help="Vendored sources used for the License line (default: <workdir>/vendor)",
)
@click.option("--debug", "-d", is_flag=True, help="Write debug diagnostics to stderr")
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    help="Format of stderr diagnostics (default from config or text)",
)
@click.option("--no-licenses", is_flag=True, help="Do not emit the License line")
@click.option(
    "--namespace",
    help="Namespace of the bundled capability (default from config or crate)",
)
@click.option(
    "--sample-config", is_flag=True, help="Print a sample configuration file and exit"
)
@click.version_option(__version__, prog_name="cargo-provides")
def cli(
    workdir: Optional[Path],
    vendordir: Optional[Path],
    vendor_dir_option: Optional[Path],
    debug: bool,
    log_format: Optional[str],
    no_licenses: bool,
    namespace: Optional[str],
    sample_config: bool,
) -> None:
    """
    📦 cargo-provides: bundled crate Provides for RPM spec files

    Reads WORKDIR/Cargo.lock (WORKDIR defaults to the current directory, or may
    be the lockfile itself) and prints one `Provides: bundled(crate(NAME)) =
    VERSION` line per vendored crate, ready to paste into a spec file.

    Examples:

      cargo-provides

      cargo provides path/to/project

      cargo-provides path/to/project --vendor-dir path/to/vendor --debug
    """
    if sample_config:
        click.echo(create_sample_config())
        return

    config = load_config()
    enable_json = (
        log_format.lower() == "json" if log_format else config.logging.enable_json
    )
    configure_logging(
        "DEBUG" if debug else config.logging.log_level,
        enable_json=enable_json,
        log_format=config.logging.log_format,
    )

    if vendordir is not None and vendor_dir_option is not None:
        raise click.UsageError(
            "Pass the vendor directory either as an argument or with --vendor-dir"
        )
    if namespace is not None and (
        not namespace or any(ch in namespace for ch in "() \t")
    ):
        raise click.BadParameter(
            "must be non-empty without spaces or parentheses", param_hint="--namespace"
        )

    workdir = workdir or Path.cwd()
    vendor_dir = vendordir or vendor_dir_option
    logger.debug(
        "invocation",
        workdir=str(workdir),
        vendor_dir=str(vendor_dir) if vendor_dir else None,
    )

    try:
        lines = build_output(
            workdir,
            vendor_dir=vendor_dir,
            namespace=namespace,
            emit_licenses=False if no_licenses else None,
        )
    except KeyboardInterrupt:
        console.print("\n⚠️  Interrupted by user", style="yellow")
        sys.exit(130)
    except ReadError as e:
        console.print(f"❌ Error: {escape(str(e))}", style="red", soft_wrap=True)
        sys.exit(1)

    for line in lines:
        click.echo(line)

    logger.debug("success", lines=len(lines))


def main(argv: Optional[List[str]] = None) -> None:
    """Console entry point, also reachable as ``cargo provides``."""
    args = sys.argv[1:] if argv is None else list(argv)
    if args[:1] == [CARGO_SUBCOMMAND]:
        args = args[1:]
    cli.main(args=args, prog_name="cargo-provides")


if __name__ == "__main__":
    main()
