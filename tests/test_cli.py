"""
CLI interface tests for cargo-provides.
Tests the command-line interface and main entry points.
"""

import json

import pytest
from click.testing import CliRunner

from cargo_provides.main import cli, main


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_help(self):
        """Test CLI help message."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "cargo-provides" in result.output.lower()

    def test_cli_version(self):
        """Test CLI version display."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_sample_config(self):
        """Test printing a sample configuration."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--sample-config"])

        assert result.exit_code == 0
        config_data = json.loads(result.stdout)
        assert config_data["output"]["namespace"] == "crate"


class TestProvidesCommand:
    """Test the Provides output."""

    def test_single_dependency(self, sample_cargo_lock):
        """Test the app + serde scenario end to end."""
        runner = CliRunner()
        result = runner.invoke(cli, [str(sample_cargo_lock)])

        assert result.exit_code == 0
        assert result.stdout == "Provides: bundled(crate(serde)) = 1.0.210\n"

    def test_defaults_to_current_directory(self, sample_cargo_lock, monkeypatch):
        """Test running without a path argument."""
        monkeypatch.chdir(sample_cargo_lock)

        runner = CliRunner()
        result = runner.invoke(cli, [])

        assert result.exit_code == 0
        assert result.stdout == "Provides: bundled(crate(serde)) = 1.0.210\n"

    def test_lockfile_path_argument(self, sample_cargo_lock):
        """Test passing the lockfile itself."""
        runner = CliRunner()
        result = runner.invoke(cli, [str(sample_cargo_lock / "Cargo.lock")])

        assert result.exit_code == 0
        assert "crate(serde)" in result.stdout

    def test_output_is_idempotent(self, vendored_workspace):
        """Test that two runs print identical bytes."""
        runner = CliRunner()
        first = runner.invoke(cli, [str(vendored_workspace)])
        second = runner.invoke(cli, [str(vendored_workspace)])

        assert first.exit_code == 0
        assert first.stdout == second.stdout

    def test_namespace_option(self, sample_cargo_lock):
        """Test overriding the subject namespace."""
        runner = CliRunner()
        result = runner.invoke(cli, [str(sample_cargo_lock), "--namespace", "rust"])

        assert result.exit_code == 0
        assert result.stdout == "Provides: bundled(rust(serde)) = 1.0.210\n"

    def test_no_licenses(self, vendored_workspace):
        """Test suppressing the License line."""
        runner = CliRunner()
        result = runner.invoke(cli, [str(vendored_workspace), "--no-licenses"])

        assert result.exit_code == 0
        assert "License:" not in result.stdout
        assert len(result.stdout.splitlines()) == 4

    def test_vendor_dir_argument(self, vendored_workspace, temp_dir):
        """Test the positional vendor directory."""
        moved = temp_dir / "elsewhere"
        (vendored_workspace / "vendor").rename(moved)

        runner = CliRunner()
        result = runner.invoke(cli, [str(vendored_workspace), str(moved)])

        assert result.exit_code == 0
        assert result.stdout.splitlines()[-1].startswith("License: ")

    def test_missing_explicit_vendor_dir(self, sample_cargo_lock, temp_dir):
        """Test that a missing vendor dir is reported but not fatal."""
        runner = CliRunner()
        result = runner.invoke(
            cli, [str(sample_cargo_lock), "--vendor-dir", str(temp_dir / "nope")]
        )

        assert result.exit_code == 0
        assert result.stdout == "Provides: bundled(crate(serde)) = 1.0.210\n"
        assert "could not find vendor dir" in result.stderr


class TestErrorHandling:
    """Test CLI error handling."""

    def test_malformed_lockfile(self, malformed_cargo_lock):
        """Test that a parse failure prints nothing on stdout."""
        runner = CliRunner()
        result = runner.invoke(cli, [str(malformed_cargo_lock)])

        assert result.exit_code == 1
        assert result.stdout == ""
        assert "Error" in result.stderr
        assert "Invalid TOML" in result.stderr

    def test_missing_lockfile(self, temp_dir):
        """Test a directory without Cargo.lock."""
        runner = CliRunner()
        result = runner.invoke(cli, [str(temp_dir)])

        assert result.exit_code == 1
        assert result.stdout == ""
        assert "lockfile not found" in result.stderr

    def test_schema_error(self, temp_dir):
        """Test a lockfile with no packages."""
        (temp_dir / "Cargo.lock").write_text("version = 3\n")

        runner = CliRunner()
        result = runner.invoke(cli, [str(temp_dir)])

        assert result.exit_code == 1
        assert result.stdout == ""
        assert "[[package]]" in result.stderr

    def test_vendor_dir_given_twice(self, sample_cargo_lock, temp_dir):
        """Test the usage error for two vendor directories."""
        runner = CliRunner()
        result = runner.invoke(
            cli,
            [str(sample_cargo_lock), str(temp_dir), "--vendor-dir", str(temp_dir)],
        )

        assert result.exit_code == 2

    def test_invalid_namespace(self, sample_cargo_lock):
        """Test namespace validation."""
        runner = CliRunner()
        result = runner.invoke(cli, [str(sample_cargo_lock), "--namespace", "a b"])

        assert result.exit_code == 2

    def test_keyboard_interrupt(self, sample_cargo_lock, monkeypatch):
        """Test that an interrupt exits with 130 and prints nothing."""

        def interrupted(*args, **kwargs):
            raise KeyboardInterrupt

        monkeypatch.setattr("cargo_provides.main.build_output", interrupted)

        runner = CliRunner()
        result = runner.invoke(cli, [str(sample_cargo_lock)])

        assert result.exit_code == 130
        assert result.stdout == ""
        assert "Interrupted" in result.stderr

    def test_invalid_log_format(self, sample_cargo_lock):
        """Test an unknown diagnostics format."""
        runner = CliRunner()
        result = runner.invoke(cli, [str(sample_cargo_lock), "--log-format", "xml"])

        assert result.exit_code != 0


class TestDiagnostics:
    """Test debug and structured diagnostics."""

    def test_debug_goes_to_stderr(self, sample_cargo_lock):
        """Test that debug output never pollutes stdout."""
        runner = CliRunner()
        result = runner.invoke(cli, [str(sample_cargo_lock), "--debug"])

        assert result.exit_code == 0
        assert result.stdout == "Provides: bundled(crate(serde)) = 1.0.210\n"
        assert "lockfile_parsed" in result.stderr
        assert "package_record" in result.stderr

    def test_json_diagnostics(self, sample_cargo_lock):
        """Test one JSON object per diagnostic line."""
        runner = CliRunner()
        result = runner.invoke(
            cli, [str(sample_cargo_lock), "--debug", "--log-format", "json"]
        )

        assert result.exit_code == 0
        events = [json.loads(line) for line in result.stderr.splitlines() if line]
        assert any(e.get("event_type") == "lockfile_parsed" for e in events)
        parsed = next(e for e in events if e.get("event_type") == "lockfile_parsed")
        assert parsed["count"] == 2


class TestCargoSubcommand:
    """Test the console entry point."""

    def test_cargo_passes_subcommand_name(self, sample_cargo_lock, capsys):
        """Test `cargo provides DIR`, which runs `cargo-provides provides DIR`."""
        with pytest.raises(SystemExit) as exc_info:
            main(["provides", str(sample_cargo_lock)])

        assert exc_info.value.code == 0
        assert capsys.readouterr().out == "Provides: bundled(crate(serde)) = 1.0.210\n"

    def test_direct_invocation(self, sample_cargo_lock, capsys):
        """Test running the script directly."""
        with pytest.raises(SystemExit) as exc_info:
            main([str(sample_cargo_lock)])

        assert exc_info.value.code == 0
        assert "crate(serde)" in capsys.readouterr().out
