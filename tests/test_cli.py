"""Tests for CLI entry point."""

from __future__ import annotations

import json

from click.testing import CliRunner

from shuttle.__main__ import cli

from conftest import PYTHON


class TestCLI:
    """Test CLI commands."""

    def test_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Shuttle" in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_subcommand_help(self):
        runner = CliRunner()
        for name in ("run", "output", "pipe", "script", "split", "splat", "which"):
            result = runner.invoke(cli, [name, "--help"])
            assert result.exit_code == 0, name

    def test_bad_config(self, tmp_path):
        path = tmp_path / "shuttle.toml"
        path.write_text("[logging\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(path), "split", "a"])
        assert result.exit_code == 1
        assert "Configuration error" in result.output


class TestTextCommands:
    def test_split(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["split", "git commit -m 'first commit'"])
        assert result.exit_code == 0
        assert json.loads(result.output) == ["git", "commit", "-m", "first commit"]

    def test_splat_json(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["splat", '{"foo": "bar", "yes": true}'])
        assert result.exit_code == 0
        assert json.loads(result.output) == ["--foo", "bar", "--yes"]

    def test_splat_yaml_with_options(self):
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["splat", "--assign", "=", "--argument-name", "src", "{src: a, level: 3}"],
        )
        assert result.exit_code == 0
        assert json.loads(result.output) == ["a", "--level=3"]

    def test_splat_rejects_non_mapping(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["splat", "[1, 2]"])
        assert result.exit_code != 0
        assert "mapping" in result.output


class TestProcessCommands:
    def test_which(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["which", PYTHON])
        assert result.exit_code == 0
        assert result.output.strip() == PYTHON

    def test_which_missing(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["which", "shuttle-definitely-not-installed-xyz"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_output(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["output", PYTHON, "-c", "print('from child')"])
        assert result.exit_code == 0
        assert "from child" in result.output

    def test_output_json(self):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["output", "--json", PYTHON, "-c", "import sys; print('x'); sys.exit(2)"]
        )
        assert result.exit_code == 2
        record = json.loads(result.output)
        assert record["code"] == 2
        assert record["success"] is False
        assert record["stdout"].strip() == "x"

    def test_output_env(self):
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["output", "--env", "SHUTTLE_CLI=yes", PYTHON, "-c",
             "import os; print(os.environ['SHUTTLE_CLI'])"],
        )
        assert result.exit_code == 0
        assert "yes" in result.output

    def test_output_bad_env(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["output", "--env", "NOEQUALS", PYTHON, "-c", "pass"])
        assert result.exit_code != 0
        assert "KEY=VALUE" in result.output

    def test_output_missing_executable(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["output", "shuttle-definitely-not-installed-xyz"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_run_exit_code(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["run", PYTHON, "-c", "import sys; sys.exit(3)"])
        assert result.exit_code == 3

    def test_run_check(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["run", "--check", PYTHON, "-c", "import sys; sys.exit(3)"])
        assert result.exit_code == 1
        assert "exited with code 3" in result.output

    def test_pipe(self):
        runner = CliRunner()
        emit = f"'{PYTHON}' -c \"print('b'); print('a')\""
        sort = f"'{PYTHON}' -c \"import sys; print(' '.join(sorted(sys.stdin.read().split())))\""
        result = runner.invoke(cli, ["pipe", emit, sort])
        assert result.exit_code == 0
        assert result.output.strip() == "a b"

    def test_script_python(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["script", "--shell", "python", "import sys\nsys.exit(6)\n"])
        assert result.exit_code == 6

    def test_script_unknown_shell(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["script", "--shell", "fish", "echo hi"])
        assert result.exit_code != 0
        assert "fish" in result.output

    def test_echo_commands(self, tmp_path):
        path = tmp_path / "shuttle.toml"
        path.write_text("[logging]\necho_commands = true\n")
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(path), "output", PYTHON, "-c", "pass"])
        assert result.exit_code == 0
        assert "$ " in result.output
