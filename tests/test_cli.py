"""Tests for the ScriptIt CLI.

Tests cover:
    - CLI app creation and command registration
    - Global options (--pwd, --debug)
    - Init command behavior
    - Exec command behavior
    - Run command behavior
    - Version command behavior
"""

import textwrap
from pathlib import Path

import pytest
from typer.testing import CliRunner

from scriptit.cli.main import app
from scriptit.core.config import load_runner_config


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """An empty project; cwd and SCRIPTIT_DEBUG are restored afterwards."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SCRIPTIT_DEBUG", "")
    (tmp_path / "scripts").mkdir()
    return tmp_path.resolve()


def write_script(project: Path, name: str, source: str) -> Path:
    path = project / "scripts" / name
    path.write_text(textwrap.dedent(source))
    return path


class TestCliApp:
    """Tests for CLI app structure."""

    def test_app_has_commands(self) -> None:
        """Verify the core commands are registered."""
        command_names = {command.name for command in app.registered_commands}

        assert command_names == {"init", "exec", "run", "version"}

    def test_help_lists_commands(self, cli_runner: CliRunner) -> None:
        """Verify --help mentions every command."""
        result = cli_runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for name in ("init", "exec", "run", "version"):
            assert name in result.output


class TestVersionCommand:
    """Tests for the version command."""

    def test_version_shows_name(self, cli_runner: CliRunner) -> None:
        """Verify the short version output."""
        result = cli_runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert result.output.startswith("scriptit ")

    def test_verbose_lists_dependencies(self, cli_runner: CliRunner) -> None:
        """Verify the verbose output lists dependencies."""
        result = cli_runner.invoke(app, ["version", "--verbose"])

        assert result.exit_code == 0
        assert "Python version:" in result.output
        assert "structlog:" in result.output


class TestGlobalOptions:
    """Tests for --pwd and --debug."""

    def test_missing_pwd_fails(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify a missing --pwd directory exits with 1."""
        result = cli_runner.invoke(app, ["--pwd", str(project / "missing"), "run", "--no-tui"])

        assert result.exit_code == 1
        assert "Directory does not exist" in result.output

    def test_pwd_changes_directory(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify relative paths resolve from --pwd."""
        other = project / "other"
        (other / "scripts").mkdir(parents=True)
        (other / "scripts" / "here.py").write_text("def default(context, r):\n    return 'here'\n")

        result = cli_runner.invoke(app, ["--pwd", str(other), "exec", "scripts/here.py"])

        assert result.exit_code == 0, result.output
        assert "Changing working directory to:" in result.output
        assert "Script result: here" in result.output

    def test_debug_lists_scripts_instead_of_session(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify debug mode falls back to the plain listing."""
        write_script(project, "a.py", "def default(context, r):\n    pass\n")

        result = cli_runner.invoke(app, ["--debug", "run"])

        assert result.exit_code == 0
        assert "Debug mode enabled" in result.output
        assert "Available scripts:" in result.output


class TestInitCommand:
    """Tests for the init command."""

    def test_scaffolds_project(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify init creates the project files."""
        (project / "scripts").rmdir()

        result = cli_runner.invoke(app, ["init"])

        assert result.exit_code == 0, result.output
        assert (project / "scripts" / "example.py").is_file()
        assert (project / "scripts" / "lambda_example.py").is_file()
        assert (project / "tmp").is_dir()
        assert (project / ".env").read_text() == (project / ".env.example").read_text()
        gitignore = (project / ".gitignore").read_text().splitlines()
        assert "tmp/" in gitignore
        assert ".env.local" in gitignore
        assert "Initialization complete!" in result.output

    def test_generated_config_is_loadable(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify the generated runner.config.py configures the runner."""
        cli_runner.invoke(app, ["init", "--scripts-dir", "jobs", "--tmp-dir", "scratch"])

        config = load_runner_config()

        assert config.loaded_config_path == project / "runner.config.py"
        assert config.scripts_dir == project / "jobs"
        assert config.tmp_dir == project / "scratch"
        assert config.env_files == [".env", ".env.local"]
        assert config.default_params == {}

    def test_generated_examples_run(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify the lambda example runs through exec."""
        cli_runner.invoke(app, ["init", "--force"])

        result = cli_runner.invoke(app, ["exec", "scripts/lambda_example.py"])

        assert result.exit_code == 0, result.output
        assert "Lambda execution completed" in result.output

    def test_existing_files_kept_without_force(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify a second init does not overwrite files."""
        cli_runner.invoke(app, ["init"])
        config_file = project / "runner.config.py"
        config_file.write_text("scripts_dir = 'custom'\n")

        result = cli_runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert "already exists" in result.output
        assert config_file.read_text() == "scripts_dir = 'custom'\n"
        assert (project / ".gitignore").read_text().count(".env.local") == 1


class TestExecCommand:
    """Tests for the exec command."""

    def test_success(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify a successful script exits with 0."""
        path = write_script(
            project,
            "hello.py",
            """
            def execute(context, tear_up_result):
                context.log("hello from script")
                return {"ok": True}
            """,
        )

        result = cli_runner.invoke(app, ["exec", str(path)])

        assert result.exit_code == 0, result.output
        assert "--- Running script: hello.py ---" in result.output
        assert "[SCRIPT OUTPUT] hello from script" in result.output
        assert '"ok": true' in result.output
        assert "--- Script hello.py finished successfully ---" in result.output

    def test_failure_exits_with_one(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify a failing script exits with 1 and prints the error."""
        path = write_script(
            project,
            "fails.py",
            """
            def execute(context, tear_up_result):
                raise RuntimeError("something broke")
            """,
        )

        result = cli_runner.invoke(app, ["exec", str(path)])

        assert result.exit_code == 1
        assert "--- Error running script fails.py ---" in result.output
        assert "something broke" in result.output
        assert "--- Script fails.py failed ---" in result.output

    def test_missing_script(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify a missing script exits with 1."""
        result = cli_runner.invoke(app, ["exec", "nowhere.py"])

        assert result.exit_code == 1
        assert "SCRIPT_NOT_FOUND" in result.output

    def test_missing_entry_point(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify a script without entry point exits with 1."""
        path = write_script(project, "empty.py", "x = 1\n")

        result = cli_runner.invoke(app, ["exec", str(path)])

        assert result.exit_code == 1
        assert "must export either an 'execute' function or a 'default' function." in result.output

    def test_path_relative_to_scripts_dir(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify a bare name is found in the scripts directory."""
        write_script(project, "short.py", "def default(context, r):\n    return 'found'\n")

        result = cli_runner.invoke(app, ["exec", "short.py"])

        assert result.exit_code == 0, result.output
        assert "Script result: found" in result.output

    def test_env_option(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify --env values reach the script and malformed ones are skipped."""
        path = write_script(
            project,
            "env.py",
            """
            def execute(context, tear_up_result):
                return context.env.get("SCRIPTIT_TEST_NAME")
            """,
        )

        result = cli_runner.invoke(
            app, ["exec", str(path), "--env", "SCRIPTIT_TEST_NAME=Ada", "--env", "broken"]
        )

        assert result.exit_code == 0, result.output
        assert "Script result: Ada" in result.output
        assert "Skipping malformed --env argument: broken" in result.output
        assert result.output.count("broken") == 1

    def test_prompts_for_declared_variables(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify declared variables are read from the terminal."""
        path = write_script(
            project,
            "secret.py",
            """
            variables = [{"name": "SCRIPTIT_TEST_SECRET", "type": "password", "message": "Secret?"}]

            def execute(context, tear_up_result):
                return len(context.env["SCRIPTIT_TEST_SECRET"])
            """,
        )

        result = cli_runner.invoke(app, ["exec", str(path)], input="hunter2\n")

        assert result.exit_code == 0, result.output
        assert "Secret?" in result.output
        assert "hunter2" not in result.output
        assert "Script result: 7" in result.output

    def test_env_prompts_option(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify --env-prompts asks for extra variables."""
        path = write_script(
            project,
            "extra.py",
            """
            def execute(context, tear_up_result):
                return context.env.get("SCRIPTIT_TEST_EXTRA")
            """,
        )

        result = cli_runner.invoke(
            app, ["exec", str(path), "--env-prompts", "SCRIPTIT_TEST_EXTRA"], input="typed\n"
        )

        assert result.exit_code == 0, result.output
        assert "Please enter value for SCRIPTIT_TEST_EXTRA:" in result.output
        assert "Script result: typed" in result.output


class TestRunCommand:
    """Tests for the run command."""

    def test_no_tui_listing(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify --no-tui prints scripts with function info and description."""
        write_script(
            project,
            "deploy.py",
            """
            description = "Deploys things"

            def tear_up(context):
                pass

            def default(context, tear_up_result):
                pass
            """,
        )
        write_script(project, "broken.py", "raise RuntimeError('cannot load')\n")

        result = cli_runner.invoke(app, ["run", "--no-tui"])

        assert result.exit_code == 0, result.output
        assert "1. broken.py" in result.output
        assert "Error loading script: cannot load" in result.output
        assert "2. deploy.py" in result.output
        assert "Function type: [default] + tearUp" in result.output
        assert "Description: Deploys things" in result.output
        assert "scriptit exec <script-path>" in result.output

    def test_no_scripts(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify an empty scripts directory is reported."""
        result = cli_runner.invoke(app, ["run", "--no-tui"])

        assert result.exit_code == 0
        assert "No scripts found in the scripts directory." in result.output

    def test_scripts_dir_override(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify --scripts-dir replaces the configured directory."""
        other = project / "other"
        other.mkdir()
        (other / "only.py").write_text("def default(context, r):\n    pass\n")

        result = cli_runner.invoke(app, ["run", "--no-tui", "--scripts-dir", "other"])

        assert "1. only.py" in result.output

    def test_interactive_session(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify the interactive session runs a chosen script and quits."""
        write_script(project, "pick.py", "def default(context, r):\n    return 'picked'\n")

        result = cli_runner.invoke(app, ["run"], input="1\nq\n")

        assert result.exit_code == 0, result.output
        assert "Script result: picked" in result.output
        assert "=== pick.py completed successfully ===" in result.output

    def test_default_command_is_run(self, cli_runner: CliRunner, project: Path) -> None:
        """Verify invoking without a command starts the session."""
        result = cli_runner.invoke(app, [], input="q\n")

        assert result.exit_code == 0, result.output
        assert "Configuration" in result.output
