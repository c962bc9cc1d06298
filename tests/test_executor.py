"""Tests for the script execution core.

Tests cover:
    - Entry point resolution (TestResolveScript)
    - Lifecycle ordering and data flow (TestScriptExecutor)
    - Failure propagation
    - Fresh loading between runs
    - Console interception
"""

import textwrap
from pathlib import Path

import pytest

from scriptit.core.context import ScriptContext
from scriptit.core.executor import (
    ConsoleInterceptionOptions,
    ScriptExecutor,
    find_lifecycle_hooks,
    load_script_module,
    resolve_script,
)
from scriptit.errors import ScriptItError, ScriptItErrorCode


def write_script(directory: Path, name: str, source: str) -> Path:
    path = directory / name
    path.write_text(textwrap.dedent(source))
    return path


@pytest.fixture
def lines() -> list[str]:
    return []


@pytest.fixture
def context(tmp_path: Path, lines: list[str]) -> ScriptContext:
    return ScriptContext(env={"STAGE": "test"}, tmp_dir=tmp_path, log=lines.append)


class TestResolveScript:
    """Tests for find_lifecycle_hooks and resolve_script."""

    def test_default_takes_priority_over_execute(self, tmp_path: Path) -> None:
        """Verify default is chosen when both entry points exist."""
        path = write_script(
            tmp_path,
            "both.py",
            """
            def default(context, tear_up_result):
                return "default"

            def execute(context, tear_up_result):
                return "execute"
            """,
        )

        script = resolve_script(load_script_module(path), path)

        assert script.main_name == "default"

    def test_snake_and_camel_case_hooks(self, tmp_path: Path) -> None:
        """Verify both hook spellings are recognized."""
        path = write_script(
            tmp_path,
            "hooks.py",
            """
            def tearUp(context):
                pass

            def execute(context, tear_up_result):
                pass

            def tear_down(context, result, tear_up_result):
                pass
            """,
        )

        hooks = find_lifecycle_hooks(load_script_module(path))

        assert set(hooks) == {"tearUp", "execute", "tearDown"}

    def test_non_callable_attributes_are_ignored(self, tmp_path: Path) -> None:
        """Verify a non-callable `execute` is not an entry point."""
        path = write_script(tmp_path, "odd.py", "execute = 'not a function'\n")

        with pytest.raises(ScriptItError) as exc_info:
            resolve_script(load_script_module(path), path)

        assert exc_info.value.code == ScriptItErrorCode.MISSING_ENTRY_POINT

    def test_description_and_variables(self, tmp_path: Path) -> None:
        """Verify description and variables are picked up."""
        path = write_script(
            tmp_path,
            "meta.py",
            """
            description = "Has metadata"
            variables = ["API_KEY", {"name": "SECRET", "type": "password"}]

            def execute(context, tear_up_result):
                pass
            """,
        )

        script = resolve_script(load_script_module(path), path)

        assert script.description == "Has metadata"
        assert script.variables == ["API_KEY", {"name": "SECRET", "type": "password"}]


class TestScriptExecutor:
    """Tests for ScriptExecutor.run."""

    @pytest.mark.asyncio
    async def test_tear_up_result_flows_to_execute(self, tmp_path: Path, context: ScriptContext) -> None:
        """Verify tear_up's result is passed to the main phase."""
        path = write_script(
            tmp_path,
            "flow.py",
            """
            def tear_up(context):
                return {"x": 1}

            def execute(context, tear_up_result):
                return {"y": tear_up_result["x"] + 1}
            """,
        )

        result = await ScriptExecutor().run(path, context)

        assert result == {"y": 2}

    @pytest.mark.asyncio
    async def test_default_is_called_instead_of_execute(self, tmp_path: Path, context: ScriptContext) -> None:
        """Verify execute is never called when default exists."""
        path = write_script(
            tmp_path,
            "both.py",
            """
            def default(context, tear_up_result):
                return "from default"

            def execute(context, tear_up_result):
                raise AssertionError("execute must not run")
            """,
        )

        assert await ScriptExecutor().run(path, context) == "from default"

    @pytest.mark.asyncio
    async def test_async_phases_and_ordering(
        self, tmp_path: Path, context: ScriptContext, lines: list[str]
    ) -> None:
        """Verify async phases run in order with the expected arguments."""
        path = write_script(
            tmp_path,
            "ordered.py",
            """
            import asyncio

            async def tear_up(context):
                await asyncio.sleep(0)
                context.log("up")
                return "up-result"

            async def execute(context, tear_up_result):
                context.log(f"main got {tear_up_result}")
                return "main-result"

            def tear_down(context, result, tear_up_result):
                context.log(f"down got {result} and {tear_up_result}")
            """,
        )

        result = await ScriptExecutor().run(path, context)

        assert result == "main-result"
        assert lines == [
            "Running tearUp()",
            "up",
            "Running execute()",
            "main got up-result",
            "Running tearDown()",
            "down got main-result and up-result",
        ]

    @pytest.mark.asyncio
    async def test_missing_entry_point_fails_before_tear_up(
        self, tmp_path: Path, context: ScriptContext, lines: list[str]
    ) -> None:
        """Verify a script without entry point fails and tear_up never runs."""
        path = write_script(
            tmp_path,
            "no_main.py",
            """
            def tear_up(context):
                context.log("tear_up ran")
            """,
        )

        with pytest.raises(ScriptItError) as exc_info:
            await ScriptExecutor().run(path, context)

        assert exc_info.value.code == ScriptItErrorCode.MISSING_ENTRY_POINT
        assert "must export either an 'execute' function or a 'default' function." in str(
            exc_info.value
        )
        assert "tear_up ran" not in lines

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path: Path, context: ScriptContext) -> None:
        """Verify a missing script raises SCRIPT_NOT_FOUND."""
        with pytest.raises(ScriptItError) as exc_info:
            await ScriptExecutor().run(tmp_path / "missing.py", context)

        assert exc_info.value.code == ScriptItErrorCode.SCRIPT_NOT_FOUND

    @pytest.mark.asyncio
    async def test_main_failure_skips_tear_down(
        self, tmp_path: Path, context: ScriptContext, lines: list[str]
    ) -> None:
        """Verify a failing main phase propagates unchanged and skips tear_down."""
        path = write_script(
            tmp_path,
            "fails.py",
            """
            def execute(context, tear_up_result):
                raise ValueError("main failed")

            def tear_down(context, result, tear_up_result):
                context.log("tear_down ran")
            """,
        )

        with pytest.raises(ValueError, match="main failed"):
            await ScriptExecutor().run(path, context)

        assert "tear_down ran" not in lines
        assert lines[-1] == "Error: main failed"

    @pytest.mark.asyncio
    async def test_tear_down_failure_overrides_success(self, tmp_path: Path, context: ScriptContext) -> None:
        """Verify a tear_down failure fails an otherwise successful run."""
        path = write_script(
            tmp_path,
            "cleanup.py",
            """
            def execute(context, tear_up_result):
                return "ok"

            def tear_down(context, result, tear_up_result):
                raise RuntimeError("cleanup failed")
            """,
        )

        with pytest.raises(RuntimeError, match="cleanup failed"):
            await ScriptExecutor().run(path, context)

    @pytest.mark.asyncio
    async def test_load_error_propagates(self, tmp_path: Path, context: ScriptContext) -> None:
        """Verify errors raised while loading the script are not wrapped."""
        path = write_script(tmp_path, "broken.py", "import does_not_exist_anywhere\n")

        with pytest.raises(ModuleNotFoundError):
            await ScriptExecutor().run(path, context)

    @pytest.mark.asyncio
    async def test_script_is_reloaded_after_edit(self, tmp_path: Path, context: ScriptContext) -> None:
        """Verify edits on disk are visible on the next run."""
        path = write_script(
            tmp_path,
            "edited.py",
            """
            def execute(context, tear_up_result):
                return 1
            """,
        )
        executor = ScriptExecutor()
        assert await executor.run(path, context) == 1

        write_script(
            tmp_path,
            "edited.py",
            """
            def execute(context, tear_up_result):
                return 2
            """,
        )

        assert await executor.run(path, context) == 2

    @pytest.mark.asyncio
    async def test_console_interception(
        self, tmp_path: Path, context: ScriptContext, lines: list[str]
    ) -> None:
        """Verify the context console routes to the log callback."""
        path = write_script(
            tmp_path,
            "console.py",
            """
            def execute(context, tear_up_result):
                context.console.warn("careful", 3)
                return context.console is not None
            """,
        )
        executor = ScriptExecutor(ConsoleInterceptionOptions(use_colors=False))

        assert await executor.run(path, context) is True
        assert "careful 3" in lines
        assert context.console is None

    @pytest.mark.asyncio
    async def test_console_custom_log_function(self, tmp_path: Path, context: ScriptContext) -> None:
        """Verify console lines can be routed to a separate sink."""
        console_lines: list[str] = []
        path = write_script(
            tmp_path,
            "console.py",
            """
            def execute(context, tear_up_result):
                context.console.info("to the side")
            """,
        )
        options = ConsoleInterceptionOptions(use_colors=False, log_function=console_lines.append)

        await ScriptExecutor(options).run(path, context)

        assert console_lines == ["to the side"]

    @pytest.mark.asyncio
    async def test_console_disabled(self, tmp_path: Path, context: ScriptContext) -> None:
        """Verify no console is attached when interception is off."""
        path = write_script(
            tmp_path,
            "console.py",
            """
            def execute(context, tear_up_result):
                return context.console
            """,
        )

        assert await ScriptExecutor(ConsoleInterceptionOptions(enabled=False)).run(path, context) is None
