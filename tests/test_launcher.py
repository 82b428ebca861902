"""Tests for spawning processes and the child process handle."""

from __future__ import annotations

import asyncio
import logging
import os
import signal as signal_module

import pytest

from shuttle.cancel import CancelSignal
from shuttle.command import Command
from shuttle.exceptions import LaunchError, NotFoundOnPathError
from shuttle.launcher import SubprocessLauncher
from shuttle.process import resolve_signal, status_from_returncode
from shuttle.types import CommandOptions, Invocation, Stdio
from shuttle.utils.latency import ENV_VAR

from conftest import PYTHON, posix_only, py

MISSING = "shuttle-definitely-not-installed-xyz"


def _invocation(code: str, **options) -> Invocation:
    options.setdefault("stdout", Stdio.PIPED)
    options.setdefault("stderr", Stdio.PIPED)
    return Invocation(PYTHON, tuple(py(code)), CommandOptions(**options))


class TestStatus:
    def test_normal_exit(self):
        status = status_from_returncode(3)
        assert status.code == 3
        assert status.signal is None
        assert not status.success

    @posix_only
    def test_signal_exit(self):
        status = status_from_returncode(-signal_module.SIGKILL)
        assert status.code == 128 + signal_module.SIGKILL
        assert status.signal == "SIGKILL"

    def test_resolve_signal(self):
        assert resolve_signal("SIGTERM") == signal_module.SIGTERM
        assert resolve_signal("term") == signal_module.SIGTERM
        assert resolve_signal("SIGNOPE") == signal_module.SIGTERM
        assert resolve_signal(9) == 9


class TestSubprocessLauncher:
    @pytest.mark.asyncio
    async def test_output(self):
        out = await SubprocessLauncher().output(_invocation("print('hi')"))
        assert out.text().strip() == "hi"
        assert out.code == 0
        assert out.file == PYTHON
        assert out.args == py("print('hi')")

    @pytest.mark.asyncio
    async def test_exit_code_and_stderr(self):
        code = "import sys; sys.stderr.write('bad'); sys.exit(3)"
        out = await SubprocessLauncher().output(_invocation(code))
        assert out.code == 3
        assert not out.success
        assert out.error_text() == "bad"

    def test_output_sync(self):
        out = SubprocessLauncher().output_sync(_invocation("print('sync')"))
        assert out.text().strip() == "sync"

    @pytest.mark.asyncio
    async def test_uncaptured_stream_is_empty(self):
        out = await SubprocessLauncher().output(
            _invocation("print('dropped')", stdout=Stdio.NULL)
        )
        assert out.stdout == b""
        assert out.code == 0

    @pytest.mark.asyncio
    async def test_not_found_before_spawn(self, hook, calls):
        invocation = Invocation(MISSING, ("--flag",), CommandOptions(log=hook))
        with pytest.raises(NotFoundOnPathError) as exc_info:
            await SubprocessLauncher().spawn(invocation)
        assert exc_info.value.exe == MISSING
        assert exc_info.value.argv == ["--flag"]
        assert calls == []

    def test_not_found_sync(self, hook, calls):
        invocation = Invocation(MISSING, (), CommandOptions(log=hook))
        with pytest.raises(NotFoundOnPathError):
            SubprocessLauncher().output_sync(invocation)
        assert calls == []

    @pytest.mark.asyncio
    async def test_log_hook_gets_resolved_path_and_argv(self, hook, calls):
        await SubprocessLauncher().output(_invocation("pass", log=hook))
        assert calls == [(PYTHON, py("pass"))]

    @pytest.mark.asyncio
    async def test_failing_hook_prevents_launch(self):
        def hook(path, argv):
            raise RuntimeError("hook failed")

        with pytest.raises(RuntimeError, match="hook failed"):
            await SubprocessLauncher().output(_invocation("pass", log=hook))

    @posix_only
    @pytest.mark.asyncio
    async def test_launch_error(self, tmp_path):
        script = tmp_path / "not-executable"
        script.write_text("echo nope\n")
        script.chmod(0o644)
        invocation = Invocation(str(script), (), CommandOptions())
        with pytest.raises(LaunchError) as exc_info:
            await SubprocessLauncher().spawn(invocation)
        assert exc_info.value.file == str(script)
        assert isinstance(exc_info.value.__cause__, OSError)

    @posix_only
    def test_launch_error_sync(self, tmp_path):
        script = tmp_path / "not-executable"
        script.write_text("echo nope\n")
        script.chmod(0o644)
        with pytest.raises(LaunchError):
            SubprocessLauncher().output_sync(Invocation(str(script), (), CommandOptions()))

    @pytest.mark.asyncio
    async def test_env_is_merged(self):
        code = "import os; print(os.environ['SHUTTLE_TEST'], 'PATH' in os.environ)"
        out = await SubprocessLauncher().output(_invocation(code, env={"SHUTTLE_TEST": "x"}))
        assert out.text().split() == ["x", "True"]

    @posix_only
    @pytest.mark.asyncio
    async def test_clear_env(self):
        code = "import os; print(os.environ.get('SHUTTLE_ONLY'), os.environ.get('HOME'))"
        out = await SubprocessLauncher().output(
            _invocation(code, env={"SHUTTLE_ONLY": "1"}, clear_env=True)
        )
        assert out.text().split() == ["1", "None"]

    @pytest.mark.asyncio
    async def test_cwd(self, tmp_path):
        out = await SubprocessLauncher().output(
            _invocation("import os; print(os.getcwd())", cwd=str(tmp_path))
        )
        assert os.path.realpath(out.text().strip()) == os.path.realpath(tmp_path)


class TestLatencyDiagnostics:
    @pytest.mark.asyncio
    async def test_logs_exit_code_and_argc(self, monkeypatch, caplog):
        monkeypatch.setenv(ENV_VAR, "1")
        caplog.set_level(logging.INFO, logger="shuttle.launcher")
        await SubprocessLauncher().output(_invocation("import sys; sys.exit(2)"))
        lines = [r.getMessage() for r in caplog.records if r.getMessage().startswith("latency")]
        assert len(lines) == 1
        assert "event=output " in lines[0]
        assert f"file={PYTHON} argc=2 code=2" in lines[0]

    @posix_only
    def test_failed_launch_logs_error(self, monkeypatch, caplog, tmp_path):
        monkeypatch.setenv(ENV_VAR, "yes")
        caplog.set_level(logging.INFO, logger="shuttle.launcher")
        script = tmp_path / "not-executable"
        script.write_text("echo nope\n")
        script.chmod(0o644)
        with pytest.raises(LaunchError):
            SubprocessLauncher().output_sync(Invocation(str(script), (), CommandOptions()))
        assert any("event=output_sync" in r.getMessage() and "code=error" in r.getMessage() for r in caplog.records)

    def test_disabled_by_default(self, monkeypatch, caplog):
        monkeypatch.delenv(ENV_VAR, raising=False)
        caplog.set_level(logging.INFO, logger="shuttle.launcher")
        SubprocessLauncher().output_sync(_invocation("pass"))
        assert not any(r.getMessage().startswith("latency") for r in caplog.records)


class TestChildProcess:
    @pytest.mark.asyncio
    async def test_write_and_read(self):
        code = "import sys; sys.stdout.write(sys.stdin.read().upper())"
        child = await Command(PYTHON, py(code)).with_stdin("piped").with_stdout("piped").spawn()
        await child.write("abc")
        await child.close_stdin()
        out = await child.output()
        assert out.text() == "ABC"
        assert child.returncode == 0

    @pytest.mark.asyncio
    async def test_unpiped_streams_are_none(self):
        child = await Command(PYTHON, py("pass")).with_stdout("null").spawn()
        assert child.stdin is None
        assert child.stdout is None
        status = await child.wait()
        assert status.success
        await child.aclose()

    @posix_only
    @pytest.mark.asyncio
    async def test_kill(self):
        child = await Command(PYTHON, py("import time; time.sleep(30)")).spawn()
        child.kill("SIGKILL")
        status = await asyncio.wait_for(child.wait(), 10)
        assert status.signal == "SIGKILL"
        assert status.code == 137
        child.kill()
        await child.aclose()

    @pytest.mark.asyncio
    async def test_aclose_terminates_running_process(self):
        child = await Command(PYTHON, py("import time; time.sleep(30)")).spawn()
        await asyncio.wait_for(child.aclose(), 10)
        assert child.returncode is not None

    @pytest.mark.asyncio
    async def test_async_context_manager_waits(self):
        async with await Command(PYTHON, py("pass")).spawn() as child:
            assert child.pid > 0
        assert child.returncode == 0

    @pytest.mark.asyncio
    async def test_cleanups_run_once(self):
        ran = []
        child = await Command(PYTHON, py("pass")).spawn()
        child.add_cleanup(lambda: ran.append(1))
        await child.output()
        await child.aclose()
        assert ran == [1]

    @pytest.mark.asyncio
    async def test_repr(self):
        child = await Command(PYTHON, py("pass")).spawn()
        try:
            assert str(child.pid) in repr(child)
        finally:
            await child.aclose()


class TestCancellation:
    @posix_only
    @pytest.mark.asyncio
    async def test_abort_terminates(self):
        signal = CancelSignal()
        command = Command(PYTHON, py("import time; time.sleep(30)")).with_signal(signal)
        child = await command.spawn()
        signal.abort()
        status = await asyncio.wait_for(child.wait(), 10)
        assert status.signal == "SIGTERM"
        assert status.code == 143
        await child.aclose()

    @pytest.mark.asyncio
    async def test_already_aborted(self):
        signal = CancelSignal()
        signal.abort()
        command = Command(PYTHON, py("import time; time.sleep(30)")).with_signal(signal)
        out = await asyncio.wait_for(command.output(), 10)
        assert not out.success

    def test_sync_timeout(self):
        command = Command(PYTHON, py("import time; time.sleep(30)"))
        command.with_signal(CancelSignal.timeout(0.2))
        out = command.output_sync()
        assert not out.success
