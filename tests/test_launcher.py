"""
Tests for launchers and launch environment composition.
"""

import asyncio
import sys
from pathlib import Path

import pytest

from alloy.adapters.launcher import LaunchResult, ProcessLauncher
from alloy.adapters.mock import MockLauncher
from alloy.core.engine.wine_command import bottle_environment, run_wine_command
from alloy.core.errors import LaunchError
from alloy.core.models.bottle import BottleRecord, WineRuntime


def _record() -> BottleRecord:
    return BottleRecord(
        name="game",
        wine_runtime=WineRuntime(
            label="wine x86_64 7.0",
            wine64_path=Path("/runtime/wine-x86_64-7.0/bin/wine64"),
            version="7.0",
        ),
    )


class TestProcessLauncher:
    def test_exit_code_returned(self, tmp_path: Path):
        result = asyncio.run(
            ProcessLauncher().launch(
                Path(sys.executable), ["-c", "import sys; sys.exit(3)"], tmp_path, {}
            )
        )
        assert result.exit_code == 3
        assert not result.success
        assert result.duration_ms >= 0

    def test_cwd_and_env_applied(self, tmp_path: Path):
        marker = tmp_path / "out.txt"
        code = "import os; open('out.txt', 'w').write(os.environ['ALLOY_MARK'])"
        result = asyncio.run(
            ProcessLauncher().launch(Path(sys.executable), ["-c", code], tmp_path, {"ALLOY_MARK": "ok"})
        )
        assert result.success
        assert marker.read_text() == "ok"

    def test_missing_executable(self, tmp_path: Path):
        with pytest.raises(LaunchError):
            asyncio.run(ProcessLauncher().launch(tmp_path / "nope", [], tmp_path, {}))

    def test_command_prefix(self, tmp_path: Path):
        # the prefix runs first; the executable becomes its argument
        launcher = ProcessLauncher([sys.executable, "-c", "import sys; sys.exit(len(sys.argv))"])
        result = asyncio.run(launcher.launch(Path("extra"), ["more"], tmp_path, {}))
        assert result.exit_code == 3


class TestMockLauncher:
    def test_records_calls(self, tmp_path: Path):
        mock = MockLauncher()
        result = asyncio.run(mock.launch(Path("/bin/wine64"), ["a"], tmp_path, {"K": "V"}))
        assert result == LaunchResult(executable="/bin/wine64", exit_code=0)
        assert mock.calls[0].args == ["a"]
        assert mock.calls[0].env == {"K": "V"}

    def test_configured_responses(self, tmp_path: Path):
        mock = MockLauncher()
        mock.set_exit_code("/bin/wine64", 7)
        mock.set_failure("winecfg", "denied")
        assert asyncio.run(mock.launch(Path("/bin/wine64"), [], tmp_path, {})).exit_code == 7
        with pytest.raises(LaunchError, match="denied"):
            asyncio.run(mock.launch(Path("/x/winecfg"), [], tmp_path, {}))

        mock.reset()
        assert mock.call_count == 0
        assert asyncio.run(mock.launch(Path("/bin/wine64"), [], tmp_path, {})).exit_code == 0


class TestBottleEnvironment:
    def test_layering(self, tmp_path: Path):
        record = _record()
        record.set_env("WINEDEBUG", "+relay")
        record.set_env("DXVK_HUD", "fps")

        env = bottle_environment(
            record,
            tmp_path,
            extra_env={"DXVK_HUD": "full"},
            base_env={"PATH": "/usr/bin", "WINEPREFIX": "/wrong"},
        )
        assert env["PATH"] == "/usr/bin"
        assert env["WINEPREFIX"] == str(tmp_path)
        assert env["WINEDEBUG"] == "+relay"
        assert env["DXVK_HUD"] == "full"
        assert env["DYLD_FALLBACK_LIBRARY_PATH"] == "/runtime/wine-x86_64-7.0/lib"

    def test_run_wine_command_uses_prefix_as_cwd(self, tmp_path: Path):
        mock = MockLauncher(default_exit_code=1)
        record = _record()
        result = asyncio.run(
            run_wine_command(mock, record, tmp_path, record.wine_runtime.wine64_path, ["x.exe"])
        )
        assert result.exit_code == 1
        assert mock.calls[0].cwd == tmp_path
        assert mock.calls[0].args == ["x.exe"]
