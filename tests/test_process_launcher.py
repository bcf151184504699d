from __future__ import annotations

import os
import shlex
import subprocess
import sys
import time

import pytest

from PeteMCBot.errors import LaunchError
from PeteMCBot.process_launcher import ProcessLauncher, split_command


def test_split_command_respects_quotes():
    if os.name == "nt":
        pytest.skip("POSIX quoting")
    assert split_command('java -Xmx2G -jar "my server.jar" nogui') == ["java", "-Xmx2G", "-jar", "my server.jar", "nogui"]


@pytest.mark.parametrize("cmd", ["", "   "])
def test_empty_command_is_launch_error(cmd):
    with pytest.raises(LaunchError):
        ProcessLauncher().launch(cmd)


def test_unbalanced_quotes_is_launch_error():
    with pytest.raises(LaunchError):
        split_command('echo "unterminated')


def test_missing_executable_is_launch_error(tmp_path):
    with pytest.raises(LaunchError):
        ProcessLauncher().launch(str(tmp_path / "definitely-not-here"))


@pytest.mark.skipif(os.name == "nt", reason="POSIX session handling")
def test_launch_returns_without_waiting_for_child(tmp_path, monkeypatch):
    marker = tmp_path / "started"
    script = f"import pathlib, time; pathlib.Path({str(marker)!r}).write_text('ok'); time.sleep(5)"
    spawned = []
    real_popen = subprocess.Popen

    def spy_popen(*args, **kwargs):
        spawned.append((real_popen(*args, **kwargs), kwargs))
        return spawned[-1][0]

    monkeypatch.setattr(subprocess, "Popen", spy_popen)

    t0 = time.monotonic()
    ProcessLauncher(cwd=tmp_path).launch(shlex.join([sys.executable, "-c", script]))
    assert time.monotonic() - t0 < 2.0

    proc, kwargs = spawned[0]
    try:
        assert kwargs["start_new_session"] is True
        deadline = time.monotonic() + 10
        while time.monotonic() < deadline and not (marker.exists() and marker.read_text() == "ok"):
            time.sleep(0.05)
        assert marker.read_text() == "ok"
        assert proc.poll() is None
    finally:
        proc.kill()
        proc.wait()


def test_short_lived_child_is_reaped(monkeypatch):
    spawned = []
    real_popen = subprocess.Popen

    def spy_popen(*args, **kwargs):
        spawned.append(real_popen(*args, **kwargs))
        return spawned[-1]

    monkeypatch.setattr(subprocess, "Popen", spy_popen)
    ProcessLauncher().launch(shlex.join([sys.executable, "-c", "pass"]))

    proc = spawned[0]
    deadline = time.monotonic() + 10
    # returncode is only set once something has waited on the child
    while time.monotonic() < deadline and proc.returncode is None:
        time.sleep(0.05)
    assert proc.returncode == 0
