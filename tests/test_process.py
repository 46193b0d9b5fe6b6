import os
import sys
import threading
import subprocess
from pathlib import Path

import psutil
import pytest

from hudson_desktop.local.config import SidecarConfig
from hudson_desktop.local.supervisor.errors import SpawnFailed
from hudson_desktop.local.supervisor.process_utils import build_launch_spec, launch_backend
from hudson_desktop.local.supervisor.shutdown import kill_and_reap


def test_launch_forwards_stdout_lines():
    lines = []
    done = threading.Event()

    def handle(line):
        lines.append(line)
        if line == "second":
            done.set()

    spec = build_launch_spec(Path(sys.executable), ["-c", "print('first'); print(); print('second')"], SidecarConfig())
    proc = launch_backend(spec, line_handler=handle)

    assert done.wait(10)
    assert proc.wait(timeout=10) == 0
    assert lines == ["first", "second"]


def test_launch_passes_storage_mode_to_child():
    lines = []
    done = threading.Event()

    def handle(line):
        lines.append(line)
        done.set()

    code = "import os; print(os.environ['HUDSON_ENABLE_NEON'])"
    spec = build_launch_spec(Path(sys.executable), ["-c", code], SidecarConfig())
    proc = launch_backend(spec, line_handler=handle)

    assert done.wait(10)
    proc.wait(timeout=10)
    assert lines == ["false"]


def test_launch_missing_executable_raises_spawn_failed(tmp_path):
    spec = build_launch_spec(tmp_path / "missing-hudson", [], SidecarConfig())

    with pytest.raises(SpawnFailed) as excinfo:
        launch_backend(spec)

    assert excinfo.value.executable == tmp_path / "missing-hudson"
    assert isinstance(excinfo.value.cause, OSError)


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_launch_non_executable_raises_spawn_failed(tmp_path):
    binary = tmp_path / "hudson"
    binary.write_text("not a program")
    os.chmod(binary, 0o644)

    with pytest.raises(SpawnFailed):
        launch_backend(build_launch_spec(binary, [], SidecarConfig()))


def _is_gone(pid):
    try:
        return psutil.Process(pid).status() == psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return True


def test_kill_and_reap_stops_process(spawn_sleeper):
    proc = spawn_sleeper()

    kill_and_reap(proc)

    assert proc.returncode is not None
    assert _is_gone(proc.pid)


def test_kill_and_reap_tolerates_exited_process():
    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    proc.wait(timeout=10)

    kill_and_reap(proc)

    assert proc.returncode == 0


@pytest.mark.skipif(sys.platform == "win32", reason="relies on POSIX process trees")
def test_kill_and_reap_kills_descendants():
    code = (
        "import subprocess, sys, time\n"
        "child = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(60)'])\n"
        "print(child.pid, flush=True)\n"
        "time.sleep(60)\n"
    )
    proc = subprocess.Popen([sys.executable, "-c", code], stdout=subprocess.PIPE)
    try:
        grandchild_pid = int(proc.stdout.readline())

        kill_and_reap(proc)

        assert proc.returncode is not None
        assert _is_gone(grandchild_pid)
    finally:
        proc.stdout.close()
        if proc.poll() is None:
            proc.kill()
            proc.wait()
