"""
Fire-and-forget launcher for the server start command.

The child is detached (new session on POSIX, detached process group on
Windows) with stdio pointed at devnull. launch() never blocks on it; a
daemon thread waits on the child so a short-lived start command does not
linger as a zombie. Only a failure to spawn is reported (LaunchError).
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import threading
from pathlib import Path
from typing import List, Optional

from .errors import LaunchError

log = logging.getLogger("petemc.launcher")


def split_command(command_line: str) -> List[str]:
    try:
        argv = shlex.split(command_line, posix=(os.name != "nt"))
    except ValueError as e:
        raise LaunchError(f"cannot parse start command: {e}") from e
    if not argv:
        raise LaunchError("start command is empty")
    return argv


class ProcessLauncher:
    def __init__(self, cwd: Optional[Path] = None):
        self.cwd = cwd

    def launch(self, command_line: str) -> None:
        argv = split_command(command_line)

        kwargs = {}
        if os.name == "nt":
            kwargs["creationflags"] = subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            kwargs["start_new_session"] = True

        try:
            proc = subprocess.Popen(
                argv,
                cwd=str(self.cwd) if self.cwd else None,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                close_fds=True,
                **kwargs,
            )
        except OSError as e:
            raise LaunchError(f"{argv[0]}: {e.strerror or e}") from e

        threading.Thread(target=proc.wait, name=f"reap-{proc.pid}", daemon=True).start()
        log.info("Launched start command (pid=%s): %s", proc.pid, command_line)
