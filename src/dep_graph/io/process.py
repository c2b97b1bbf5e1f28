"""Launch an external command and drain its output streams."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from pathlib import Path
from typing import IO, Callable, Mapping, Sequence

LOGGER = logging.getLogger(__name__)

CANCEL_POLL_SECONDS = 0.2

USE_PROCESS_GROUPS = os.name != "nt"


class ProcessExecutor:
    """
    Run one external process at a time.

    Both output streams are pumped by dedicated threads so a chatty child can
    never block on a full pipe. After :meth:`exec_process` returns, the exit
    code and the captured text are available on the instance.
    """

    def __init__(self) -> None:
        self.exit_code: int | None = None
        self.stdout = ""
        self.stderr = ""
        self.cancelled = False
        self.command: list[str] = []
        self._process: subprocess.Popen[str] | None = None

    def thread_name(self, stream: str) -> str:
        """Name of the pump thread for ``stream`` (``"out"`` or ``"err"``)."""

        return f"[{stream}]"

    def _pump(self, source: IO[str], sink: list[str], stream: str) -> None:
        try:
            for line in source:
                sink.append(line)
                LOGGER.debug("%s %s", self.thread_name(stream), line.rstrip())
        finally:
            source.close()

    def exec_process(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        cancel_check: Callable[[], bool] | None = None,
    ) -> int:
        """Run ``argv`` to completion and return its exit code."""

        self.command = [str(part) for part in argv]
        self.exit_code = None
        self.cancelled = False
        LOGGER.info("Executing %s", " ".join(self.command))

        process = subprocess.Popen(
            self.command,
            cwd=str(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            start_new_session=USE_PROCESS_GROUPS,
        )
        self._process = process
        out_lines: list[str] = []
        err_lines: list[str] = []
        pumps = [
            threading.Thread(target=self._pump, args=(process.stdout, out_lines, "out"), name=self.thread_name("out")),
            threading.Thread(target=self._pump, args=(process.stderr, err_lines, "err"), name=self.thread_name("err")),
        ]
        try:
            for pump in pumps:
                pump.start()
            self._await_exit(process, cancel_check)
        finally:
            if process.poll() is None:
                self.destroy()
            for pump in pumps:
                if pump.ident is not None:
                    pump.join()
            self.exit_code = process.wait()
            self.stdout = "".join(out_lines)
            self.stderr = "".join(err_lines)
            self._process = None

        if self.exit_code != 0:
            LOGGER.warning("%s exited with code %s", self.command[0], self.exit_code)
        return self.exit_code

    def _await_exit(self, process: subprocess.Popen[str], cancel_check: Callable[[], bool] | None) -> None:
        if cancel_check is None:
            process.wait()
            return
        while True:
            try:
                process.wait(timeout=CANCEL_POLL_SECONDS)
                return
            except subprocess.TimeoutExpired:
                if cancel_check():
                    LOGGER.info("Cancelling %s", self.command[0])
                    self.cancelled = True
                    self.destroy()

    def destroy(self) -> None:
        """
        Kill the running process and everything it spawned.

        The child leads its own process group, so killing the group also stops
        grandchildren that inherited the output pipes. Only then do the pump
        threads reach end of stream.
        """

        process = self._process
        if process is None or process.poll() is not None:
            return
        if USE_PROCESS_GROUPS:
            try:
                os.killpg(os.getpgid(process.pid), signal.SIGKILL)
                return
            except OSError as exc:
                LOGGER.debug("Could not kill process group of %s: %s", process.pid, exc)
        process.kill()


__all__ = ["ProcessExecutor"]
