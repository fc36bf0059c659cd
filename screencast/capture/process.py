#!/usr/bin/env python3
"""
Child process supervision for encoder invocations.
Wraps asyncio subprocesses as a completion future plus a kill control.
"""

import asyncio
import logging
from collections import deque
from typing import Callable, List, Optional

from .errors import ProcessFailedError

logger = logging.getLogger(__name__)

Listener = Callable[[bytes], None]

READ_CHUNK_SIZE = 4096
STDERR_TAIL_CHUNKS = 8
STDERR_TAIL_CHARS = 500


class ProcessHandle:
    """
    A spawned child process.

    ``finish`` resolves once the process exited cleanly (or after ``kill()``)
    and raises ProcessFailedError for any other non-zero exit. Output is pumped
    chunk by chunk to ``on_stdout``/``on_stderr``; the default stderr listener
    logs the encoder output at DEBUG level.

    Cancelling an await on ``finish`` only abandons that wait. The pumps keep
    draining the pipes and the process is still reaped.
    """

    def __init__(
        self,
        binary: str,
        proc: asyncio.subprocess.Process,
        on_stdout: Optional[Listener] = None,
        on_stderr: Optional[Listener] = None
    ):
        self.binary = binary
        self.proc = proc
        self.on_stdout = on_stdout
        self.on_stderr = on_stderr or self._log_stderr
        self.killed = False
        self._stderr_tail = deque(maxlen=STDERR_TAIL_CHUNKS)
        self._supervisor: asyncio.Task = asyncio.ensure_future(self._wait())

    @property
    def finish(self) -> asyncio.Future:
        return asyncio.shield(self._supervisor)

    def kill(self):
        """Terminate the process. Does nothing if it already exited."""
        if self.proc.returncode is not None:
            return
        self.killed = True
        try:
            self.proc.terminate()
        except ProcessLookupError:
            pass

    @property
    def stderr_tail(self) -> str:
        """Last few hundred characters written to stderr"""
        text = b"".join(self._stderr_tail).decode("utf-8", errors="replace")
        return text[-STDERR_TAIL_CHARS:].strip()

    def _log_stderr(self, chunk: bytes):
        logger.debug(f"[{self.binary}] {chunk.decode('utf-8', errors='replace').rstrip()}")

    async def _pump(self, stream: Optional[asyncio.StreamReader], name: str):
        if stream is None:
            return
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            if name == "stderr":
                self._stderr_tail.append(chunk)
            listener = self.on_stderr if name == "stderr" else self.on_stdout
            if listener:
                listener(chunk)

    async def _wait(self):
        await asyncio.gather(
            self._pump(self.proc.stdout, "stdout"),
            self._pump(self.proc.stderr, "stderr")
        )
        returncode = await self.proc.wait()

        if returncode != 0 and not self.killed:
            raise ProcessFailedError(self.binary, returncode, self.stderr_tail)

        if self.killed:
            logger.debug(f"{self.binary} (pid {self.proc.pid}) stopped by kill, code {returncode}")
        return None


async def spawn_process(
    binary: str,
    args: List[str],
    on_stdout: Optional[Listener] = None,
    on_stderr: Optional[Listener] = None
) -> ProcessHandle:
    """
    Start ``binary`` with ``args``.

    Args:
        binary: Executable to run
        args: Argument list, passed verbatim (no shell)
        on_stdout: Listener for stdout chunks
        on_stderr: Listener for stderr chunks, replaces the default logger

    Returns:
        ProcessHandle for the running process
    """
    logger.debug(f"Spawning: {binary} {' '.join(args)}")
    proc = await asyncio.create_subprocess_exec(
        binary, *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE
    )
    return ProcessHandle(binary, proc, on_stdout=on_stdout, on_stderr=on_stderr)
