"""
Streaming transcript source backed by the whisper.cpp ``stream`` binary.

The external process is drained by dedicated threads so that I/O latency
never reaches the routing logic:
1. Reader thread: blocks on stdout, cleans each line and puts it on a
   bounded queue
2. Stderr thread: forwards diagnostic output to the log
3. Dispatcher thread: takes lines off the queue and hands them to the
   consumer callback in arrival order

If the process goes away before ``stop()`` is called the consumer receives a
``StreamEnded`` instead of the stream silently going quiet.
"""

from __future__ import annotations

import logging
import queue
import re
import subprocess
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, IO, Optional

from livenotes.services.settings import WhisperStreamConfig

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")
# Whole-line annotations such as [BLANK_AUDIO], [Start speaking], (music)
_MARKER_ONLY = re.compile(r"^(\[[^\]]*\]|\([^)]*\))$")
_SECTION_HEADER = re.compile(r"^#{3}\s*Transcription\b")

_END_OF_STREAM = object()


class LaunchError(RuntimeError):
    pass


class StreamEnded(RuntimeError):
    def __init__(self, returncode: Optional[int]) -> None:
        self.returncode = returncode
        super().__init__(f"Speech source ended unexpectedly (returncode={returncode})")


@dataclass(frozen=True)
class TranscriptLine:
    """One unit of recognized speech."""
    text: str
    received_at: float = field(default_factory=time.time)


def clean_transcript_line(raw: str) -> str:
    """Reduce one raw stdout line to its final recognized text.

    The stream binary redraws partial hypotheses in place with an ANSI
    erase sequence followed by a carriage return, so only the text after the
    last carriage return is the final hypothesis.
    """
    text = raw.rstrip("\r\n")
    if "\r" in text:
        text = text.rsplit("\r", 1)[-1]
    text = _ANSI_ESCAPE.sub("", text).strip()
    if not text or _MARKER_ONLY.match(text) or _SECTION_HEADER.match(text):
        return ""
    return text


class TranscriptionStream:
    """Launches the speech-recognition process and streams its lines.

    ``start()`` may be called once per ``stop()``. ``stop()`` is idempotent
    and never blocks longer than roughly ``stop_timeout`` per step; an
    unresponsive process is killed.
    """

    def __init__(
        self,
        config: WhisperStreamConfig,
        on_line: Optional[Callable[[TranscriptLine], None]] = None,
        on_stream_ended: Optional[Callable[[StreamEnded], None]] = None,
        *,
        command: Optional[list[str]] = None,
    ) -> None:
        self._config = config
        self._on_line = on_line
        self._on_stream_ended = on_stream_ended
        self._command_override = command
        self._logger = logging.getLogger("livenotes.transcript_stream")
        self._stderr_logger = logging.getLogger("livenotes.transcript_stream.stderr")

        self._lock = threading.Lock()
        self._stop_requested = threading.Event()
        self._process: Optional[subprocess.Popen] = None
        self._reader_thread: Optional[threading.Thread] = None
        self._stderr_thread: Optional[threading.Thread] = None
        self._dispatch_thread: Optional[threading.Thread] = None
        self._line_queue: queue.Queue = queue.Queue(maxsize=max(1, config.queue_size))

        self._lines_received = 0
        self._lines_delivered = 0
        self._returncode: Optional[int] = None
        self._ended_error: Optional[StreamEnded] = None

    def command(self) -> list[str]:
        if self._command_override is not None:
            return list(self._command_override)
        return self._config.build_command()

    def start(
        self,
        on_line: Optional[Callable[[TranscriptLine], None]] = None,
        on_stream_ended: Optional[Callable[[StreamEnded], None]] = None,
    ) -> None:
        """Launch the process and the drain threads.

        Args:
            on_line: Consumer for each cleaned line (replaces the constructor's)
            on_stream_ended: Called once if the process ends before stop()

        Raises:
            LaunchError: the process could not be spawned
            RuntimeError: already started without an intervening stop()
        """
        with self._lock:
            if self._process is not None:
                raise RuntimeError("TranscriptionStream already started; call stop() first")

            if on_line is not None:
                self._on_line = on_line
            if on_stream_ended is not None:
                self._on_stream_ended = on_stream_ended
            cmd = self.command()
            self._stop_requested.clear()
            self._ended_error = None
            self._returncode = None
            while not self._line_queue.empty():
                try:
                    self._line_queue.get_nowait()
                except queue.Empty:
                    break

            try:
                process = subprocess.Popen(
                    cmd,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                    bufsize=1,
                )
            except (OSError, ValueError) as exc:
                self._logger.error("Speech source launch failed: %s (%s)", cmd[0], exc)
                raise LaunchError(f"Unable to launch speech source: {cmd[0]}") from exc

            self._process = process
            self._reader_thread = threading.Thread(
                target=self._reader_loop,
                args=(process.stdout,),
                daemon=True,
                name="transcript-stream-reader",
            )
            self._stderr_thread = threading.Thread(
                target=self._stderr_loop,
                args=(process.stderr,),
                daemon=True,
                name="transcript-stream-stderr",
            )
            self._dispatch_thread = threading.Thread(
                target=self._dispatch_loop,
                args=(process,),
                daemon=True,
                name="transcript-stream-dispatch",
            )
            self._reader_thread.start()
            self._stderr_thread.start()
            self._dispatch_thread.start()

            self._logger.info("Speech source started: pid=%s cmd=%s", process.pid, " ".join(cmd))

    def stop(self) -> None:
        with self._lock:
            process = self._process
            if process is None:
                return

            self._stop_requested.set()
            self._terminate(process)

            timeout = self._config.stop_timeout
            current = threading.current_thread()
            for thread in (self._reader_thread, self._stderr_thread, self._dispatch_thread):
                if thread is None or thread is current:
                    continue
                thread.join(timeout=timeout)
                if thread.is_alive():
                    self._logger.warning("Thread %s did not finish within %.1fs", thread.name, timeout)

            for pipe in (process.stdout, process.stderr):
                if pipe is None:
                    continue
                try:
                    pipe.close()
                except OSError:
                    pass

            self._returncode = process.returncode
            self._process = None
            self._reader_thread = None
            self._stderr_thread = None
            self._dispatch_thread = None
            self._logger.info(
                "Speech source stopped: returncode=%s lines=%d", self._returncode, self._lines_received
            )

    def is_running(self) -> bool:
        with self._lock:
            return self._process is not None and self._ended_error is None

    @property
    def ended_error(self) -> Optional[StreamEnded]:
        return self._ended_error

    def status(self) -> dict:
        with self._lock:
            process = self._process
            return {
                "running": process is not None and self._ended_error is None,
                "pid": process.pid if process is not None else None,
                "lines_received": self._lines_received,
                "lines_delivered": self._lines_delivered,
                "returncode": process.poll() if process is not None else self._returncode,
                "ended": self._ended_error is not None,
            }

    def _terminate(self, process: subprocess.Popen) -> None:
        if process.poll() is not None:
            return
        timeout = self._config.stop_timeout
        try:
            process.terminate()
            process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            self._logger.warning(
                "Speech source pid=%s ignored terminate for %.1fs, killing", process.pid, timeout
            )
            process.kill()
            try:
                process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                self._logger.error("Speech source pid=%s did not exit after kill", process.pid)
        except OSError as exc:
            self._logger.debug("Terminate failed (process already gone?): %s", exc)

    def _enqueue(self, item: object) -> bool:
        while not self._stop_requested.is_set():
            try:
                self._line_queue.put(item, timeout=0.5)
                return True
            except queue.Full:
                self._logger.debug("Line queue full, waiting for dispatcher")
        return False

    def _reader_loop(self, stdout: Optional[IO[str]]) -> None:
        if stdout is None:
            self._enqueue(_END_OF_STREAM)
            return
        try:
            for raw in iter(stdout.readline, ""):
                if self._stop_requested.is_set():
                    break
                text = clean_transcript_line(raw)
                if not text:
                    continue
                self._lines_received += 1
                if not self._enqueue(TranscriptLine(text=text)):
                    break
        except (OSError, ValueError) as exc:
            # ValueError: read on a pipe closed by stop()
            if not self._stop_requested.is_set():
                self._logger.warning("Reader error: %s", exc)
        finally:
            if not self._stop_requested.is_set():
                self._enqueue(_END_OF_STREAM)
            self._logger.debug("Reader loop ended")

    def _stderr_loop(self, stderr: Optional[IO[str]]) -> None:
        if stderr is None:
            return
        try:
            for raw in iter(stderr.readline, ""):
                text = raw.rstrip()
                if text:
                    self._stderr_logger.debug("%s", text)
                if self._stop_requested.is_set():
                    break
        except (OSError, ValueError):
            pass
        self._logger.debug("Stderr loop ended")

    def _dispatch_loop(self, process: subprocess.Popen) -> None:
        while True:
            try:
                item = self._line_queue.get(timeout=0.5)
            except queue.Empty:
                if self._stop_requested.is_set():
                    break
                continue

            if self._stop_requested.is_set():
                break
            if item is _END_OF_STREAM:
                self._handle_stream_closed(process)
                break
            self._deliver(item)
        self._logger.debug("Dispatch loop ended")

    def _deliver(self, line: TranscriptLine) -> None:
        self._lines_delivered += 1
        if self._on_line is None:
            self._logger.debug("Line (no consumer): %s", line.text)
            return
        try:
            self._on_line(line)
        except Exception as exc:
            self._logger.exception("Line consumer failed: %s", exc)

    def _handle_stream_closed(self, process: subprocess.Popen) -> None:
        try:
            returncode = process.wait(timeout=self._config.stop_timeout)
        except subprocess.TimeoutExpired:
            returncode = process.poll()
        if self._stop_requested.is_set():
            return

        error = StreamEnded(returncode)
        self._ended_error = error
        self._logger.error("%s", error)
        if self._on_stream_ended is None:
            return
        try:
            self._on_stream_ended(error)
        except Exception as exc:
            self._logger.exception("Stream-ended callback failed: %s", exc)
