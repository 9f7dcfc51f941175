"""Terminal operator loop.

Enter starts a question, Enter again ends it and the answer is spoken.
``i`` interrupts a stuck answer, ``s`` forces a summary, ``q`` or Ctrl-C
stops listening and writes the final show notes.
"""

from __future__ import annotations

import logging
import signal
import sys
import threading
from typing import TextIO

from livenotes.main import boot
from livenotes.services.event_bus import NotesUpdated
from livenotes.services.session import ControlCommand, ListeningSession, create_session
from livenotes.services.transcript_stream import LaunchError

_logger = logging.getLogger("livenotes.cli")


def operator_input_loop(session: ListeningSession, stream: TextIO, out: TextIO = sys.stdout) -> None:
    """Translate operator keystrokes into queued control commands."""
    answering = False
    out.write("Press Enter to signal a question start...\n")
    for raw in stream:
        if session.is_stopped():
            return
        key = raw.strip().lower()
        if key in ("q", "quit", "exit"):
            session.request_shutdown()
            return
        if key in ("i", "interrupt"):
            session.request_interrupt()
            answering = False
            out.write("Answer interrupted. Press Enter to signal a question start...\n")
            continue
        if key in ("s", "summarize"):
            session.submit(ControlCommand.SUMMARIZE)
            continue

        if answering:
            session.submit(ControlCommand.END_QUESTION)
            out.write("Answering... Press Enter to signal a question start...\n")
        else:
            session.submit(ControlCommand.BEGIN_QUESTION)
            out.write("Press Enter to signal the end of the question...\n")
        answering = not answering
        out.flush()
    # stdin closed
    session.request_shutdown()


def main() -> int:
    ctx, config = boot()
    session = create_session(ctx, config)

    def show(event: NotesUpdated) -> None:
        print(f"\n--- notes updated ({event.source}) ---\n{event.entry}\n", flush=True)

    session.event_bus.subscribe(show)

    try:
        session.start()
    except LaunchError as exc:
        _logger.error("Unable to start listening: %s", exc)
        print(f"Unable to start the speech source: {exc}", file=sys.stderr)
        session.shutdown()
        return 1

    def on_interrupt(signum, frame) -> None:
        print("\nShutting down...", flush=True)
        session.request_shutdown()

    previous_handler = signal.signal(signal.SIGINT, on_interrupt)
    threading.Thread(
        target=operator_input_loop,
        args=(session, sys.stdin),
        daemon=True,
        name="operator-input",
    ).start()

    try:
        session.run_control_loop()
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        print("Generating show notes...", flush=True)
        session.shutdown()

    print(f"Show notes written to {session.notes.path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
