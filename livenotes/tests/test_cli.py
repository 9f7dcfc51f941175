import io

from livenotes.cli import operator_input_loop
from livenotes.services.session import ControlCommand


class RecordingSession:
    def __init__(self) -> None:
        self.commands = []
        self.shutdown_requests = 0
        self.interrupts = 0
        self.stopped = False

    def submit(self, command):
        self.commands.append(ControlCommand(command))
        return True

    def request_shutdown(self):
        self.shutdown_requests += 1

    def request_interrupt(self):
        self.interrupts += 1
        return True

    def is_stopped(self):
        return self.stopped


def test_enter_toggles_begin_and_end():
    session = RecordingSession()
    out = io.StringIO()

    operator_input_loop(session, io.StringIO("\n\n\n\nq\n"), out=out)

    assert session.commands == [
        ControlCommand.BEGIN_QUESTION,
        ControlCommand.END_QUESTION,
        ControlCommand.BEGIN_QUESTION,
        ControlCommand.END_QUESTION,
    ]
    assert session.shutdown_requests == 1
    assert "end of the question" in out.getvalue()


def test_interrupt_bypasses_queue_and_resets_toggle():
    session = RecordingSession()

    operator_input_loop(session, io.StringIO("\ni\n\ns\n"), out=io.StringIO())

    assert session.interrupts == 1
    assert session.commands == [
        ControlCommand.BEGIN_QUESTION,
        ControlCommand.BEGIN_QUESTION,
        ControlCommand.SUMMARIZE,
    ]


def test_closed_input_requests_shutdown():
    session = RecordingSession()

    operator_input_loop(session, io.StringIO(""), out=io.StringIO())

    assert session.commands == []
    assert session.shutdown_requests == 1


def test_stops_reading_once_session_stopped():
    session = RecordingSession()
    session.stopped = True

    operator_input_loop(session, io.StringIO("\n\n"), out=io.StringIO())

    assert session.commands == []
    assert session.shutdown_requests == 0
