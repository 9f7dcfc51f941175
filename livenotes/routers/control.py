import logging
import time

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from livenotes.services.session import ControlCommand, ListeningSession


class CommandResponse(BaseModel):
    status: str = Field(..., description="queued or applied")
    command: str
    pending: int = Field(0, description="Commands waiting in the control queue")


class NotesResponse(BaseModel):
    notes: str
    entries: int
    path: str | None = None


class SummarizeResponse(BaseModel):
    appended: bool
    entries: int


def create_control_router(session: ListeningSession) -> APIRouter:
    router = APIRouter()
    logger = logging.getLogger("livenotes.api.control")

    def enqueue(command: ControlCommand) -> CommandResponse:
        if not session.submit(command):
            raise HTTPException(status_code=409, detail="Session is stopped")
        logger.info("Command queued via API: %s", command.value)
        return CommandResponse(status="queued", command=command.value, pending=session.pending_commands())

    @router.get("/api/session/status")
    def session_status() -> dict:
        return session.status()

    @router.post("/api/question/begin", response_model=CommandResponse)
    def begin_question() -> CommandResponse:
        return enqueue(ControlCommand.BEGIN_QUESTION)

    @router.post("/api/question/end", response_model=CommandResponse)
    def end_question() -> CommandResponse:
        return enqueue(ControlCommand.END_QUESTION)

    @router.post("/api/question/interrupt", response_model=CommandResponse)
    def interrupt_answer() -> CommandResponse:
        # Applied immediately: a running answer holds the control queue.
        if session.is_stopped():
            raise HTTPException(status_code=409, detail="Session is stopped")
        was_answering = session.request_interrupt()
        logger.info("Interrupt via API (was_answering=%s)", was_answering)
        return CommandResponse(
            status="applied",
            command=ControlCommand.INTERRUPT_ANSWER.value,
            pending=session.pending_commands(),
        )

    @router.post("/api/session/shutdown", response_model=CommandResponse)
    def shutdown() -> CommandResponse:
        if session.is_stopped():
            raise HTTPException(status_code=409, detail="Session is stopped")
        session.request_shutdown()
        return CommandResponse(status="queued", command=ControlCommand.SHUTDOWN.value)

    @router.get("/api/notes", response_model=NotesResponse)
    def get_notes() -> NotesResponse:
        notes = session.notes
        return NotesResponse(notes=notes.text(), entries=notes.entry_count(), path=notes.path)

    @router.post("/api/notes/summarize", response_model=SummarizeResponse)
    def summarize_now() -> SummarizeResponse:
        if session.is_stopped():
            raise HTTPException(status_code=409, detail="Session is stopped")
        start_time = time.perf_counter()
        appended = session.execute(ControlCommand.SUMMARIZE)
        logger.info(
            "Forced summarization appended=%s in %.2f ms",
            appended,
            (time.perf_counter() - start_time) * 1000,
        )
        return SummarizeResponse(appended=bool(appended), entries=session.notes.entry_count())

    return router
