import logging
import os
import threading
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from livenotes.context import AppContext
from livenotes.routers.control import create_control_router
from livenotes.services.crash_logging import enable_crash_logging
from livenotes.services.llm.ollama_provider import ensure_ollama_running
from livenotes.services.logging_setup import configure_logging
from livenotes.services.session import ListeningSession, create_session
from livenotes.services.settings import load_config
from livenotes.services.summarization import SummarizationService

__version__ = "0.1.0"


def boot(ctx: Optional[AppContext] = None) -> tuple[AppContext, dict]:
    """Set up logging and read config; shared by the HTTP app and the terminal loop."""
    ctx = ctx or AppContext.from_cwd()
    ctx.ensure_dirs()
    configure_logging(ctx.logs_dir)
    enable_crash_logging(ctx.crash_log_path)
    logger = logging.getLogger("livenotes.boot")
    logger.info("Boot: cwd=%s data_dir=%s", os.getcwd(), ctx.data_dir)

    config = load_config(ctx.config_path)
    _maybe_launch_ollama(ctx, logger)
    return ctx, config


def _maybe_launch_ollama(ctx: AppContext, logger: logging.Logger) -> None:
    summarization = SummarizationService(ctx.config_path)
    try:
        provider_name, _ = summarization.get_selected_model()
    except Exception as exc:
        logger.warning("Boot: no usable model selection: %s", exc)
        return
    if provider_name != "ollama":
        return
    ollama_url = summarization.get_provider_config("ollama").get("base_url") or "http://127.0.0.1:11434"
    threading.Thread(
        target=ensure_ollama_running,
        args=(ollama_url,),
        daemon=True,
        name="ollama-launcher",
    ).start()
    logger.info("Boot: Ollama auto-launch initiated in background")


def create_app(session: Optional[ListeningSession] = None) -> FastAPI:
    logger = logging.getLogger("livenotes.boot")
    if session is None:
        ctx, config = boot()
        session = create_session(ctx, config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        session.start()
        session.start_control_thread()
        logger.info("Boot: session running")
        try:
            yield
        finally:
            notes = session.shutdown()
            logger.info("Shutdown: notes flushed (%d chars)", len(notes))

    app = FastAPI(title="livenotes", version=__version__, lifespan=lifespan)
    app.state.session = session
    app.include_router(create_control_router(session))
    logger.info("Boot: control router mounted")

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok", "version": __version__, "stopped": session.is_stopped()}

    return app
