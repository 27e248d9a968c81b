# FilePath: "/meeting_bot/agent.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Bot process. Runs the orchestrator in the background and serves
#              captions, status, health and metrics over HTTP.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest
from starlette.responses import Response

from .automation.playwright_driver import PlaywrightSession
from .delivery.notifier import Notifier
from .errors import CaptionsNotStartedError
from .procedures.orchestrator import Orchestrator
from .settings import BotConfig, get_settings
from .sinks import LogSink, TranscriptSink, configure_logging, get_bot_logger
from .status import BotStatus

logger = logging.getLogger("meeting_bot.agent")

SHUTDOWN_GRACE_SECONDS = 30


# =========================
# Bot Runner
# =========================
class BotRunner:
    """Launches the orchestrator in the background and tears it down on exit or failure."""

    def __init__(self, orchestrator: Orchestrator, shutdown_grace_seconds: float = SHUTDOWN_GRACE_SECONDS):
        self.orchestrator = orchestrator
        self.shutdown_grace_seconds = shutdown_grace_seconds
        self.logger = get_bot_logger("runner", orchestrator.bot_id)
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        try:
            await self.orchestrator.launch()
            self.logger.info("Bot has deployed and joined the meeting.")
        except Exception as e:
            self.logger.error(f"Bot failed, tearing down: {e}")
            await self._teardown()

    async def stop(self) -> None:
        """Lets the current step settle (bounded by the grace period), then tears down."""
        if self._task is not None and not self._task.done():
            done, _ = await asyncio.wait({self._task}, timeout=self.shutdown_grace_seconds)
            if not done:
                self.logger.warning(f"Current step did not settle within {self.shutdown_grace_seconds}s, cancelling.")
                self._task.cancel()
                await asyncio.gather(self._task, return_exceptions=True)
        await self._teardown()

    async def _teardown(self) -> None:
        try:
            await self.orchestrator.shutdown()
        except Exception as e:
            self.logger.error(f"Error during shutdown: {e}")


def build_runner(config: BotConfig, log_format: str = "text") -> BotRunner:
    log_sink = LogSink(config.bot_id, config.output_dir, log_format=log_format).attach()
    orchestrator = Orchestrator(
        config,
        PlaywrightSession(headless=config.headless),
        notifier=Notifier(config.notifier_urls, config.bot_id),
        log_sink=log_sink,
        transcript=TranscriptSink(config.bot_id, config.output_dir),
    )
    return BotRunner(orchestrator)


# =========================
# FastAPI Wrapper
# =========================
def create_app(runner: Optional[BotRunner] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.runner is not None:
            await app.state.runner.start()
        yield
        if app.state.runner is not None:
            await app.state.runner.stop()

    app = FastAPI(title="MBF Meeting Bot", lifespan=lifespan)
    app.state.runner = runner

    def _orchestrator() -> Optional[Orchestrator]:
        return app.state.runner.orchestrator if app.state.runner is not None else None

    @app.get("/captions")
    async def captions():
        orchestrator = _orchestrator()
        if orchestrator is None:
            return JSONResponse(status_code=503, content={"error": "Bot not initialized"})

        try:
            return {"captions": orchestrator.get_captions()}
        except CaptionsNotStartedError:
            return JSONResponse(status_code=503, content={"error": "Captions not started"})
        except Exception as e:
            logger.error(f"Error getting captions: {e}")
            return JSONResponse(status_code=500, content={"error": "Failed to get captions"})

    @app.get("/status")
    async def status():
        orchestrator = _orchestrator()
        if orchestrator is None:
            return JSONResponse(status_code=503, content={"error": "Bot not initialized"})
        return {
            "botId": orchestrator.bot_id,
            "status": orchestrator.status.value,
            "inCall": orchestrator.is_in_call,
            "history": orchestrator.status_history,
        }

    @app.get("/health/live")
    async def liveness():
        orchestrator = _orchestrator()
        if orchestrator is not None and orchestrator.status is BotStatus.FATAL:
            return JSONResponse(status_code=503, content={"status": "fatal"})
        return {"status": "running"}

    @app.get("/health/ready")
    async def readiness():
        orchestrator = _orchestrator()
        if orchestrator is not None and orchestrator.is_in_call:
            return {"status": "in_call"}
        return Response(status_code=503, content="Joining...")

    @app.get("/metrics")
    async def metrics():
        return Response(content=generate_latest(), media_type="text/plain")

    return app


def main() -> None:
    import uvicorn

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    runner = build_runner(settings.to_config(), log_format=settings.LOG_FORMAT)
    # Run the HTTP server (which also starts the bot via lifespan)
    uvicorn.run(create_app(runner), host=settings.HTTP_HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
