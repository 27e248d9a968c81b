# FilePath: "/bot_launcher/server.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Launcher service. Deployment API, example webhook / WebSocket sinks,
#              health and metrics.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import logging
from typing import Optional

from fastapi import APIRouter, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import Counter, Gauge, generate_latest
from starlette.responses import Response

from .errors import DuplicateInstanceError, InstanceNotFoundError, InstanceStartError
from .launcher import FleetLauncher
from .models import DeploymentRequest, describe_errors
from .runtime import DockerRuntime
from .settings import LauncherSettings, get_settings

logger = logging.getLogger("bot_launcher.server")

# =========================
# Metrics
# =========================
DEPLOYMENTS_COUNTER = Counter("mbf_launcher_deployments_total", "Deployment requests", ["outcome"])
INSTANCES_GAUGE = Gauge("mbf_launcher_instances", "Bot instances tracked by the launcher")


# =========================
# Deployment API
# =========================
bot_router = APIRouter(tags=["Bot Deployment"])


@bot_router.post("/bot", status_code=202)
async def deploy_bot(request: Request, deployment: DeploymentRequest):
    launcher: FleetLauncher = request.app.state.launcher
    bot_id = str(deployment.bot_id)

    try:
        result = await launcher.deploy(deployment)
    except DuplicateInstanceError as e:
        DEPLOYMENTS_COUNTER.labels(outcome="duplicate").inc()
        return JSONResponse(status_code=409, content={"message": e.message, "botId": bot_id})
    except InstanceStartError as e:
        DEPLOYMENTS_COUNTER.labels(outcome="failed").inc()
        logger.error("Failed to start bot container for botId: %s", bot_id)
        return JSONResponse(status_code=500, content={"message": "Failed to start bot container", "error": e.message})

    DEPLOYMENTS_COUNTER.labels(outcome="started").inc()
    INSTANCES_GAUGE.set(len(await launcher.list_instances()))
    return result.model_dump(by_alias=True)


@bot_router.get("/bots")
async def list_bots(request: Request):
    launcher: FleetLauncher = request.app.state.launcher
    instances = await launcher.list_instances()
    return {"bots": [record.model_dump(mode="json") for record in instances]}


@bot_router.delete("/bot/{bot_id}")
async def stop_bot(request: Request, bot_id: str):
    launcher: FleetLauncher = request.app.state.launcher
    try:
        record = await launcher.stop(bot_id)
    except InstanceNotFoundError as e:
        return JSONResponse(status_code=404, content={"message": e.message})

    INSTANCES_GAUGE.set(len(await launcher.list_instances()))
    return {"message": "Bot container stopped", "botId": bot_id, "containerName": record.container_name}


# =========================
# Example sinks
# =========================
sink_router = APIRouter(tags=["Example Sinks"])


@sink_router.post("/wh/bot")
async def webhook(request: Request):
    try:
        data = await request.json()
    except ValueError:
        data = (await request.body()).decode("utf-8", errors="replace")
    logger.info("Received webhook message. data=%s", data)
    return PlainTextResponse("Webhook received")


@sink_router.websocket("/ws/bot")
async def websocket_sink(websocket: WebSocket):
    await websocket.accept()
    logger.info("Client connected to /api/ws/bot")
    try:
        while True:
            message = await websocket.receive_text()
            logger.info("Received websocket message: %s", message)
            await websocket.send_text(f"Echo: {message}")
    except WebSocketDisconnect:
        logger.info("Client disconnected from /api/ws/bot")


# =========================
# App
# =========================
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"errors": describe_errors(exc.errors())})


def build_launcher(settings: LauncherSettings) -> FleetLauncher:
    return FleetLauncher(
        DockerRuntime(),
        image=settings.BOT_IMAGE,
        network=settings.DOCKER_NETWORK,
        container_prefix=settings.CONTAINER_PREFIX,
        bot_env=settings.BOT_ENV,
        port_range=(settings.BOT_PORT_RANGE_START, settings.BOT_PORT_RANGE_END),
    )


def create_app(launcher: FleetLauncher, title: Optional[str] = None) -> FastAPI:
    app = FastAPI(title=title or "MBF Bot Launcher", description="Deploys meeting bots, one container per bot")
    app.state.launcher = launcher
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(bot_router, prefix="/api")
    app.include_router(sink_router, prefix="/api")

    @app.get("/health/live")
    async def liveness():
        return {"status": "running"}

    @app.get("/metrics")
    async def metrics():
        return Response(content=generate_latest(), media_type="text/plain")

    return app


def main() -> None:
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app = create_app(build_launcher(settings), title=settings.APP_NAME)
    logger.info("Bot launcher server running on port %s", settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
