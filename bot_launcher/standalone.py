# FilePath: "/bot_launcher/standalone.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Command line helper to start a single bot by hand.
#              `run` starts a container directly (free-port scan when no port is given),
#              `deploy` sends a deployment request to a running launcher.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import argparse
import asyncio
import json
import logging
import os
import sys
import uuid
from typing import List, Optional

import aiohttp
from pydantic import ValidationError

from .errors import LauncherError
from .models import DeploymentRequest, describe_errors
from .ports import SCAN_RANGE_END, SCAN_RANGE_START, find_free_port
from .runtime import DockerRuntime, InstanceSpec, ProcessRuntime
from .settings import get_settings

logger = logging.getLogger("bot_launcher.standalone")


def split_urls(raw: str) -> List[str]:
    return [url.strip() for url in (raw or "").split(",") if url.strip()]


def build_request(args: argparse.Namespace) -> DeploymentRequest:
    """Validates the command line the same way the launcher validates ``POST /api/bot``."""
    body = {"meetingUrl": args.meeting_url, "notifierUrls": split_urls(args.notifier_urls), "port": args.port}
    if args.bot_id:
        body["botId"] = args.bot_id
    try:
        return DeploymentRequest(**body)
    except ValidationError as e:
        raise LauncherError(
            "Invalid deployment request",
            error_code="invalid_request",
            details={"errors": describe_errors(e.errors())},
        ) from e


async def run_bot(args: argparse.Namespace, runtime: Optional[ProcessRuntime] = None) -> InstanceSpec:
    """Starts one bot container and returns the InstanceSpec it was started with."""
    request = build_request(args)

    port = request.port if request.port is not None else find_free_port(SCAN_RANGE_START, SCAN_RANGE_END)
    if port is None:
        raise LauncherError(f"No free port in {SCAN_RANGE_START}-{SCAN_RANGE_END}", error_code="no_free_port")

    bot_id = str(request.bot_id)
    spec = InstanceSpec(
        bot_id=bot_id,
        name=f"{args.container_prefix}-{bot_id}",
        port=port,
        meeting_url=str(request.meeting_url),
        notifier_urls=list(request.notifier_urls),
        image=args.image,
        network=args.network,
    )
    await (runtime or DockerRuntime()).start(spec)
    return spec


async def deploy_bot(args: argparse.Namespace) -> dict:
    """POSTs a deployment request to the launcher and returns its JSON reply."""
    body = {
        "meetingUrl": args.meeting_url,
        "notifierUrls": split_urls(args.notifier_urls),
        "botId": args.bot_id or str(uuid.uuid4()),
    }
    if args.port is not None:
        body["port"] = args.port

    url = f"{args.launcher_url.rstrip('/')}/api/bot"
    logger.info("Sending deployment request to the launcher at %s", url)
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=60)) as session:
        async with session.post(url, json=body) as resp:
            data = await resp.json(content_type=None)
            if resp.status != 202:
                raise LauncherError(f"Launcher replied {resp.status}", error_code="deploy_failed", details=data)
            return data


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--meeting-url", default=os.environ.get("MEETING_URL"), help="Meeting link (env: MEETING_URL).")
    common.add_argument(
        "--notifier-urls",
        default=os.environ.get("NOTIFIER_URLS", ""),
        help="Comma separated destinations for captions (env: NOTIFIER_URLS).",
    )
    common.add_argument("--bot-id", default=os.environ.get("BOT_ID"), help="Bot UUID; generated when omitted.")
    common.add_argument("--port", type=int, default=None, help="Bot port.")

    parser = argparse.ArgumentParser(description="Start a single meeting bot.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", parents=[common], help="Start a bot container directly (scans 4101-4199 for a free port).")
    run.add_argument("--image", default=settings.BOT_IMAGE)
    run.add_argument("--network", default=None, help="Docker network to attach to.")
    run.add_argument("--container-prefix", default=settings.CONTAINER_PREFIX)

    deploy = subparsers.add_parser("deploy", parents=[common], help="Ask a running launcher to start the bot.")
    deploy.add_argument("--launcher-url", default=f"http://localhost:{settings.PORT}")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.meeting_url:
        parser.error("MEETING_URL must be set in the environment or passed with --meeting-url")

    try:
        if args.command == "run":
            spec = asyncio.run(run_bot(args))
            print(f"Bot {spec.bot_id} started as {spec.name} on port {spec.port}")
        else:
            data = asyncio.run(deploy_bot(args))
            print(f"Bot deployed successfully: {json.dumps(data)}")
    except LauncherError as e:
        print(f"Error: {e.message} {json.dumps(e.details) if e.details else ''}".rstrip(), file=sys.stderr)
        sys.exit(1)
    except aiohttp.ClientError as e:
        print(f"Error: could not reach the launcher: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
