# FilePath: "/bot_launcher/launcher.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Fleet launcher. Turns a validated deployment request into exactly one
#              running bot instance and keeps track of the instances it started.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import logging
from typing import List, Optional

from .errors import InstanceNotFoundError, InstanceStartError
from .models import DeploymentRequest, DeploymentResponse, InstanceRecord, InstanceStatus
from .ports import DEFAULT_RANGE_END, DEFAULT_RANGE_START, default_port
from .registry import InstanceRegistry
from .runtime import InstanceSpec, ProcessRuntime

logger = logging.getLogger("bot_launcher.launcher")


class FleetLauncher:
    def __init__(
        self,
        runtime: ProcessRuntime,
        registry: Optional[InstanceRegistry] = None,
        image: str = "teams-bot:latest",
        network: Optional[str] = None,
        container_prefix: str = "teams-bot",
        bot_env: str = "production",
        port_range: tuple = (DEFAULT_RANGE_START, DEFAULT_RANGE_END),
    ):
        self.runtime = runtime
        self.registry = registry or InstanceRegistry()
        self.image = image
        self.network = network
        self.container_prefix = container_prefix
        self.bot_env = bot_env
        self.port_range = port_range

    def container_name(self, bot_id: str) -> str:
        return f"{self.container_prefix}-{bot_id}"

    async def deploy(self, request: DeploymentRequest) -> DeploymentResponse:
        """
        Starts one instance for ``request``.

        A running record whose instance has since exited is released first.
        Raises ``DuplicateInstanceError`` when the bot id already has an instance
        and ``InstanceStartError`` when the runtime fails; in the latter case the
        reservation is released and nothing is recorded.
        """
        bot_id = str(request.bot_id)
        port = request.port if request.port is not None else default_port(*self.port_range)
        name = self.container_name(bot_id)

        await self._forget_if_exited(bot_id)
        await self.registry.reserve(bot_id, name, port)

        spec = InstanceSpec(
            bot_id=bot_id,
            name=name,
            port=port,
            meeting_url=str(request.meeting_url),
            notifier_urls=list(request.notifier_urls),
            image=self.image,
            network=self.network,
            bot_env=self.bot_env,
        )
        try:
            await self.runtime.start(spec)
        except InstanceStartError:
            await self.registry.release(bot_id)
            raise
        except Exception as e:
            await self.registry.release(bot_id)
            logger.error("Failed to start bot instance for botId: %s: %s", bot_id, e)
            raise InstanceStartError(bot_id, str(e)) from e

        await self.registry.mark_running(bot_id)
        logger.info("Bot instance %s running on port %s", name, port)
        return DeploymentResponse(bot_id=bot_id, port=port, container_name=name)

    async def _forget_if_exited(self, bot_id: str) -> None:
        record = await self.registry.get(bot_id)
        if record is None or record.status is not InstanceStatus.RUNNING:
            return
        if await self.runtime.is_running(record.container_name):
            return

        logger.info("Bot instance %s exited on its own, releasing it", record.container_name)
        await self.runtime.stop(record.container_name)
        await self.registry.release(bot_id)

    async def stop(self, bot_id: str) -> InstanceRecord:
        record = await self.registry.get(bot_id)
        if record is None:
            raise InstanceNotFoundError(bot_id)

        await self.runtime.stop(record.container_name)
        await self.registry.release(bot_id)
        logger.info("Bot instance %s stopped", record.container_name)
        return record

    async def list_instances(self) -> List[InstanceRecord]:
        return await self.registry.list()
