# FilePath: "/bot_launcher/runtime.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Process runtime that starts and stops one isolated bot instance.
#              The Docker implementation wraps the blocking Docker SDK in the default executor.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import docker
from docker.errors import DockerException, ImageNotFound, NotFound

from .errors import InstanceStartError

logger = logging.getLogger("bot_launcher.runtime")


@dataclass(frozen=True)
class InstanceSpec:
    """Everything needed to start one bot instance."""
    bot_id: str
    name: str
    port: int
    meeting_url: str
    notifier_urls: List[str] = field(default_factory=list)
    image: str = "teams-bot:latest"
    network: Optional[str] = None
    bot_env: str = "production"

    def environment(self) -> Dict[str, str]:
        return {
            "BOT_ENV": self.bot_env,
            "PORT": str(self.port),
            "MEETING_URL": self.meeting_url,
            "NOTIFIER_URLS": ",".join(self.notifier_urls),
            "BOT_ID": self.bot_id,
        }


class ProcessRuntime(ABC):
    @abstractmethod
    async def start(self, spec: InstanceSpec) -> str:
        """Starts the instance and returns its runtime id. Raises ``InstanceStartError``."""
        pass

    @abstractmethod
    async def stop(self, name: str) -> None:
        pass

    async def is_running(self, name: str) -> bool:
        """Whether the named instance is still alive. Runtimes that cannot tell report True."""
        return True


class DockerRuntime(ProcessRuntime):
    """
    Runs each bot as a detached container named after the bot id.

    Docker rejects a second container with the same name, which backs the
    launcher's own one-instance-per-bot check.
    """

    def __init__(self, client: Optional[docker.DockerClient] = None, remove_on_stop: bool = True):
        self._client = client
        self.remove_on_stop = remove_on_stop

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def _create(self, spec: InstanceSpec):
        kwargs = dict(
            name=spec.name,
            environment=spec.environment(),
            ports={f"{spec.port}/tcp": spec.port},
            network=spec.network,
        )
        try:
            return self.client.containers.create(spec.image, **kwargs)
        except ImageNotFound:
            logger.info("Image %s not found locally, pulling", spec.image)
            self.client.images.pull(spec.image)
            return self.client.containers.create(spec.image, **kwargs)

    def _run(self, spec: InstanceSpec) -> str:
        container = self._create(spec)
        try:
            container.start()
        except DockerException:
            # A created but unstarted container still holds the bot's name.
            try:
                container.remove(force=True)
            except DockerException as e:
                logger.warning("Could not remove container %s after failed start: %s", spec.name, e)
            raise
        return container.id

    def _is_running(self, name: str) -> bool:
        try:
            return self.client.containers.get(name).status == "running"
        except NotFound:
            return False

    def _stop(self, name: str) -> None:
        container = self.client.containers.get(name)
        container.stop()
        if self.remove_on_stop:
            container.remove()

    async def start(self, spec: InstanceSpec) -> str:
        logger.info("Attempting to start bot container %s. env=%s", spec.name, spec.environment())
        loop = asyncio.get_running_loop()
        try:
            container_id = await loop.run_in_executor(None, self._run, spec)
        except DockerException as e:
            logger.error("Failed to start bot container %s: %s", spec.name, e)
            raise InstanceStartError(spec.bot_id, str(e)) from e

        logger.info("Successfully started bot container %s (%s)", spec.name, container_id[:12])
        return container_id

    async def stop(self, name: str) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._stop, name)
        except NotFound:
            logger.warning("Container %s is already gone", name)
            return
        logger.info("Stopped bot container %s", name)

    async def is_running(self, name: str) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._is_running, name)
