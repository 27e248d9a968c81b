# FilePath: "/bot_launcher/registry.py"
# Project: Meeting Bot Fleet (MBF)
# Description: In-memory registry of bot instances started by this launcher.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import asyncio
from typing import Dict, List, Optional

from .errors import DuplicateInstanceError
from .models import InstanceRecord, InstanceStatus


class InstanceRegistry:
    """
    Tracks one record per bot id.

    Current Implementation: In-Memory (Dict), lost on restart.
    A bot id is reserved (``pending``) before the runtime is asked to start it,
    so two concurrent deployments of the same id cannot both reach the runtime.
    """

    def __init__(self):
        self._records: Dict[str, InstanceRecord] = {}

        # Concurrency lock to ensure task safety during writes
        self._lock = asyncio.Lock()

    async def reserve(self, bot_id: str, container_name: str, port: int) -> InstanceRecord:
        """Claims ``bot_id``. Raises ``DuplicateInstanceError`` while another instance holds it."""
        async with self._lock:
            existing = self._records.get(bot_id)
            if existing is not None:
                raise DuplicateInstanceError(bot_id)

            record = InstanceRecord(bot_id=bot_id, container_name=container_name, port=port)
            self._records[bot_id] = record
            return record

    async def mark_running(self, bot_id: str) -> InstanceRecord:
        async with self._lock:
            record = self._records[bot_id].model_copy(update={"status": InstanceStatus.RUNNING})
            self._records[bot_id] = record
            return record

    async def release(self, bot_id: str) -> Optional[InstanceRecord]:
        async with self._lock:
            return self._records.pop(bot_id, None)

    async def get(self, bot_id: str) -> Optional[InstanceRecord]:
        return self._records.get(bot_id)

    async def list(self) -> List[InstanceRecord]:
        return list(self._records.values())
