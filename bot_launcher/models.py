# FilePath: "/bot_launcher/models.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Pydantic models for deployment requests, responses and instance records.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, field_validator


class DeploymentRequest(BaseModel):
    """
    Body of ``POST /api/bot``.

    ``port`` stays None when omitted; the launcher assigns one.
    ``botId`` is generated when omitted.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    port: Optional[int] = Field(default=None, ge=1, le=65535)
    meeting_url: AnyUrl = Field(alias="meetingUrl")
    notifier_urls: List[str] = Field(default_factory=list, alias="notifierUrls")
    bot_id: uuid.UUID = Field(default_factory=uuid.uuid4, alias="botId")

    @field_validator("notifier_urls")
    @classmethod
    def _strip_blank_urls(cls, value: List[str]) -> List[str]:
        return [url.strip() for url in value if url.strip()]


def describe_errors(errors: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Reduces pydantic error entries to JSON-safe {loc, msg, type} items."""
    return [{"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]} for err in errors]


class DeploymentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Bot container started successfully"
    bot_id: str = Field(alias="botId")
    port: int
    container_name: str = Field(alias="containerName")


class InstanceStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"


class InstanceRecord(BaseModel):
    """One bot instance as tracked by the launcher"""
    bot_id: str
    container_name: str
    port: int
    status: InstanceStatus = InstanceStatus.PENDING
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
