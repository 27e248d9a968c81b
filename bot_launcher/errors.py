# FilePath: "/bot_launcher/errors.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Launcher exceptions.

from typing import Any, Dict, Optional


class LauncherError(Exception):
    """Base exception for launcher errors"""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class DuplicateInstanceError(LauncherError):
    """An instance for this bot id is already pending or running"""

    def __init__(self, bot_id: str):
        super().__init__(f"Bot with ID {bot_id} already has an instance", error_code="duplicate_instance")
        self.bot_id = bot_id


class InstanceStartError(LauncherError):
    """The process runtime failed to start the instance"""

    def __init__(self, bot_id: str, message: str):
        super().__init__(message, error_code="instance_start_failed", details={"bot_id": bot_id})
        self.bot_id = bot_id


class InstanceNotFoundError(LauncherError):
    def __init__(self, bot_id: str):
        super().__init__(f"No instance for bot {bot_id}", error_code="instance_not_found")
        self.bot_id = bot_id
