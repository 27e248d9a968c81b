# FilePath: "/meeting_bot/errors.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Exception hierarchy for the bot lifecycle and the delivery layer.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

from typing import Any, Dict, Optional


class BotError(Exception):
    """Base exception for bot lifecycle errors"""
    default_sub_code: Optional[str] = None

    def __init__(self, message: str, sub_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.sub_code = sub_code or self.default_sub_code
        self.details = details or {}


class LaunchUrlResolutionError(BotError):
    """The meeting link could not be resolved to a launch URL"""
    default_sub_code = "unresolvable_launch_url"


class JoinFlowError(BotError):
    """A required control of the join flow never appeared"""


class UnknownPageError(JoinFlowError):
    """Bot is neither in the lobby nor in the call"""
    default_sub_code = "unknown_page"


class LeaveFlowError(BotError):
    """The hang-up control could not be found or activated"""


class CaptionsError(BotError):
    """Live captions could not be turned on"""


class PreconditionError(BotError):
    """An operation was called before the step it depends on"""


class SessionNotStartedError(PreconditionError):
    default_sub_code = "session_not_started"


class CaptionsNotStartedError(PreconditionError):
    default_sub_code = "captions_not_started"


class BotFatalError(BotError):
    """The bot already reached the fatal status and must be restarted externally"""
    default_sub_code = "fatal"


class AutomationTimeoutError(BotError):
    """An element did not appear within the allotted time"""

    def __init__(self, selector: str, timeout_seconds: float, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Timed out after {timeout_seconds}s waiting for {selector!r}",
            sub_code="element_timeout",
            details=details,
        )
        self.selector = selector
        self.timeout_seconds = timeout_seconds


class DeliveryError(BotError):
    """A persistent-stream destination could not be reached"""

    def __init__(self, url: str, message: str, attempts: int = 0):
        super().__init__(message, sub_code="delivery_failed", details={"url": url, "attempts": attempts})
        self.url = url
        self.attempts = attempts


__all__ = [
    "BotError",
    "LaunchUrlResolutionError",
    "JoinFlowError",
    "UnknownPageError",
    "LeaveFlowError",
    "CaptionsError",
    "PreconditionError",
    "SessionNotStartedError",
    "CaptionsNotStartedError",
    "BotFatalError",
    "AutomationTimeoutError",
    "DeliveryError",
]
