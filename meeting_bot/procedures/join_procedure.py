# FilePath: "/meeting_bot/procedures/join_procedure.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Join state machine. Drives the browser from the meeting link to the
#              call (through the lobby when there is one) and back out again.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import asyncio
from typing import Dict, Optional

import aiohttp

from ..automation.base import AutomationCapability
from ..errors import JoinFlowError, LaunchUrlResolutionError, LeaveFlowError
from ..settings import is_url
from ..sinks import get_bot_logger
from ..status import JoinStatus, StatusHistory
from .selectors import DEFAULT_SELECTORS, TeamsSelectors

# Query flags that make the launcher page skip the "open the desktop app" prompt
LAUNCH_QUERY_FLAGS: Dict[str, str] = {
    "msLaunch": "false",
    "type": "meetup-join",
    "directDl": "true",
    "enableMobilePage": "true",
    "suppressPrompt": "true",
}

LAUNCHER_WAIT_SECONDS = 30
NAME_INPUT_WAIT_SECONDS = 15
JOIN_BUTTON_WAIT_SECONDS = 30
HANGUP_WAIT_SECONDS = 10


class LaunchUrlResolver:
    """Follows the redirects of a meeting link and returns the launcher URL with the web-join flags."""

    def __init__(self, timeout_seconds: float = 30, flags: Optional[Dict[str, str]] = None):
        self.timeout_seconds = timeout_seconds
        self.flags = dict(flags or LAUNCH_QUERY_FLAGS)

    async def resolve(self, meeting_url: str) -> str:
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(meeting_url, allow_redirects=True) as resp:
                final_url = resp.url

        return str(final_url.update_query(self.flags))


class JoinProcedure:
    """
    Join flow of one bot.

    The steps are issued in order by the orchestrator; the procedure does not
    enforce the ordering itself. Required steps raise on failure after recording
    ``fatal``; the two probes return a bool and never raise on absence.
    """

    def __init__(
        self,
        automation: AutomationCapability,
        bot_id: str,
        bot_name: str = "MeetingBot",
        resolver: Optional[LaunchUrlResolver] = None,
        selectors: TeamsSelectors = DEFAULT_SELECTORS,
    ):
        self.automation = automation
        self.bot_id = bot_id
        self.bot_name = bot_name
        self.resolver = resolver or LaunchUrlResolver()
        self.selectors = selectors
        self.history: StatusHistory[JoinStatus] = StatusHistory(JoinStatus)
        self.logger = get_bot_logger("join_procedure", bot_id)

        self.history.append(JoinStatus.INITIALIZING)

    @property
    def status(self) -> JoinStatus:
        latest = self.history.latest
        return latest.status if latest else JoinStatus.UNKNOWN

    def _fail(self, message: str, sub_code: Optional[str] = None) -> None:
        self.history.append(JoinStatus.FATAL, sub_code=sub_code, message=message)

    async def start_meeting_launcher_flow(self, meeting_url: str) -> None:
        if not is_url(meeting_url):
            self._fail("Invalid meeting URL", sub_code=LaunchUrlResolutionError.default_sub_code)
            raise LaunchUrlResolutionError("Invalid meeting URL", details={"meeting_url": meeting_url})

        try:
            launch_url = await self.resolver.resolve(meeting_url)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self.logger.error(f"Error resolving redirect: {e!r}")
            self._fail("Unable to resolve launch URL from meeting URL", sub_code=LaunchUrlResolutionError.default_sub_code)
            raise LaunchUrlResolutionError(
                "Unable to resolve launch URL from meeting URL",
                details={"meeting_url": meeting_url, "error": str(e)},
            ) from e

        self.logger.info(f"Redirect resolved: {launch_url}")

        try:
            await self.automation.navigate(launch_url)
            await self.automation.wait_for_selector(self.selectors.continue_in_browser, LAUNCHER_WAIT_SECONDS)
            self.logger.info('Found "Continue on this browser" button.')
            await self.automation.click(self.selectors.continue_in_browser)
        except Exception as e:
            self.logger.error(f'Failed to find "Continue on this browser" button: {e}')
            self._fail("Meeting launcher flow failed")
            raise JoinFlowError("Meeting launcher flow failed", details={"launch_url": launch_url}) from e

    async def join_meeting_lobby_flow(self) -> None:
        self.history.append(JoinStatus.JOINING)

        try:
            await self.automation.wait_for_selector(self.selectors.name_input, NAME_INPUT_WAIT_SECONDS)
            self.logger.info("Found name input, filling name...")
            await self.automation.fill(self.selectors.name_input, self.bot_name)

            await self.automation.wait_for_selector(self.selectors.join_now_button, JOIN_BUTTON_WAIT_SECONDS)
            self.logger.info('Found "Join now" button, clicking...')
            await self.automation.click(self.selectors.join_now_button)
        except Exception as e:
            self.logger.error(f"Failed to join meeting lobby: {e}")
            self._fail("Failed to join meeting lobby")
            raise JoinFlowError("Failed to join meeting lobby") from e

    async def is_in_meeting_lobby(self, wait_for_seconds: float = 1) -> bool:
        if wait_for_seconds > 1:
            self.logger.info("Checking if bot is in meeting lobby...")

        try:
            in_lobby = await self.automation.is_text_present(self.selectors.lobby_text, wait_for_seconds)
        except Exception as e:
            self.logger.warning(f"Lobby probe failed: {e}")
            in_lobby = False

        if not in_lobby:
            self.logger.info("Bot is not in meeting lobby.")
            return False

        self.logger.info("Bot is in meeting lobby.")
        if not self.history.contains(JoinStatus.IN_WAITING_ROOM):
            self.history.append(JoinStatus.IN_WAITING_ROOM)
        return True

    async def is_in_meeting(self, wait_for_seconds: float = 1) -> bool:
        if wait_for_seconds > 1:
            self.logger.info("Checking if bot is in meeting...")

        try:
            in_call = await self.automation.is_present(self.selectors.hangup_button, wait_for_seconds)
        except Exception as e:
            self.logger.warning(f"In-call probe failed: {e}")
            in_call = False

        if not in_call:
            self.logger.info("Bot is not in meeting.")
            return False

        self.logger.info("Bot is in meeting.")
        if not self.history.contains(JoinStatus.JOINED):
            self.history.append(JoinStatus.JOINED)
        return True

    async def leave_meeting_flow(self) -> None:
        try:
            await self.automation.wait_for_selector(self.selectors.hangup_button, HANGUP_WAIT_SECONDS)
            self.logger.info('Found "Leave" button, clicking...')
            await self.automation.activate(self.selectors.hangup_button)
        except Exception as e:
            self.logger.error(f"Failed to leave meeting: {e}")
            self._fail("Failed to leave meeting")
            raise LeaveFlowError("Failed to leave meeting") from e
