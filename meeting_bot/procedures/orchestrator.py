# FilePath: "/meeting_bot/procedures/orchestrator.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Lifecycle owner of one bot: browser setup, join, caption subscription
#              and teardown, recorded in an append-only status history.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import asyncio
from typing import Any, Dict, List, Optional

from ..automation.base import AutomationCapability
from ..delivery.notifier import Notifier
from ..errors import (
    BotFatalError,
    CaptionsNotStartedError,
    JoinFlowError,
    SessionNotStartedError,
    UnknownPageError,
)
from ..metrics import IN_CALL_GAUGE, STATUS_CHANGES_COUNTER
from ..settings import BotConfig
from ..sinks import LogSink, TranscriptSink, get_bot_logger
from ..status import JOIN_TO_BOT_STATUS, BotStatus, JoinStatus, StatusHistory
from .captions_procedure import CaptionsProcedure
from .join_procedure import JoinProcedure, LaunchUrlResolver
from .selectors import DEFAULT_SELECTORS, TeamsSelectors

ADMISSION_POLL_PAUSE_SECONDS = 1.0


class Orchestrator:
    """
    Drives one bot through setup, join and caption subscription, then teardown.

    Steps run strictly in sequence. Any failure during ``launch`` is recorded as
    ``fatal`` and re-raised; ``fatal`` is terminal for the instance.
    """

    def __init__(
        self,
        config: BotConfig,
        automation: AutomationCapability,
        notifier: Optional[Notifier] = None,
        log_sink: Optional[LogSink] = None,
        transcript: Optional[TranscriptSink] = None,
        resolver: Optional[LaunchUrlResolver] = None,
        selectors: TeamsSelectors = DEFAULT_SELECTORS,
    ):
        self.config = config
        self.bot_id = config.bot_id
        self.automation = automation
        self.notifier = notifier or Notifier(config.notifier_urls, config.bot_id)
        self.log_sink = log_sink
        self.transcript = transcript
        self.resolver = resolver
        self.selectors = selectors

        self.history: StatusHistory[BotStatus] = StatusHistory(BotStatus)
        self.logger = get_bot_logger("orchestrator", config.bot_id)

        self.join_procedure: Optional[JoinProcedure] = None
        self.captions_procedure: Optional[CaptionsProcedure] = None

        self._session_started = False
        self._in_call = False
        self._shut_down = False

        self._add_status_change(BotStatus.INITIALIZING)

    # ---------- State ----------

    @property
    def status(self) -> BotStatus:
        if self.history.contains(BotStatus.FATAL):
            return BotStatus.FATAL
        latest = self.history.latest
        return latest.status if latest else BotStatus.UNKNOWN

    @property
    def status_history(self) -> List[Dict[str, Any]]:
        return self.history.to_list()

    @property
    def is_in_call(self) -> bool:
        return self._in_call

    def _add_status_change(self, status: BotStatus, sub_code: Optional[str] = None, message: Optional[str] = None) -> None:
        self.history.append(status, sub_code=sub_code, message=message)
        STATUS_CHANGES_COUNTER.labels(status=status.value).inc()
        self.logger.info(f"Status changed to {status.value}" + (f" ({sub_code})" if sub_code else ""))

    def _mirror_join_status(self, join_status: JoinStatus, message: Optional[str] = None) -> None:
        self._add_status_change(JOIN_TO_BOT_STATUS[join_status], message=message)

    def _require_session(self) -> None:
        if not self._session_started:
            raise SessionNotStartedError("Browser session has not been started")

    # ---------- Lifecycle ----------

    async def launch(self) -> None:
        if self.status is BotStatus.FATAL:
            raise BotFatalError("Bot already failed; the instance must be restarted")

        try:
            await self._initialize_browser()
            await self._join_meeting()
            await self._subscribe_to_captions()
        except Exception as e:
            self._add_status_change(BotStatus.FATAL, sub_code=getattr(e, "sub_code", None), message=str(e))
            self.logger.error(f"Bot failed to launch: {e}")
            raise

    async def _initialize_browser(self) -> None:
        self._add_status_change(BotStatus.LAUNCHING)
        try:
            await self.automation.start()
        except Exception as e:
            self.logger.error(f"Error launching browser: {e}")
            raise

        self._session_started = True
        self.logger.info("Browser launched.")
        self._add_status_change(BotStatus.DONE, message="Browser session ready")

    async def _join_meeting(self) -> None:
        self._require_session()
        self._add_status_change(BotStatus.JOINING)

        if self.join_procedure is None:
            self.join_procedure = self._build_join_procedure()
        procedure = self.join_procedure

        await procedure.start_meeting_launcher_flow(self.config.meeting_url)
        await procedure.join_meeting_lobby_flow()

        if await procedure.is_in_meeting_lobby(wait_for_seconds=self.config.lobby_wait_seconds):
            self._mirror_join_status(JoinStatus.IN_WAITING_ROOM, "Bot is waiting in the meeting lobby")
            if not await self._wait_for_admission():
                raise JoinFlowError("Bot was not admitted from the lobby", sub_code="admission_timeout")
        elif not await procedure.is_in_meeting(wait_for_seconds=self.config.in_call_wait_seconds):
            raise UnknownPageError("Bot is neither in the lobby nor in the meeting")

        self._in_call = True
        IN_CALL_GAUGE.set(1)
        self._mirror_join_status(JoinStatus.JOINED, "Bot joined the meeting")
        self._add_status_change(BotStatus.DONE, message="Joined meeting")

    async def _wait_for_admission(self) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.admission_timeout_seconds

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                self.logger.warning(f"Bot was not admitted within {self.config.admission_timeout_seconds}s.")
                return False
            if await self.join_procedure.is_in_meeting(wait_for_seconds=min(self.config.in_call_wait_seconds, remaining)):
                return True
            await asyncio.sleep(min(ADMISSION_POLL_PAUSE_SECONDS, max(deadline - loop.time(), 0)))

    async def _subscribe_to_captions(self) -> None:
        self._require_session()
        self._add_status_change(BotStatus.IN_CALL_NOT_RECORDING)

        if self.captions_procedure is None:
            self.captions_procedure = CaptionsProcedure(
                self.automation,
                self.bot_id,
                self.notifier,
                transcript=self.transcript,
                selectors=self.selectors,
                poll_interval=self.config.caption_poll_interval,
            )

        await self.captions_procedure.enable_captions_flow()
        await self.captions_procedure.subscribe_to_captions()
        self._add_status_change(BotStatus.DONE, message="Subscribed to captions")

    def _build_join_procedure(self) -> JoinProcedure:
        return JoinProcedure(
            self.automation,
            self.bot_id,
            bot_name=self.config.bot_name,
            resolver=self.resolver,
            selectors=self.selectors,
        )

    def get_captions(self) -> List[Dict[str, Any]]:
        if self.captions_procedure is None or not self.captions_procedure.state.subscribed:
            raise CaptionsNotStartedError("Captions have not been started")
        return list(self.captions_procedure.state.captions)

    async def shutdown(self) -> None:
        """
        Leaves the call if in one, then releases the browser and closes the sinks.

        Leave-flow failures are logged and do not stop the teardown. A browser
        close failure is re-raised only after the sinks are closed.
        """
        if self._shut_down:
            self.logger.info("Shutdown already performed.")
            return
        self._shut_down = True
        self.logger.info("Attempting to close browser and leave the meeting if in meeting.")

        close_error: Optional[BaseException] = None
        try:
            if self.captions_procedure is not None:
                await self.captions_procedure.stop()

            if self._session_started:
                await self._leave_if_in_call()

            # A start that failed halfway may still hold a browser process.
            try:
                await self.automation.close()
            except Exception as e:
                self.logger.error(f"Error closing browser: {e}")
                close_error = e
            else:
                self.logger.info("Browser closed.")

            try:
                await self.notifier.close()
            except Exception as e:
                self.logger.warning(f"Error closing notifier: {e}")

            if close_error is None and self.status is not BotStatus.FATAL:
                self._add_status_change(BotStatus.DONE, message="Teardown complete")
        finally:
            self.logger.info("Shutdown complete.")
            if self.transcript is not None:
                self.transcript.close()
            if self.log_sink is not None:
                self.log_sink.close()

        if close_error is not None:
            raise close_error

    async def _leave_if_in_call(self) -> None:
        procedure = self.join_procedure or self._build_join_procedure()
        try:
            if await procedure.is_in_meeting(wait_for_seconds=self.config.leave_wait_seconds):
                await procedure.leave_meeting_flow()
                self._add_status_change(BotStatus.CALL_ENDED, message="Bot left the meeting")
        except Exception as e:
            self.logger.error(f"Failed to leave meeting: {e}")
        finally:
            self._in_call = False
            IN_CALL_GAUGE.set(0)
