# FilePath: "/meeting_bot/procedures/captions_procedure.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Turns on live captions and polls the caption surface in the background,
#              emitting every finalized caption line exactly once.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Tuple

from ..automation.base import AutomationCapability
from ..delivery.notifier import Notifier
from ..errors import CaptionsError
from ..metrics import CAPTIONS_COUNTER
from ..sinks import TranscriptSink, get_bot_logger
from ..status import utcnow
from .selectors import DEFAULT_SELECTORS, TeamsSelectors

CONTROL_WAIT_SECONDS = 10
DISPATCH_QUEUE_SIZE = 1000
EMITTED_WINDOW = 200


@dataclass
class CaptionEvent:
    speaker: str
    text: str
    captured_at: datetime = field(default_factory=utcnow)

    @property
    def fingerprint(self) -> Tuple[str, str]:
        return self.speaker.strip(), " ".join(self.text.split())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "speaker": self.speaker,
            "text": self.text,
            "capturedAt": self.captured_at.isoformat(),
        }


@dataclass
class CaptionsState:
    bot_id: str
    captions: List[Dict[str, Any]] = field(default_factory=list)
    enabled: bool = False
    subscribed: bool = False


class CaptionsProcedure:
    """
    Caption capture for one bot.

    Every visible caption item except the last is final. The last item may still
    be rewritten by the client while the speaker talks, so it only becomes final
    once it has been seen unchanged for ``stable_polls`` consecutive polls (or
    once another item appears after it).

    Items carry no identity of their own, so each poll is aligned against the
    tail of the lines already emitted: the longest run of emitted lines that
    matches the start of the visible finalized items is skipped and everything
    after it is new. The same words spoken twice are two lines.

    Observation and delivery run as two tasks. The capture loop records and
    transcribes lines and queues them; the dispatcher sends them to the notifier
    so a slow destination never delays the next poll.
    """

    def __init__(
        self,
        automation: AutomationCapability,
        bot_id: str,
        notifier: Notifier,
        transcript: Optional[TranscriptSink] = None,
        selectors: TeamsSelectors = DEFAULT_SELECTORS,
        poll_interval: float = 0.5,
        stable_polls: int = 2,
        max_read_failures: int = 20,
        queue_size: int = DISPATCH_QUEUE_SIZE,
    ):
        self.automation = automation
        self.bot_id = bot_id
        self.notifier = notifier
        self.transcript = transcript
        self.selectors = selectors
        self.poll_interval = poll_interval
        self.stable_polls = stable_polls
        self.max_read_failures = max_read_failures

        self.state = CaptionsState(bot_id=bot_id)
        self.logger = get_bot_logger("captions_procedure", bot_id)

        self.dispatch_queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue(maxsize=queue_size)

        self._emitted: Deque[Tuple[str, str]] = deque(maxlen=EMITTED_WINDOW)
        self._tail: Optional[Tuple[str, str]] = None
        self._tail_polls = 0
        self._task: Optional[asyncio.Task] = None
        self._dispatch_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def enable_captions_flow(self) -> None:
        steps = (
            ("more actions", self.selectors.more_button),
            ("language and speech", self.selectors.language_speech_menu),
            ("live captions", self.selectors.captions_toggle),
        )
        try:
            for label, selector in steps:
                await self.automation.wait_for_selector(selector, CONTROL_WAIT_SECONDS)
                self.logger.info(f'Found "{label}" control, activating...')
                await self.automation.activate(selector)
        except Exception as e:
            self.logger.error(f"Failed to enable captions: {e}")
            raise CaptionsError("Failed to enable captions") from e

        self.state.enabled = True
        self.logger.info("Live captions enabled.")

    async def subscribe_to_captions(self) -> None:
        """Starts the capture loop and the dispatcher in the background and returns immediately."""
        if self.running:
            self.logger.info("Already subscribed to captions.")
            return

        self._dispatch_task = asyncio.create_task(self._dispatch_loop())
        self._task = asyncio.create_task(self._capture_loop())
        self.state.subscribed = True
        self.logger.info("Subscribed to captions.")

    async def _capture_loop(self) -> None:
        failures = 0
        fields = {"speaker": self.selectors.caption_speaker, "text": self.selectors.caption_text}

        while True:
            try:
                entries = await self.automation.read_text_groups(self.selectors.caption_item, fields)
            except Exception as e:
                failures += 1
                self.logger.warning(f"Caption read failed ({failures}/{self.max_read_failures}): {e}")
                if failures >= self.max_read_failures:
                    self.logger.error(f"Caption capture stopped after {failures} consecutive read failures.")
                    return
                await asyncio.sleep(self.poll_interval)
                continue

            failures = 0
            self.process_snapshot(entries)
            await asyncio.sleep(self.poll_interval)

    async def _dispatch_loop(self) -> None:
        while True:
            payload = await self.dispatch_queue.get()
            try:
                await self.notifier.send_event_to_server(payload)
            except Exception as e:
                self.logger.error(f"Error dispatching caption: {e}", exc_info=True)
            finally:
                self.dispatch_queue.task_done()

    def process_snapshot(self, entries: List[Dict[str, str]]) -> int:
        """Applies the finalization rule to one poll of the caption surface. Returns the number of new lines."""
        items = [
            CaptionEvent(speaker=(entry.get("speaker") or "").strip(), text=(entry.get("text") or "").strip())
            for entry in entries
            if (entry.get("text") or "").strip()
        ]
        if not items:
            self._tail, self._tail_polls = None, 0
            return 0

        tail = items[-1]
        if tail.fingerprint == self._tail:
            self._tail_polls += 1
        else:
            self._tail, self._tail_polls = tail.fingerprint, 1

        finalized = items if self._tail_polls >= self.stable_polls else items[:-1]
        new_items = self._unseen(finalized)
        for caption in new_items:
            self.ingest(caption)
        return len(new_items)

    def _unseen(self, finalized: List[CaptionEvent]) -> List[CaptionEvent]:
        keys = [caption.fingerprint for caption in finalized]
        emitted = list(self._emitted)

        for size in range(min(len(emitted), len(keys)), 0, -1):
            if emitted[len(emitted) - size:-1] != keys[: size - 1]:
                continue
            last, current = emitted[-1], keys[size - 1]
            if last == current:
                return finalized[size:]
            if _has_grown(last, current):
                # A line emitted as a stable tail kept growing; its longer form is a new line.
                return finalized[size - 1:]
        return finalized

    def ingest(self, caption: CaptionEvent) -> None:
        """Records one finalized line and queues it for delivery."""
        self._emitted.append(caption.fingerprint)

        data = caption.to_dict()
        self.state.captions.append(data)
        CAPTIONS_COUNTER.inc()
        self.logger.debug(f"Caption: {caption.speaker}: {caption.text}")

        if self.transcript is not None and not self.transcript.closed:
            self.transcript.write(f"[{data['capturedAt']}] {caption.speaker}: {caption.text}")

        try:
            self.dispatch_queue.put_nowait({"event": "caption", "botId": self.bot_id, "data": data})
        except asyncio.QueueFull:
            self.logger.error("Caption dispatch queue is full, dropping event")

    async def stop(self) -> None:
        if self._task is None and self._dispatch_task is None:
            return

        tasks = [t for t in (self._task, self._dispatch_task) if t is not None]
        self._task = self._dispatch_task = None
        for task in tasks:
            if not task.done():
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                self.logger.error(f"Caption capture ended with an error: {e}")

        pending = self.dispatch_queue.qsize()
        if pending:
            self.logger.warning(f"{pending} caption events were not delivered before stop.")
        self.logger.info("Caption capture stopped.")


def _has_grown(previous: Tuple[str, str], current: Tuple[str, str]) -> bool:
    return previous[0] == current[0] and len(current[1]) > len(previous[1]) and current[1].startswith(previous[1])
