import uuid
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from meeting_bot.automation.base import AutomationCapability
from meeting_bot.delivery.notifier import Notifier
from meeting_bot.errors import AutomationTimeoutError
from meeting_bot.procedures.join_procedure import LaunchUrlResolver
from meeting_bot.procedures.selectors import DEFAULT_SELECTORS
from meeting_bot.settings import BotConfig

MEETING_URL = "https://teams.live.com/meet/9312345678901?p=abcdef"
LAUNCH_URL = "https://teams.live.com/_#/meet/9312345678901?msLaunch=false&type=meetup-join"


class FakeAutomation(AutomationCapability):
    """In-memory page: a selector "exists" when it is in ``present``, a text when it is in ``texts``."""

    def __init__(self, present=None, texts=None, snapshots: Optional[List[List[Dict[str, str]]]] = None):
        self.present = set(present or ())
        self.texts = set(texts or ())
        self.snapshots = list(snapshots or [])
        self.calls: List[tuple] = []
        self.started = False
        self.closed = False
        self.fail_start: Optional[Exception] = None
        self.fail_close: Optional[Exception] = None

    async def start(self):
        self.calls.append(("start",))
        if self.fail_start:
            raise self.fail_start
        self.started = True

    async def navigate(self, url):
        self.calls.append(("navigate", url))

    async def wait_for_selector(self, selector, timeout_seconds):
        self.calls.append(("wait_for_selector", selector))
        if selector not in self.present:
            raise AutomationTimeoutError(selector, timeout_seconds)

    async def wait_for_text(self, text, timeout_seconds):
        self.calls.append(("wait_for_text", text))
        if text not in self.texts:
            raise AutomationTimeoutError(text, timeout_seconds)

    async def click(self, selector):
        self.calls.append(("click", selector))

    async def fill(self, selector, value):
        self.calls.append(("fill", selector, value))

    async def read_text_groups(self, item_selector, fields):
        self.calls.append(("read_text_groups", item_selector))
        if len(self.snapshots) > 1:
            return self.snapshots.pop(0)
        return self.snapshots[0] if self.snapshots else []

    async def close(self):
        self.calls.append(("close",))
        if self.fail_close:
            raise self.fail_close
        self.closed = True

    def ops(self, name):
        return [c for c in self.calls if c[0] == name]


JOIN_CONTROLS = {
    DEFAULT_SELECTORS.continue_in_browser,
    DEFAULT_SELECTORS.name_input,
    DEFAULT_SELECTORS.join_now_button,
}

CAPTION_CONTROLS = {
    DEFAULT_SELECTORS.more_button,
    DEFAULT_SELECTORS.language_speech_menu,
    DEFAULT_SELECTORS.captions_toggle,
}


@pytest.fixture
def bot_id():
    return str(uuid.uuid4())


@pytest.fixture
def config(bot_id, tmp_path):
    return BotConfig(
        bot_id=bot_id,
        meeting_url=MEETING_URL,
        notifier_urls=("http://localhost:4100/api/wh/bot",),
        output_dir=tmp_path,
        lobby_wait_seconds=0.01,
        in_call_wait_seconds=0.01,
        admission_timeout_seconds=0.05,
        leave_wait_seconds=0.01,
        caption_poll_interval=0.01,
    )


@pytest.fixture
def automation():
    return FakeAutomation()


@pytest.fixture
def in_call_automation():
    """Page where every control of the join and captions flows is available."""
    return FakeAutomation(present=JOIN_CONTROLS | CAPTION_CONTROLS | {DEFAULT_SELECTORS.hangup_button})


@pytest.fixture
def resolver():
    fake = MagicMock(spec=LaunchUrlResolver)
    fake.resolve = AsyncMock(return_value=LAUNCH_URL)
    return fake


@pytest.fixture
def notifier():
    fake = MagicMock(spec=Notifier)
    fake.send_event_to_server = AsyncMock(return_value={})
    fake.close = AsyncMock()
    return fake
