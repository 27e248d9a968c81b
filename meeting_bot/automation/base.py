# FilePath: "/meeting_bot/automation/base.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Abstract browser/UI control surface used by the join and captions procedures.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

from abc import ABC, abstractmethod
from typing import Dict, List

from ..errors import AutomationTimeoutError


class AutomationCapability(ABC):
    """
    Browser session as seen by the lifecycle procedures.

    Implementations own one page. Waits are bounded by the caller's timeout and
    raise ``AutomationTimeoutError`` when the element never shows up.
    """

    @abstractmethod
    async def start(self) -> None:
        """Acquire the browser session (launch browser, open page)."""
        pass

    @abstractmethod
    async def navigate(self, url: str) -> None:
        pass

    @abstractmethod
    async def wait_for_selector(self, selector: str, timeout_seconds: float) -> None:
        """Wait until ``selector`` is attached and visible."""
        pass

    @abstractmethod
    async def wait_for_text(self, text: str, timeout_seconds: float) -> None:
        """Wait until an element containing ``text`` is visible."""
        pass

    @abstractmethod
    async def click(self, selector: str) -> None:
        pass

    @abstractmethod
    async def fill(self, selector: str, value: str) -> None:
        pass

    @abstractmethod
    async def read_text_groups(self, item_selector: str, fields: Dict[str, str]) -> List[Dict[str, str]]:
        """
        One dict per element matching ``item_selector``, in document order.
        Each key of ``fields`` maps to the text of the sub-selector inside that element
        ("" when the sub-element is missing).
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the browser session."""
        pass

    async def activate(self, selector: str) -> None:
        """Activate a control that may be hidden until hovered. Defaults to a click."""
        await self.click(selector)

    async def is_present(self, selector: str, timeout_seconds: float) -> bool:
        """Bounded probe: absence is a normal negative result."""
        try:
            await self.wait_for_selector(selector, timeout_seconds)
            return True
        except AutomationTimeoutError:
            return False

    async def is_text_present(self, text: str, timeout_seconds: float) -> bool:
        try:
            await self.wait_for_text(text, timeout_seconds)
            return True
        except AutomationTimeoutError:
            return False
