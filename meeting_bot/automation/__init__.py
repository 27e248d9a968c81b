# FilePath: "/meeting_bot/automation/__init__.py"
# Description: Automation capability interface. The Playwright implementation is imported
#              lazily by the process entry so the procedures stay importable without a browser.

from .base import AutomationCapability

__all__ = ["AutomationCapability"]
