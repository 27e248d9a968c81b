# FilePath: "/meeting_bot/procedures/__init__.py"
# Description: Lifecycle procedures of a bot (join, captions) and their orchestrator.

from .captions_procedure import CaptionEvent, CaptionsProcedure
from .join_procedure import JoinProcedure, LaunchUrlResolver
from .orchestrator import Orchestrator
from .selectors import TeamsSelectors

__all__ = [
    "CaptionEvent",
    "CaptionsProcedure",
    "JoinProcedure",
    "LaunchUrlResolver",
    "Orchestrator",
    "TeamsSelectors",
]
