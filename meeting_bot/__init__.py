# FilePath: "/meeting_bot/__init__.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Meeting caption bot. One process drives one browser session in one meeting.

__version__ = "1.0.0"
