# FilePath: "/bot_launcher/__init__.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Fleet launcher service. Starts one isolated bot container per deployment request.

__version__ = "1.0.0"
