# FilePath: "/meeting_bot/metrics.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Prometheus metrics exposed on the bot's /metrics endpoint.

from prometheus_client import Counter, Gauge

IN_CALL_GAUGE = Gauge("mbf_bot_in_call", "Is the bot currently in the meeting")
STATUS_CHANGES_COUNTER = Counter("mbf_bot_status_changes_total", "Lifecycle status changes", ["status"])
CAPTIONS_COUNTER = Counter("mbf_captions_captured_total", "Finalized caption lines captured")
DELIVERIES_COUNTER = Counter("mbf_deliveries_total", "Event deliveries per destination", ["transport", "outcome"])
