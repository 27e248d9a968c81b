import socket

import pytest
from pydantic import ValidationError

from bot_launcher.models import DeploymentRequest
from bot_launcher.ports import default_port, find_free_port, is_port_free


def test_scan_picks_first_free_port():
    busy = {4101, 4102, 4103}
    assert find_free_port(4101, 4199, probe=lambda port: port not in busy) == 4104


def test_scan_returns_none_when_range_is_exhausted():
    assert find_free_port(4101, 4103, probe=lambda port: False) is None


def test_default_port_stays_in_range():
    for _ in range(200):
        assert 4100 <= default_port() <= 4199


def test_is_port_free_detects_bound_socket():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        sock.listen(1)
        port = sock.getsockname()[1]

        assert is_port_free(port, host="127.0.0.1") is False


def test_request_defaults():
    request = DeploymentRequest(meetingUrl="https://teams.live.com/meet/1")

    assert request.port is None
    assert request.notifier_urls == []
    assert request.bot_id.version == 4


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"meetingUrl": "not a url"},
        {"meetingUrl": "https://teams.live.com/meet/1", "botId": "bot-1"},
        {"meetingUrl": "https://teams.live.com/meet/1", "port": "many"},
        {"meetingUrl": "https://teams.live.com/meet/1", "notifierUrls": "http://a"},
    ],
)
def test_request_rejects_malformed_bodies(body):
    with pytest.raises(ValidationError):
        DeploymentRequest(**body)
