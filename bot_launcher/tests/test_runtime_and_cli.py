import argparse
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from docker.errors import APIError, ImageNotFound, NotFound

from bot_launcher.errors import InstanceStartError, LauncherError
from bot_launcher.runtime import DockerRuntime, InstanceSpec
from bot_launcher.standalone import build_parser, deploy_bot, run_bot

MEETING_URL = "https://teams.live.com/meet/9312345678901?p=abcdef"


def make_spec(**overrides):
    values = dict(
        bot_id="b1",
        name="teams-bot-b1",
        port=4101,
        meeting_url=MEETING_URL,
        notifier_urls=["ws://localhost:4100/api/ws/bot"],
        network="client-dev-network",
    )
    values.update(overrides)
    return InstanceSpec(**values)


@pytest.mark.asyncio
async def test_docker_runtime_creates_and_starts_container():
    client = MagicMock()
    container = client.containers.create.return_value
    container.id = "0123456789abcdef"

    container_id = await DockerRuntime(client=client).start(make_spec())

    assert container_id == "0123456789abcdef"
    client.containers.create.assert_called_once_with(
        "teams-bot:latest",
        name="teams-bot-b1",
        environment={
            "BOT_ENV": "production",
            "PORT": "4101",
            "MEETING_URL": MEETING_URL,
            "NOTIFIER_URLS": "ws://localhost:4100/api/ws/bot",
            "BOT_ID": "b1",
        },
        ports={"4101/tcp": 4101},
        network="client-dev-network",
    )
    container.start.assert_called_once_with()


@pytest.mark.asyncio
async def test_docker_runtime_pulls_missing_image():
    client = MagicMock()
    container = MagicMock(id="0123456789abcdef")
    client.containers.create.side_effect = [ImageNotFound("teams-bot:latest"), container]

    assert await DockerRuntime(client=client).start(make_spec()) == "0123456789abcdef"
    client.images.pull.assert_called_once_with("teams-bot:latest")


@pytest.mark.asyncio
async def test_docker_runtime_surfaces_api_error():
    client = MagicMock()
    client.containers.create.side_effect = APIError('Conflict. The container name "/teams-bot-b1" is already in use')

    with pytest.raises(InstanceStartError) as exc:
        await DockerRuntime(client=client).start(make_spec())

    assert "already in use" in exc.value.message
    assert exc.value.bot_id == "b1"


@pytest.mark.asyncio
async def test_docker_runtime_removes_container_that_failed_to_start():
    client = MagicMock()
    container = client.containers.create.return_value
    container.start.side_effect = APIError("Bind for 0.0.0.0:4101 failed: port is already allocated")

    with pytest.raises(InstanceStartError, match="port is already allocated"):
        await DockerRuntime(client=client).start(make_spec())

    container.remove.assert_called_once_with(force=True)


@pytest.mark.asyncio
async def test_docker_runtime_reports_container_state():
    client = MagicMock()
    client.containers.get.return_value = MagicMock(status="exited")
    runtime = DockerRuntime(client=client)

    assert await runtime.is_running("teams-bot-b1") is False

    client.containers.get.return_value = MagicMock(status="running")
    assert await runtime.is_running("teams-bot-b1") is True

    client.containers.get.side_effect = NotFound("no such container")
    assert await runtime.is_running("teams-bot-b1") is False


@pytest.mark.asyncio
async def test_docker_runtime_stop_tolerates_missing_container():
    client = MagicMock()
    client.containers.get.side_effect = NotFound("no such container")

    await DockerRuntime(client=client).stop("teams-bot-b1")


@pytest.mark.asyncio
async def test_docker_runtime_stop_removes_container():
    client = MagicMock()
    container = client.containers.get.return_value

    await DockerRuntime(client=client).stop("teams-bot-b1")

    container.stop.assert_called_once_with()
    container.remove.assert_called_once_with()


def parse(*argv):
    return build_parser().parse_args(list(argv))


@pytest.mark.asyncio
async def test_run_scans_for_free_port_when_none_given():
    runtime = MagicMock()
    runtime.start = AsyncMock(return_value="cid")
    args = parse("run", "--meeting-url", MEETING_URL, "--notifier-urls", "http://a.example,ws://b.example")

    with patch("bot_launcher.standalone.find_free_port", return_value=4104) as scan:
        spec = await run_bot(args, runtime=runtime)

    scan.assert_called_once_with(4101, 4199)
    assert spec.port == 4104
    assert spec.notifier_urls == ["http://a.example", "ws://b.example"]
    assert spec.name == f"teams-bot-{spec.bot_id}"
    uuid.UUID(spec.bot_id)
    runtime.start.assert_awaited_once_with(spec)


@pytest.mark.asyncio
async def test_run_uses_explicit_port():
    runtime = MagicMock()
    runtime.start = AsyncMock(return_value="cid")
    bot_id = str(uuid.uuid4())
    args = parse("run", "--meeting-url", MEETING_URL, "--port", "4190", "--bot-id", bot_id)

    with patch("bot_launcher.standalone.find_free_port") as scan:
        spec = await run_bot(args, runtime=runtime)

    scan.assert_not_called()
    assert (spec.port, spec.bot_id) == (4190, bot_id)
    assert spec.meeting_url == MEETING_URL


@pytest.mark.asyncio
async def test_run_fails_when_no_port_is_free():
    args = parse("run", "--meeting-url", MEETING_URL)

    with patch("bot_launcher.standalone.find_free_port", return_value=None):
        with pytest.raises(LauncherError, match="No free port"):
            await run_bot(args, runtime=MagicMock())


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "argv",
    [
        ("--meeting-url", MEETING_URL, "--bot-id", "bot-1"),
        ("--meeting-url", "foo"),
        ("--meeting-url", MEETING_URL, "--port", "70000"),
    ],
)
async def test_run_rejects_invalid_input_before_starting_anything(argv):
    runtime = MagicMock()
    runtime.start = AsyncMock(return_value="cid")

    with patch("bot_launcher.standalone.find_free_port") as scan:
        with pytest.raises(LauncherError) as exc:
            await run_bot(parse("run", *argv), runtime=runtime)

    assert exc.value.error_code == "invalid_request"
    assert exc.value.details["errors"]
    scan.assert_not_called()
    runtime.start.assert_not_called()


def mock_launcher_reply(mock_session_cls, status, data):
    response = MagicMock(status=status)
    response.json = AsyncMock(return_value=data)
    session = MagicMock()
    session.post.return_value.__aenter__ = AsyncMock(return_value=response)
    session.post.return_value.__aexit__ = AsyncMock(return_value=False)
    mock_session_cls.return_value.__aenter__ = AsyncMock(return_value=session)
    mock_session_cls.return_value.__aexit__ = AsyncMock(return_value=False)
    return session


@pytest.mark.asyncio
@patch("bot_launcher.standalone.aiohttp.ClientSession")
async def test_deploy_posts_request_to_launcher(mock_session_cls):
    reply = {"botId": "b1", "port": 4101, "containerName": "teams-bot-b1"}
    session = mock_launcher_reply(mock_session_cls, 202, reply)
    args = parse("deploy", "--meeting-url", MEETING_URL, "--bot-id", "b1", "--launcher-url", "http://launcher:4100/")

    assert await deploy_bot(args) == reply

    url = session.post.call_args.args[0]
    body = session.post.call_args.kwargs["json"]
    assert url == "http://launcher:4100/api/bot"
    assert body == {"meetingUrl": MEETING_URL, "notifierUrls": [], "botId": "b1"}


@pytest.mark.asyncio
@patch("bot_launcher.standalone.aiohttp.ClientSession")
async def test_deploy_raises_on_rejected_request(mock_session_cls):
    mock_launcher_reply(mock_session_cls, 400, {"errors": [{"loc": ["body", "meetingUrl"]}]})
    args = parse("deploy", "--meeting-url", MEETING_URL)

    with pytest.raises(LauncherError) as exc:
        await deploy_bot(args)
    assert exc.value.details == {"errors": [{"loc": ["body", "meetingUrl"]}]}


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
    assert isinstance(parse("deploy", "--meeting-url", MEETING_URL), argparse.Namespace)
