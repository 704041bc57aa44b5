"""Tests for CLI commands."""

import asyncio
import logging
import signal
from pathlib import Path
from unittest.mock import patch

import pytest

from conftest import FakeTransport, sse

from canvas_chat.cli import (
    _config_init,
    _config_show,
    _load_config,
    cmd_chat,
    cmd_context,
    cmd_show,
    main,
)
from canvas_chat.config import CanvasConfig
from canvas_chat.logging import setup_logging


class MockArgs:
    """Mock argparse namespace for testing."""

    def __init__(self, **kwargs):
        self.snapshot = kwargs.get("snapshot")
        self.chat_id = kwargs.get("chat_id")
        self.message = kwargs.get("message", "Hello")
        self.project_id = kwargs.get("project_id", "proj-1")
        self.conversation_id = kwargs.get("conversation_id")
        self.config = kwargs.get("config")


class TestCmdShow:
    """Tests for the show command."""

    def test_show_lists_cards_and_links(self, snapshot_file: Path, capsys) -> None:
        cmd_show(MockArgs(snapshot=str(snapshot_file)))

        captured = capsys.readouterr()
        assert "context-node-3" in captured.out
        assert "chat-node-2" in captured.out
        assert "Total: 2 cards, 1 links" in captured.out
        assert "Dropped invalid link" in captured.out

    def test_show_missing_snapshot(self, tmp_path: Path, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cmd_show(MockArgs(snapshot=str(tmp_path / "nope.json")))

        assert exc_info.value.code == 1
        assert "Snapshot not found" in capsys.readouterr().out


class TestCmdContext:
    """Tests for the context command."""

    def test_context_renders_connected_cards(self, snapshot_file: Path, capsys) -> None:
        cmd_context(MockArgs(snapshot=str(snapshot_file), chat_id="chat-node-2"))

        out = capsys.readouterr().out
        assert "context-node-3" in out
        assert "Website: Docs (https://example.com) - No description" in out

    def test_context_unknown_chat(self, snapshot_file: Path, capsys) -> None:
        with pytest.raises(SystemExit):
            cmd_context(MockArgs(snapshot=str(snapshot_file), chat_id="chat-node-9"))
        assert "Chat node not found" in capsys.readouterr().out

    def test_context_rejects_non_chat_card(self, snapshot_file: Path) -> None:
        with pytest.raises(SystemExit):
            cmd_context(MockArgs(snapshot=str(snapshot_file), chat_id="context-node-3"))


class TestCmdChat:
    """Tests for the chat command."""

    @pytest.mark.asyncio
    async def test_chat_streams_reply(self, snapshot_file: Path, capsys) -> None:
        transport = FakeTransport(
            [
                sse("message", {"token": "Hi "}),
                sse("message", {"token": "there"}),
                sse("conversation_id", {"conversation_id": "conv-1"}),
                sse("stream_end", {"message_id": "m1", "status": "complete"}),
            ]
        )
        args = MockArgs(snapshot=str(snapshot_file), chat_id="chat-node-2", message="Hey")

        with patch("canvas_chat.transports.sse.SSETransport", return_value=transport), \
                patch("canvas_chat.cli._load_config", return_value=CanvasConfig(auth_token="t")):
            code = await cmd_chat(args)

        out = capsys.readouterr().out
        assert code == 0
        assert "Hi" in out and "there" in out
        assert "conversation conv-1" in out
        assert transport.payloads[0]["user_message"] == "Hey"
        assert transport.payloads[0]["context_node_ids"] == ["context-node-3"]
        assert transport.closed

    @pytest.mark.asyncio
    async def test_chat_failure_exit_code(self, snapshot_file: Path, capsys) -> None:
        transport = FakeTransport([sse("error", {"error": "quota exceeded"})])
        args = MockArgs(snapshot=str(snapshot_file), chat_id="chat-node-2")

        with patch("canvas_chat.transports.sse.SSETransport", return_value=transport), \
                patch("canvas_chat.cli._load_config", return_value=CanvasConfig(auth_token="t")):
            code = await cmd_chat(args)

        assert code == 1
        assert "quota exceeded" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_sigint_cancels_stream(self, snapshot_file: Path, capsys) -> None:
        transport = FakeTransport([sse("message", {"token": "Hel"})], hang=True)
        args = MockArgs(snapshot=str(snapshot_file), chat_id="chat-node-2")
        loop = asyncio.get_running_loop()
        handlers = {}

        with patch("canvas_chat.transports.sse.SSETransport", return_value=transport), \
                patch("canvas_chat.cli._load_config", return_value=CanvasConfig(auth_token="t")), \
                patch.object(loop, "add_signal_handler", side_effect=handlers.__setitem__), \
                patch.object(loop, "remove_signal_handler") as remove_handler:
            chat = asyncio.create_task(cmd_chat(args))
            while transport.channel.delivered < 1:
                await asyncio.sleep(0)

            handlers[signal.SIGINT]()
            code = await asyncio.wait_for(chat, timeout=1)

        assert code == 130
        assert "Cancelled" in capsys.readouterr().out
        assert transport.channel.closed
        remove_handler.assert_called_once_with(signal.SIGINT)


class TestConfigCommands:
    """Tests for config show/init."""

    def test_config_init_writes_defaults(self, tmp_path: Path, capsys) -> None:
        output = tmp_path / "canvas-chat.yaml"
        _config_init(str(output))

        assert output.exists()
        assert CanvasConfig.from_yaml(output) == CanvasConfig()
        assert "Created config file" in capsys.readouterr().out

    def test_config_init_refuses_to_overwrite(self, tmp_path: Path) -> None:
        output = tmp_path / "canvas-chat.yaml"
        output.write_text("log_level: DEBUG\n")

        with pytest.raises(SystemExit):
            _config_init(str(output))
        assert output.read_text() == "log_level: DEBUG\n"

    def test_config_show_masks_token(self, tmp_path: Path, capsys) -> None:
        config_file = tmp_path / "c.yaml"
        config_file.write_text("auth_token: super-secret\n")

        _config_show(str(config_file))

        out = capsys.readouterr().out
        assert "super-secret" not in out
        assert "***" in out

    def test_load_config_prefers_local_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "canvas-chat.yaml").write_text("log_level: ERROR\n")
        monkeypatch.chdir(tmp_path)
        assert _load_config(None).log_level == "ERROR"


class TestMain:
    """Tests for argument parsing."""

    def test_main_show(self, snapshot_file: Path, capsys) -> None:
        main(["show", str(snapshot_file)])
        assert "Total: 2 cards" in capsys.readouterr().out

    def test_main_without_command_prints_help(self, capsys) -> None:
        main([])
        assert "usage" in capsys.readouterr().out.lower()

    def test_main_chat_requires_project_id(self, snapshot_file: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["chat", str(snapshot_file), "chat-node-2", "hi"])
        assert exc_info.value.code == 2

    def test_main_config_init(self, tmp_path: Path) -> None:
        output = tmp_path / "out.yaml"
        main(["config", "init", "-o", str(output)])
        data = CanvasConfig.from_yaml(output).to_dict()
        assert data["stream_path"] == "/api/chat/stream"

    def test_main_applies_config_log_level(self, snapshot_file: Path, tmp_path: Path) -> None:
        config_file = tmp_path / "c.yaml"
        config_file.write_text("log_level: ERROR\n")
        logger = logging.getLogger("canvas_chat")

        try:
            main(["-c", str(config_file), "show", str(snapshot_file)])
            assert logger.level == logging.ERROR

            main(["-v", "-c", str(config_file), "show", str(snapshot_file)])
            assert logger.level == logging.DEBUG
        finally:
            setup_logging("WARNING")
