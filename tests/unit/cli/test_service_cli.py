"""Unit tests — CLI service commands."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from da_rack.cli.commands.service import app

runner = CliRunner()


@pytest.mark.unit
class TestServiceStart:
    def test_start_invokes_uvicorn(self) -> None:
        mock_settings = MagicMock()

        with patch("da_rack.config.Settings.load", return_value=mock_settings), \
             patch("da_rack.api.server.create_app", return_value=MagicMock()) as mock_create, \
             patch("da_rack.cli.commands.service.uvicorn.run") as mock_uvicorn:
            result = runner.invoke(app, ["start", "--host", "0.0.0.0", "--port", "9000"])

        assert result.exit_code == 0
        mock_create.assert_called_once_with(settings=mock_settings)
        call_kwargs = mock_uvicorn.call_args[1]
        assert call_kwargs["host"] == "0.0.0.0"
        assert call_kwargs["port"] == 9000
        assert mock_settings.server.port == 9000

    def test_start_with_log_level(self) -> None:
        with patch("da_rack.config.Settings.load", return_value=MagicMock()), \
             patch("da_rack.api.server.create_app", return_value=MagicMock()), \
             patch("da_rack.cli.commands.service.uvicorn.run") as mock_uvicorn:
            result = runner.invoke(app, ["start", "--log-level", "debug"])

        assert result.exit_code == 0
        assert mock_uvicorn.call_args[1]["log_level"] == "debug"


@pytest.mark.unit
class TestServiceMeta:
    def test_meta_success(self) -> None:
        mock_resp = MagicMock()
        mock_resp.json.return_value = {
            "service": "da-cloud-cfd1-rack",
            "version": "0.0.1",
            "instance": "default",
        }

        with patch("httpx.get", return_value=mock_resp) as mock_get:
            result = runner.invoke(app, ["meta", "--port", "9999"])

        assert result.exit_code == 0
        assert "da-cloud-cfd1-rack" in result.output
        assert mock_get.call_args[0][0] == "http://127.0.0.1:9999/meta"

    def test_meta_unreachable_exits_1(self) -> None:
        import httpx

        with patch("httpx.get", side_effect=httpx.ConnectError("unreachable")):
            result = runner.invoke(app, ["meta"])

        assert result.exit_code == 1
        assert "Service unreachable" in result.output
