"""Unit tests for the command line entry point."""

from unittest.mock import AsyncMock, patch

import pytest

from price_bridge.main import ExitCode, main, parse_env_api_keys, websocket_url
from price_bridge.src.LedgerClient import LedgerConnectionError


class TestWebsocketUrl:
    """Test deriving the node URL."""

    def test_host_port(self) -> None:
        assert websocket_url("127.0.0.1:9944") == "ws://127.0.0.1:9944"
        assert websocket_url(" node.example.org:443 ") == "ws://node.example.org:443"

    def test_full_url_kept(self) -> None:
        assert websocket_url("wss://rpc.example.org") == "wss://rpc.example.org"

    @pytest.mark.parametrize("node", ["", "localhost", ":9944", "localhost:port"])
    def test_invalid(self, node) -> None:
        with pytest.raises(ValueError, match="Expected host:port"):
            websocket_url(node)


def test_parse_env_api_keys(monkeypatch) -> None:
    monkeypatch.setenv("API_KEY_COINGECKO", "demo:abc")
    monkeypatch.setenv("APIKEY_CRYPTOCOMPARE", "xyz")
    keys = parse_env_api_keys()
    assert keys["coingecko"] == "demo:abc"
    assert keys["cryptocompare"] == "xyz"


@patch("price_bridge.main.PriceBridge")
@patch("price_bridge.main.SubstrateLedgerClient")
class TestMain:
    """Test wiring, validation and exit codes."""

    def test_wiring(self, mock_ledger, mock_bridge) -> None:
        mock_bridge.return_value.run = AsyncMock()

        code = main(["127.0.0.1:9944", "--mortality-period", "8", "--resync-after", "0"])

        assert code == ExitCode.OK
        mock_ledger.assert_called_once_with(
            "ws://127.0.0.1:9944",
            signer_uri="//Charlie",
            admin_uri="//Alice",
            oracle_admin_uri="//Bob",
        )
        kwargs = mock_bridge.call_args.kwargs
        assert kwargs["mortality_period"] == 8
        assert kwargs["resync_after"] == 0
        assert kwargs["max_reconnects"] is None
        assert kwargs["create_feeds"] is True
        assert kwargs["price_source"].fetcher.name == "coingecko"
        mock_bridge.return_value.run.assert_awaited_once()

    def test_node_from_env(self, mock_ledger, mock_bridge, monkeypatch) -> None:
        monkeypatch.setenv("NODE_ADDRESS", "10.0.0.5:9944")
        mock_bridge.return_value.run = AsyncMock()

        assert main(["--source", "cryptocompare", "--skip-bootstrap"]) == ExitCode.OK
        assert mock_ledger.call_args.args == ("ws://10.0.0.5:9944",)
        assert mock_bridge.call_args.kwargs["create_feeds"] is False

    def test_numeric_env_defaults(self, mock_ledger, mock_bridge, monkeypatch) -> None:
        """Numeric settings from the environment are parsed like CLI values."""
        monkeypatch.setenv("MORTALITY_PERIOD", "12")
        monkeypatch.setenv("FETCH_TIMEOUT", "2.5")
        mock_bridge.return_value.run = AsyncMock()

        assert main(["127.0.0.1:9944"]) == ExitCode.OK
        assert mock_bridge.call_args.kwargs["mortality_period"] == 12
        assert mock_bridge.call_args.kwargs["price_source"].fetch_timeout == 2.5

    @pytest.mark.parametrize("name", ["MORTALITY_PERIOD", "RESYNC_AFTER", "FETCH_TIMEOUT"])
    def test_malformed_env_value(self, mock_ledger, mock_bridge, monkeypatch, name) -> None:
        """A malformed environment value is a usage error, not a crash."""
        monkeypatch.setenv(name, "five")
        with pytest.raises(SystemExit) as excinfo:
            main(["127.0.0.1:9944"])
        assert excinfo.value.code == ExitCode.USAGE
        mock_ledger.assert_not_called()

    def test_ledger_unreachable(self, mock_ledger, mock_bridge) -> None:
        mock_bridge.return_value.run = AsyncMock(side_effect=LedgerConnectionError("refused"))
        assert main(["127.0.0.1:9944"]) == ExitCode.LEDGER_UNREACHABLE

    def test_fatal_error(self, mock_ledger, mock_bridge) -> None:
        mock_bridge.return_value.run = AsyncMock(side_effect=RuntimeError("boom"))
        assert main(["127.0.0.1:9944"]) == ExitCode.FATAL

    def test_interrupted(self, mock_ledger, mock_bridge) -> None:
        mock_bridge.return_value.run = AsyncMock(side_effect=KeyboardInterrupt)
        assert main(["127.0.0.1:9944"]) == ExitCode.INTERRUPTED

    @pytest.mark.parametrize(
        "argv",
        [
            [],
            ["localhost"],
            ["127.0.0.1:9944", "--source", "kraken"],
            ["127.0.0.1:9944", "--mortality-period", "0"],
            ["127.0.0.1:9944", "--resync-after", "-1"],
            ["127.0.0.1:9944", "--max-reconnects", "-2"],
            ["127.0.0.1:9944", "--fetch-timeout", "0"],
        ],
    )
    def test_usage_errors(self, mock_ledger, mock_bridge, argv, monkeypatch) -> None:
        monkeypatch.delenv("NODE_ADDRESS", raising=False)
        with pytest.raises(SystemExit) as excinfo:
            main(argv)
        assert excinfo.value.code == ExitCode.USAGE
        mock_ledger.assert_not_called()
