import os
from unittest.mock import patch

import pytest

from faucet import cli
from faucet.config import get_settings

ENV_KEYS = (
    "FAUCET_PRIVATE_KEY",
    "FAUCET_RPC_URL",
    "FAUCET_FAUCET_ADDRESS",
    "FAUCET_TOKEN_ADDRESS",
    "FAUCET_DATABASE_URL",
    "FAUCET_HOST",
    "FAUCET_PORT",
    "FAUCET_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    env = {k: v for k, v in os.environ.items() if k not in ENV_KEYS}
    monkeypatch.setattr(os, "environ", env)
    yield
    get_settings.cache_clear()


def test_flags_become_settings():
    args = cli.build_parser().parse_args(
        ["--private-key", "0xabc", "--rpc-url", "http://node:8545", "--port", "9000", "-vv"]
    )

    cli.apply_args(args)
    settings = get_settings()

    assert settings.private_key == "0xabc"
    assert settings.rpc_url == "http://node:8545"
    assert settings.port == 9000
    assert settings.log_level == "DEBUG"


def test_quiet_wins_over_verbosity():
    cli.apply_args(cli.build_parser().parse_args(["-q", "-vvv"]))

    assert get_settings().log_level == "CRITICAL"


def test_main_runs_uvicorn_with_settings():
    with patch.object(cli.uvicorn, "run") as run:
        cli.main(["--host", "0.0.0.0", "--port", "8181"])

    run.assert_called_once_with("faucet.main:app", host="0.0.0.0", port=8181, log_config=None)
