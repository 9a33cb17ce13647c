from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FAUCET_",
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Listen host")
    port: int = Field(default=8080, description="Listen port")
    log_level: str = Field(default="INFO", description="Logging level")
    trusted_proxy_ips: List[str] = Field(
        default_factory=list,
        description="Peers whose X-Forwarded-For header is trusted for the client IP",
    )

    # Chain
    private_key: str = Field(default="", description="Hex secp256k1 key that signs faucet transactions")
    rpc_url: str = Field(default="http://localhost:8545", description="EVM JSON-RPC URL")
    faucet_address: str = Field(default="", description="Faucet contract exposing drip(address,string[])")
    token_address: str = Field(default="", description="Token contract exposing mint(address,uint256)")
    register_amount: int = Field(default=1, description="Wei sent to materialize an account on /register")
    mint_amount: int = Field(default=5 * 10**18, description="Token amount minted on /send")
    receipt_timeout_seconds: float = Field(default=120.0, description="Max wait for an inclusion receipt")

    # Fee estimation
    fee_history_blocks: int = Field(default=10, description="Blocks sampled by eth_feeHistory")
    fee_reward_percentile: float = Field(default=5.0, description="Reward percentile sampled per block")

    # Ledger
    database_url: str = Field(default="sqlite:///./faucet.db", description="SQLAlchemy URL of the drip ledger")


@lru_cache
def get_settings() -> Settings:
    return Settings()
