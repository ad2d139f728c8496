from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Solana RPC
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    rpc_commitment: Literal["processed", "confirmed", "finalized"] = "confirmed"
    rpc_timeout_seconds: float = 15.0
    rpc_min_interval_seconds: float = 0.2  # public endpoint allows ~10 req/sec

    # Jupiter aggregator
    jupiter_quote_url: str = "https://quote-api.jup.ag/v6/quote"
    jupiter_swap_url: str = "https://quote-api.jup.ag/v6/swap"
    aggregator_min_interval_seconds: float = 1.0

    # Purchases are quoted from USDC
    reference_mint: str = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
    reference_decimals: int = 6
    slippage_bps: int = 100  # 1%
    purchase_amount: float = 0.1
    trade_max_retries: int = 3
    trade_retry_delay_seconds: float = 2.0
    confirm_timeout_seconds: float = 60.0
    # Status polls after a failed send before the purchase is re-quoted
    send_status_checks: int = 5
    send_status_interval_seconds: float = 2.0

    # Backoff for read calls
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 1.0

    # Risk thresholds
    holder_min: int = 100
    concentration_max_pct: float = 20.0
    volume_min: float = 2000.0
    volume_window_hours: int = 24
    volume_signature_limit: int = 1000

    # Monitor
    poll_interval_seconds: int = 180
    listing_chain: str = "solana"

    # Secret store (edge function returning {"secret": ...})
    secret_store_url: str = ""
    secret_store_token: str = ""
    wallet_secret_name: str = "SOLANA_PRIVATE_KEY"

    # Database
    database_url: str = "sqlite+aiosqlite:///sniper_bot.db"

    # Telegram notifications (optional)
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    trading_enabled: bool = False  # Master kill switch
    dry_run: bool = True  # Use the offline swap gateway
    log_level: str = "INFO"


settings = Settings()
