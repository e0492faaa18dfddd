"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://soroban-testnet.stellar.org"
DEFAULT_NETWORK_PASSPHRASE = "Test SDF Future Network ; October 2022"
DEFAULT_CONTROLLER_ID = "CAWEZM3CRRMBUAGYMCCFHXI6ZKCLVMQTVE4LPXQCH7MM3ZU2PMQTKUXM"

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MarketConfig:
    symbol: str
    vault_id: str
    decimals: int = 0


DEFAULT_MARKETS: tuple[MarketConfig, ...] = (
    MarketConfig(
        symbol="XLM",
        vault_id="CCBRKJ5ZZZB6A7GSAPVPDWFEOJXZZ43F65RL6NJGJX7AQJ2JS64DGU7G",
        decimals=7,
    ),
    MarketConfig(
        symbol="USDC",
        vault_id="CDNSMCOHX4NJTIYEILEVEBAS5LKPJRDH6CPLWJ4SQ2YUB4LVNQWPXG3L",
        decimals=6,
    ),
)


@dataclass(frozen=True)
class LedgerConfig:
    rpc_url: str = DEFAULT_RPC_URL
    network_passphrase: str = DEFAULT_NETWORK_PASSPHRASE


@dataclass(frozen=True)
class ProtocolConfig:
    controller_id: str = DEFAULT_CONTROLLER_ID
    markets: tuple[MarketConfig, ...] = DEFAULT_MARKETS


@dataclass(frozen=True)
class LiquidatorConfig:
    secret: str = ""


@dataclass(frozen=True)
class BotConfig:
    poll_interval_seconds: float = 5.0
    borrower_refresh_seconds: float = 15.0
    min_shortfall: int = 0
    event_backlog: int = 50
    event_page_size: int = 50


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class AppConfig:
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    liquidator: LiquidatorConfig = field(default_factory=LiquidatorConfig)
    bot: BotConfig = field(default_factory=BotConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_ledger(raw: dict[str, Any]) -> LedgerConfig:
    return LedgerConfig(
        rpc_url=raw.get("rpc_url") or DEFAULT_RPC_URL,
        network_passphrase=raw.get("network_passphrase") or DEFAULT_NETWORK_PASSPHRASE,
    )


def _build_markets(raw: Any) -> tuple[MarketConfig, ...]:
    if raw is None:
        return DEFAULT_MARKETS
    if not isinstance(raw, list):
        raise ValueError("protocol.markets must be a list")

    markets: list[MarketConfig] = []
    for entry in raw:
        if (
            not isinstance(entry, dict)
            or not isinstance(entry.get("symbol"), str)
            or not isinstance(entry.get("vault_id"), str)
        ):
            raise ValueError("Market entries must include symbol and vault_id")
        decimals = entry.get("decimals", 0)
        if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
            raise ValueError(f"Invalid decimals for market {entry['symbol']}")
        markets.append(
            MarketConfig(
                symbol=entry["symbol"],
                vault_id=entry["vault_id"],
                decimals=decimals,
            )
        )
    return tuple(markets)


def _build_protocol(raw: dict[str, Any]) -> ProtocolConfig:
    return ProtocolConfig(
        controller_id=raw.get("controller_id") or DEFAULT_CONTROLLER_ID,
        markets=_build_markets(raw.get("markets")),
    )


def _parse_int(value: Any, name: str) -> int:
    """Parse an integer setting; accepts ints and integer strings (big values)."""
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError as e:
        raise ValueError(f"{name} must be an integer: {e}") from e


def _build_bot(raw: dict[str, Any]) -> BotConfig:
    try:
        poll_interval = float(raw.get("poll_interval_seconds", 5.0))
        refresh = float(raw.get("borrower_refresh_seconds", 15.0))
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid poll interval configuration: {e}") from e

    return BotConfig(
        poll_interval_seconds=poll_interval,
        borrower_refresh_seconds=refresh,
        min_shortfall=_parse_int(raw.get("min_shortfall", 0), "min_shortfall"),
        event_backlog=_parse_int(raw.get("event_backlog", 50), "event_backlog"),
        event_page_size=_parse_int(raw.get("event_page_size", 50), "event_page_size"),
    )


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        ledger=_build_ledger(raw.get("ledger", {})),
        protocol=_build_protocol(raw.get("protocol", {})),
        liquidator=LiquidatorConfig(
            secret=raw.get("liquidator", {}).get("secret", "")
        ),
        bot=_build_bot(raw.get("bot", {})),
        notifications=_build_notifications(raw.get("notifications", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.liquidator.secret:
        raise ValueError("liquidator.secret is required")

    if not cfg.protocol.markets:
        raise ValueError("At least one market must be configured")

    bot = cfg.bot
    if bot.poll_interval_seconds <= 0 or bot.borrower_refresh_seconds <= 0:
        raise ValueError("Invalid poll interval configuration")
    if bot.event_backlog < 0:
        raise ValueError("event_backlog must be a non-negative integer")
    if bot.event_page_size <= 0:
        raise ValueError("event_page_size must be a positive integer")
    if bot.min_shortfall < 0:
        raise ValueError("min_shortfall cannot be negative")
