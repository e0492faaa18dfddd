"""Shared test fixtures, sample data and a scripted ledger gateway."""
from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any, Callable

import pytest
from stellar_sdk import Keypair, StrKey, scval

from peridot_liquidator.config import (
    AppConfig,
    BotConfig,
    LedgerConfig,
    LiquidatorConfig,
    MarketConfig,
    NotificationsConfig,
    ProtocolConfig,
    TelegramConfig,
)
from peridot_liquidator.models import ContractEvent, EventPage, Receipt

# ---------------------------------------------------------------------------
# Deterministic ids
# ---------------------------------------------------------------------------

CONTROLLER_ID = StrKey.encode_contract(bytes([1]) * 32)
VAULT_A = StrKey.encode_contract(bytes([2]) * 32)
VAULT_B = StrKey.encode_contract(bytes([3]) * 32)
VAULT_C = StrKey.encode_contract(bytes([4]) * 32)

LIQUIDATOR = Keypair.from_raw_ed25519_seed(bytes([9]) * 32)
BORROWER_1 = Keypair.from_raw_ed25519_seed(bytes([11]) * 32).public_key
BORROWER_2 = Keypair.from_raw_ed25519_seed(bytes([12]) * 32).public_key
BORROWER_3 = Keypair.from_raw_ed25519_seed(bytes([13]) * 32).public_key

XLM = MarketConfig(symbol="XLM", vault_id=VAULT_A, decimals=7)
USDC = MarketConfig(symbol="USDC", vault_id=VAULT_B, decimals=6)


# ---------------------------------------------------------------------------
# Event topic builders
# ---------------------------------------------------------------------------


def symbol_topic(name: str) -> str:
    return scval.to_symbol(name).to_xdr()


def address_topic(address: str) -> str:
    return scval.to_address(address).to_xdr()


def make_event(name: str, address: str | None, event_id: str = "0001-1") -> ContractEvent:
    topics = [symbol_topic(name)]
    if address is not None:
        topics.append(address_topic(address))
    return ContractEvent(id=event_id, contract_id=CONTROLLER_ID, ledger=100, topics=tuple(topics))


# ---------------------------------------------------------------------------
# Scripted gateway
# ---------------------------------------------------------------------------


def _native(arg: Any) -> Any:
    value = scval.to_native(arg)
    return getattr(value, "address", value)


class ScriptedGateway:
    """In-memory LedgerGateway returning scripted responses.

    ``responses`` maps ``(contract_id, method)`` to a value, an exception, or
    a callable receiving the decoded arguments.
    """

    def __init__(
        self,
        responses: dict[tuple[str, str], Any] | None = None,
        latest_ledger: int = 1000,
    ) -> None:
        self.responses = dict(responses or {})
        self.latest_ledger = latest_ledger
        self.pages: list[EventPage | Exception] = []
        self.event_requests: list[dict[str, Any]] = []
        self.calls: list[tuple[str, str, list[Any]]] = []
        self.invocations: list[tuple[str, str, str, list[Any]]] = []
        self.invoke_result: Receipt | Exception | Callable[..., Any] = Receipt(
            tx_hash="deadbeef", ledger=1001, return_value=[1000, 150]
        )

    async def get_latest_ledger(self) -> int:
        return self.latest_ledger

    async def get_events(self, contract_ids, *, cursor=None, start_ledger=None, limit=50):
        self.event_requests.append(
            {
                "contract_ids": tuple(contract_ids),
                "cursor": cursor,
                "start_ledger": start_ledger,
                "limit": limit,
            }
        )
        if not self.pages:
            return EventPage()
        page = self.pages.pop(0)
        if isinstance(page, Exception):
            raise page
        return page

    async def call(self, contract_id, method, args):
        native = [_native(a) for a in args]
        self.calls.append((contract_id, method, native))
        response = self.responses[(contract_id, method)]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(*native)
        return response

    async def invoke(self, signer, contract_id, method, args):
        native = [_native(a) for a in args]
        self.invocations.append((signer.public_key, contract_id, method, native))
        result = self.invoke_result
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return await result(*native)
        return result


def scripted_market_responses(
    *,
    shortfall: int | dict[str, int] = 500,
    debts: dict[str, int] | None = None,
    cap: int = 0,
    ptokens: dict[str, int] | None = None,
    seizes: dict[str, int] | None = None,
    vaults: tuple[str, ...] = (VAULT_A, VAULT_B),
) -> dict[tuple[str, str], Any]:
    """Responses for one or more borrowers across ``vaults``.

    ``debts``/``ptokens`` are keyed by vault id; ``seizes`` by collateral vault.
    A dict ``shortfall`` is keyed by borrower.
    """
    debts = debts or {}
    ptokens = ptokens or {}
    seizes = seizes or {}

    def liquidity(borrower: str) -> list[int]:
        value = shortfall[borrower] if isinstance(shortfall, dict) else shortfall
        return [0, value]

    responses: dict[tuple[str, str], Any] = {
        (CONTROLLER_ID, "account_liquidity"): liquidity,
        (CONTROLLER_ID, "preview_repay_cap"): lambda borrower, vault: cap,
        (CONTROLLER_ID, "preview_seize_ptokens"): (
            lambda repay_vault, collateral_vault, amount: seizes.get(collateral_vault, 0)
        ),
    }
    for vault in vaults:
        responses[(vault, "get_user_borrow_balance")] = (
            lambda borrower, _v=vault: debts.get(_v, 0)
        )
        responses[(vault, "get_ptoken_balance")] = (
            lambda borrower, _v=vault: ptokens.get(_v, 0)
        )
    return responses


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_markets() -> tuple[MarketConfig, ...]:
    return (XLM, USDC)


@pytest.fixture()
def sample_bot_config() -> BotConfig:
    return BotConfig(
        poll_interval_seconds=0.01,
        borrower_refresh_seconds=15.0,
        min_shortfall=0,
        event_backlog=50,
        event_page_size=25,
    )


@pytest.fixture()
def sample_app_config(
    sample_markets: tuple[MarketConfig, ...], sample_bot_config: BotConfig
) -> AppConfig:
    return AppConfig(
        ledger=LedgerConfig(
            rpc_url="https://rpc.example.com",
            network_passphrase="Test SDF Network ; September 2015",
        ),
        protocol=ProtocolConfig(controller_id=CONTROLLER_ID, markets=sample_markets),
        liquidator=LiquidatorConfig(secret=LIQUIDATOR.secret),
        bot=sample_bot_config,
        notifications=NotificationsConfig(telegram=TelegramConfig(enabled=False)),
    )


@pytest.fixture()
def gateway() -> ScriptedGateway:
    return ScriptedGateway()


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent(f"""\
    ledger:
      rpc_url: "https://rpc.example.com"
      network_passphrase: "Test SDF Network ; September 2015"
    protocol:
      controller_id: "{CONTROLLER_ID}"
      markets:
        - symbol: XLM
          vault_id: "{VAULT_A}"
          decimals: 7
        - symbol: USDC
          vault_id: "{VAULT_B}"
          decimals: 6
    liquidator:
      secret: "${{TEST_LIQUIDATOR_SECRET}}"
    bot:
      poll_interval_seconds: 2
      borrower_refresh_seconds: 10
      min_shortfall: "340282366920938463463374607431768211455"
      event_backlog: 100
      event_page_size: 20
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: 999
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("TEST_LIQUIDATOR_SECRET", LIQUIDATOR.secret)
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
