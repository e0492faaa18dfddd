"""Unit tests for the Peridot codec and event classifier."""
from __future__ import annotations

import pytest
from stellar_sdk import Address, scval

from peridot_liquidator.models import EventAction, PlainAccount, StructuredAccount
from peridot_liquidator.protocols.peridot.parser import (
    classify_event,
    decode_account,
    decode_topics,
    describe_native,
    event_name,
    to_address,
    to_u128,
)

from conftest import BORROWER_1, VAULT_A, address_topic, symbol_topic


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


class TestToU128:
    def test_encodes_large_value(self) -> None:
        value = 2**100 + 7
        assert scval.to_native(to_u128(value)) == value

    def test_zero(self) -> None:
        assert scval.to_native(to_u128(0)) == 0

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError, match="u128 cannot be negative"):
            to_u128(-1)


class TestToAddress:
    def test_account_address(self) -> None:
        assert scval.to_native(to_address(BORROWER_1)).address == BORROWER_1

    def test_contract_address(self) -> None:
        assert scval.to_native(to_address(VAULT_A)).address == VAULT_A


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class TestDecodeTopics:
    def test_symbol_and_address(self) -> None:
        name, account = decode_topics([symbol_topic("mint"), address_topic(BORROWER_1)])
        assert name == "mint"
        assert account.address == BORROWER_1

    def test_garbage_raises(self) -> None:
        with pytest.raises(Exception):
            decode_topics(["not-xdr!!"])


class TestEventName:
    def test_lowercases(self) -> None:
        assert event_name("Market_Entered") == "market_entered"

    def test_bytes(self) -> None:
        assert event_name(b"RepayBorrow") == "repayborrow"

    def test_non_string(self) -> None:
        assert event_name(42) is None
        assert event_name(None) is None


class TestDecodeAccount:
    def test_plain_string(self) -> None:
        assert decode_account(BORROWER_1) == PlainAccount(BORROWER_1)

    def test_address_object(self) -> None:
        assert decode_account(Address(BORROWER_1)) == StructuredAccount(BORROWER_1)

    def test_map_with_address_string(self) -> None:
        assert decode_account({"address": BORROWER_1}) == StructuredAccount(BORROWER_1)

    def test_map_with_address_object(self) -> None:
        value = {"address": Address(BORROWER_1), "amount": 5}
        assert decode_account(value) == StructuredAccount(BORROWER_1)

    def test_unrecognised_shapes(self) -> None:
        assert decode_account(12) is None
        assert decode_account({"owner": BORROWER_1}) is None
        assert decode_account("") is None
        assert decode_account(None) is None


class TestClassifyEvent:
    @pytest.mark.parametrize(
        "name", ["market_entered", "borrow_event", "mint", "repayborrow", "MINT"]
    )
    def test_tracking_events(self, name: str) -> None:
        assert classify_event([name, BORROWER_1]) == EventAction(
            kind="track", account=PlainAccount(BORROWER_1)
        )

    def test_market_exited_untracks(self) -> None:
        action = classify_event(["market_exited", Address(BORROWER_1)])
        assert action == EventAction(kind="untrack", account=StructuredAccount(BORROWER_1))

    def test_empty_topics(self) -> None:
        assert classify_event([]) is None

    def test_unknown_event(self) -> None:
        assert classify_event(["transfer", BORROWER_1]) is None

    def test_non_string_discriminator(self) -> None:
        assert classify_event([7, BORROWER_1]) is None

    def test_missing_account_topic(self) -> None:
        assert classify_event(["mint"]) is None

    def test_unreadable_account(self) -> None:
        assert classify_event(["borrow_event", 99]) is None


class TestDescribeNative:
    def test_scalars(self) -> None:
        assert describe_native(None) == "null"
        assert describe_native(True) == "true"
        assert describe_native(2**70) == str(2**70)
        assert describe_native(b"\x01\xff") == "01ff"

    def test_nested(self) -> None:
        assert describe_native([1, [2, None]]) == "[1, [2, null]]"

    def test_map(self) -> None:
        assert describe_native({"b": 2, "a": 1}) == '{"a": "1", "b": "2"}'

    def test_address(self) -> None:
        assert describe_native(Address(VAULT_A)) == VAULT_A
