"""Pure codec and event-classification functions for Peridot. No I/O."""
from __future__ import annotations

import json
from typing import Any, Iterable

from stellar_sdk import scval
from stellar_sdk import xdr as stellar_xdr

from ...models import AccountRef, EventAction, PlainAccount, StructuredAccount

# Any of these means "this account may now have exposure". Deposits (mint)
# are included so that real borrow exposure is never missed.
TRACK_EVENTS = frozenset({"market_entered", "borrow_event", "mint", "repayborrow"})
UNTRACK_EVENTS = frozenset({"market_exited"})


# ---------------------------------------------------------------------------
# Argument encoding
# ---------------------------------------------------------------------------


def to_address(address: str) -> stellar_xdr.SCVal:
    """Encode an account (G...) or contract (C...) id as an SCVal address."""
    return scval.to_address(address)


def to_u128(value: int) -> stellar_xdr.SCVal:
    """Encode a non-negative integer as u128; negative input is rejected."""
    value = int(value)
    if value < 0:
        raise ValueError("u128 cannot be negative")
    return scval.to_uint128(value)


# ---------------------------------------------------------------------------
# Event decoding
# ---------------------------------------------------------------------------


def decode_topics(topics: Iterable[str]) -> list[Any]:
    """Decode base64 XDR topics into native values. Decode errors propagate."""
    return [scval.to_native(stellar_xdr.SCVal.from_xdr(topic)) for topic in topics]


def event_name(value: Any) -> str | None:
    """Return the lower-cased event discriminator, or None if not a string."""
    if isinstance(value, bytes):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(value, str):
        return None
    return value.lower()


def decode_account(value: Any) -> AccountRef | None:
    """Decode an account topic.

    A plain string becomes ``PlainAccount``; a decoded ``Address`` or a map
    with an ``address`` entry becomes ``StructuredAccount``.
    """
    if isinstance(value, bytes):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if isinstance(value, str):
        return PlainAccount(value) if value else None

    if isinstance(value, dict):
        inner = value.get("address")
    else:
        inner = getattr(value, "address", None)

    # Maps may hold an Address object under "address".
    inner = getattr(inner, "address", inner)
    if isinstance(inner, str) and inner:
        return StructuredAccount(inner)
    return None


def classify_event(topics: list[Any]) -> EventAction | None:
    """Map decoded topics to a registry action; unknown events yield None."""
    if not topics:
        return None

    name = event_name(topics[0])
    if name in TRACK_EVENTS:
        kind = "track"
    elif name in UNTRACK_EVENTS:
        kind = "untrack"
    else:
        return None

    if len(topics) < 2:
        return None
    account = decode_account(topics[1])
    if account is None:
        return None
    return EventAction(kind=kind, account=account)


# ---------------------------------------------------------------------------
# Log rendering
# ---------------------------------------------------------------------------


def describe_native(value: Any) -> str:
    """Render a decoded contract value for log output."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(describe_native(v) for v in value) + "]"
    if isinstance(value, dict):
        return json.dumps(
            {str(k): describe_native(v) for k, v in value.items()}, sort_keys=True
        )
    address = getattr(value, "address", None)
    if isinstance(address, str):
        return address
    return str(value)
