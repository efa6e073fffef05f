"""Ledger records and classified events.

Everything here is transient: parsed from an RPC response, classified,
rendered, and discarded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class SignatureInfo:
    """One entry of a getSignaturesForAddress page."""

    signature: str
    err: Any = None
    slot: int = 0

    @property
    def failed(self) -> bool:
        return self.err is not None

    @classmethod
    def from_rpc(cls, raw: dict[str, Any]) -> "SignatureInfo":
        return cls(
            signature=raw["signature"],
            err=raw.get("err"),
            slot=int(raw.get("slot") or 0),
        )


@dataclass(frozen=True)
class TokenBalance:
    """A pre- or post-transaction token balance for one account index."""

    account_index: int
    mint: str
    owner: str
    amount: float


@dataclass(frozen=True)
class TransactionRecord:
    """The parts of a parsed transaction the classifier looks at."""

    signature: str
    fee_payer: str
    logs: tuple[str, ...] = ()
    pre_balances: tuple[TokenBalance, ...] = ()
    post_balances: tuple[TokenBalance, ...] = ()

    @classmethod
    def from_rpc(cls, signature: str, result: dict[str, Any] | None) -> "TransactionRecord | None":
        """Build a record from a jsonParsed getTransaction result.

        Returns None when the transaction or its meta is missing. Balance
        entries that cannot be read are dropped rather than raising.
        """
        if not result or not isinstance(result, dict):
            return None
        meta = result.get("meta")
        if not isinstance(meta, dict):
            return None

        return cls(
            signature=signature,
            fee_payer=_fee_payer(result),
            logs=tuple(str(line) for line in (meta.get("logMessages") or [])),
            pre_balances=_parse_balances(meta.get("preTokenBalances")),
            post_balances=_parse_balances(meta.get("postTokenBalances")),
        )


def _fee_payer(result: dict[str, Any]) -> str:
    try:
        first = result["transaction"]["message"]["accountKeys"][0]
    except (KeyError, IndexError, TypeError):
        return ""
    # jsonParsed gives {"pubkey": ..., "signer": ...}; json gives a bare string
    if isinstance(first, dict):
        return str(first.get("pubkey", ""))
    return str(first)


def _ui_amount(token_amount: Any) -> float:
    if not isinstance(token_amount, dict):
        return 0.0
    value = token_amount.get("uiAmount")
    if value is None:
        value = token_amount.get("uiAmountString")
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def _parse_balances(raw: Any) -> tuple[TokenBalance, ...]:
    if not isinstance(raw, list):
        return ()
    balances: list[TokenBalance] = []
    for entry in raw:
        if not isinstance(entry, dict) or "accountIndex" not in entry:
            continue
        try:
            index = int(entry["accountIndex"])
        except (TypeError, ValueError):
            continue
        balances.append(
            TokenBalance(
                account_index=index,
                mint=str(entry.get("mint") or ""),
                owner=str(entry.get("owner") or ""),
                amount=_ui_amount(entry.get("uiTokenAmount")),
            )
        )
    return tuple(balances)


# ── Events ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Burn:
    signature: str
    actor: str
    amount: float
    kind: str = field(default="burn", init=False)


@dataclass(frozen=True)
class Buy:
    signature: str
    buyer: str
    amount: float
    resulting_balance: float
    kind: str = field(default="buy", init=False)


Event = Union[Burn, Buy]
