"""Transaction classifier: balance-delta analysis.

There is no on-chain "this was a buy" flag. All we get per transaction is
the token balance of every touched account before and after, plus the
log lines. From that:

1. Burn via transfer to a burn sink (incinerator / system address).
2. Burn via SPL Burn instruction, unless the primary pool absorbed the
   loss (then it was a sell that happened to log a burn).
3. Buy: sum what left the liquidity vaults. Summing pool-side outflow
   (rather than wallet-side inflow) makes an atomic multi-hop arbitrage
   count once, at the size that left the pools.

Anything else (sells, transfers, noise) yields no event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from solders.pubkey import Pubkey

from burnwatch.config import ClassifierSettings
from burnwatch.models import Burn, Buy, Event, TokenBalance, TransactionRecord

log = logging.getLogger("burnwatch.classifier")

UNKNOWN_ACTOR = "Unknown"
WALLET_ADDRESS_LENGTH = 44


def looks_like_program_account(owner: str, heuristic: str = "off_curve") -> bool:
    """Fallback test for vault / program-derived owners.

    off_curve: a valid pubkey with no ed25519 point, i.e. a PDA. Wallets
        are always on-curve.
    length: owner string shorter than 44 chars. Misfires on 43-char
        wallet addresses.
    none: never.
    """
    if not owner:
        return False
    if heuristic == "none":
        return False
    if heuristic == "length":
        return len(owner) < WALLET_ADDRESS_LENGTH
    try:
        return not Pubkey.from_string(owner).is_on_curve()
    except ValueError:
        return False


@dataclass
class _Ledger:
    """Per-account-index view of one transaction's balances for one mint."""

    pre: dict[int, TokenBalance] = field(default_factory=dict)
    post: dict[int, TokenBalance] = field(default_factory=dict)

    def pre_amount(self, index: int) -> float:
        entry = self.pre.get(index)
        return entry.amount if entry else 0.0

    def post_amount(self, index: int) -> float:
        entry = self.post.get(index)
        return entry.amount if entry else 0.0

    def delta(self, index: int) -> float:
        return self.post_amount(index) - self.pre_amount(index)


class TransactionClassifier:
    """Turns a TransactionRecord into at most one Burn or Buy."""

    def __init__(self, mint: str, pools: list[str], settings: ClassifierSettings | None = None):
        if not pools:
            raise ValueError("at least one pool address is required")
        self.mint = mint
        self.settings = settings or ClassifierSettings()
        self.primary_pool = pools[0]
        self.pools = frozenset(pools)
        self.vaults = frozenset(self.settings.known_vaults)
        self.sinks = frozenset(self.settings.burn_sinks)
        self.ops_wallets = frozenset(self.settings.ops_wallets)

    def classify(self, tx: TransactionRecord) -> Event | None:
        ledger = _Ledger(
            pre={b.account_index: b for b in tx.pre_balances if b.mint == self.mint},
            post={b.account_index: b for b in tx.post_balances if b.mint == self.mint},
        )
        if not ledger.pre and not ledger.post:
            return None

        return (
            self._sink_burn(tx, ledger)
            or self._instruction_burn(tx, ledger)
            or self._buy(tx, ledger)
        )

    # ── Burns ────────────────────────────────────────────────────────

    def _sink_burn(self, tx: TransactionRecord, ledger: _Ledger) -> Burn | None:
        tolerance = self.settings.match_tolerance
        for index, post in ledger.post.items():
            if post.owner not in self.sinks:
                continue
            gain = post.amount - ledger.pre_amount(index)
            if gain <= 0:
                continue

            burner = UNKNOWN_ACTOR
            for pre_index, pre in ledger.pre.items():
                loss = pre.amount - ledger.post_amount(pre_index)
                if abs(loss - gain) < tolerance and pre.owner:
                    burner = pre.owner
                    break
            return Burn(signature=tx.signature, actor=burner, amount=gain)
        return None

    def _instruction_burn(self, tx: TransactionRecord, ledger: _Ledger) -> Burn | None:
        markers = self.settings.burn_log_markers
        if not any(marker in line for line in tx.logs for marker in markers):
            return None

        pool_gain = sum(
            ledger.delta(index)
            for index in set(ledger.pre) | set(ledger.post)
            if self._owner(ledger, index) == self.primary_pool
        )
        ratio = self.settings.pool_absorption_ratio
        for index, pre in ledger.pre.items():
            loss = pre.amount - ledger.post_amount(index)
            if loss <= 0:
                continue
            if pool_gain < loss * ratio:
                return Burn(signature=tx.signature, actor=pre.owner or UNKNOWN_ACTOR, amount=loss)
            log.debug("%s: burn log but pool absorbed %.4f of %.4f, treating as sell", tx.signature, pool_gain, loss)
        return None

    # ── Buys ─────────────────────────────────────────────────────────

    def is_vault(self, owner: str) -> bool:
        if owner in self.pools or owner in self.vaults:
            return True
        return looks_like_program_account(owner, self.settings.vault_heuristic)

    def _buy(self, tx: TransactionRecord, ledger: _Ledger) -> Buy | None:
        total_bought = 0.0
        is_trade = False
        buyer = tx.fee_payer
        buyer_balance = 0.0

        for index, post in ledger.post.items():
            delta = post.amount - ledger.pre_amount(index)
            if delta < 0:
                if self.is_vault(post.owner):
                    total_bought += -delta
                    is_trade = True
            elif delta > 0:
                if post.amount > buyer_balance:
                    buyer_balance = post.amount
                    buyer = post.owner or buyer

        if not is_trade or total_bought <= self.settings.dust_floor:
            return None
        if buyer in self.ops_wallets:
            log.debug("%s: buy by operations wallet %s ignored", tx.signature, buyer)
            return None
        return Buy(
            signature=tx.signature,
            buyer=buyer,
            amount=total_bought,
            resulting_balance=buyer_balance,
        )

    @staticmethod
    def _owner(ledger: _Ledger, index: int) -> str:
        entry = ledger.post.get(index) or ledger.pre.get(index)
        return entry.owner if entry else ""
