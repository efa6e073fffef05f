"""Holder rank tiers.

Ranks are based on the buyer's token balance after the purchase, in whole
tokens. The table is ordered highest threshold first and never changes
after start-up; each tier also selects one of a fixed range of rank
images.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class RankEntry:
    name: str
    minimum_balance: float


DEFAULT_TIERS: tuple[RankEntry, ...] = tuple(
    RankEntry(name, threshold)
    for name, threshold in (
        ("Ultimate", 2_000_000),
        ("Omega", 1_500_000),
        ("Absolute", 1_000_000),
        ("Singularity", 900_000),
        ("Omnipotence", 850_000),
        ("Eternity", 800_000),
        ("Apotheosis", 750_000),
        ("Divine", 650_000),
        ("Celestial", 600_000),
        ("Exalted", 550_000),
        ("Transcendent", 500_000),
        ("Majesty", 450_000),
        ("Sovereign", 400_000),
        ("Monarch", 350_000),
        ("Admiral", 300_000),
        ("Warden", 250_000),
        ("Harbinger", 225_000),
        ("Evoker", 200_000),
        ("Emperor", 175_000),
        ("Guardian", 150_000),
        ("Berserker", 135_000),
        ("Juggernaut", 120_000),
        ("Lord", 100_000),
        ("Alchemist", 90_000),
        ("Clairvoyant", 85_000),
        ("Conjurer", 80_000),
        ("Archdruid", 70_000),
        ("Sorcerer", 50_000),
        ("Shaman", 45_000),
        ("Sage", 40_000),
        ("Warrior", 35_000),
        ("Enchanter", 30_000),
        ("Seer", 27_500),
        ("Necromancer", 25_000),
        ("Summoner", 22_500),
        ("Master", 20_000),
        ("Disciple", 15_000),
        ("Acolyte", 12_500),
        ("Expert", 10_000),
        ("Apprentice", 7_500),
        ("Rookie", 5_000),
        ("Learner", 2_500),
        ("Initiate", 1_000),
        ("Peasant", 1),
    )
)


def _round_half_up(x: float) -> int:
    # Python's round() is banker's rounding; the image boundaries need .5 -> up
    return math.floor(x + 0.5)


class RankTable:
    """Balance -> tier name, tier name -> image number."""

    def __init__(
        self,
        tiers: tuple[RankEntry, ...] = DEFAULT_TIERS,
        image_range: tuple[int, int] = (2, 45),
        image_url: str = "",
    ):
        if not tiers:
            raise ValueError("rank table needs at least one tier")
        thresholds = [t.minimum_balance for t in tiers]
        if thresholds != sorted(thresholds, reverse=True):
            raise ValueError("rank tiers must be ordered highest threshold first")
        self.tiers = tiers
        self.image_range = image_range
        self.image_url = image_url
        self._index = {t.name: i for i, t in enumerate(tiers)}

    @property
    def lowest(self) -> str:
        return self.tiers[-1].name

    @property
    def highest(self) -> str:
        return self.tiers[0].name

    def __len__(self) -> int:
        return len(self.tiers)

    def rank_for(self, balance: float) -> str:
        """First tier whose threshold the balance meets; lowest tier otherwise."""
        for tier in self.tiers:
            if balance >= tier.minimum_balance:
                return tier.name
        return self.lowest

    def position(self, name: str) -> int:
        """0 for the highest tier. Unknown names sort as the lowest."""
        return self._index.get(name, len(self.tiers) - 1)

    def image_index_for(self, name: str) -> int:
        """Highest tier -> top of the image range, lowest -> bottom."""
        start, end = self.image_range
        index = self._index.get(name)
        if index is None:
            return start
        if len(self.tiers) == 1:
            return end
        normalized = 1 - index / (len(self.tiers) - 1)
        return start + _round_half_up(normalized * (end - start))

    def image_url_for(self, name: str) -> str:
        return self.image_url.format(index=self.image_index_for(name))


def buy_emojis(usd_value: float, arbitrage: bool = False) -> str:
    """One emoji pair per $50 bought ($100 for arbitrage), 1..48 pairs."""
    pair = "🤖🔩" if arbitrage else "🟣🔥"
    step = 100 if arbitrage else 50
    count = min(int(usd_value // step), 48)
    return pair * max(count, 1)
