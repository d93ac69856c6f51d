"""
Market data sources for freshly detected tokens.

There is no price/liquidity oracle yet. SyntheticMarketData produces
placeholder metrics in the ranges the dashboard was built against; pass a
seeded random.Random to make it reproducible.
"""
import random
from abc import ABC, abstractmethod
from typing import Optional

from .models import MarketSnapshot


class MarketDataSource(ABC):
    """Supplies initial market metrics for a new token."""

    @abstractmethod
    async def get_snapshot(self, token_address: str, pool_id: str, paired_with: str) -> MarketSnapshot:
        pass


class SyntheticMarketData(MarketDataSource):
    """
    Placeholder metrics:
    - liquidity: $5k-$25k
    - initial pump: 0-50%
    - price: 0.0001-0.0011
    - market cap: liquidity x 5-15
    - 24h volume: liquidity x 0.5-2.5
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    async def get_snapshot(self, token_address: str, pool_id: str, paired_with: str) -> MarketSnapshot:
        liquidity = self.rng.random() * 20000 + 5000
        return MarketSnapshot(
            liquidity_usd=liquidity,
            price_change_percent=self.rng.random() * 50,
            price=self.rng.random() * 0.001 + 0.0001,
            market_cap=liquidity * (self.rng.random() * 10 + 5),
            volume_24h=liquidity * (self.rng.random() * 2 + 0.5),
        )


class StaticMarketData(MarketDataSource):
    """Returns the same snapshot for every token."""

    def __init__(self, snapshot: MarketSnapshot):
        self.snapshot = snapshot

    async def get_snapshot(self, token_address: str, pool_id: str, paired_with: str) -> MarketSnapshot:
        return self.snapshot
