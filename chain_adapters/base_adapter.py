"""
Chain adapter base interface

The radar only needs three reads from a chain: the head block, the pool
creation logs in a block range and single contract fields.
"""
from abc import ABC, abstractmethod
from typing import Any, List

from radar.models import PoolCreationEvent


class ChainAdapter(ABC):
    """Base interface for chain-read adapters"""

    def __init__(self, config: dict):
        self.config = config
        self.chain_name = config.get('chain_name', '')

    @abstractmethod
    def connect(self) -> bool:
        """Connect to the blockchain and verify connectivity"""
        pass

    @abstractmethod
    def get_current_block_height(self) -> int:
        """
        Current chain head.
        Raises ChainReadError when the RPC is unavailable.
        """
        pass

    @abstractmethod
    def get_pool_creation_events(self, from_block: int, to_block: int) -> List[PoolCreationEvent]:
        """
        Pool creation events emitted by the configured pool manager
        in [from_block, to_block], in log order.
        Raises ChainReadError when the RPC is unavailable.
        """
        pass

    @abstractmethod
    def read_field(self, token_address: str, field_name: str) -> Any:
        """
        Read a single view field ('name', 'symbol', 'decimals') from a token contract.
        Raises on any failure; callers decide on fallbacks.
        """
        pass

    def get_chain_prefix(self) -> str:
        """Return chain prefix for log lines"""
        return f"[{self.chain_name.upper()}]"
