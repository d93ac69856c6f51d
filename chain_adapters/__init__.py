"""
Chain adapter factory and exports
"""
import logging

from .base_adapter import ChainAdapter
from .evm_adapter import EVMAdapter, retry_with_backoff
from .base_adapter_impl import BaseChainAdapter

logger = logging.getLogger(__name__)


def get_adapter_for_chain(chain_name: str, config: dict) -> ChainAdapter:
    """
    Factory function to get the adapter for a chain.

    Args:
        chain_name: Name of the chain (only 'base' is supported)
        config: Chain configuration dict

    Returns:
        ChainAdapter instance or None
    """
    adapters = {
        'base': BaseChainAdapter,
    }

    adapter_class = adapters.get(chain_name.lower())
    if adapter_class:
        return adapter_class(config)

    logger.error(f"❌ Unknown chain: {chain_name}")
    return None


__all__ = [
    'ChainAdapter',
    'EVMAdapter',
    'BaseChainAdapter',
    'retry_with_backoff',
    'get_adapter_for_chain'
]
