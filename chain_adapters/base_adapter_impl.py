"""Base chain adapter implementation"""
from .evm_adapter import EVMAdapter


class BaseChainAdapter(EVMAdapter):
    """Base (Coinbase L2) chain adapter"""

    def __init__(self, config: dict, w3=None):
        config = dict(config)
        config.setdefault('chain_name', 'base')
        super().__init__(config, w3=w3)
