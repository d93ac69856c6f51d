"""
EVM chain adapter for Uniswap V4 pool discovery on Base
"""
import time
import logging
import requests
from web3 import Web3
from functools import wraps
from typing import Any, List, Optional

from radar.errors import ChainReadError
from radar.models import PoolCreationEvent
from .base_adapter import ChainAdapter

logger = logging.getLogger(__name__)


# Uniswap V4 PoolManager ABI (minimal - just the Initialize event)
POOL_MANAGER_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "id", "type": "bytes32"},
            {"indexed": True, "name": "currency0", "type": "address"},
            {"indexed": True, "name": "currency1", "type": "address"},
            {"indexed": False, "name": "fee", "type": "uint24"},
            {"indexed": False, "name": "tickSpacing", "type": "int24"},
            {"indexed": False, "name": "hooks", "type": "address"},
            {"indexed": False, "name": "sqrtPriceX96", "type": "uint160"},
            {"indexed": False, "name": "tick", "type": "int24"}
        ],
        "name": "Initialize",
        "type": "event"
    }
]

ERC20_ABI = [
    {"constant": True, "inputs": [], "name": "name", "outputs": [{"name": "", "type": "string"}], "type": "function"},
    {"constant": True, "inputs": [], "name": "symbol", "outputs": [{"name": "", "type": "string"}], "type": "function"},
    {"constant": True, "inputs": [], "name": "decimals", "outputs": [{"name": "", "type": "uint8"}], "type": "function"},
    {"constant": True, "inputs": [], "name": "totalSupply", "outputs": [{"name": "", "type": "uint256"}], "type": "function"}
]

READABLE_FIELDS = {'name', 'symbol', 'decimals', 'totalSupply'}

NETWORK_ERRORS = (
    ConnectionError,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    requests.exceptions.RequestException,
    OSError,
)


def retry_with_backoff(max_retries=3, base_delay=1):
    """Decorator to retry functions with exponential backoff on network errors.

    Raises ChainReadError once retries are exhausted.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except NETWORK_ERRORS as e:
                    if attempt == max_retries - 1:
                        logger.warning(f"⚠️  Max retries reached for {func.__name__}")
                        raise ChainReadError(f"{func.__name__} failed after {max_retries} attempts: {e}") from e
                    delay = base_delay * (2 ** attempt)
                    logger.warning(f"⚠️  Network error in {func.__name__}, retrying in {delay}s...")
                    time.sleep(delay)
            raise ChainReadError(f"{func.__name__} failed")
        return wrapper
    return decorator


def hook_payload_from_address(hooks: Optional[str]) -> bytes:
    """Hook contract address as bytes; the zero address means no hooks."""
    if not hooks:
        return b""
    raw = bytes.fromhex(hooks[2:] if hooks.lower().startswith("0x") else hooks)
    if not any(raw):
        return b""
    return raw


class EVMAdapter(ChainAdapter):
    """Chain reads against an EVM JSON-RPC endpoint via web3"""

    def __init__(self, config: dict, w3: Optional[Web3] = None):
        super().__init__(config)
        self.w3 = w3
        self.pool_manager = None
        self.pool_manager_address = Web3.to_checksum_address(config['pool_manager_address'])
        self.request_timeout = config.get('rpc_timeout_seconds', 10)
        self.max_retries = config.get('rpc_max_retries', 3)
        self.retry_base_delay = config.get('rpc_retry_base_delay', 2)
        self._token_contracts = {}
        if self.w3 is not None:
            self._init_contracts()

    def _init_contracts(self):
        self.pool_manager = self.w3.eth.contract(
            address=self.pool_manager_address,
            abi=POOL_MANAGER_ABI
        )

    def connect(self) -> bool:
        """Connect to EVM chain via RPC"""
        try:
            if self.w3 is None:
                self.w3 = Web3(Web3.HTTPProvider(
                    self.config['rpc_url'],
                    request_kwargs={'timeout': self.request_timeout}
                ))
            if not self.w3.is_connected():
                logger.error(f"❌ {self.get_chain_prefix()} Could not connect to RPC")
                return False
            self._init_contracts()
            logger.info(f"✅ {self.get_chain_prefix()} Connected! Block: {self.w3.eth.block_number}")
            return True
        except Exception as e:
            logger.error(f"❌ {self.get_chain_prefix()} Connection error: {e}")
            return False

    def _require_connection(self):
        if self.w3 is None or self.pool_manager is None:
            raise ChainReadError(f"{self.get_chain_prefix()} RPC not connected")

    def _with_retry(self, func, *args):
        """Call func with the configured retry policy for network errors."""
        return retry_with_backoff(self.max_retries, self.retry_base_delay)(func)(*args)

    def _fetch_block_number(self) -> int:
        return self.w3.eth.block_number

    def _fetch_initialize_logs(self, from_block: int, to_block: int):
        return self.pool_manager.events.Initialize.get_logs(
            from_block=from_block,
            to_block=to_block
        )

    def get_current_block_height(self) -> int:
        self._require_connection()
        try:
            return int(self._with_retry(self._fetch_block_number))
        except ChainReadError:
            raise
        except Exception as e:
            raise ChainReadError(f"eth_blockNumber failed: {e}") from e

    def get_pool_creation_events(self, from_block: int, to_block: int) -> List[PoolCreationEvent]:
        self._require_connection()
        try:
            logs = self._with_retry(self._fetch_initialize_logs, from_block, to_block)
        except ChainReadError:
            raise
        except Exception as e:
            raise ChainReadError(f"eth_getLogs {from_block}-{to_block} failed: {e}") from e

        events = []
        for log in logs:
            try:
                events.append(self._decode_initialize(log))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"⚠️  {self.get_chain_prefix()} Skipping malformed Initialize log: {e}")
        return events

    def _decode_initialize(self, log) -> PoolCreationEvent:
        args = log['args']
        return PoolCreationEvent(
            pool_id=Web3.to_hex(args['id']),
            currency0=args['currency0'],
            currency1=args['currency1'],
            fee=int(args['fee']),
            hook_payload=hook_payload_from_address(args.get('hooks')),
            block_number=int(log.get('blockNumber', 0) or 0),
        )

    def _token_contract(self, token_address: str):
        checksum = Web3.to_checksum_address(token_address)
        contract = self._token_contracts.get(checksum)
        if contract is None:
            contract = self.w3.eth.contract(address=checksum, abi=ERC20_ABI)
            self._token_contracts[checksum] = contract
        return contract

    def _call_token_function(self, contract, field_name: str) -> Any:
        return getattr(contract.functions, field_name)().call()

    def read_field(self, token_address: str, field_name: str) -> Any:
        if field_name not in READABLE_FIELDS:
            raise ValueError(f"Unsupported token field: {field_name}")
        self._require_connection()
        contract = self._token_contract(token_address)
        # reverts propagate as-is; network errors become ChainReadError
        return self._with_retry(self._call_token_function, contract, field_name)
