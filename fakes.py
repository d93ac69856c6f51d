"""
In-memory stand-ins for the chain adapter used by the unit tests.
"""
import time

from chain_adapters.base_adapter import ChainAdapter
from radar.errors import ChainReadError, StoreError
from radar.models import PoolCreationEvent
from radar.token_store import TokenStore

WETH = "0x4200000000000000000000000000000000000006"
USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
REFERENCE_ASSETS = {'WETH': WETH, 'USDC': USDC}

NEW_TOKEN = "0xAbCdEf0000000000000000000000000000000001"
OTHER_TOKEN = "0x2222222222222222222222222222222222222222"


def make_event(currency0, currency1, fee=500, hook_payload=b"", pool_id="0xpool", block_number=0):
    return PoolCreationEvent(
        pool_id=pool_id,
        currency0=currency0,
        currency1=currency1,
        fee=fee,
        hook_payload=hook_payload,
        block_number=block_number,
    )


class FakeChain(ChainAdapter):
    """
    Scriptable chain.

    fields: {address (lowercase): {"name": value | Exception, ...}}
    events: returned for every requested range
    delay: seconds get_current_block_height and slow_fields reads block for
    """

    def __init__(self, head=1000, events=None, fields=None):
        super().__init__({'chain_name': 'fake'})
        self.head = head
        self.events = list(events or [])
        self.fields = {k.lower(): v for k, v in (fields or {}).items()}
        self.head_error = None
        self.events_error = None
        self.ranges_requested = []
        self.field_reads = []
        self.delay = 0
        self.slow_fields = set()

    def connect(self) -> bool:
        return True

    def get_current_block_height(self) -> int:
        if self.delay:
            time.sleep(self.delay)
        if self.head_error:
            raise self.head_error
        return self.head

    def get_pool_creation_events(self, from_block, to_block):
        self.ranges_requested.append((from_block, to_block))
        if self.events_error:
            raise self.events_error
        return list(self.events)

    def read_field(self, token_address, field_name):
        self.field_reads.append((token_address.lower(), field_name))
        if field_name in self.slow_fields:
            time.sleep(self.delay)
        token_fields = self.fields.get(token_address.lower())
        if token_fields is None:
            raise ValueError("execution reverted")
        value = token_fields.get(field_name)
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise ValueError("execution reverted")
        return value

    def set_metadata(self, address, name="Test", symbol="TST", decimals=18):
        self.fields[address.lower()] = {'name': name, 'symbol': symbol, 'decimals': decimals}

    def go_down(self):
        self.head_error = ChainReadError("rpc unreachable")


class BrokenStore(TokenStore):
    """Store whose every operation fails."""

    def __init__(self, message="database is locked"):
        self.message = message
        self.calls = []

    def _fail(self, name):
        self.calls.append(name)
        raise StoreError(self.message)

    def upsert(self, record, now=None):
        self._fail('upsert')

    def query_top(self, limit, freshness_seconds, now=None):
        self._fail('query_top')

    def contains(self, address, freshness_seconds, now=None):
        self._fail('contains')

    def age_all_within(self, freshness_seconds, now=None, spike_threshold=None):
        self._fail('age_all_within')

    def expire_older_than(self, expiry_seconds, now=None):
        self._fail('expire_older_than')
