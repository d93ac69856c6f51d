import unittest
from unittest import mock

import requests

from chain_adapters import BaseChainAdapter
from config import get_radar_config
from fakes import FakeChain, NEW_TOKEN, OTHER_TOKEN
from radar.errors import ChainReadError
from radar.metadata_resolver import MetadataResolver, MetadataStatus


class TestMetadataResolver(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.chain = FakeChain()
        self.resolver = MetadataResolver(self.chain, read_timeout=2)

    async def test_resolves_all_fields(self):
        self.chain.set_metadata(NEW_TOKEN, name="Test", symbol="TST", decimals=9)
        result = await self.resolver.resolve(NEW_TOKEN)
        self.assertEqual(result.status, MetadataStatus.RESOLVED)
        self.assertEqual(result.metadata.name, "Test")
        self.assertEqual(result.metadata.symbol, "TST")
        self.assertEqual(result.metadata.decimals, 9)
        self.assertEqual(result.metadata.fallback_fields, ())

    async def test_single_unreadable_field_falls_back(self):
        self.chain.fields[NEW_TOKEN.lower()] = {'name': ValueError("revert"), 'symbol': "TST", 'decimals': 6}
        result = await self.resolver.resolve(NEW_TOKEN)
        self.assertTrue(result.ok)
        self.assertEqual(result.metadata.name, "Unknown Token")
        self.assertEqual(result.metadata.symbol, "TST")
        self.assertEqual(result.metadata.fallback_fields, ("name",))

    async def test_all_fields_reverting_still_resolves_with_defaults(self):
        result = await self.resolver.resolve(NEW_TOKEN)
        self.assertTrue(result.ok)
        self.assertEqual(result.metadata.name, "Unknown Token")
        self.assertEqual(result.metadata.symbol, "UNK")
        self.assertEqual(result.metadata.decimals, 18)

    async def test_long_symbol_is_invalid(self):
        self.chain.set_metadata(NEW_TOKEN, symbol="S" * 25)
        result = await self.resolver.resolve(NEW_TOKEN)
        self.assertEqual(result.status, MetadataStatus.INVALID)
        self.assertIsNone(result.metadata)

    async def test_long_name_is_invalid(self):
        self.chain.set_metadata(NEW_TOKEN, name="N" * 101)
        result = await self.resolver.resolve(NEW_TOKEN)
        self.assertEqual(result.status, MetadataStatus.INVALID)

    async def test_boundary_lengths_are_valid(self):
        self.chain.set_metadata(NEW_TOKEN, name="N" * 100, symbol="S" * 20)
        result = await self.resolver.resolve(NEW_TOKEN)
        self.assertTrue(result.ok)

    async def test_rpc_down_for_every_field_is_unavailable(self):
        down = ChainReadError("rpc down")
        self.chain.fields[NEW_TOKEN.lower()] = {'name': down, 'symbol': down, 'decimals': down}
        result = await self.resolver.resolve(NEW_TOKEN)
        self.assertEqual(result.status, MetadataStatus.UNAVAILABLE)

    async def test_invalid_address_is_unavailable(self):
        result = await self.resolver.resolve("not-an-address")
        self.assertEqual(result.status, MetadataStatus.UNAVAILABLE)
        self.assertEqual(self.chain.field_reads, [])

    async def test_cache_avoids_second_read(self):
        self.chain.set_metadata(NEW_TOKEN)
        await self.resolver.resolve(NEW_TOKEN)
        reads = len(self.chain.field_reads)
        result = await self.resolver.resolve(NEW_TOKEN.lower())
        self.assertTrue(result.ok)
        self.assertEqual(len(self.chain.field_reads), reads)

    async def test_bytes_symbol_is_decoded(self):
        self.chain.set_metadata(NEW_TOKEN, symbol=b"TST\x00\x00")
        result = await self.resolver.resolve(NEW_TOKEN)
        self.assertEqual(result.metadata.symbol, "TST")

    async def test_slow_field_times_out_to_default(self):
        self.chain.set_metadata(NEW_TOKEN, name="Test", symbol="TST")
        self.chain.slow_fields = {"name"}
        self.chain.delay = 0.3
        resolver = MetadataResolver(self.chain, read_timeout=0.05)
        result = await resolver.resolve(NEW_TOKEN)
        self.assertTrue(result.ok)
        self.assertEqual(result.metadata.name, "Unknown Token")
        self.assertEqual(result.metadata.symbol, "TST")
        self.assertEqual(result.metadata.fallback_fields, ("name",))

    async def test_every_field_timing_out_is_unavailable(self):
        self.chain.set_metadata(NEW_TOKEN)
        self.chain.slow_fields = {"name", "symbol", "decimals"}
        self.chain.delay = 0.3
        resolver = MetadataResolver(self.chain, read_timeout=0.05)
        result = await resolver.resolve(NEW_TOKEN)
        self.assertEqual(result.status, MetadataStatus.UNAVAILABLE)

    async def test_stale_cache_entries_are_pruned(self):
        self.chain.set_metadata(NEW_TOKEN)
        self.chain.set_metadata(OTHER_TOKEN, name="Other", symbol="OTH")
        await self.resolver.resolve(NEW_TOKEN)
        self.resolver._metadata_cache[NEW_TOKEN.lower()].timestamp -= 3600
        await self.resolver.resolve(OTHER_TOKEN)
        self.assertNotIn(NEW_TOKEN.lower(), self.resolver._metadata_cache)
        self.assertIn(OTHER_TOKEN.lower(), self.resolver._metadata_cache)


class TestMetadataOverWeb3(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.w3 = mock.MagicMock()
        config = get_radar_config(overrides={'rpc_retry_base_delay': 0})
        self.adapter = BaseChainAdapter(config, w3=self.w3)
        self.functions = self.w3.eth.contract.return_value.functions

    async def test_connection_errors_make_metadata_unavailable(self):
        for field_name in ("name", "symbol", "decimals"):
            call = getattr(self.functions, field_name).return_value.call
            call.side_effect = requests.exceptions.ConnectionError("connection refused")
        result = await MetadataResolver(self.adapter, read_timeout=2).resolve(NEW_TOKEN)
        self.assertEqual(result.status, MetadataStatus.UNAVAILABLE)
        self.assertIsNone(result.metadata)

    async def test_reverting_contract_still_resolves_with_defaults(self):
        for field_name in ("name", "symbol", "decimals"):
            getattr(self.functions, field_name).return_value.call.side_effect = ValueError("execution reverted")
        result = await MetadataResolver(self.adapter, read_timeout=2).resolve(NEW_TOKEN)
        self.assertTrue(result.ok)
        self.assertEqual(result.metadata.symbol, "UNK")


if __name__ == '__main__':
    unittest.main()
