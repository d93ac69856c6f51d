import os
import shutil
import tempfile
import time
import unittest

from radar.errors import RecordValidationError
from radar.models import TokenRecord, TokenType
from radar.token_store import SQLiteTokenStore

FRESH = 2 * 3600
EXPIRY = 4 * 3600


def make_record(address="0xAbC0000000000000000000000000000000000001", score=20, detected_at=None, **kwargs):
    defaults = dict(
        symbol="TST",
        name="Test",
        pool_id="0xpool",
        paired_with="WETH",
        liquidity=15000.0,
        price=0.0005,
        price_change=60.0,
        market_cap=100000.0,
        volume_24h=20000.0,
        token_type=TokenType.STANDARD,
    )
    defaults.update(kwargs)
    return TokenRecord(address=address, score=score, detected_at=detected_at, **defaults)


class TestSQLiteTokenStore(unittest.TestCase):

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.store = SQLiteTokenStore(os.path.join(self.tmp_dir, "data", "tokens.db"))
        self.now = time.time()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_insert_then_update_reports_created_once(self):
        _, created = self.store.upsert(make_record(detected_at=self.now), now=self.now)
        self.assertTrue(created)
        stored, created = self.store.upsert(make_record(score=5, detected_at=self.now + 60), now=self.now + 60)
        self.assertFalse(created)
        self.assertEqual(stored.score, 5)
        self.assertEqual(self.store.count(), 1)

    def test_update_never_overwrites_detected_at_or_identity(self):
        self.store.upsert(make_record(detected_at=self.now - 600), now=self.now - 600)
        later = make_record(
            address="0xABC0000000000000000000000000000000000001",
            symbol="OTHER", pool_id="0xsecond", detected_at=self.now,
        )
        stored, created = self.store.upsert(later, now=self.now)
        self.assertFalse(created)
        self.assertAlmostEqual(stored.detected_at, self.now - 600)
        self.assertEqual(stored.symbol, "TST")
        self.assertEqual(stored.pool_id, "0xpool")
        self.assertAlmostEqual(stored.last_updated, self.now)

    def test_address_is_case_insensitive(self):
        self.store.upsert(make_record(address="0xABC0000000000000000000000000000000000001", detected_at=self.now))
        self.assertTrue(self.store.contains("0xabc0000000000000000000000000000000000001", FRESH, now=self.now))
        self.assertIsNotNone(self.store.get("0xAbC0000000000000000000000000000000000001"))

    def test_invalid_record_is_rejected(self):
        with self.assertRaises(RecordValidationError):
            self.store.upsert(make_record(score=31, detected_at=self.now))
        with self.assertRaises(RecordValidationError):
            self.store.upsert(make_record(symbol="X" * 21, detected_at=self.now))
        with self.assertRaises(RecordValidationError):
            self.store.upsert(make_record(liquidity=-1, detected_at=self.now))
        self.assertEqual(self.store.count(), 0)

    def test_query_top_orders_by_score_then_recency(self):
        self.store.upsert(make_record(address="0x" + "1" * 40, score=10, detected_at=self.now - 300))
        self.store.upsert(make_record(address="0x" + "2" * 40, score=20, detected_at=self.now - 600))
        self.store.upsert(make_record(address="0x" + "3" * 40, score=20, detected_at=self.now - 60))
        top = self.store.query_top(10, FRESH, now=self.now)
        self.assertEqual([t.address for t in top], ["0x" + "3" * 40, "0x" + "2" * 40, "0x" + "1" * 40])
        self.assertEqual(len(self.store.query_top(2, FRESH, now=self.now)), 2)

    def test_records_past_freshness_are_hidden_but_kept(self):
        self.store.upsert(make_record(detected_at=self.now - 3 * 3600))
        self.assertEqual(self.store.query_top(10, FRESH, now=self.now), [])
        self.assertFalse(self.store.contains("0xabc0000000000000000000000000000000000001", FRESH, now=self.now))
        self.assertEqual(self.store.count(), 1)

    def test_age_cycle_recomputes_minutes(self):
        self.store.upsert(make_record(detected_at=self.now - 90 * 60))
        touched = self.store.age_all_within(FRESH, now=self.now)
        self.assertEqual(touched, 1)
        record = self.store.get("0xabc0000000000000000000000000000000000001")
        self.assertEqual(record.age_minutes, 90)
        self.assertEqual(record.to_dict()["age"], "1h")

    def test_age_cycle_rescores_and_decays(self):
        # liquidity 15k -> 8, momentum 60 -> 8, age 90 -> 0
        self.store.upsert(make_record(score=26, is_spiking=True, detected_at=self.now - 90 * 60))
        self.store.age_all_within(FRESH, now=self.now)
        record = self.store.get("0xabc0000000000000000000000000000000000001")
        self.assertEqual(record.score, 16)
        self.assertFalse(record.is_spiking)

    def test_age_cycle_uses_configured_spike_threshold(self):
        # liquidity 6k -> 6, momentum 30 -> 6, age 0 -> 10
        store = SQLiteTokenStore(os.path.join(self.tmp_dir, "custom.db"), spike_threshold=20)
        store.upsert(make_record(score=22, is_spiking=True, liquidity=6000.0, price_change=30.0,
                                 detected_at=self.now))
        store.age_all_within(FRESH, now=self.now)
        record = store.get("0xabc0000000000000000000000000000000000001")
        self.assertEqual(record.score, 22)
        self.assertTrue(record.is_spiking)

        store.age_all_within(FRESH, now=self.now, spike_threshold=25)
        self.assertFalse(store.get("0xabc0000000000000000000000000000000000001").is_spiking)

    def test_age_cycle_skips_hidden_records(self):
        self.store.upsert(make_record(detected_at=self.now - 3 * 3600, age_minutes=0))
        self.assertEqual(self.store.age_all_within(FRESH, now=self.now), 0)
        self.assertEqual(self.store.get("0xabc0000000000000000000000000000000000001").age_minutes, 0)

    def test_expire_deletes_past_horizon(self):
        self.store.upsert(make_record(address="0x" + "1" * 40, detected_at=self.now - 5 * 3600))
        self.store.upsert(make_record(address="0x" + "2" * 40, detected_at=self.now - 3 * 3600))
        deleted = self.store.expire_older_than(EXPIRY, now=self.now)
        self.assertEqual(deleted, 1)
        self.assertIsNone(self.store.get("0x" + "1" * 40))
        self.assertIsNotNone(self.store.get("0x" + "2" * 40))

    def test_cursor_round_trip(self):
        self.assertIsNone(self.store.load_cursor())
        self.store.save_cursor(150)
        self.store.save_cursor(175)
        self.assertEqual(self.store.load_cursor(), 175)
        reopened = SQLiteTokenStore(self.store.db_path)
        self.assertEqual(reopened.load_cursor(), 175)

    def test_to_dict_shape(self):
        stored, _ = self.store.upsert(make_record(token_type=TokenType.ZORA, detected_at=self.now))
        payload = stored.to_dict()
        self.assertEqual(payload["id"], "0xabc0000000000000000000000000000000000001")
        self.assertEqual(payload["tokenType"], "ZORA")
        self.assertEqual(payload["age"], "0m")
        self.assertTrue(payload["detectedAt"].endswith("Z"))


if __name__ == '__main__':
    unittest.main()
