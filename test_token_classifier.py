import unittest

from radar.models import TokenType
from radar.token_classifier import classify_token, has_hook

HOOK = bytes.fromhex("aa" * 20)


class TestTokenClassifier(unittest.TestCase):

    def test_fee_3000_is_base_app(self):
        self.assertEqual(classify_token(3000, b""), TokenType.BASE_APP)

    def test_fee_10000_is_zora(self):
        self.assertEqual(classify_token(10000, b""), TokenType.ZORA)

    def test_fee_rules_win_over_hooks(self):
        self.assertEqual(classify_token(3000, HOOK), TokenType.BASE_APP)
        self.assertEqual(classify_token(10000, HOOK), TokenType.ZORA)

    def test_hooked_pool(self):
        self.assertEqual(classify_token(500, HOOK), TokenType.HOOKED)
        self.assertEqual(classify_token(500, "0xdeadbeef"), TokenType.HOOKED)

    def test_plain_pool_is_standard(self):
        self.assertEqual(classify_token(500, b""), TokenType.STANDARD)
        self.assertEqual(classify_token(500, None), TokenType.STANDARD)
        self.assertEqual(classify_token(500, "0x"), TokenType.STANDARD)
        self.assertEqual(classify_token(0, ""), TokenType.STANDARD)

    def test_every_input_maps_to_one_of_four_tags(self):
        allowed = {TokenType.STANDARD, TokenType.HOOKED, TokenType.BASE_APP, TokenType.ZORA}
        for fee in (0, 100, 500, 3000, 8388608, 10000, 2**24 - 1):
            for payload in (b"", HOOK, None, "0x", "0x01"):
                self.assertIn(classify_token(fee, payload), allowed)

    def test_zero_address_hook_string_is_empty(self):
        self.assertFalse(has_hook("0x" + "0" * 40))


if __name__ == '__main__':
    unittest.main()
