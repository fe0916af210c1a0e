import random
import unittest

from name_tester.shortlink import BASE62_CHARS, generate_shortlink, to_base62, validate_shortlink


class TestShortlink(unittest.TestCase):
    def setUp(self):
        self.data = {"firstNames": ["Thomas (Tom)"], "middleNames": ["Alexander"], "lastNames": ["Smith"]}

    def test_generated_token_is_valid(self):
        token = generate_shortlink(self.data)
        self.assertEqual(len(token), 16)
        self.assertTrue(set(token) <= set(BASE62_CHARS))
        self.assertTrue(validate_shortlink(token))

    def test_same_salt_and_seed_give_same_token(self):
        a = generate_shortlink(self.data, now_ms=1700000000000, rng=random.Random(0))
        b = generate_shortlink(self.data, now_ms=1700000000000, rng=random.Random(0))
        self.assertEqual(a, b)

    def test_time_salt_changes_token(self):
        a = generate_shortlink(self.data, now_ms=1700000000000, rng=random.Random(0))
        b = generate_shortlink(self.data, now_ms=1700000000001, rng=random.Random(0))
        self.assertNotEqual(a, b)

    def test_base62(self):
        self.assertEqual(to_base62(0), "0")
        self.assertEqual(to_base62(61), "z")
        self.assertEqual(to_base62(62), "10")
        self.assertEqual(to_base62(62 ** 2 + 11), "10B")

    def test_validate_accepts_any_well_formed_token(self):
        self.assertTrue(validate_shortlink("abcDEF0123456789"))
        self.assertTrue(validate_shortlink("0" * 16))

    def test_validate_rejects_bad_tokens(self):
        for token in ["", "abcDEF012345678", "abcDEF01234567890", "abcDEF012345678-", "abcDEF01234567 8", None, 1234]:
            with self.subTest(token=token):
                self.assertFalse(validate_shortlink(token))


if __name__ == "__main__":
    unittest.main(verbosity=2)
