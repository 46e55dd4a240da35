"""
Unit Tests for Password Hashing
===============================
Tests cover:
- Hash and verify round trips
- Deterministic lowercase hex output
- Salt and candidate mismatches
- Failing fast on None
"""

from django.test import SimpleTestCase, override_settings

from gallery.passwords import generate_salt, hash_password, verify_password


@override_settings(GALLERY_PASSWORD_ITERATIONS=1000)
class PasswordHashTests(SimpleTestCase):
    """Tests for hash_password() and verify_password()."""

    def test_round_trip(self):
        salt = generate_salt()
        for password in ["a", "correct horse battery staple", "pässwörd", "   "]:
            self.assertTrue(verify_password(password, hash_password(password, salt), salt))

    def test_deterministic_lowercase_hex(self):
        first = hash_password("secret", "salt")
        self.assertEqual(first, hash_password("secret", "salt"))
        self.assertEqual(first, first.lower())
        int(first, 16)

    def test_different_inputs_differ(self):
        self.assertNotEqual(hash_password("secret", "salt"), hash_password("secret2", "salt"))
        self.assertNotEqual(hash_password("secret", "salt"), hash_password("secret", "pepper"))

    def test_wrong_candidate(self):
        stored = hash_password("secret", "salt")
        self.assertFalse(verify_password("Secret", stored, "salt"))
        self.assertFalse(verify_password("secret", stored, "other-salt"))

    def test_none_fails_fast(self):
        with self.assertRaises(TypeError):
            hash_password(None)
        with self.assertRaises(TypeError):
            verify_password(None, "abc")
        with self.assertRaises(TypeError):
            verify_password("abc", None)
