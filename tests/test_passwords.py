"""Unit tests for auth/passwords.py -- bcrypt hashing helpers."""

from auth.passwords import hash_password, verify_password


def test_hash_is_salted_and_verifies():
    first = hash_password("p@ss1")
    second = hash_password("p@ss1")
    assert first != second
    assert verify_password("p@ss1", first)
    assert verify_password("p@ss1", second)


def test_wrong_password_does_not_verify():
    assert not verify_password("wrong", hash_password("p@ss1"))


def test_long_password_is_accepted():
    long_pw = "x" * 100
    hashed = hash_password(long_pw)
    assert verify_password(long_pw, hashed)


def test_malformed_hash_is_a_mismatch():
    assert verify_password("p@ss1", "not-a-bcrypt-hash") is False
