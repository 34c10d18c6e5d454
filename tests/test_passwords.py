from __future__ import annotations

from logitrack.core.security.passwords import (
    PASSWORD_ALPHABET,
    generate_password,
    hash_password,
    verify_password,
)


def test_hash_password_round_trip_uses_salted_werkzeug_hash():
    encoded = hash_password("Harbour-Crane-42")
    assert encoded != "Harbour-Crane-42"
    assert encoded.startswith(("scrypt:", "pbkdf2:"))
    assert hash_password("Harbour-Crane-42") != encoded

    assert verify_password("Harbour-Crane-42", encoded) is True
    assert verify_password("harbour-crane-42", encoded) is False


def test_verify_password_rejects_missing_or_unknown_hashes():
    assert verify_password("anything", None) is False
    assert verify_password("anything", "") is False
    assert verify_password("anything", "not-a-hash") is False
    assert verify_password("anything", "md4$salt$abcdef") is False


def test_generate_password_uses_unambiguous_alphabet():
    password = generate_password(12)
    assert len(password) == 12
    assert set(password) <= set(PASSWORD_ALPHABET)
    assert len(generate_password(3)) == 8
