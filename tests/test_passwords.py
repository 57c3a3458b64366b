"""Unit tests for auth/passwords.py -- complexity rules and Argon2id hashing.

Covers:
- validate_password_complexity() reports the first broken rule, in order
- hash_password() emits a salted argon2id PHC string
- verify_password() returns False on mismatch, raises CryptoFailure on a corrupt digest
- authenticate_user() returns None for unknown email and wrong password alike
"""

import pytest

from auth.errors import CryptoFailure, ValidationFailure
from auth.models import Role
from auth.passwords import authenticate_user, hash_password, validate_password_complexity, verify_password
from conftest import TEST_PASSWORD, seed_user


class TestPasswordComplexity:
    """Rules are checked in order: length, uppercase, lowercase, digit."""

    @pytest.mark.parametrize(
        "password, message",
        [
            ("Short1A", "Password must be at least 12 characters long"),
            ("abcdefghijk1", "Password must contain at least one uppercase letter"),
            ("ABCDEFGHIJK1", "Password must contain at least one lowercase letter"),
            ("Abcdefghijkl", "Password must contain at least one number"),
            ("short1A", "Password must be at least 12 characters long"),
            ("alllowercase123", "Password must contain at least one uppercase letter"),
            ("ALLUPPERCASE123", "Password must contain at least one lowercase letter"),
            ("NoDigitsHereAtAll", "Password must contain at least one number"),
        ],
    )
    def test_rejects_with_first_broken_rule(self, password: str, message: str) -> None:
        with pytest.raises(ValidationFailure) as excinfo:
            validate_password_complexity(password)
        assert excinfo.value.reason == message

    def test_length_is_reported_before_character_classes(self) -> None:
        """'abc' breaks every rule; only the length message is reported."""
        with pytest.raises(ValidationFailure) as excinfo:
            validate_password_complexity("abc")
        assert "12 characters" in excinfo.value.reason

    @pytest.mark.parametrize("password", ["Abcdefghijk1", "ValidPass123x"])
    def test_accepts_compliant_password(self, password: str) -> None:
        validate_password_complexity(password)

    def test_validation_failure_maps_to_400(self) -> None:
        with pytest.raises(ValidationFailure) as excinfo:
            validate_password_complexity("")
        assert excinfo.value.status_code == 400
        assert excinfo.value.expected is True


class TestHashing:
    def test_digest_is_argon2id(self) -> None:
        digest = hash_password("Correct-Horse-42")
        assert digest.startswith("$argon2id$")

    def test_same_password_hashes_differently(self) -> None:
        """A fresh salt per call means two digests of one password never match."""
        assert hash_password("Correct-Horse-42") != hash_password("Correct-Horse-42")

    def test_verify_roundtrip(self) -> None:
        digest = hash_password("Correct-Horse-42")
        assert verify_password("Correct-Horse-42", digest) is True
        assert verify_password("Correct-Horse-43", digest) is False

    def test_corrupt_digest_raises_crypto_failure(self) -> None:
        with pytest.raises(CryptoFailure):
            verify_password("Correct-Horse-42", "not-a-phc-string")

    def test_crypto_failure_is_not_client_safe(self) -> None:
        with pytest.raises(CryptoFailure) as excinfo:
            verify_password("anything", "$argon2id$garbage")
        assert excinfo.value.expected is False


class TestAuthenticateUser:
    def test_valid_credentials(self, stores) -> None:
        user_store, _ = stores
        user = seed_user(user_store, Role.team, "ada")
        found = authenticate_user(user_store, "ada@example.com", TEST_PASSWORD)
        assert found is not None
        assert found.id == user.id

    def test_wrong_password(self, stores) -> None:
        user_store, _ = stores
        seed_user(user_store, Role.team, "ada")
        assert authenticate_user(user_store, "ada@example.com", "Wrong-Password-1") is None

    def test_unknown_email(self, stores) -> None:
        user_store, _ = stores
        assert authenticate_user(user_store, "nobody@example.com", TEST_PASSWORD) is None
