import pytest

from backend.app.services.auth.password_hashing import (
    PasswordHashingError,
    hash_password,
    verify_password,
)


def test_hash_is_not_plaintext_and_verifies():
    hashed = hash_password("pw123", rounds=4)
    assert hashed != "pw123"
    assert hashed.startswith("$2b$04$")
    assert verify_password("pw123", hashed)
    assert not verify_password("pw124", hashed)


def test_hashing_is_salted():
    assert hash_password("pw123", rounds=4) != hash_password("pw123", rounds=4)


def test_default_cost_is_explicit():
    from backend.app.services.auth import password_hashing
    assert password_hashing.DEFAULT_BCRYPT_ROUNDS == 12


@pytest.mark.parametrize("rounds", [0, 3, 32, "12"])
def test_invalid_rounds_raise(rounds):
    with pytest.raises(PasswordHashingError):
        hash_password("pw123", rounds=rounds)


def test_overlong_password_raises():
    with pytest.raises(PasswordHashingError):
        hash_password("x" * 73, rounds=4)


def test_unencodable_password_raises():
    with pytest.raises(PasswordHashingError):
        hash_password("\ud800", rounds=4)


def test_verify_malformed_hash_returns_false():
    assert not verify_password("pw123", "not-a-bcrypt-hash")
    assert not verify_password("pw123", None)
