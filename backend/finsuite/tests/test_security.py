import bcrypt
import pytest

from finsuite import security


def test_argon2_hashes_verify():
    hashed = security.get_password_hash("s3cret!")

    assert hashed.startswith("$argon2")
    assert security.verify_password("s3cret!", hashed)
    assert not security.verify_password("wrong", hashed)


def test_imported_bcrypt_hashes_still_verify():
    hashed = bcrypt.hashpw(b"legacy-pass", bcrypt.gensalt(rounds=4)).decode("utf-8")

    assert security.verify_password("legacy-pass", hashed)
    assert not security.verify_password("other", hashed)


@pytest.mark.parametrize("hashed", [None, "", "plain-text", "$argon2id$broken"])
def test_unknown_or_broken_hashes_never_match(hashed):
    assert security.verify_password("anything", hashed) is False


def test_token_subject_round_trip():
    token = security.create_access_token(data={"sub": "USR-ABCDEFGH"})

    assert security._subject_from_token(token) == "USR-ABCDEFGH"
    assert security._subject_from_token(token + "x") is None


def test_unknown_role_names_fail_fast():
    with pytest.raises(ValueError):
        security.require_roles("ACCOUNTANT")
