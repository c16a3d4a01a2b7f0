import pytest

from image_vault.crypto.key_derivation import KEY_SIZE, MAC_KEY_SIZE, SALT_SIZE, derive_key, new_salt
from image_vault.exceptions import InvalidInput, InvalidKeyInput


def test_derive_is_deterministic_for_same_inputs(salt):
    a = derive_key("password123", salt, 1000)
    b = derive_key("password123", salt, 1000)
    assert a == b
    assert len(a.encryption_key) == KEY_SIZE
    assert len(a.mac_key) == MAC_KEY_SIZE
    assert a.encryption_key != a.mac_key


def test_different_passphrase_or_salt_gives_different_key(salt):
    base = derive_key("password123", salt, 1000)
    assert derive_key("password124", salt, 1000) != base
    assert derive_key("password123", new_salt(), 1000) != base


@pytest.mark.parametrize("passphrase", ["", None])
def test_empty_passphrase_rejected(salt, passphrase):
    with pytest.raises(InvalidKeyInput):
        derive_key(passphrase, salt, 1000)


def test_invalid_key_input_is_invalid_input(salt):
    with pytest.raises(InvalidInput):
        derive_key("", salt, 1000)


def test_bad_salt_and_iterations_rejected(salt):
    with pytest.raises(InvalidKeyInput):
        derive_key("password123", b"short", 1000)
    with pytest.raises(InvalidKeyInput):
        derive_key("password123", salt, 0)


def test_key_material_repr_hides_secrets(key):
    text = repr(key)
    assert key.encryption_key.hex() not in text
    assert str(key.encryption_key) not in text


def test_new_salt_is_random():
    assert len(new_salt()) == SALT_SIZE
    assert new_salt() != new_salt()
