"""Unit tests for the two-way password encoder."""

import pytest

from metastore.backends.in_memory import InMemoryMetaStore
from metastore.security import (
    Base64TwoWayPasswordEncoder,
    FernetTwoWayPasswordEncoder,
    encoder_from_config,
)


def test_encode_hides_plain_text_and_decodes_back() -> None:
    encoder = Base64TwoWayPasswordEncoder()

    cipher = encoder.encode("secret")

    assert cipher.startswith(Base64TwoWayPasswordEncoder.PREFIX)
    assert "secret" not in cipher
    assert encoder.decode(cipher) == "secret"


def test_none_passes_through() -> None:
    encoder = Base64TwoWayPasswordEncoder()

    assert encoder.encode(None) is None
    assert encoder.decode(None) is None


def test_unprefixed_value_is_returned_as_is() -> None:
    assert Base64TwoWayPasswordEncoder().decode("legacy") == "legacy"


def test_malformed_payload_raises_value_error() -> None:
    with pytest.raises(ValueError):
        Base64TwoWayPasswordEncoder().decode("Encoded !!!not-base64")


def test_fernet_round_trip_hides_plain_text() -> None:
    encoder = FernetTwoWayPasswordEncoder(FernetTwoWayPasswordEncoder.generate_key())

    cipher = encoder.encode("secret")

    assert cipher.startswith(FernetTwoWayPasswordEncoder.PREFIX)
    assert "secret" not in cipher
    assert encoder.decode(cipher) == "secret"
    assert encoder.encode(None) is None
    assert encoder.decode(None) is None


def test_fernet_rejects_ciphers_of_another_key() -> None:
    cipher = FernetTwoWayPasswordEncoder(FernetTwoWayPasswordEncoder.generate_key()).encode("secret")
    other = FernetTwoWayPasswordEncoder(FernetTwoWayPasswordEncoder.generate_key())

    with pytest.raises(ValueError):
        other.decode(cipher)


def test_fernet_reads_base64_and_plain_legacy_values() -> None:
    encoder = FernetTwoWayPasswordEncoder(FernetTwoWayPasswordEncoder.generate_key())

    assert encoder.decode(Base64TwoWayPasswordEncoder().encode("old")) == "old"
    assert encoder.decode("plain") == "plain"


def test_same_passphrase_derives_same_key() -> None:
    cipher = FernetTwoWayPasswordEncoder.from_passphrase("correct horse").encode("secret")

    assert FernetTwoWayPasswordEncoder.from_passphrase("correct horse").decode(cipher) == "secret"
    with pytest.raises(ValueError):
        FernetTwoWayPasswordEncoder.from_passphrase("wrong horse").decode(cipher)


def test_invalid_key_is_rejected() -> None:
    with pytest.raises(ValueError):
        FernetTwoWayPasswordEncoder("not a key")


def test_encoder_selection_from_config() -> None:
    key = FernetTwoWayPasswordEncoder.generate_key()

    assert isinstance(encoder_from_config({}), Base64TwoWayPasswordEncoder)
    assert isinstance(encoder_from_config({"password_key": None}), Base64TwoWayPasswordEncoder)
    assert isinstance(encoder_from_config({"password_key": key}), FernetTwoWayPasswordEncoder)
    assert isinstance(encoder_from_config({"password_passphrase": "p"}), FernetTwoWayPasswordEncoder)


def test_store_uses_configured_key() -> None:
    key = FernetTwoWayPasswordEncoder.generate_key()
    store = InMemoryMetaStore({"password_key": key})

    cipher = store.two_way_password_encoder.encode("secret")

    assert FernetTwoWayPasswordEncoder(key).decode(cipher) == "secret"
