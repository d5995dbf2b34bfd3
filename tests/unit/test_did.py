"""Tests for dag_ucan.did — parse / encode / decode / from_value.

Covers:
- did:key round trips for Ed25519, P-256 (compressed) and RSA keys
- Opaque (non-key) DID methods kept verbatim
- Binary form round trips
- Unsupported multicodec tags, uncompressed P-256 points, bad prefixes
- from_value normalization of DIDs, strings, bytes and principals
"""
from __future__ import annotations

import pytest
from multiformats import multibase, varint

from dag_ucan import did as DID
from dag_ucan.errors import (
    DIDError,
    DIDFormatError,
    InvalidDIDError,
    MalformedKeyError,
    UncompressedKeyError,
    UnsupportedKeyEncodingError,
)
from dag_ucan.keys import P256Signer, RSASigner

P256_COMPRESSED = "did:key:zDnaehbKF2iga4pf2D42ygGALc9EkQzTdcu43RpaAk45sUdW6"
P256_UNCOMPRESSED = (
    "did:key:z4oJ8dmoanp9ZgWVcNgPretVkK3UNaDGdahF1jhKVXcvK17Ry1F6jAa7BvXvUAccw9w5SNHVVSTTDjJeS8wnb92VrsjxG"
)
UNKNOWN_MULTICODE = "did:key:zZfaerDaTF5BXEavCrfRZEk316dpbLsfPDZ3WJ5hRTPFU2169"


def _key_did(code: int, key: bytes) -> str:
    return "did:key:" + multibase.encode(varint.encode(code) + key, "base58btc")


# ---------------------------------------------------------------------------
# parse
# ---------------------------------------------------------------------------


class TestParse:
    def test_parse_ed25519_did(self, alice) -> None:
        did = DID.parse(alice.did())
        assert isinstance(did, DID.KeyDID)
        assert did.code == DID.ED25519
        assert len(did.key) == 32
        assert did.did() == alice.did()

    def test_ed25519_did_starts_with_z6mk(self, alice) -> None:
        assert alice.did().startswith("did:key:z6Mk")

    def test_parse_compressed_p256_did(self) -> None:
        did = DID.parse(P256_COMPRESSED)
        assert isinstance(did, DID.KeyDID)
        assert did.code == DID.P256
        assert len(did.key) == 33
        assert did.did() == P256_COMPRESSED

    def test_generated_p256_did_round_trips(self) -> None:
        signer = P256Signer.generate()
        assert signer.did().startswith("did:key:zDn")
        assert DID.parse(signer.did()).did() == signer.did()

    def test_generated_rsa_did_round_trips(self) -> None:
        signer = RSASigner.generate()
        did = DID.parse(signer.did())
        assert did.code == DID.RSA
        assert did.did() == signer.did()

    def test_uncompressed_p256_fails_with_distinct_error(self) -> None:
        with pytest.raises(UncompressedKeyError, match="Only p256-pub compressed is supported."):
            DID.parse(P256_UNCOMPRESSED)

    def test_short_p256_key_is_malformed_not_uncompressed(self) -> None:
        with pytest.raises(MalformedKeyError) as info:
            DID.parse(_key_did(DID.P256, b"\x02" + b"\x01" * 20))
        assert not isinstance(info.value, UncompressedKeyError)

    def test_p256_key_with_bad_prefix_is_malformed(self) -> None:
        with pytest.raises(MalformedKeyError):
            DID.parse(_key_did(DID.P256, b"\x05" + b"\x01" * 32))

    def test_unknown_multicode_is_rejected(self) -> None:
        with pytest.raises(
            UnsupportedKeyEncodingError, match="Unsupported DID encoding, unknown multicode 0x1"
        ):
            DID.parse(UNKNOWN_MULTICODE)

    def test_unsupported_key_tag_names_code(self) -> None:
        with pytest.raises(UnsupportedKeyEncodingError) as info:
            DID.parse(_key_did(0xE7, b"\x02" + b"\x01" * 32))
        assert info.value.code == 0xE7
        assert "0xe7" in str(info.value)

    def test_missing_prefix_raises_format_error(self) -> None:
        with pytest.raises(DIDFormatError, match="Invalid DID \"bob\", must start with 'did:'"):
            DID.parse("bob")

    def test_non_base58_multibase_is_rejected(self) -> None:
        with pytest.raises(DIDError):
            DID.parse("did:key:mAQID")

    def test_opaque_did_is_kept_verbatim(self) -> None:
        did = DID.parse("did:dns:web3.storage")
        assert isinstance(did, DID.OpaqueDID)
        assert did.did() == "did:dns:web3.storage"
        assert did.method == "dns"

    def test_did_web_with_path_is_kept_verbatim(self) -> None:
        text = "did:web:example.com:user:alice"
        assert DID.parse(text).did() == text

    def test_str_renders_did(self, alice) -> None:
        assert str(DID.parse(alice.did())) == alice.did()
        assert DID.format(DID.parse(alice.did())) == alice.did()


# ---------------------------------------------------------------------------
# encode / decode
# ---------------------------------------------------------------------------


class TestBinaryForm:
    def test_key_did_round_trip(self, alice) -> None:
        did = DID.parse(alice.did())
        assert DID.decode(DID.encode(did)) == did

    def test_key_did_bytes_are_multicodec_prefixed(self, alice) -> None:
        data = DID.encode(DID.parse(alice.did()))
        assert data[:2] == b"\xed\x01"
        assert len(data) == 34

    def test_opaque_did_round_trip(self) -> None:
        did = DID.parse("did:dns:ucan.storage")
        data = DID.encode(did)
        assert data.endswith(b"dns:ucan.storage")
        assert DID.decode(data) == did

    def test_p256_did_round_trip(self) -> None:
        did = DID.parse(P256_COMPRESSED)
        assert DID.decode(DID.encode(did)).did() == P256_COMPRESSED

    def test_decode_unknown_code_raises(self) -> None:
        with pytest.raises(UnsupportedKeyEncodingError):
            DID.decode(varint.encode(0x01) + b"\x00" * 32)

    def test_decode_empty_key_is_malformed(self) -> None:
        with pytest.raises(MalformedKeyError):
            DID.decode(varint.encode(DID.ED25519))

    @pytest.mark.parametrize("size", [1, 31, 33])
    def test_decode_ed25519_key_of_wrong_length_is_malformed(self, size: int) -> None:
        with pytest.raises(MalformedKeyError, match=f"ed25519-pub key length {size}"):
            DID.decode(varint.encode(DID.ED25519) + b"\x01" * size)

    def test_parse_short_ed25519_did_is_malformed(self) -> None:
        with pytest.raises(MalformedKeyError):
            DID.parse(_key_did(DID.ED25519, b"\x01"))


# ---------------------------------------------------------------------------
# from_value
# ---------------------------------------------------------------------------


class TestFromValue:
    def test_from_did_returns_same_object(self, alice) -> None:
        did = DID.parse(alice.did())
        assert DID.from_value(did) is did

    def test_from_string(self, alice) -> None:
        assert DID.from_value(alice.did()).did() == alice.did()

    def test_from_bytes(self, alice) -> None:
        data = bytearray(DID.encode(DID.parse(alice.did())))
        assert DID.from_value(data).did() == alice.did()

    def test_from_principal(self, alice) -> None:
        assert DID.from_value(alice).did() == alice.did()

    def test_from_string_without_prefix_raises_invalid_did(self) -> None:
        with pytest.raises(InvalidDIDError):
            DID.from_value("alice")

    def test_from_unsupported_type_raises_invalid_did(self) -> None:
        with pytest.raises(InvalidDIDError):
            DID.from_value(42)
