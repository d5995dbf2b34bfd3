"""Unit tests for dag_ucan.codec.jwt — the textual representation."""
from __future__ import annotations

import asyncio
import json
import math

import pytest

import dag_ucan
from dag_ucan.codec import jwt
from dag_ucan.errors import FormatError, SchemaError, VersionError
from dag_ucan.keys import verifier_from_did

MAILTO = {"with": "mailto:alice@web.mail", "can": "msg/send"}


def _segments(token: str) -> tuple[dict, dict, bytes]:
    header, body, signature = token.split(".")
    return (
        json.loads(jwt.decode_segment(header, "header")),
        json.loads(jwt.decode_segment(body, "body")),
        jwt.decode_segment(signature, "signature"),
    )


def _token(header: dict, body: dict, signature: bytes = b"\x00" * 64) -> str:
    return ".".join(
        [
            jwt.encode_segment(json.dumps(header).encode()),
            jwt.encode_segment(json.dumps(body).encode()),
            jwt.encode_segment(signature),
        ]
    )


@pytest.fixture()
def claims(alice, bob) -> dict:
    return {
        "iss": alice.did(),
        "aud": bob.did(),
        "exp": 2_000_000_000,
        "att": [MAILTO],
        "prf": [],
    }


HEADER = {"alg": "EdDSA", "ucv": "0.9.1", "typ": "JWT"}


def _raw_token(header: dict, body_text: str) -> str:
    return ".".join(
        [
            jwt.encode_segment(json.dumps(header).encode()),
            jwt.encode_segment(body_text.encode()),
            jwt.encode_segment(b"\x00" * 64),
        ]
    )


# ---------------------------------------------------------------------------
# format
# ---------------------------------------------------------------------------


class TestFormat:
    def test_header_fields(self, issue, alice, bob) -> None:
        header, _, _ = _segments(dag_ucan.format(issue(issuer=alice, audience=bob)))
        assert header == {"alg": "EdDSA", "ucv": "0.9.1", "typ": "JWT"}

    def test_body_uses_did_strings(self, issue, alice, bob) -> None:
        _, body, _ = _segments(dag_ucan.format(issue(issuer=alice, audience=bob, capabilities=[MAILTO])))
        assert body["iss"] == alice.did()
        assert body["aud"] == bob.did()
        assert body["att"] == [MAILTO]
        assert body["prf"] == []
        assert body["fct"] == []
        assert "nbf" not in body
        assert "nnc" not in body

    def test_unbounded_expiration_is_omitted(self, issue, alice, bob) -> None:
        _, body, _ = _segments(dag_ucan.format(issue(issuer=alice, audience=bob, expiration=math.inf)))
        assert "exp" not in body

    def test_signature_segment_is_raw_signature(self, issue, alice, bob) -> None:
        ucan = issue(issuer=alice, audience=bob)
        _, _, raw = _segments(dag_ucan.format(ucan))
        assert raw == ucan.signature.raw

    def test_segments_are_unpadded(self, issue, alice, bob) -> None:
        token = dag_ucan.format(issue(issuer=alice, audience=bob))
        assert "=" not in token

    def test_model_format_method(self, issue, alice, bob) -> None:
        ucan = issue(issuer=alice, audience=bob)
        assert ucan.format() == dag_ucan.format(ucan)

    def test_inline_proof_is_rendered_as_text(self, issue, alice, bob, mallory) -> None:
        root = dag_ucan.format(issue(issuer=alice, audience=bob))
        _, body, _ = _segments(dag_ucan.format(issue(issuer=bob, audience=mallory, proofs=[root])))
        assert body["prf"] == [root]


# ---------------------------------------------------------------------------
# parse
# ---------------------------------------------------------------------------


class TestParse:
    def test_parse_format_round_trip(self, issue, alice, bob) -> None:
        ucan = issue(issuer=alice, audience=bob, capabilities=[MAILTO], nonce="n", not_before=5)
        assert dag_ucan.parse(dag_ucan.format(ucan)) == ucan

    def test_parsed_token_formats_byte_exact(self, claims) -> None:
        token = _token(HEADER, {**claims, "extra": "kept"})
        assert dag_ucan.format(dag_ucan.parse(token)) == token

    def test_parsed_token_is_text_native(self, issue, alice, bob) -> None:
        parsed = dag_ucan.parse(dag_ucan.format(issue(issuer=alice, audience=bob)))
        assert parsed.is_text_native
        assert parsed.code == dag_ucan.RAW_CODE

    def test_missing_optional_fields_read_as_empty(self, alice, bob) -> None:
        parsed = dag_ucan.parse(
            _token(HEADER, {"iss": alice.did(), "aud": bob.did(), "exp": 1, "att": []})
        )
        assert parsed.facts == ()
        assert parsed.proofs == ()
        assert parsed.not_before is None
        assert parsed.nonce is None

    def test_missing_expiration_is_unbounded(self, alice, bob) -> None:
        parsed = dag_ucan.parse(_token(HEADER, {"iss": alice.did(), "aud": bob.did(), "att": []}))
        assert parsed.expiration == math.inf

    def test_null_expiration_is_unbounded(self, claims) -> None:
        parsed = dag_ucan.parse(_token(HEADER, {**claims, "exp": None}))
        assert parsed.exp is dag_ucan.UNBOUNDED

    def test_unknown_algorithm_is_kept(self, claims) -> None:
        parsed = dag_ucan.parse(_token({**HEADER, "alg": "whatever"}, claims))
        assert parsed.signature.algorithm == "whatever"

    def test_opaque_audience(self, claims) -> None:
        parsed = dag_ucan.parse(_token(HEADER, {**claims, "aud": "did:dns:web3.storage"}))
        assert parsed.audience.did() == "did:dns:web3.storage"

    def test_cid_proof_is_decoded(self, claims, issue, alice, bob) -> None:
        cid = asyncio.run(dag_ucan.link(issue(issuer=alice, audience=bob)))
        parsed = dag_ucan.parse(_token(HEADER, {**claims, "prf": [str(cid)]}))
        assert parsed.proofs == (cid,)


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------


class TestParseErrors:
    def test_wrong_segment_count(self) -> None:
        with pytest.raises(
            FormatError, match="Expected JWT format: 3 dot-separated base64url-encoded values."
        ):
            dag_ucan.parse("a.b")

    def test_bad_base64(self, claims) -> None:
        token = _token(HEADER, claims)
        header, body, _ = token.split(".")
        with pytest.raises(FormatError):
            dag_ucan.parse(f"{header}.{body}.!!!")

    def test_bad_json(self) -> None:
        token = ".".join(jwt.encode_segment(part) for part in (b"{", b"{}", b""))
        with pytest.raises(FormatError):
            dag_ucan.parse(token)

    def test_wrong_typ(self, claims) -> None:
        with pytest.raises(SchemaError, match='Expected typ to be a "JWT" instead got "JWS"'):
            dag_ucan.parse(_token({**HEADER, "typ": "JWS"}, claims))

    def test_bad_version(self, claims) -> None:
        with pytest.raises(VersionError, match="Invalid version 'ucv: \"0.9\"'"):
            dag_ucan.parse(_token({**HEADER, "ucv": "0.9"}, claims))

    def test_fractional_expiration(self, claims) -> None:
        with pytest.raises(SchemaError, match="Expected exp to be integer, instead got 8.7"):
            dag_ucan.parse(_token(HEADER, {**claims, "exp": 8.7}))

    def test_issuer_without_did_prefix(self, claims) -> None:
        with pytest.raises(dag_ucan.DIDFormatError, match="iss: Invalid DID \"alice\""):
            dag_ucan.parse(_token(HEADER, {**claims, "iss": "alice"}))

    def test_bad_capability(self, claims) -> None:
        with pytest.raises(dag_ucan.CapabilityGrammarError):
            dag_ucan.parse(_token(HEADER, {**claims, "att": [{"with": "mailto:*", "can": "send"}]}))

    def test_fact_must_be_object(self, claims) -> None:
        with pytest.raises(SchemaError, match="fct\\[0\\] must be of type object"):
            dag_ucan.parse(_token(HEADER, {**claims, "fct": [1]}))

    def test_proof_must_be_string(self, claims) -> None:
        with pytest.raises(SchemaError, match="prf\\[0\\] has invalid value 1"):
            dag_ucan.parse(_token(HEADER, {**claims, "prf": [1]}))

    def test_expiration_above_uint64_is_rejected(self, claims) -> None:
        with pytest.raises(
            SchemaError, match="Expected exp to be integer, instead got 18446744073709551616"
        ):
            dag_ucan.parse(_token(HEADER, {**claims, "exp": 2**64}))

    def test_caveat_integer_below_cbor_range_is_rejected(self, claims) -> None:
        capability = {**MAILTO, "limit": -(2**64) - 1}
        with pytest.raises(SchemaError, match="limit has invalid value"):
            dag_ucan.parse(_token(HEADER, {**claims, "att": [capability]}))

    @pytest.mark.parametrize("literal", ["Infinity", "-Infinity", "NaN", "1e999"])
    def test_non_finite_expiration_is_rejected(self, claims, literal: str) -> None:
        body = json.dumps({**claims, "exp": 0}).replace('"exp": 0', f'"exp": {literal}')
        with pytest.raises(FormatError, match="Non-finite number"):
            dag_ucan.parse(_raw_token(HEADER, body))

    def test_non_finite_caveat_is_rejected(self, claims) -> None:
        body = json.dumps({**claims, "att": [{**MAILTO, "limit": 0}]}).replace(
            '"limit": 0', '"limit": NaN'
        )
        with pytest.raises(FormatError, match="Non-finite number NaN"):
            dag_ucan.parse(_raw_token(HEADER, body))


# ---------------------------------------------------------------------------
# Bytes, links and nested values
# ---------------------------------------------------------------------------


class TestDagJsonValues:
    @pytest.fixture()
    def link(self, issue, alice, bob):
        return asyncio.run(dag_ucan.link(issue(issuer=alice, audience=bob)))

    def test_bytes_and_links_are_written_as_dag_json(self, issue, alice, bob, link) -> None:
        ucan = issue(
            issuer=alice,
            audience=bob,
            capabilities=[{**MAILTO, "blob": b"\x00\xff", "ref": link}],
            facts=[{"refs": [link]}],
        )
        _, body, _ = _segments(dag_ucan.format(ucan))
        assert body["att"][0]["blob"] == {"/": {"bytes": "AP8"}}
        assert body["att"][0]["ref"] == {"/": str(link)}
        assert body["fct"] == [{"refs": [{"/": str(link)}]}]

    def test_bytes_links_and_nesting_survive_format_and_parse(
        self, issue, alice, bob, link
    ) -> None:
        ucan = issue(
            issuer=alice,
            audience=bob,
            capabilities=[{**MAILTO, "blob": b"\x00\xff", "nb": {"refs": [link], "n": [1, 2.5]}}],
            facts=[{"proof": {"raw": b"\x01\x02", "link": link}}],
        )
        parsed = dag_ucan.parse(dag_ucan.format(ucan))
        assert parsed == ucan
        assert parsed.capabilities[0].caveats["blob"] == b"\x00\xff"
        assert parsed.capabilities[0].caveats["nb"]["refs"] == (link,)
        assert parsed.facts[0]["proof"]["raw"] == b"\x01\x02"
        assert dag_ucan.decode(dag_ucan.encode(parsed)) == ucan
        assert asyncio.run(dag_ucan.verify_signature(parsed, verifier_from_did(parsed.issuer)))

    def test_parsed_dag_json_link_becomes_cid(self, claims, link) -> None:
        parsed = dag_ucan.parse(_token(HEADER, {**claims, "fct": [{"ref": {"/": str(link)}}]}))
        assert parsed.facts[0]["ref"] == link

    def test_invalid_reserved_map_is_rejected(self, claims) -> None:
        with pytest.raises(FormatError, match="fct\\[0\\].ref"):
            dag_ucan.parse(_token(HEADER, {**claims, "fct": [{"ref": {"/": 5}}]}))

    def test_invalid_link_text_is_rejected(self, claims) -> None:
        with pytest.raises(FormatError, match="Could not decode link"):
            dag_ucan.parse(_token(HEADER, {**claims, "fct": [{"ref": {"/": "not-a-cid"}}]}))

    def test_reserved_key_in_claims_cannot_be_formatted(self, issue, alice, bob) -> None:
        ucan = issue(issuer=alice, audience=bob, facts=[{"note": {"/": "text"}}])
        with pytest.raises(FormatError, match="sole key"):
            dag_ucan.format(ucan)

    def test_parsed_values_are_read_only(self, claims) -> None:
        parsed = dag_ucan.parse(_token(HEADER, {**claims, "fct": [{"tags": ["a"]}]}))
        with pytest.raises(TypeError):
            parsed.facts[0]["tags"] = []  # type: ignore[index]
        assert parsed.facts[0]["tags"] == ("a",)


# ---------------------------------------------------------------------------
# decode fallback
# ---------------------------------------------------------------------------


class TestDecodeFallback:
    def test_decode_accepts_jwt_bytes(self, issue, alice, bob) -> None:
        token = dag_ucan.format(issue(issuer=alice, audience=bob))
        decoded = dag_ucan.decode(token.encode("utf-8"))
        assert decoded.is_text_native
        assert decoded.jwt == token

    def test_encode_of_text_native_is_cbor(self, issue, alice, bob) -> None:
        ucan = issue(issuer=alice, audience=bob)
        parsed = dag_ucan.parse(dag_ucan.format(ucan))
        assert dag_ucan.encode(parsed) == dag_ucan.encode(ucan)
