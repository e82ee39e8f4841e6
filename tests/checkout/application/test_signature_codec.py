"""Tests for the gateway signature codec."""

import pytest
from checkout.gateway import signature

BODY = b'{"totalAmount":"3200"}'
SECRET = "second-key"
MD5_HEX = "f211db7b68a9dddd8b8621b16f6d8bf6"
SHA256_HEX = "e061942d5b44269430b385de538a2ae67bc43d7181541fc97b1e9cb554ca3e42"


class TestCanonicalJson:
    def test_compact_separators(self):
        assert signature.canonical_json({"totalAmount": "3200"}) == BODY

    def test_keeps_key_order(self):
        assert signature.canonical_json({"b": 1, "a": 2}) == b'{"b":1,"a":2}'

    def test_non_ascii_is_utf8(self):
        assert signature.canonical_json({"d": "Zamówienie"}) == '{"d":"Zamówienie"}'.encode()


class TestSign:
    def test_md5_by_default(self):
        assert signature.digest(BODY, SECRET) == MD5_HEX

    def test_sha256(self):
        assert signature.digest(BODY, SECRET, "SHA-256") == SHA256_HEX

    def test_header_format(self):
        header = signature.sign(BODY, SECRET, sender="300746")
        assert header == f"sender=300746;signature={MD5_HEX};algorithm=MD5;content=DOCUMENT"

    def test_unsupported_algorithm(self):
        with pytest.raises(ValueError):
            signature.digest(BODY, SECRET, "CRC32")

    def test_parse_header(self):
        parts = signature.parse_header("sender=1; Signature=abc ;algorithm=MD5;content=DOCUMENT")
        assert parts == {"sender": "1", "signature": "abc", "algorithm": "MD5", "content": "DOCUMENT"}


class TestVerify:
    def test_accepts_own_signature(self):
        header = signature.sign(BODY, SECRET)
        assert signature.verify(BODY, header, SECRET) is True

    def test_accepts_sha256_signature(self):
        header = signature.sign(BODY, SECRET, algorithm="SHA256")
        assert signature.verify(BODY, header, SECRET) is True

    def test_accepts_uppercase_hex(self):
        header = f"sender=1;signature={MD5_HEX.upper()};algorithm=MD5"
        assert signature.verify(BODY, header, SECRET) is True

    def test_rejects_tampered_body(self):
        header = signature.sign(BODY, SECRET)
        assert signature.verify(b'{"totalAmount":"1"}', header, SECRET) is False

    def test_rejects_wrong_secret(self):
        header = signature.sign(BODY, "other-key")
        assert signature.verify(BODY, header, SECRET) is False

    def test_rejects_missing_header(self):
        assert signature.verify(BODY, None, SECRET) is False
        assert signature.verify(BODY, "", SECRET) is False

    def test_rejects_when_no_secret_configured(self):
        header = signature.sign(BODY, "")
        assert signature.verify(BODY, header, "") is False

    def test_rejects_header_without_signature(self):
        assert signature.verify(BODY, "sender=1;algorithm=MD5", SECRET) is False

    def test_rejects_unknown_algorithm(self):
        assert signature.verify(BODY, f"signature={MD5_HEX};algorithm=CRC32", SECRET) is False

    def test_missing_algorithm_defaults_to_md5(self):
        assert signature.verify(BODY, f"signature={MD5_HEX}", SECRET) is True
