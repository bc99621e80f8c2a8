"""Unit tests for the access token codec."""
import pytest

from app.domain.access_token import AccessToken, decode_token, encode_token
from app.domain.errors import ValidationError


class TestEncodeToken:

    def test_token_has_three_fields(self):
        token = encode_token("Xq3k9LpZ2aBc", 42, nonce="n0nce")
        assert token == "Xq3k9LpZ2aBc:42:n0nce"

    def test_generated_nonce_differs_per_token(self):
        first = encode_token("abc", 1)
        second = encode_token("abc", 1)
        assert first != second
        assert decode_token(first).nonce != decode_token(second).nonce

    @pytest.mark.parametrize("share_id", ["", "a:b"])
    def test_rejects_unusable_share_id(self, share_id):
        with pytest.raises(ValidationError):
            encode_token(share_id, 1)

    def test_rejects_nonce_with_separator(self):
        with pytest.raises(ValidationError):
            encode_token("abc", 1, nonce="x:y")


class TestDecodeToken:

    def test_decodes_fields(self):
        decoded = decode_token(encode_token("share1", 7, nonce="zzz"))
        assert decoded == AccessToken("share1", 7, "zzz")
        assert decoded.resource_id == 7

    def test_empty_token_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            decode_token("")
        assert exc_info.value.detail == "Access token required"

    @pytest.mark.parametrize("token", [
        "share1:7",
        "share1:7:nonce:extra",
        ":7:nonce",
        "share1::nonce",
        "share1:7:",
        "share1:seven:nonce",
    ])
    def test_malformed_token_is_rejected(self, token):
        with pytest.raises(ValidationError):
            decode_token(token)
