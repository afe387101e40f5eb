"""
Tests for access/refresh token issuance and verification.
"""

from datetime import datetime, timedelta

import pytest
from jose import jwt

from authsvc.services.token_service import TokenIssuer
from authsvc.utils.errors import TokenExpiredError, UnauthorizedError


def _forge(secret: str, **claims) -> str:
    payload = {"id": "user-1", "type": "access", "exp": datetime.utcnow() + timedelta(minutes=5)}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


class TestIssue:
    def test_two_access_tokens_differ_but_resolve_to_same_user(self, issuer):
        first = issuer.issue_access("user-1")
        second = issuer.issue_access("user-1")
        assert first != second
        assert issuer.verify_access(first) == "user-1"
        assert issuer.verify_access(second) == "user-1"

    def test_pair_contains_both_tokens(self, issuer):
        pair = issuer.issue_pair("user-1")
        assert issuer.verify_access(pair.access_token) == "user-1"
        assert issuer.verify_refresh(pair.refresh_token) == "user-1"
        assert set(pair.to_dict()) == {"accessToken", "refreshToken"}

    def test_lifetimes_follow_settings(self, issuer, settings):
        access = jwt.get_unverified_claims(issuer.issue_access("user-1"))
        refresh = jwt.get_unverified_claims(issuer.issue_refresh("user-1"))
        assert access["exp"] - access["iat"] == settings.jwt_access_expire_minutes * 60
        assert refresh["exp"] - refresh["iat"] == settings.jwt_refresh_expire_days * 86400


class TestVerify:
    def test_wrong_secret_fails(self, issuer, settings):
        other = TokenIssuer(settings.model_copy(update={"jwt_secret": "some-other-secret"}))
        token = other.issue_access("user-1")
        with pytest.raises(UnauthorizedError):
            issuer.verify_access(token)

    def test_expired_token_fails(self, issuer, settings):
        token = _forge(settings.jwt_secret, exp=datetime.utcnow() - timedelta(seconds=5))
        with pytest.raises(TokenExpiredError):
            issuer.verify_access(token)

    def test_expired_is_unauthorized(self):
        assert issubclass(TokenExpiredError, UnauthorizedError)

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_malformed_token_fails(self, issuer, token):
        with pytest.raises(UnauthorizedError):
            issuer.verify_access(token)

    def test_refresh_token_is_not_an_access_token(self, issuer):
        refresh = issuer.issue_refresh("user-1")
        with pytest.raises(UnauthorizedError):
            issuer.verify_access(refresh)

    def test_access_token_is_not_a_refresh_token(self, issuer):
        access = issuer.issue_access("user-1")
        with pytest.raises(UnauthorizedError):
            issuer.verify_refresh(access)

    def test_missing_user_id_fails(self, issuer, settings):
        token = _forge(settings.jwt_secret, id=None)
        with pytest.raises(UnauthorizedError):
            issuer.verify_access(token)


class TestRefreshSecretFallback:
    def test_refresh_secret_defaults_to_access_secret(self, settings):
        shared = settings.model_copy(update={"jwt_refresh_secret": None})
        issuer = TokenIssuer(shared)
        assert issuer.refresh_secret == shared.jwt_secret

        refresh = issuer.issue_refresh("user-1")
        assert issuer.verify_refresh(refresh) == "user-1"
        # same secret, but the type claim still keeps the two apart
        with pytest.raises(UnauthorizedError):
            issuer.verify_access(refresh)

    def test_independent_refresh_secret(self, issuer, settings):
        assert issuer.refresh_secret == settings.jwt_refresh_secret != settings.jwt_secret
