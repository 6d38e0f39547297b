import pytest

from storefront_gateway.core.credentials import (
    decode_claims,
    get_role_from_token,
    get_user_id_from_token,
)
from tests.constants import TestConstants
from tests.factories import TestDataFactory


class TestDecodeClaims:
    def test_decodes_without_secret(self):
        token = TestDataFactory.create_jwt_token({"sub": "42", "email": "buyer@example.test"})

        claims = decode_claims(token)

        assert claims["sub"] == "42"
        assert claims["email"] == "buyer@example.test"

    @pytest.mark.parametrize(
        "token",
        [
            None,
            "",
            "opaque-session-token",
            "only.two",
            "a.b.c.d",
            "not-base64!.still-not.nope",
            "eyJhbGciOiJIUzI1NiJ9.bm90IGpzb24.c2ln",
            ".eyJzdWIiOiIxIn0.sig",
        ],
    )
    def test_malformed_tokens_yield_none(self, token):
        assert decode_claims(token) is None


class TestRoleFromToken:
    def test_plain_role_claim(self):
        token = TestDataFactory.create_jwt_token({"role": TestConstants.ROLES["ENTERPRISE_ADMIN"]})
        assert get_role_from_token(token) == "EnterpriseAdmin"

    def test_microsoft_role_claim(self):
        token = TestDataFactory.create_jwt_token(
            {TestConstants.MS_ROLE_CLAIM: TestConstants.ROLES["SYSTEM_ADMIN"]}
        )
        assert get_role_from_token(token) == "SystemAdmin"

    def test_list_valued_roles_take_first_entry(self):
        token = TestDataFactory.create_jwt_token({"roles": ["", "Customer", "Shipper"]})
        assert get_role_from_token(token) == "Customer"

    def test_exact_keys_win_over_fuzzy_matches(self):
        token = TestDataFactory.create_jwt_token(
            {"x_role_hint": "Guest", "authorities": ["EnterpriseAdmin"]}
        )
        assert get_role_from_token(token) == "EnterpriseAdmin"

    @pytest.mark.parametrize(
        "claim_key",
        ["app_ROLE_name", "GrantedAuthority", "scopePermissions"],
    )
    def test_falls_back_to_case_insensitive_key_match(self, claim_key):
        token = TestDataFactory.create_jwt_token({"sub": "7", claim_key: "Shipper"})
        assert get_role_from_token(token) == "Shipper"

    def test_no_role_claim_returns_none(self):
        token = TestDataFactory.create_jwt_token({"sub": "7", "email": "x@example.test"})
        assert get_role_from_token(token) is None

    def test_non_text_role_values_are_skipped(self):
        token = TestDataFactory.create_jwt_token({"role": 3, "userRole": {"name": "x"}})
        assert get_role_from_token(token) is None

    @pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c"])
    def test_malformed_token_returns_none(self, token):
        assert get_role_from_token(token) is None


class TestUserIdFromToken:
    def test_reads_nameidentifier_uri(self):
        token = TestDataFactory.create_jwt_token({TestConstants.MS_NAME_ID_CLAIM: "118"})
        assert get_user_id_from_token(token) == 118

    def test_skips_non_numeric_candidates(self):
        token = TestDataFactory.create_jwt_token({"sub": "buyer@example.test", "userId": 55})
        assert get_user_id_from_token(token) == 55

    def test_missing_id_returns_none(self):
        token = TestDataFactory.create_jwt_token({"email": "buyer@example.test"})
        assert get_user_id_from_token(token) is None

    def test_malformed_token_returns_none(self):
        assert get_user_id_from_token("not.a.jwt") is None
