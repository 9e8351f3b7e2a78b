"""
Utility tests: option normalisation, named routes, helpers, crypto.
"""

from datetime import datetime, timezone

import pytest

from pathfinder.core.exceptions import ValidationError
from pathfinder.utils.crypto import generate_otp, generate_token, hash_password, verify_password
from pathfinder.utils.helpers import as_utc, is_truthy, missing_fields, normalize_email
from pathfinder.utils.options import normalize_options, option_values
from pathfinder.utils.routes import route_path, route_url


class TestOptions:
    def test_strings_and_mappings_mixed(self):
        result = normalize_options(["Small", {"value": "l", "label": "Large"}, 3])
        assert result == [
            {"value": "Small", "label": "Small"},
            {"value": "l", "label": "Large"},
            {"value": "3", "label": "3"},
        ]

    def test_label_only_mapping(self):
        assert normalize_options([{"label": "Yes"}]) == [{"value": "Yes", "label": "Yes"}]

    def test_none_is_empty(self):
        assert normalize_options(None) == []

    def test_duplicates_keep_first(self):
        assert option_values(["a", {"value": "a", "label": "A"}, "b"]) == ["a", "b"]

    def test_rejects_bad_shapes(self):
        with pytest.raises(ValidationError):
            normalize_options("not-a-list")
        with pytest.raises(ValidationError):
            normalize_options([{"text": "x"}])
        with pytest.raises(ValidationError):
            normalize_options([True])


class TestRoutes:
    def test_route_path_quotes_params(self):
        assert route_path("invitations.accept", token="ab/c") == "/invitations/accept/ab%2Fc"

    def test_unknown_route(self):
        with pytest.raises(KeyError):
            route_path("nope")

    def test_missing_param(self):
        with pytest.raises(KeyError):
            route_path("companies.show")

    def test_route_url_uses_frontend_base(self, app):
        assert route_url("login") == "http://testserver/login"
        assert route_url("hr-system.overview", project=5) == "http://testserver/hr-system/5"


class TestHelpers:
    def test_missing_fields(self):
        assert missing_fields({"a": " ", "b": "x"}, "a", "b", "c") == {
            "a": "The a field is required.",
            "c": "The c field is required.",
        }

    @pytest.mark.parametrize("value,expected", [
        ("true", True), ("1", True), ("YES", True), (True, True),
        ("false", False), (None, False), ("", False),
    ])
    def test_is_truthy(self, value, expected):
        assert is_truthy(value) is expected

    def test_as_utc_attaches_tz(self):
        naive = datetime(2026, 3, 5, 15, 7)
        assert as_utc(naive).tzinfo is timezone.utc
        assert as_utc(None) is None

    def test_normalize_email(self):
        assert normalize_email("  Jane@Example.COM ") == "Jane@example.com"

    def test_normalize_email_invalid(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_email("not-an-email")
        assert "email" in exc_info.value.details
        with pytest.raises(ValidationError):
            normalize_email(None)


class TestCrypto:
    def test_hash_and_verify(self):
        hashed = hash_password("correct horse")
        assert hashed != "correct horse"
        assert verify_password("correct horse", hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_empty_hash(self):
        assert verify_password("anything", None) is False

    def test_token_length(self):
        assert len(generate_token(64)) == 64
        assert generate_token() != generate_token()

    def test_otp_is_six_digits(self):
        otp = generate_otp()
        assert len(otp) == 6 and otp.isdigit()
