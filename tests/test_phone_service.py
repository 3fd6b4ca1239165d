import hashlib
import random
import uuid
from unittest.mock import Mock

import pytest

from whatshook.services.phone_service import (
    candidate_forms,
    derive_session_id,
    digits_only,
    format_for_whatsapp,
    normalize,
    resolve_store,
)
from whatshook.services.result import HTTP_ERROR, NOT_FOUND, TRANSPORT_ERROR, Result

_rng = random.Random(20240611)
TEN_DIGIT_NUMBERS = ["0000000000", "1000000000", "5200000000", "9999999999"] + [
    "".join(_rng.choice("0123456789") for _ in range(10)) for _ in range(50)
]


class TestNormalize:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("+5215512345678", "5512345678"),
            ("525512345678", "5512345678"),
            ("+1 (555) 123-4567", "5551234567"),
            ("5551234567", "5551234567"),
            ("+34 612 345 678", "34612345678"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize(raw) == expected

    def test_rules_are_length_gated(self):
        # 12 digits starting with 521 only matches the 52 rule
        assert normalize("521234567890") == "1234567890"
        # 14 digits starting with 521 matches nothing
        assert normalize("52155123456789") == "52155123456789"

    @pytest.mark.parametrize("raw", ["+5215512345678", "15551234567", "+44 20 7946 0958", "abc"])
    def test_idempotent(self, raw):
        assert normalize(normalize(raw)) == normalize(raw)

    @pytest.mark.parametrize("national", TEN_DIGIT_NUMBERS)
    def test_us_country_code_is_stripped(self, national):
        assert normalize("1" + national) == national
        assert normalize("+1" + national) == national

    def test_digits_only(self):
        assert digits_only("+1 (555) 123-4567") == "15551234567"
        assert digits_only(None) == ""


class TestFormatForWhatsapp:
    def test_keeps_plus_prefixed_numbers(self):
        assert format_for_whatsapp("+5215512345678") == "+5215512345678"

    def test_adds_plus_to_digits(self):
        assert format_for_whatsapp("15551234567") == "+15551234567"

    def test_strips_formatting(self):
        assert format_for_whatsapp("1 (555) 123-4567") == "+15551234567"

    def test_empty(self):
        assert format_for_whatsapp("") == ""
        assert format_for_whatsapp(None) == ""


class TestDeriveSessionId:
    def test_is_a_guid(self):
        assert uuid.UUID(derive_session_id("+15551234567"))

    def test_same_number_in_different_forms_gives_same_id(self):
        assert derive_session_id("+15551234567") == derive_session_id("5551234567")
        assert derive_session_id("+5215512345678") == derive_session_id("525512345678")

    def test_different_numbers_give_different_ids(self):
        assert derive_session_id("5551234567") != derive_session_id("5551234568")

    def test_guid_byte_layout(self):
        digest = hashlib.sha256(b"5551234567").digest()[:16]
        session_id = derive_session_id("5551234567")
        # first three groups little-endian, the rest in order
        assert session_id.replace("-", "")[:8] == digest[3::-1].hex()
        assert session_id.replace("-", "")[16:] == digest[8:].hex()


class TestCandidateForms:
    def test_international_us_number(self):
        assert candidate_forms("+15551234567") == ["5551234567", "15551234567"]

    def test_national_number_adds_us_prefix(self):
        assert candidate_forms("5551234567") == ["5551234567", "15551234567"]

    def test_mexican_number(self):
        assert candidate_forms("+5215512345678") == ["5512345678", "5215512345678", "15512345678"]

    def test_no_duplicates(self):
        forms = candidate_forms("+1 555 123 4567")
        assert len(forms) == len(set(forms))

    def test_other_lengths_have_single_form(self):
        assert candidate_forms("34612345678") == ["34612345678"]


class TestResolveStore:
    def test_first_form_wins(self):
        lookup = Mock(return_value=Result.success({"storeId": 7}))
        result = resolve_store("+15551234567", lookup)
        assert result.ok is True
        assert result.value == {"storeId": 7}
        lookup.assert_called_once_with("5551234567")

    def test_falls_back_to_prefixed_form(self):
        responses = {"5551234567": Result.failure("missing", NOT_FOUND), "15551234567": Result.success(42)}
        lookup = Mock(side_effect=lambda form: responses[form])
        result = resolve_store("5551234567", lookup)
        assert result.ok is True
        assert result.value == 42
        assert [c.args[0] for c in lookup.call_args_list] == ["5551234567", "15551234567"]

    def test_falls_back_to_digits_only_form(self):
        responses = {"5215512345678": Result.success({"storeId": 3})}
        lookup = Mock(side_effect=lambda form: responses.get(form, Result.failure("missing", NOT_FOUND)))
        result = resolve_store("+5215512345678", lookup)
        assert result.ok is True
        assert result.value == {"storeId": 3}
        assert [c.args[0] for c in lookup.call_args_list] == ["5512345678", "5215512345678"]

    def test_all_forms_missing_returns_not_found(self):
        lookup = Mock(return_value=Result.failure("missing", NOT_FOUND))
        result = resolve_store("+5215512345678", lookup)
        assert result.ok is False
        assert result.error_code == NOT_FOUND
        assert lookup.call_count == 3

    def test_errors_are_reported_as_not_found(self):
        lookup = Mock(
            side_effect=[
                Result.failure("timeout", TRANSPORT_ERROR),
                Result.failure("HTTP 500", HTTP_ERROR),
            ]
        )
        result = resolve_store("15551234567", lookup)
        assert result.error_code == NOT_FOUND

    def test_raised_exception_moves_to_next_form(self):
        lookup = Mock(side_effect=[RuntimeError("boom"), Result.success(9)])
        result = resolve_store("5551234567", lookup)
        assert result.ok is True
        assert result.value == 9

    def test_empty_phone(self):
        lookup = Mock(return_value=Result.failure("Empty phone number", NOT_FOUND))
        assert resolve_store("", lookup).error_code == NOT_FOUND
