"""Tests for locale_utils: LanguageCode normalization and Babel integration.

Includes property-based tests with Hypothesis for normalization.
"""

from __future__ import annotations

import pytest
from babel import Locale
from hypothesis import given
from hypothesis import strategies as st

from langbundle.locale_utils import (
    get_babel_locale,
    get_system_language,
    language_display_name,
    negotiate_language,
    normalize_language,
    to_babel_locale,
)

SUPPORTED = ("UA", "PL", "EN")


class TestNormalizeLanguage:
    def test_lowercase_is_uppercased(self) -> None:
        assert normalize_language("pl") == "PL"

    def test_whitespace_is_stripped(self) -> None:
        assert normalize_language("  ua\n") == "UA"

    @given(st.text(alphabet="abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ ", max_size=8))
    def test_idempotent(self, code: str) -> None:
        """Normalizing twice gives the same result as normalizing once."""
        once = normalize_language(code)

        assert normalize_language(once) == once
        assert once == once.strip()


class TestBabelMapping:
    def test_ua_maps_to_ukrainian(self) -> None:
        assert to_babel_locale("ua") == "uk"

    def test_unknown_code_is_lowercased(self) -> None:
        assert to_babel_locale("DE") == "de"

    def test_get_babel_locale(self) -> None:
        locale = get_babel_locale("UA")

        assert isinstance(locale, Locale)
        assert locale.language == "uk"


class TestDisplayNames:
    def test_native_name(self) -> None:
        assert language_display_name("PL") == "polski"

    def test_name_in_other_language(self) -> None:
        assert language_display_name("PL", in_language="EN") == "Polish"

    def test_unknown_language_falls_back_to_code(self) -> None:
        assert language_display_name("xx") == "XX"


class TestNegotiateLanguage:
    def test_product_code_matches_directly(self) -> None:
        assert negotiate_language(["pl"], SUPPORTED, "EN") == "PL"

    def test_regional_locale_matches_language(self) -> None:
        assert negotiate_language(["pl-PL"], SUPPORTED, "EN") == "PL"

    def test_posix_locale_with_encoding(self) -> None:
        assert negotiate_language(["de_DE", "uk_UA.UTF-8"], SUPPORTED, "EN") == "UA"

    def test_first_supported_preference_wins(self) -> None:
        assert negotiate_language(["en_GB", "pl"], SUPPORTED, "UA") == "EN"

    def test_nothing_matches_returns_default(self) -> None:
        assert negotiate_language(["de_DE", "fr"], SUPPORTED, "en") == "EN"

    def test_blank_and_non_string_preferences_skipped(self) -> None:
        preferences = ["", "   ", None, "ua"]

        assert negotiate_language(preferences, SUPPORTED, "EN") == "UA"  # type: ignore[arg-type]


class TestSystemLanguage:
    def test_lc_all_takes_precedence(self) -> None:
        environ = {"LC_ALL": "pl_PL.UTF-8", "LANG": "uk_UA.UTF-8"}

        assert get_system_language(SUPPORTED, "EN", environ) == "PL"

    def test_pseudo_locales_ignored(self) -> None:
        environ = {"LC_ALL": "C", "LC_MESSAGES": "POSIX", "LANG": "uk_UA.UTF-8"}

        assert get_system_language(SUPPORTED, "EN", environ) == "UA"

    def test_colon_separated_list(self) -> None:
        assert get_system_language(SUPPORTED, "EN", {"LANG": "de_DE:pl_PL"}) == "PL"

    @pytest.mark.parametrize("environ", [{}, {"LANG": "C"}, {"LANG": "ja_JP.UTF-8"}])
    def test_default_when_undetected(self, environ: dict[str, str]) -> None:
        assert get_system_language(SUPPORTED, "EN", environ) == "EN"
