"""Tests for BundleConfig construction, validation and key scheme."""

from __future__ import annotations

import pytest

from langbundle.config import BundleConfig


class TestDefaults:
    def test_default_configuration(self) -> None:
        config = BundleConfig()

        assert config.supported_languages == ("UA", "PL", "EN")
        assert config.default_language == "EN"
        assert config.api_base_url == ""
        assert config.deduplicate_requests
        assert config.background_refresh

    def test_key_scheme(self) -> None:
        config = BundleConfig()

        assert config.bundle_key("pl") == "i18n_bundle_PL"
        assert config.version_key(" ua ") == "i18n_version_UA"

    def test_languages_are_normalized_and_deduplicated(self) -> None:
        config = BundleConfig(supported_languages=("pl", " PL", "en"), default_language="en")

        assert config.supported_languages == ("PL", "EN")
        assert config.default_language == "EN"

    def test_trailing_slash_stripped_from_base_url(self) -> None:
        assert BundleConfig(api_base_url="https://elearn.test//").api_base_url == (
            "https://elearn.test"
        )


class TestValidation:
    def test_default_must_be_supported(self) -> None:
        with pytest.raises(ValueError, match="default_language 'DE'"):
            BundleConfig(default_language="de")

    def test_empty_language_set_rejected(self) -> None:
        with pytest.raises(ValueError, match="At least one supported language"):
            BundleConfig(supported_languages=())

    def test_blank_language_rejected(self) -> None:
        with pytest.raises(ValueError, match="At least one supported language"):
            BundleConfig(supported_languages=("EN", "  "))

    def test_overlapping_prefixes_rejected(self) -> None:
        with pytest.raises(ValueError, match="overlap"):
            BundleConfig(bundle_key_prefix="i18n_", version_key_prefix="i18n_version_")

    def test_empty_prefix_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-empty"):
            BundleConfig(version_key_prefix="")

    @pytest.mark.parametrize(
        ("field", "value"),
        [("request_timeout", 0), ("fetch_retries", -1), ("retry_backoff", -0.5)],
    )
    def test_numeric_ranges(self, field: str, value: float) -> None:
        with pytest.raises(ValueError, match=field):
            BundleConfig(**{field: value})  # type: ignore[arg-type]


class TestLanguageHelpers:
    def test_validate_language_normalizes(self) -> None:
        assert BundleConfig().validate_language(" ua ") == "UA"

    @pytest.mark.parametrize("language", ["DE", "", "P L"])
    def test_validate_language_rejects_unsupported(self, language: str) -> None:
        with pytest.raises(ValueError, match="not in supported languages"):
            BundleConfig().validate_language(language)

    def test_validate_language_rejects_non_string(self) -> None:
        with pytest.raises(ValueError, match="not in supported languages"):
            BundleConfig().validate_language(7)  # type: ignore[arg-type]

    def test_is_supported_never_raises(self) -> None:
        config = BundleConfig()

        assert config.is_supported("pl")
        assert not config.is_supported("de")
        assert not config.is_supported(None)

    def test_owns_key(self) -> None:
        config = BundleConfig()

        assert config.owns_key("i18n_bundle_PL")
        assert config.owns_key("i18n_version_XX")
        assert not config.owns_key("elearn_lang")
        assert not config.owns_key("session_token")

    def test_languages_or_all(self) -> None:
        config = BundleConfig()

        assert config.languages_or_all(None) == ("UA", "PL", "EN")
        assert config.languages_or_all(["pl", "PL", "en"]) == ("PL", "EN")

    def test_languages_or_all_rejects_unsupported(self) -> None:
        with pytest.raises(ValueError, match="not in supported languages"):
            BundleConfig().languages_or_all(["PL", "DE"])


class TestFromEnv:
    def test_reads_variables(self) -> None:
        config = BundleConfig.from_env(
            {
                "LANGBUNDLE_API_URL": "https://elearn.test/",
                "LANGBUNDLE_DEFAULT_LANGUAGE": "pl",
                "LANGBUNDLE_SUPPORTED_LANGUAGES": "pl, en,,",
                "LANGBUNDLE_TIMEOUT": "2.5",
                "LANGBUNDLE_RETRIES": "3",
            }
        )

        assert config.api_base_url == "https://elearn.test"
        assert config.default_language == "PL"
        assert config.supported_languages == ("PL", "EN")
        assert config.request_timeout == 2.5
        assert config.fetch_retries == 3

    def test_empty_environment_gives_defaults(self) -> None:
        assert BundleConfig.from_env({}) == BundleConfig()

    def test_bad_timeout(self) -> None:
        with pytest.raises(ValueError, match="LANGBUNDLE_TIMEOUT is invalid"):
            BundleConfig.from_env({"LANGBUNDLE_TIMEOUT": "soon"})

    def test_bad_retries(self) -> None:
        with pytest.raises(ValueError, match="LANGBUNDLE_RETRIES is invalid"):
            BundleConfig.from_env({"LANGBUNDLE_RETRIES": "1.5"})

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LANGBUNDLE_DEFAULT_LANGUAGE", "ua")
        monkeypatch.setenv("LANGBUNDLE_RETRIES", "2")

        config = BundleConfig.from_env()

        assert config.default_language == "UA"
        assert config.fetch_retries == 2
