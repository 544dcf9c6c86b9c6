"""Pytest configuration for the langbundle test suite.

Single Source of Truth for Hypothesis max_examples:
- dev: Local development with 500 examples (thorough property testing)
- ci: GitHub Actions with 50 examples (fast CI feedback)
- verbose: Debug mode with progress output (100 examples)

Profile auto-detection:
- CI=true environment variable -> "ci" profile (GitHub Actions sets this)
- HYPOTHESIS_PROFILE env var -> explicit override
- Otherwise -> "dev" profile (local development)

Override manually: HYPOTHESIS_PROFILE=verbose pytest tests/

Async code is driven with asyncio.run() inside ordinary test functions.
"""

from __future__ import annotations

import pytest
from hypothesis import Phase, Verbosity, settings

from langbundle.config import BundleConfig
from langbundle.localization.durable import DurableCacheAdapter
from langbundle.localization.store import BundleStore
from langbundle.remote.source import StaticBundleSource
from langbundle.storage.backends import MemoryKeyValueStore

from tests.samples import EN_BUNDLE, PL_BUNDLE, UA_BUNDLE

# =============================================================================
# HYPOTHESIS PROFILES - SINGLE SOURCE OF TRUTH
# =============================================================================

# Development profile: thorough local testing (500 examples, silent)
settings.register_profile(
    "dev",
    max_examples=500,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    derandomize=False,
)

# CI profile: fast feedback for GitHub Actions (50 examples)
settings.register_profile(
    "ci",
    max_examples=50,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    derandomize=True,
    print_blob=True,
)

# Verbose profile: debug mode with progress visibility (100 examples)
settings.register_profile(
    "verbose",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    derandomize=False,
    verbosity=Verbosity.verbose,
)


def _detect_profile() -> str:
    """Detect appropriate Hypothesis profile based on execution context.

    Priority:
    1. HYPOTHESIS_PROFILE env var (explicit override)
    2. CI=true env var (GitHub Actions auto-detection)
    3. Default to "dev" (local development)
    """
    import os

    explicit = os.environ.get("HYPOTHESIS_PROFILE")
    if explicit in ("dev", "ci", "verbose"):
        return explicit

    if os.environ.get("CI") == "true":
        return "ci"

    return "dev"


settings.load_profile(_detect_profile())


# =============================================================================
# SHARED FIXTURES
# =============================================================================


@pytest.fixture
def config() -> BundleConfig:
    return BundleConfig(retry_backoff=0.0)


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def durable(kv: MemoryKeyValueStore, config: BundleConfig) -> DurableCacheAdapter:
    return DurableCacheAdapter(kv, config)


@pytest.fixture
def source() -> StaticBundleSource:
    return StaticBundleSource(
        {"PL": PL_BUNDLE, "EN": EN_BUNDLE, "UA": UA_BUNDLE},
        versions={"PL": "pl-v1", "EN": "en-v1", "UA": "ua-v1"},
    )


@pytest.fixture
def store(
    config: BundleConfig, durable: DurableCacheAdapter, source: StaticBundleSource
) -> BundleStore:
    return BundleStore(config, durable, source)
