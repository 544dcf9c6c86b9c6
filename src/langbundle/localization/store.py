"""Bundle Store: per-language in-memory state and load orchestration.

The store is the only writer of in-memory bundles and of the durable cache.
Every mutation replaces a whole LanguageState snapshot; bundles are never
patched in place, so readers can never observe a half-updated table.

Load order for ``ensure_loaded(lang)``:
    1. In-memory bundle (non-empty) -> no-op
    2. Durable cache -> adopt, then refresh from the remote in the background
    3. Remote source -> adopt and persist
    4. On remote failure: own durable copy, then the default language's
       durable copy, adopted as a substitute; else the language is Failed

Python 3.13+.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from langbundle.config import BundleConfig
from langbundle.diagnostics import (
    MalformedPayloadError,
    NetworkUnavailableError,
    RemoteBundleError,
)
from langbundle.enums import BundleSource, LoadState, LoadStatus
from langbundle.localization.bundle import Bundle, BundlePayload
from langbundle.localization.durable import DurableCacheAdapter
from langbundle.localization.loading import LoadError, LoadResult, LocalBundleLoader
from langbundle.localization.types import LanguageCode, VersionToken

if TYPE_CHECKING:
    from langbundle.remote.source import RemoteBundleSource

__all__ = ["BundleStore", "LanguageState"]

logger = logging.getLogger(__name__)

_STAT_NAMES = (
    "memory_hits",
    "durable_hits",
    "remote_fetches",
    "remote_failures",
    "substitutions",
    "background_refreshes",
    "discarded_results",
)


@dataclass(frozen=True, slots=True)
class LanguageState:
    """Immutable snapshot of one language inside the BundleStore.

    Attributes:
        language: LanguageCode
        status: Lifecycle state
        bundle: Remote-derived bundle (own, cached or substituted)
        local_bundle: Bundle shipped with the application, if loaded
        version: VersionToken of ``bundle`` when it is the language's own data
        loading: True while a foreground remote fetch is outstanding
        initialized: True once a load attempt finished, successful or not
        error: Failure that left the language without data
    """

    language: LanguageCode
    status: LoadState = LoadState.UNREQUESTED
    bundle: Bundle | None = None
    local_bundle: Bundle | None = None
    version: VersionToken | None = None
    loading: bool = False
    initialized: bool = False
    error: LoadError | None = None

    @property
    def has_data(self) -> bool:
        """True when a non-empty remote-derived bundle is in memory."""
        return self.bundle is not None and not self.bundle.is_empty


class BundleStore:
    """In-memory bundle cache with durable and remote tiers.

    Construct one per application (or per test) and inject it into the
    Translator; there is no module-level instance.

    Lifecycle:
        - Created empty.
        - ``ensure_loaded()`` adds per-language state on first request.
        - ``clear()`` forgets every remote-derived bundle and purges the
          durable cache. Local bundles survive.
        - ``aclose()``/``dispose()`` cancel background refreshes.

    Example:
        >>> store = BundleStore(config, DurableCacheAdapter(FileKeyValueStore(path)), source)
        >>> result = await store.ensure_loaded("PL")
        >>> result.status
        <LoadStatus.LOADED: 'loaded'>
        >>> store.bundle("PL").get("nav.home")
        'Strona główna'
    """

    __slots__ = (
        "_config",
        "_durable",
        "_durable_reads",
        "_generation",
        "_inflight",
        "_local_loader",
        "_refreshes",
        "_remote",
        "_states",
        "_stats",
    )

    def __init__(
        self,
        config: BundleConfig,
        durable: DurableCacheAdapter,
        remote: RemoteBundleSource,
        *,
        local_loader: LocalBundleLoader | None = None,
    ) -> None:
        """Initialize an empty store.

        Args:
            config: Supported languages and load policy
            durable: Durable Cache Adapter (only this store writes to it)
            remote: Remote Bundle Source
            local_loader: Optional loader for bundles shipped with the app
        """
        self._config = config
        self._durable = durable
        self._remote = remote
        self._local_loader = local_loader
        self._states: dict[LanguageCode, LanguageState] = {}
        self._inflight: dict[LanguageCode, asyncio.Task[LoadResult]] = {}
        self._refreshes: set[asyncio.Task[None]] = set()
        # Durable snapshots decoded for the resolver; dropped on write and clear()
        self._durable_reads: dict[LanguageCode, Bundle | None] = {}
        # Bumped by clear(); results of fetches started earlier are dropped
        self._generation = 0
        self._stats: dict[str, int] = dict.fromkeys(_STAT_NAMES, 0)

    def __repr__(self) -> str:
        loaded = sorted(code for code, state in self._states.items() if state.has_data)
        return f"BundleStore(loaded={loaded}, pending_refreshes={len(self._refreshes)})"

    # ------------------------------------------------------------------
    # Snapshot accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> BundleConfig:
        return self._config

    @property
    def durable(self) -> DurableCacheAdapter:
        return self._durable

    @property
    def has_local_loader(self) -> bool:
        return self._local_loader is not None

    def state(self, language: LanguageCode) -> LanguageState:
        """Current snapshot for ``language``.

        Raises:
            ValueError: If the language is not supported
        """
        code = self._config.validate_language(language)
        return self._states.get(code) or LanguageState(language=code)

    def bundle(self, language: LanguageCode) -> Bundle | None:
        """Remote-derived bundle in memory for ``language``, if any."""
        return self.state(language).bundle

    def local_bundle(self, language: LanguageCode) -> Bundle | None:
        return self.state(language).local_bundle

    def version(self, language: LanguageCode) -> VersionToken | None:
        return self.state(language).version

    def durable_bundle(self, language: LanguageCode) -> Bundle | None:
        """Durable-cache bundle for ``language``, decoded once and memoized.

        The memo is dropped whenever this store writes the language and on
        ``clear()``. Only the store writes the durable cache, so it cannot go
        stale while the store is in use.

        Raises:
            ValueError: If the language is not supported
        """
        code = self._config.validate_language(language)
        if code not in self._durable_reads:
            self._durable_reads[code] = self._durable.read_bundle(code)
        return self._durable_reads[code]

    def languages(self) -> tuple[LanguageCode, ...]:
        """Languages that have left the Unrequested state, in request order."""
        return tuple(
            code
            for code, state in self._states.items()
            if state.status is not LoadState.UNREQUESTED
        )

    def get_stats(self) -> dict[str, int]:
        """Counters describing how requests were served.

        Returns:
            Dict with keys:
            - memory_hits: ensure_loaded calls answered from memory
            - durable_hits: bundles adopted from the durable cache
            - remote_fetches: remote fetch attempts, retries included
            - remote_failures: loads or refreshes that ended in a remote error
            - substitutions: failures covered by a durable copy
            - background_refreshes: stale-while-revalidate refreshes started
            - discarded_results: fetch results dropped because clear() ran
        """
        return dict(self._stats)

    def _put(self, state: LanguageState) -> None:
        self._states[state.language] = state

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def ensure_loaded(self, language: LanguageCode) -> LoadResult:
        """Make ``language`` available, following the tiered load order.

        Never raises for remote or durable failures; those are reported in
        the returned LoadResult and in ``state(language).error``.

        Args:
            language: LanguageCode to load

        Returns:
            LoadResult describing which tier supplied the data

        Raises:
            ValueError: If the language is not supported
        """
        code = self._config.validate_language(language)
        if not self._config.deduplicate_requests:
            return await self._load(code)

        task = self._inflight.get(code)
        if task is not None:
            logger.debug("Joining in-flight load for %s", code)
            return await asyncio.shield(task)

        task = asyncio.create_task(self._load(code), name=f"langbundle-load-{code}")
        self._inflight[code] = task
        try:
            return await asyncio.shield(task)
        finally:
            if self._inflight.get(code) is task:
                del self._inflight[code]

    async def _load(self, code: LanguageCode) -> LoadResult:
        current = self.state(code)
        if current.has_data:
            self._stats["memory_hits"] += 1
            assert current.bundle is not None
            return LoadResult(
                language=code,
                status=LoadStatus.ALREADY_LOADED,
                source=BundleSource.MEMORY,
                version=current.version,
                key_count=len(current.bundle),
            )

        generation = self._generation

        cached = self._durable.read_bundle(code)
        if cached is not None and not cached.is_empty:
            self._stats["durable_hits"] += 1
            logger.debug("Serving %s from durable cache (version %s)", code, cached.version)
            self._adopt_cached(code, cached)
            if self._config.background_refresh:
                self._schedule_refresh(code, generation)
            return LoadResult(
                language=code,
                status=LoadStatus.CACHED,
                source=BundleSource.DURABLE,
                version=cached.version,
                key_count=len(cached),
            )

        self._put(replace(current, status=LoadState.LOADING, loading=True, error=None))
        try:
            payload = await self._fetch(code)
        except RemoteBundleError as e:
            self._stats["remote_failures"] += 1
            if generation != self._generation:
                return self._discard(code)
            return self._recover(code, LoadError.from_exception(e))

        if generation != self._generation:
            return self._discard(code)

        bundle = self._adopt_remote(code, payload)
        return LoadResult(
            language=code,
            status=LoadStatus.LOADED,
            source=BundleSource.REMOTE,
            version=payload.version,
            key_count=len(bundle),
        )

    async def _fetch(self, code: LanguageCode) -> BundlePayload:
        """Fetch with retries on NetworkUnavailableError only.

        Exceptions outside the remote taxonomy are logged and re-raised as
        RemoteBundleError, so callers always reach their recovery path.
        """
        retries = self._config.fetch_retries
        for attempt in range(retries + 1):
            self._stats["remote_fetches"] += 1
            try:
                return await self._remote.fetch(code)
            except RemoteBundleError as e:
                if not isinstance(e, NetworkUnavailableError) or attempt >= retries:
                    raise
                delay = self._config.retry_backoff * 2**attempt
                logger.debug(
                    "Fetch of %s failed (%s); retry %d/%d in %.2fs",
                    code,
                    e.summary,
                    attempt + 1,
                    retries,
                    delay,
                )
                await asyncio.sleep(delay)
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.exception("Remote source raised an unexpected error for %s", code)
                msg = f"Remote source failed for '{code}': {type(e).__name__}: {e}"
                raise RemoteBundleError(msg, language=code) from e
        msg = "fetch_retries must not be negative"
        raise ValueError(msg)

    def _adopt_cached(self, code: LanguageCode, cached: Bundle) -> None:
        local = self.state(code).local_bundle
        self._put(
            LanguageState(
                language=code,
                status=LoadState.LOADED_FROM_CACHE_ONLY,
                bundle=cached,
                local_bundle=local,
                version=cached.version,
                initialized=True,
            )
        )

    def _adopt_remote(self, code: LanguageCode, payload: BundlePayload) -> Bundle:
        bundle = payload.to_bundle()
        local = self.state(code).local_bundle
        self._put(
            LanguageState(
                language=code,
                status=LoadState.LOADED,
                bundle=bundle,
                local_bundle=local,
                version=payload.version,
                initialized=True,
            )
        )
        logger.info(
            "Loaded %s bundle version %s (%d keys)", code, payload.version, len(bundle)
        )
        self._durable.write_bundle(code, bundle, payload.version)
        self._durable_reads.pop(code, None)
        return bundle

    def _recover(self, code: LanguageCode, error: LoadError) -> LoadResult:
        """Substitute durable data after a failed foreground fetch."""
        substitute = self._durable.read_bundle(code)
        if substitute is not None and not substitute.is_empty:
            version = substitute.version
        else:
            substitute = None
            default = self._config.default_language
            if code != default:
                fallback = self._durable.read_bundle(default)
                if fallback is not None and not fallback.is_empty:
                    substitute = fallback
            version = None

        local = self.state(code).local_bundle
        if substitute is None:
            self._put(
                LanguageState(
                    language=code,
                    status=LoadState.FAILED,
                    local_bundle=local,
                    initialized=True,
                    error=error,
                )
            )
            logger.error("No bundle available for %s: %s", code, error.message)
            return LoadResult(language=code, status=LoadStatus.FAILED, error=error)

        self._stats["substitutions"] += 1
        self._put(
            LanguageState(
                language=code,
                status=LoadState.LOADED_FROM_CACHE_ONLY,
                bundle=substitute,
                local_bundle=local,
                version=version,
                initialized=True,
            )
        )
        logger.warning(
            "Remote load of %s failed (%s); serving cached %s bundle",
            code,
            error.message,
            substitute.language,
        )
        return LoadResult(
            language=code,
            status=LoadStatus.SUBSTITUTED,
            source=BundleSource.DURABLE,
            version=version,
            key_count=len(substitute),
            error=error,
        )

    def _discard(self, code: LanguageCode) -> LoadResult:
        self._stats["discarded_results"] += 1
        logger.debug("Discarding %s fetch result that finished after clear()", code)
        current = self.state(code)
        if current.has_data:
            assert current.bundle is not None
            return LoadResult(
                language=code,
                status=LoadStatus.ALREADY_LOADED,
                source=BundleSource.MEMORY,
                version=current.version,
                key_count=len(current.bundle),
            )
        return LoadResult(language=code, status=LoadStatus.FAILED)

    # ------------------------------------------------------------------
    # Background refresh
    # ------------------------------------------------------------------

    def _schedule_refresh(self, code: LanguageCode, generation: int) -> None:
        self._stats["background_refreshes"] += 1
        task = asyncio.create_task(
            self._refresh(code, generation), name=f"langbundle-refresh-{code}"
        )
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)
        logger.debug("Scheduled background refresh for %s", code)

    async def _refresh(self, code: LanguageCode, generation: int) -> None:
        try:
            payload = await self._fetch(code)
        except RemoteBundleError as e:
            self._stats["remote_failures"] += 1
            logger.warning(
                "Background refresh of %s failed; keeping cached bundle: %s", code, e.summary
            )
            return

        if generation != self._generation:
            self._discard(code)
            return
        self._adopt_remote(code, payload)

    async def wait_for_refreshes(self) -> None:
        """Wait until every pending background refresh has finished."""
        while self._refreshes:
            await asyncio.gather(*self._refreshes, return_exceptions=True)

    # ------------------------------------------------------------------
    # Local bundles
    # ------------------------------------------------------------------

    def load_local(self, language: LanguageCode) -> LoadResult:
        """Load the bundle shipped with the application for ``language``.

        Loads at most once per language; a failed attempt is remembered as an
        empty local bundle. Local bundles are never persisted.

        Raises:
            ValueError: If the language is not supported
        """
        code = self._config.validate_language(language)
        current = self.state(code)
        if current.local_bundle is not None:
            status = (
                LoadStatus.FAILED if current.local_bundle.is_empty else LoadStatus.ALREADY_LOADED
            )
            return LoadResult(
                language=code,
                status=status,
                source=BundleSource.LOCAL,
                key_count=len(current.local_bundle),
            )
        if self._local_loader is None:
            return LoadResult(language=code, status=LoadStatus.FAILED)

        error: LoadError | None = None
        try:
            entries = self._local_loader.load(code)
        except FileNotFoundError:
            logger.debug(
                "No bundled translations for %s at %s",
                code,
                self._local_loader.describe_path(code),
            )
            entries = {}
        except MalformedPayloadError as e:
            error = LoadError.from_exception(e)
            logger.warning("Ignoring invalid bundled translations for %s: %s", code, e.summary)
            entries = {}
        except (OSError, ValueError) as e:
            error = LoadError.from_exception(MalformedPayloadError(str(e), language=code))
            logger.warning("Failed to read bundled translations for %s: %s", code, e)
            entries = {}

        local = Bundle.create(code, entries)
        self._put(replace(self.state(code), local_bundle=local))
        if local.is_empty:
            return LoadResult(
                language=code, status=LoadStatus.FAILED, source=BundleSource.LOCAL, error=error
            )
        logger.debug("Loaded %d bundled keys for %s", len(local), code)
        return LoadResult(
            language=code,
            status=LoadStatus.LOADED,
            source=BundleSource.LOCAL,
            key_count=len(local),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _cancel_refreshes(self) -> None:
        for task in tuple(self._refreshes):
            task.cancel()

    def clear(self) -> int:
        """Forget all remote-derived state and purge the durable cache.

        Pending background refreshes are cancelled, and fetches still in
        flight will not repopulate memory or durable storage when they
        finish. Local bundles are kept.

        Returns:
            Number of durable slots deleted
        """
        self._generation += 1
        self._cancel_refreshes()
        self._inflight.clear()
        self._states = {
            code: LanguageState(language=code, local_bundle=state.local_bundle)
            for code, state in self._states.items()
            if state.local_bundle is not None
        }
        self._durable_reads.clear()
        deleted = self._durable.clear_all()
        logger.info("Cleared bundle cache (%d durable slots removed)", deleted)
        return deleted

    def dispose(self) -> None:
        """Cancel background refreshes without waiting for them."""
        self._cancel_refreshes()

    async def aclose(self) -> None:
        """Cancel background refreshes and wait for them to unwind."""
        pending = tuple(self._refreshes)
        self._cancel_refreshes()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

