"""Hot-reloading rule cache.

ReloadingRuleSet owns the RuleSet that authorization decisions are made
against. It reloads the backing rule file at most once per refresh period
and is fail-closed: once a reload fails, every lookup raises that failure
until a later reload succeeds. The previous good RuleSet is never served
after a failure has been recorded.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from dbacl.core.errors import ConfigParseError
from dbacl.core.rules import RuleSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedRuleSet:
    """
    Outcome of one load attempt.

    Exactly one of `rules` and `error` is set. Entries are replaced as a
    whole, so readers never see a RuleSet paired with a stale error.
    """

    loaded_at: float
    rules: RuleSet | None = None
    error: ConfigParseError | None = None

    def unwrap(self) -> RuleSet:
        if self.error is not None:
            # Fresh instance per raise; re-raising the cached one would grow its traceback.
            raise ConfigParseError(self.error.path, self.error.reason) from self.error
        return self.rules


class ReloadingRuleSet:
    """Thread-safe, periodically refreshed holder of the active RuleSet."""

    def __init__(
        self,
        loader: Callable[[], RuleSet],
        refresh_period: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Load the rules once, synchronously.

        Args:
            loader: Callable returning a fresh RuleSet or raising
                    ConfigParseError.
            refresh_period: Minimum seconds between reload attempts, or None
                            to never reload.
            clock: Monotonic time source.

        Raises:
            ConfigParseError: If the first load fails.
        """
        if refresh_period is not None and refresh_period < 0:
            raise ValueError("refresh_period must be >= 0")
        self._loader = loader
        self._refresh_period = refresh_period
        self._clock = clock
        self._lock = threading.Lock()
        self._entry = CachedRuleSet(loaded_at=self._clock(), rules=self._loader())

    @property
    def entry(self) -> CachedRuleSet:
        return self._entry

    def _expired(self, entry: CachedRuleSet) -> bool:
        if self._refresh_period is None:
            return False
        return self._clock() - entry.loaded_at >= self._refresh_period

    def _load(self) -> CachedRuleSet:
        try:
            rules = self._loader()
        except ConfigParseError as exc:
            logger.error("Rule reload failed, denying all requests until fixed: %s", exc)
            return CachedRuleSet(loaded_at=self._clock(), error=exc)
        logger.info("Rules reloaded: %s", rules.sections())
        return CachedRuleSet(loaded_at=self._clock(), rules=rules)

    def get(self) -> RuleSet:
        """
        Return the active RuleSet, reloading it first if the refresh period
        has elapsed.

        Raises:
            ConfigParseError: If the most recent load attempt failed.
        """
        entry = self._entry
        if self._expired(entry):
            with self._lock:
                # Another thread may have reloaded while we waited.
                entry = self._entry
                if self._expired(entry):
                    entry = self._load()
                    self._entry = entry
        return entry.unwrap()
