"""
Widening-window fetch policy.

Upstream queries over a short window often come back empty for stations that
report late or sparsely. The policy retries the same query over an ordered
list of wider windows and keeps the first non-empty answer.
"""

import logging
from typing import Callable, Generic, Iterable, Optional, Sequence, Tuple, TypeVar

import requests  # type: ignore

T = TypeVar("T")


class WindowFetcher(Generic[T]):
    """Try a fetch over each window in order; first non-empty result wins."""

    def __init__(
        self,
        windows: Iterable[int],
        is_empty: Callable[[T], bool] = lambda result: not result,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize window fetcher.

        Args:
            windows: Window sizes, tried in the given order
            is_empty: Predicate deciding whether a result counts as empty
            logger: Logger instance

        Raises:
            ValueError: If no windows are given
        """
        self.windows: Sequence[int] = tuple(windows)
        if not self.windows:
            raise ValueError("At least one window size is required")
        self.is_empty = is_empty
        self.logger = logger or logging.getLogger(__name__)

    def fetch(self, fetch: Callable[[int], T], empty: T) -> Tuple[T, Optional[int]]:
        """
        Run the policy.

        A request failure in one attempt is logged and the next window is tried.
        When every attempt fails, the last failure is raised so callers can
        tell an outage from an empty answer.

        Args:
            fetch: Callable receiving a window size and returning a result
            empty: Value returned when every window is empty

        Returns:
            Tuple of (result, window that produced it or None)

        Raises:
            requests.exceptions.RequestException: If every window failed
        """
        last_error: Optional[requests.exceptions.RequestException] = None
        failures = 0
        for window in self.windows:
            try:
                result = fetch(window)
            except requests.exceptions.RequestException as e:
                self.logger.warning(f"Fetch over window {window} failed: {e}")
                last_error = e
                failures += 1
                continue

            if not self.is_empty(result):
                self.logger.debug(f"Fetch over window {window} returned data")
                return result, window

            self.logger.info(f"No data over window {window}, widening")

        if last_error is not None and failures == len(self.windows):
            raise last_error
        return empty, None
