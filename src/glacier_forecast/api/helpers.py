"""
Helper functions for API operations.

Provides batching and query-string utilities shared by the provider clients.
"""

from datetime import datetime
from typing import Iterable, List, Sequence, TypeVar, Union

from ..core.date_utils import DateUtils

T = TypeVar("T")


def chunk_list(items: Sequence[T], size: int) -> List[List[T]]:
    """
    Split a sequence into consecutive chunks of at most ``size`` items.

    Args:
        items: Items to split
        size: Maximum chunk size (must be positive)

    Returns:
        List of chunks, empty for empty input

    Raises:
        ValueError: If size is not positive
    """
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def build_reference_time(start: datetime, end: datetime) -> str:
    """
    Build a Frost ``referencetime`` interval (``start/end``).

    Args:
        start: Interval start (timezone-aware)
        end: Interval end (timezone-aware)

    Returns:
        Interval string, e.g. ``2024-01-01T00:00:00Z/2024-01-15T00:00:00Z``
    """
    return f"{DateUtils.format_frost_time(start)}/{DateUtils.format_frost_time(end)}"


def join_ids(values: Union[str, Iterable[Union[str, int]]]) -> str:
    """Join ids or element names into the comma-separated form used by both APIs."""
    if isinstance(values, str):
        return values
    return ",".join(str(v) for v in values)


def split_ids(value: str) -> List[str]:
    """Split a comma-separated query value, dropping blanks."""
    return [part.strip() for part in value.split(",") if part.strip()]
