"""Query text normalization and the minimum-length gate."""

# Providers reject or waste quota on shorter autocomplete queries
MIN_QUERY_LENGTH = 2


def normalize(raw: str) -> str:
    """Canonical cache key for a raw query: trimmed and lowercased.

    Example:
        >>> normalize("  Paris ")
        'paris'
    """
    return raw.strip().lower()


def is_eligible(raw: str, min_length: int = MIN_QUERY_LENGTH) -> bool:
    """Whether a query is long enough to be worth a lookup.

    Length is measured after trimming, so ``" ab "`` passes a gate of 2.
    """
    return len(raw.strip()) >= min_length
