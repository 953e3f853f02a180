"""
Collection classifier for the Search Sync service.

Maps a host collection name to its search relevance and to the tenant and
entity kind tags carried by every stream entry, e.g. ``pntl_products`` is
relevant, tenant ``pntl``, entity kind ``products``.
"""

from typing import Optional, Sequence

from search_sync.core.config import SUFFIX_SEPARATORS
from search_sync.schemas.events import UNKNOWN_ENTITY_KIND, ClassificationResult


def match_suffix(source_name: str, suffixes: Sequence[str]) -> Optional[str]:
    """
    Find the first configured suffix the source name ends with.

    Args:
        source_name: Host collection name
        suffixes: Ordered suffix list

    Returns:
        The matched suffix, or None if nothing matches
    """
    for suffix in suffixes:
        if suffix and source_name.endswith(suffix):
            return suffix
    return None


def classify(source_name: str, suffixes: Sequence[str]) -> ClassificationResult:
    """
    Classify a source name against the configured suffixes.

    Args:
        source_name: Host collection name
        suffixes: Ordered suffix list; the first match wins

    Returns:
        Classification with relevance, tenant and entity kind
    """
    suffix = match_suffix(source_name, suffixes)
    if suffix is None:
        return ClassificationResult(
            relevant=False, tenant=source_name, entity_kind=UNKNOWN_ENTITY_KIND
        )

    return ClassificationResult(
        relevant=True,
        tenant=source_name[: -len(suffix)],
        entity_kind=suffix.lstrip(SUFFIX_SEPARATORS),
    )


def is_relevant(source_name: str, suffixes: Sequence[str]) -> bool:
    """Whether changes to this source are forwarded to the stream."""
    return match_suffix(source_name, suffixes) is not None
