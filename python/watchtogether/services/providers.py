"""Streaming provider de-duplication.

The catalog lists several variants of the same service ("Netflix" and
"Netflix Standard with Ads", channel resellers, ...). Known variants are
collapsed by a priority-ordered group table; other providers are collapsed
by their name with ad-tier suffixes removed.
"""

import re

# Leftmost name in a group wins when several variants are present
PROVIDER_DUPLICATE_GROUPS: tuple[tuple[str, ...], ...] = (
    ("Netflix", "Netflix Standard with Ads"),
    ("HBO Max", "HBO Max Amazon Channel", "HBO Max  Amazon Channel"),
    ("Apple TV", "Apple TV Amazon Channel"),
    ("Amazon Prime Video", "Amazon Prime Video with Ads"),
)

_STANDARD_SUFFIX_RE = re.compile(r"\s+Standard(\s+with\s+Ads)?$", re.IGNORECASE)
_ADS_SUFFIX_RE = re.compile(r"\s+with\s+Ads$", re.IGNORECASE)


def normalize_provider_name(name: str) -> str:
    """Strip "Standard" / "with Ads" tier suffixes."""
    name = _STANDARD_SUFFIX_RE.sub("", name)
    name = _ADS_SUFFIX_RE.sub("", name)
    return name.strip()


def _group_rank(name: str) -> tuple[int, int] | None:
    """(group index, rank within group) for a known variant, else None."""
    lowered = name.lower()
    for group_index, group in enumerate(PROVIDER_DUPLICATE_GROUPS):
        for rank, variant in enumerate(group):
            if variant.lower() == lowered:
                return group_index, rank
    return None


def dedupe_providers(providers: list[dict] | None) -> list[dict]:
    """Collapse duplicate provider variants.

    Input entries are {provider_id, provider_name, logo_path, display_priority}.
    Each output entry is a copy with an added normalized_name. Retained
    providers keep their input order; a higher-priority group variant that
    arrives after a lower-priority one replaces it and takes its own place
    in that order.
    """
    if not providers:
        return []

    result: list[dict] = []
    # group index -> (rank, provider_name) of the emitted variant
    emitted_groups: dict[int, tuple[int, str]] = {}
    seen_names: set[str] = set()

    for provider in providers:
        name = provider["provider_name"]
        grouped = _group_rank(name)

        if grouped is None:
            normalized = normalize_provider_name(name)
            key = normalized.lower()
            if key in seen_names:
                continue
            seen_names.add(key)
            result.append({**provider, "normalized_name": normalized})
            continue

        group_index, rank = grouped
        existing = emitted_groups.get(group_index)
        if existing is not None:
            existing_rank, existing_name = existing
            if rank >= existing_rank:
                continue
            result = [
                p for p in result if p["provider_name"].lower() != existing_name.lower()
            ]

        emitted_groups[group_index] = (rank, name)
        result.append({**provider, "normalized_name": normalize_provider_name(name)})

    return result
