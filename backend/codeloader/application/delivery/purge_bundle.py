from typing import Iterable, Tuple
from flask import current_app
from codeloader.extensions import edge_cache
from codeloader.domain.invariants.targets import (
    LOCATIONS,
    assert_location,
    assert_target_kind,
    canonical_target_id,
)
from codeloader.utils.edge_cache import make_bundle_key


def purge_bundle(target_kind: str, target_id, location: str) -> bool:
    """
    Drop one cached delivery bundle.

    Returns True if an entry was removed, False if none was cached
    (cold key, TTL expiry, or an earlier purge).
    """
    assert_target_kind(target_kind)
    assert_location(location)
    target_id = canonical_target_id(target_id)

    key = make_bundle_key(target_kind, target_id, location)
    deleted = edge_cache.delete(key)

    if deleted:
        current_app.logger.info(f"Cache purged for {target_kind} {target_id} ({location})")
    else:
        current_app.logger.info(f"Cache entry not found for {target_kind} {target_id} ({location})")
    return deleted


def purge_locations(target_kind: str, target_id, locations: Iterable[str] = LOCATIONS) -> dict:
    """Purge several locations of one target; returns {location: purged}."""
    return {location: purge_bundle(target_kind, target_id, location) for location in locations}


def purge_targets(targets: Iterable[Tuple[str, int, str]]) -> int:
    """Purge (kind, id, location) triples; returns how many entries existed."""
    return sum(1 for kind, target_id, location in targets if purge_bundle(kind, target_id, location))
