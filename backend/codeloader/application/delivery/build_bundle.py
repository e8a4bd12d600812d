import json
from typing import Dict, List, Optional, Tuple, TypedDict

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from codeloader.extensions import db, edge_cache
from codeloader.models.code_file import CodeFile
from codeloader.models.page import Page
from codeloader.models.site import Site
from codeloader.domain.errors import NotFoundError, StorageError
from codeloader.domain.invariants.targets import (
    LANGUAGES,
    assert_location,
    assert_target_kind,
    canonical_target_id,
)
from codeloader.utils.edge_cache import make_bundle_key


class Bundle(TypedDict):
    html: str
    css: str
    js: str


EMPTY_BUNDLE: Bundle = {"html": "", "css": "", "js": ""}


def resolve_file_ids(target_kind: str, target_id, location: str) -> List[int]:
    """
    Look up the ordered file-id list for a target/location.

    Raises NotFoundError when the page/site row is absent.
    """
    model = Page if target_kind == "page" else Site
    try:
        record = db.session.get(model, target_id)
    except SQLAlchemyError as exc:
        raise StorageError(
            f"Error loading {target_kind} {target_id}: {exc}",
            target=target_id,
            phase="resolve",
        ) from exc

    if record is None:
        raise NotFoundError(f"{target_kind.capitalize()} not found with ID {target_id}")

    return record.file_ids(location)


def fetch_files(file_ids: List[int]) -> Dict[int, CodeFile]:
    try:
        rows = CodeFile.query.filter(CodeFile.id.in_(set(file_ids))).all()
    except SQLAlchemyError as exc:
        raise StorageError(f"Error fetching files: {exc}", phase="fetch_files") from exc
    return {row.id: row for row in rows}


def assemble_bundle(file_ids: List[int], files: Dict[int, CodeFile]) -> Bundle:
    """
    Concatenate code per language in list order.

    Ids with no matching file are skipped; each bucket keeps the
    original list order of its own files.
    """
    buckets: Dict[str, List[str]] = {language: [] for language in LANGUAGES}
    for file_id in file_ids:
        code_file = files.get(file_id)
        if code_file is None or code_file.language not in buckets:
            continue
        buckets[code_file.language].append(code_file.code or "")

    return {language: "\n".join(parts) for language, parts in buckets.items()}


def build_bundle(target_kind: str, target_id, location: str) -> Bundle:
    assert_target_kind(target_kind)
    assert_location(location)
    target_id = canonical_target_id(target_id)

    file_ids = resolve_file_ids(target_kind, target_id, location)
    if not file_ids:
        return dict(EMPTY_BUNDLE)

    return assemble_bundle(file_ids, fetch_files(file_ids))


def get_bundle(target_kind: str, target_id, location: str) -> Tuple[str, bool]:
    """
    Cache-aside read.

    Returns (serialized bundle, cache_hit). Only successful builds are
    stored; NotFoundError / StorageError propagate without touching
    the cache.
    """
    assert_target_kind(target_kind)
    assert_location(location)
    target_id = canonical_target_id(target_id)

    key = make_bundle_key(target_kind, target_id, location)
    cached: Optional[str] = edge_cache.get(key)
    if cached is not None:
        return cached, True

    bundle = build_bundle(target_kind, target_id, location)
    body = json.dumps(bundle)
    edge_cache.put(key, body, current_app.config["CACHE_TTL"])
    current_app.logger.debug(f"Cached bundle {key}")
    return body, False
