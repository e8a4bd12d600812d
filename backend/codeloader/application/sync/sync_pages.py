from collections import OrderedDict
from typing import Any, Callable, Dict, List, Mapping, Optional, TypedDict

from flask import current_app
from sqlalchemy import delete, insert, update
from sqlalchemy.exc import SQLAlchemyError

from codeloader.extensions import db
from codeloader.models.base import utc_now
from codeloader.models.page import Page
from codeloader.models.site import Site
from codeloader.domain.errors import StorageError
from codeloader.domain.page_names import extract_page_name
from codeloader.services.webflow import WebflowAPIError, WebflowClient, client_for_site
from codeloader.application.delivery.purge_bundle import purge_locations
from codeloader.utils.audit import log_action
from codeloader.utils.transaction import transactional


class SyncResult(TypedDict):
    """
    Outcome of one reconcile run.

    error/phase are set when a phase failed; the counts then cover only
    the phases that committed before it.
    """
    success: bool
    site_id: str
    page_count: int
    added: int
    updated: int
    deleted: int
    error: Optional[str]
    phase: Optional[str]


def _new_result(site: Site, page_count: int) -> SyncResult:
    return {
        "success": True,
        "site_id": site.external_site_id,
        "page_count": page_count,
        "added": 0,
        "updated": 0,
        "deleted": 0,
        "error": None,
        "phase": None,
    }


def _fail(result: SyncResult, phase: str, error) -> SyncResult:
    result["success"] = False
    result["phase"] = phase
    result["error"] = str(error)
    current_app.logger.error(
        f"Page sync for site {result['site_id']} failed during {phase}: {error} "
        f"(added={result['added']}, updated={result['updated']}, deleted={result['deleted']})"
    )
    return result


def dedupe_remote_pages(remote_pages: List[Mapping[str, Any]]) -> "OrderedDict[str, Mapping[str, Any]]":
    """
    Index remote records by id. On duplicate ids the last record wins,
    keeping the position of the first occurrence. Records without an id
    are skipped.
    """
    by_id: "OrderedDict[str, Mapping[str, Any]]" = OrderedDict()
    for record in remote_pages:
        remote_id = record.get("id")
        if not remote_id:
            current_app.logger.warning(f"Skipping remote page without id: {record!r}")
            continue
        by_id[str(remote_id)] = record
    return by_id


def reconcile_pages(site: Site, remote_pages: List[Mapping[str, Any]]) -> SyncResult:
    """
    Make the local Page rows for `site` match the remote listing.

    Rules:
    - New remote ids are inserted with empty head/body file lists
    - Existing rows only ever get their name updated
    - Local rows missing from the listing are deleted
    - Inserts, updates, deletes run in that order, one bulk statement
      each; a failing phase stops the run
    """
    result = _new_result(site, len(remote_pages))
    remote = dedupe_remote_pages(remote_pages)

    try:
        existing = Page.query.filter_by(site_id=site.id).all()
    except SQLAlchemyError as exc:
        db.session.rollback()
        return _fail(result, "load", exc)
    by_external_id = {page.external_page_id: page for page in existing}

    inserts: List[Dict[str, Any]] = []
    updates: List[Dict[str, Any]] = []

    for remote_id, record in remote.items():
        name = extract_page_name(record)
        local = by_external_id.get(remote_id)

        if local is None:
            inserts.append({
                "site_id": site.id,
                "external_page_id": remote_id,
                "name": name,
                "head_files": [],
                "body_files": [],
            })
        elif local.name != name:
            # file lists are never written on existing rows
            updates.append({"id": local.id, "name": name, "updated_at": utc_now()})

    deleted_ids = [page.id for page in existing if page.external_page_id not in remote]

    # -------------------------------------------------
    # Insert
    # -------------------------------------------------
    if inserts:
        try:
            with transactional(target=site.external_site_id, phase="insert"):
                db.session.execute(insert(Page), inserts)
        except StorageError as exc:
            return _fail(result, "insert", exc)
        result["added"] = len(inserts)

    # -------------------------------------------------
    # Update
    # -------------------------------------------------
    if updates:
        try:
            with transactional(target=site.external_site_id, phase="update"):
                db.session.execute(update(Page), updates)
        except StorageError as exc:
            return _fail(result, "update", exc)
        result["updated"] = len(updates)

    # -------------------------------------------------
    # Delete
    # -------------------------------------------------
    if deleted_ids:
        try:
            with transactional(target=site.external_site_id, phase="delete"):
                outcome = db.session.execute(
                    delete(Page).where(Page.id.in_(deleted_ids)),
                    execution_options={"synchronize_session": False},
                )
        except StorageError as exc:
            return _fail(result, "delete", exc)
        result["deleted"] = outcome.rowcount if outcome.rowcount is not None else len(deleted_ids)

        for page_id in deleted_ids:
            purge_locations("page", page_id)

    if inserts or updates or deleted_ids:
        try:
            with transactional(target=site.external_site_id, phase="audit"):
                log_action(
                    site_id=site.id,
                    action="pages.sync",
                    entity_type="site",
                    entity_id=site.external_site_id,
                    payload={
                        "page_count": result["page_count"],
                        "added": result["added"],
                        "updated": result["updated"],
                        "deleted": result["deleted"],
                    },
                )
        except StorageError as exc:
            return _fail(result, "audit", exc)

    current_app.logger.info(
        f"Synced pages for site {site.external_site_id}: "
        f"{result['added']} added, {result['updated']} updated, {result['deleted']} deleted"
    )
    return result


def sync_site_pages(
    site: Site,
    *,
    client_factory: Callable[[Site], WebflowClient] = client_for_site,
) -> SyncResult:
    """Fetch the live Webflow listing for `site` and reconcile against it."""
    try:
        remote_pages = client_factory(site).list_pages(site.external_site_id)
    except WebflowAPIError as exc:
        return _fail(_new_result(site, 0), "fetch", exc)

    return reconcile_pages(site, remote_pages)


def sync_all_sites(
    *,
    client_factory: Callable[[Site], WebflowClient] = client_for_site,
) -> List[SyncResult]:
    """
    Reconcile every authorized site. Each site reports independently;
    one failing site never stops the others.
    """
    sites = Site.query.filter(Site.access_token.isnot(None)).order_by(Site.id).all()

    results: List[SyncResult] = []
    for site in sites:
        fallback = _new_result(site, 0)
        try:
            results.append(sync_site_pages(site, client_factory=client_factory))
        except (StorageError, SQLAlchemyError) as exc:
            db.session.rollback()
            results.append(_fail(fallback, getattr(exc, "phase", None) or "load", exc))
    return results
