from typing import Any, Callable, Dict

from flask import current_app

from codeloader.models.page import Page
from codeloader.models.site import Site
from codeloader.domain.errors import NotFoundError
from codeloader.domain.invariants.exceptions import InvariantViolation
from codeloader.domain.invariants.targets import LOCATIONS, assert_file_list
from codeloader.services.webflow import WebflowAPIError, WebflowClient, client_for_site
from codeloader.application.delivery.purge_bundle import purge_bundle
from codeloader.application.scripts.register_loaders import register_page_loaders
from codeloader.utils.audit import log_action
from codeloader.utils.transaction import transactional


def apply_file_lists(target, data: Dict[str, Any]) -> list[str]:
    """
    Write head_files / body_files from `data` onto a Page or Site.

    Returns the locations whose normalized list actually changed.
    """
    provided = [location for location in LOCATIONS if f"{location}_files" in data]
    if not provided:
        raise InvariantViolation("No valid fields provided for update")

    changed: list[str] = []
    for location in provided:
        raw = data[f"{location}_files"]
        assert_file_list(raw)
        before = target.file_ids(location)
        if target.set_file_ids(location, raw) != before:
            changed.append(location)
    return changed


def register_for_target(site: Site, client_factory, register, locations) -> Dict[str, Any]:
    """Run `register(client)`; a missing or bad token fails each location instead of raising."""
    try:
        client = client_factory(site)
    except WebflowAPIError as exc:
        current_app.logger.warning(f"Skipping loader registration for site {site.external_site_id}: {exc}")
        return {
            location: {"registered": False, "scriptId": None, "error": str(exc)}
            for location in locations
        }
    return register(client)


def update_page_files(
    *,
    site: Site,
    page_id: int,
    data: Dict[str, Any],
    client_factory: Callable[[Site], WebflowClient] = client_for_site,
) -> Dict[str, Any]:
    """
    Editor write path for a page's ordered file lists.

    Order of effects:
    1. persist the lists (the source of truth)
    2. purge the delivery cache for every changed location
    3. register/bind loaders for changed, non-empty locations

    Loader failures are reported in the result, never raised; the
    page write has already succeeded.
    """
    page = Page.query.filter_by(id=page_id, site_id=site.id).first()
    if not page:
        raise NotFoundError("Page not found")

    with transactional(target=page_id, phase="update_page_files"):
        changed = apply_file_lists(page, data)
        if changed:
            log_action(
                site_id=site.id,
                action="page.update_files",
                entity_type="page",
                entity_id=page.id,
                payload={location: page.file_ids(location) for location in changed},
            )

    purged = {location: purge_bundle("page", page.id, location) for location in changed}

    code_loader = None
    to_register = [location for location in changed if page.file_ids(location)]
    if to_register:
        code_loader = register_for_target(
            site,
            client_factory,
            lambda client: register_page_loaders(client, page, site, locations=to_register),
            to_register,
        )

    return {
        "page": page,
        "changed": changed,
        "purged": purged,
        "code_loader": code_loader,
    }
