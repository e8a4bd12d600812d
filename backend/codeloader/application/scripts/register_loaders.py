import re
from typing import Dict, Iterable, Optional, TypedDict

from flask import current_app

from codeloader.extensions import db
from codeloader.models.page import Page
from codeloader.models.site import Site
from codeloader.domain.errors import StorageError
from codeloader.domain.invariants.exceptions import InvariantViolation
from codeloader.domain.invariants.targets import LOCATIONS, assert_location, assert_target_kind
from codeloader.domain.loader_script import generate_loader_script
from codeloader.services.webflow import WebflowAPIError, WebflowClient
from codeloader.utils.audit import log_action
from codeloader.utils.transaction import transactional

BASE_VERSION = "1.0"
# Version attached to page/site bindings; registration versions vary
BINDING_VERSION = "1.0.0"

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


class ScriptRegistration(TypedDict):
    registered: bool
    script_id: Optional[str]
    version: Optional[str]
    attempts: int
    error: Optional[str]


class LoaderResult(TypedDict):
    registered: bool
    scriptId: Optional[str]
    error: Optional[str]


def _skipped() -> LoaderResult:
    return {"registered": False, "scriptId": None, "error": None}


def script_display_name(target_kind: str, location: str, target_id) -> str:
    """
    Deterministic, collision-free display name for one target/location.

    page -> Code{Head|Body}<id8>Cfw, site -> Site{Head|Body}<id8>
    """
    assert_target_kind(target_kind)
    assert_location(location)

    safe_id = _NON_ALNUM.sub("", str(target_id))[:8]
    slot = location.capitalize()
    if target_kind == "page":
        return f"Code{slot}{safe_id}Cfw"
    return f"Site{slot}{safe_id}"


def script_version(attempt: int) -> str:
    return f"{BASE_VERSION}.{attempt}"


def register_script_with_retry(
    client: WebflowClient,
    webflow_site_id: str,
    display_name: str,
    source_code: str,
    max_attempts: int,
) -> ScriptRegistration:
    """
    Register an inline script, walking versions 1.0.0, 1.0.1, ... until
    Webflow accepts one.

    Only `duplicate_registered_script` is retried. Any other platform
    error, or running out of attempts, is terminal.
    """
    if max_attempts < 1:
        raise InvariantViolation("max_attempts must be at least 1")

    attempt = 0
    while attempt < max_attempts:
        version = script_version(attempt)
        try:
            response = client.register_inline_script(
                webflow_site_id,
                source_code=source_code,
                display_name=display_name,
                version=version,
            )
        except WebflowAPIError as exc:
            if exc.is_duplicate_script:
                attempt += 1
                current_app.logger.info(
                    f"Duplicate script version {display_name}@{version}, "
                    f"trying {script_version(attempt)}"
                )
                continue
            current_app.logger.warning(f"Script registration for {display_name} rejected: {exc}")
            return {
                "registered": False,
                "script_id": None,
                "version": None,
                "attempts": attempt + 1,
                "error": exc.message,
            }

        script_id = response.get("id")
        if not script_id:
            return {
                "registered": False,
                "script_id": None,
                "version": version,
                "attempts": attempt + 1,
                "error": "Webflow returned no script id",
            }
        return {
            "registered": True,
            "script_id": script_id,
            "version": version,
            "attempts": attempt + 1,
            "error": None,
        }

    current_app.logger.warning(f"Gave up registering {display_name} after {max_attempts} attempts")
    return {
        "registered": False,
        "script_id": None,
        "version": None,
        "attempts": max_attempts,
        "error": f"Failed to register script after {max_attempts} version attempts",
    }


def _register_and_bind(
    client: WebflowClient,
    *,
    target_kind: str,
    target_id,
    location: str,
    webflow_site_id: str,
    bind,
    max_attempts: int,
) -> LoaderResult:
    try:
        source = generate_loader_script(
            target_id,
            target_kind,
            location,
            current_app.config["DELIVERY_ENDPOINT_BASE"],
        )
        display_name = script_display_name(target_kind, location, target_id)

        registration = register_script_with_retry(
            client, webflow_site_id, display_name, source, max_attempts
        )
        if not registration["registered"]:
            return {"registered": False, "scriptId": None, "error": registration["error"]}

        bind(registration["script_id"], location)
    except (WebflowAPIError, InvariantViolation) as exc:
        current_app.logger.error(
            f"Failed to register {target_kind} {location} loader for {target_id}: {exc}"
        )
        return {"registered": False, "scriptId": None, "error": str(exc)}

    return {"registered": True, "scriptId": registration["script_id"], "error": None}


def register_page_loaders(
    client: WebflowClient,
    page: Page,
    site: Site,
    locations: Iterable[str] = LOCATIONS,
) -> Dict[str, LoaderResult]:
    """
    Register + bind head/body loaders for a page.

    A location is only registered when its file list is non-empty.
    Head and body succeed or fail independently.
    """
    max_attempts = current_app.config["PAGE_SCRIPT_MAX_ATTEMPTS"]

    def bind(script_id, location):
        client.upsert_page_custom_code(page.external_page_id, script_id, location, BINDING_VERSION)

    results: Dict[str, LoaderResult] = {}
    for location in LOCATIONS:
        if location not in locations or not page.file_ids(location):
            results[location] = _skipped()
            continue
        results[location] = _register_and_bind(
            client,
            target_kind="page",
            target_id=page.id,
            location=location,
            webflow_site_id=site.external_site_id,
            bind=bind,
            max_attempts=max_attempts,
        )

    _audit_registration(site, "page", page.id, results)
    return results


def register_site_loaders(client: WebflowClient, site: Site) -> Dict[str, LoaderResult]:
    """
    Register + bind site-wide loaders.

    Site custom code has one slot per location, so existing bindings
    are cleared first (best-effort) to avoid orphaned loaders. A crash
    between clear and bind leaves the site with no loader, never two.
    """
    max_attempts = current_app.config["SITE_SCRIPT_MAX_ATTEMPTS"]

    try:
        client.delete_site_custom_code(site.external_site_id)
        current_app.logger.info(f"Cleared existing custom code for site {site.external_site_id}")
    except WebflowAPIError as exc:
        current_app.logger.warning(
            f"Could not clear existing custom code for site {site.external_site_id}: {exc}"
        )

    def bind(script_id, location):
        client.upsert_site_custom_code(site.external_site_id, script_id, location, BINDING_VERSION)

    results: Dict[str, LoaderResult] = {}
    for location in LOCATIONS:
        if not site.file_ids(location):
            results[location] = _skipped()
            site.set_script_id(location, None)
            continue
        results[location] = _register_and_bind(
            client,
            target_kind="site",
            target_id=site.id,
            location=location,
            webflow_site_id=site.external_site_id,
            bind=bind,
            max_attempts=max_attempts,
        )
        # The clear above dropped any previous binding
        site.set_script_id(location, results[location]["scriptId"])

    try:
        with transactional(target=site.id, phase="store_script_ids"):
            db.session.add(site)
    except StorageError as exc:
        current_app.logger.error(
            f"Could not store loader script ids for site {site.external_site_id}: {exc}"
        )

    _audit_registration(site, "site", site.id, results)
    return results


def _audit_registration(site: Site, target_kind: str, target_id, results: Dict[str, LoaderResult]) -> None:
    try:
        with transactional(target=target_id, phase="register_loaders"):
            log_action(
                site_id=site.id,
                action=f"{target_kind}.register_loaders",
                entity_type=target_kind,
                entity_id=target_id,
                payload={location: dict(result) for location, result in results.items()},
            )
    except StorageError as exc:
        # Webflow bindings are already in place; results still go back to the caller
        current_app.logger.error(f"Could not record loader registration for {target_kind} {target_id}: {exc}")
