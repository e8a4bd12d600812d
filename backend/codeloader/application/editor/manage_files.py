from typing import Any, Dict, List, Tuple

from codeloader.extensions import db
from codeloader.models.code_file import CodeFile
from codeloader.models.page import Page
from codeloader.models.site import Site
from codeloader.domain.errors import NotFoundError
from codeloader.domain.invariants.exceptions import InvariantViolation
from codeloader.domain.invariants.targets import LOCATIONS, assert_language
from codeloader.application.delivery.purge_bundle import purge_targets
from codeloader.utils.audit import log_action
from codeloader.utils.transaction import transactional


ALLOWED_UPDATE_FIELDS = ("name", "language", "code")

# Fields that change delivered bundles; a rename alone does not
BUNDLE_FIELDS = {"language", "code"}


def _get_file(site: Site, file_id: int) -> CodeFile:
    code_file = CodeFile.query.filter_by(id=file_id, site_id=site.id).first()
    if not code_file:
        raise NotFoundError("File not found")
    return code_file


def referencing_targets(site: Site, file_id: int) -> List[Tuple[str, int, str]]:
    """Every (kind, id, location) bundle of `site` that lists `file_id`."""
    targets: List[Tuple[str, int, str]] = []

    for location in LOCATIONS:
        if file_id in site.file_ids(location):
            targets.append(("site", site.id, location))

    for page in Page.query.filter_by(site_id=site.id).order_by(Page.id).all():
        for location in LOCATIONS:
            if file_id in page.file_ids(location):
                targets.append(("page", page.id, location))

    return targets


def create_file(*, site: Site, data: Dict[str, Any]) -> CodeFile:
    """
    Create a code file. It is not delivered anywhere until a page or
    the site lists its id, so nothing needs purging.
    """
    name = data.get("name")
    language = data.get("language")
    code = data.get("code", "")

    if not name or not isinstance(name, str):
        raise InvariantViolation("File name is required")
    assert_language(language)
    if not isinstance(code, str):
        raise InvariantViolation("File code must be a string")

    code_file = CodeFile()
    code_file.site_id = site.id
    code_file.name = name
    code_file.language = language
    code_file.code = code

    with transactional(phase="create_file"):
        db.session.add(code_file)
        db.session.flush()

        log_action(
            site_id=site.id,
            action="file.create",
            entity_type="file",
            entity_id=code_file.id,
            payload={"name": name, "language": language},
        )

    return code_file


def update_file(*, site: Site, file_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Update name/language/code on a file.

    Rules:
    - Only whitelisted fields are mutable
    - No silent no-op updates
    - Code or language changes purge every bundle that lists the file
    """
    code_file = _get_file(site, file_id)

    changed_fields: list[str] = []

    with transactional(target=file_id, phase="update_file"):
        for field in ALLOWED_UPDATE_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if field == "language":
                assert_language(value)
            elif not isinstance(value, str) or (field == "name" and not value):
                raise InvariantViolation(f"Invalid value for {field}")
            if getattr(code_file, field) != value:
                setattr(code_file, field, value)
                changed_fields.append(field)

        if not changed_fields:
            raise InvariantViolation("No valid fields provided for update")

        log_action(
            site_id=site.id,
            action="file.update",
            entity_type="file",
            entity_id=code_file.id,
            payload={"fields": changed_fields},
        )

    purged = 0
    if BUNDLE_FIELDS.intersection(changed_fields):
        purged = purge_targets(referencing_targets(site, code_file.id))

    return {"file": code_file, "changed": changed_fields, "purged": purged}


def delete_file(*, site: Site, file_id: int) -> Dict[str, Any]:
    """
    Delete a file. Lists that still hold its id are left alone; bundle
    assembly skips ids with no file behind them.
    """
    code_file = _get_file(site, file_id)
    targets = referencing_targets(site, code_file.id)

    with transactional(target=file_id, phase="delete_file"):
        db.session.delete(code_file)

        log_action(
            site_id=site.id,
            action="file.delete",
            entity_type="file",
            entity_id=file_id,
            payload={"name": code_file.name, "referenced_by": len(targets)},
        )

    return {"deleted": file_id, "purged": purge_targets(targets)}
