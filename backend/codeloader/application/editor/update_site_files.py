from typing import Any, Callable, Dict

from codeloader.models.site import Site
from codeloader.services.webflow import WebflowClient, client_for_site
from codeloader.application.delivery.purge_bundle import purge_bundle
from codeloader.application.editor.update_page_files import apply_file_lists, register_for_target
from codeloader.application.scripts.register_loaders import register_site_loaders
from codeloader.utils.audit import log_action
from codeloader.utils.transaction import transactional


def update_site_files(
    *,
    site: Site,
    data: Dict[str, Any],
    client_factory: Callable[[Site], WebflowClient] = client_for_site,
) -> Dict[str, Any]:
    """
    Editor write path for the site-wide file lists.

    Same ordering as page updates, but site loaders are always cleared
    and re-registered together since Webflow keeps one site slot per
    location.
    """
    with transactional(target=site.id, phase="update_site_files"):
        changed = apply_file_lists(site, data)
        if changed:
            log_action(
                site_id=site.id,
                action="site.update_files",
                entity_type="site",
                entity_id=site.id,
                payload={location: site.file_ids(location) for location in changed},
            )

    purged = {location: purge_bundle("site", site.id, location) for location in changed}

    code_loader = None
    if changed:
        code_loader = register_for_target(
            site,
            client_factory,
            lambda client: register_site_loaders(client, site),
            [location for location in changed if site.file_ids(location)],
        )

    return {
        "site": site,
        "changed": changed,
        "purged": purged,
        "code_loader": code_loader,
    }
