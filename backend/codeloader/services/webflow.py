"""Webflow Data API v2 client (pages + custom code)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests
from flask import current_app

logger = logging.getLogger(__name__)

DUPLICATE_SCRIPT_CODE = "duplicate_registered_script"
PAGE_LIMIT = 100

# Webflow names the two custom-code slots header/footer
LOCATION_SLOTS = {"head": "header", "body": "footer"}


class WebflowAPIError(Exception):
    """Non-2xx response from Webflow, with the platform's error code preserved."""

    def __init__(self, status_code: int, code: Optional[str], message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message

    @property
    def is_duplicate_script(self) -> bool:
        return self.code == DUPLICATE_SCRIPT_CODE

    def __str__(self) -> str:
        if self.code:
            return f"Webflow API error {self.status_code} ({self.code}): {self.message}"
        return f"Webflow API error {self.status_code}: {self.message}"


class WebflowClient:
    """
    Thin wrapper over requests.Session.

    Every call is single-shot and bounded by `timeout`; retries belong
    to the callers that know which errors are retryable.
    """

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = "https://api.webflow.com/v2",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {access_token}",
            "accept": "application/json",
            "Content-Type": "application/json",
        })

    @classmethod
    def from_config(cls, config, access_token: str) -> "WebflowClient":
        return cls(
            access_token,
            base_url=config["WEBFLOW_API_BASE"],
            timeout=config["WEBFLOW_TIMEOUT"],
        )

    # -------------------------------------------------
    # Transport
    # -------------------------------------------------
    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            raise WebflowAPIError(504, "timeout", f"{method} {path} timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise WebflowAPIError(502, "network_error", f"{method} {path} failed: {exc}") from exc

        if not resp.ok:
            code, message = None, resp.text or resp.reason
            try:
                body = resp.json()
                if isinstance(body, dict):
                    code = body.get("code")
                    message = body.get("message") or message
            except ValueError:
                pass
            raise WebflowAPIError(resp.status_code, code, message)

        if resp.status_code == 204 or not resp.content:
            return {}
        return resp.json()

    # -------------------------------------------------
    # Pages
    # -------------------------------------------------
    def list_pages(self, site_id: str) -> List[Dict[str, Any]]:
        """
        Fetch every page of a site, following offset/limit pagination.
        """
        pages: List[Dict[str, Any]] = []
        offset = 0

        while True:
            data = self._request(
                "GET",
                f"/sites/{site_id}/pages",
                params={"offset": offset, "limit": PAGE_LIMIT},
            )
            batch = data.get("pages") or []
            pages.extend(batch)

            total = (data.get("pagination") or {}).get("total")
            offset += len(batch)
            if not batch or total is None or offset >= total:
                break

        logger.debug(f"Listed {len(pages)} Webflow pages for site {site_id}")
        return pages

    # -------------------------------------------------
    # Registered scripts
    # -------------------------------------------------
    def register_inline_script(
        self,
        site_id: str,
        *,
        source_code: str,
        display_name: str,
        version: str,
    ) -> Dict[str, Any]:
        return self._request(
            "POST",
            f"/sites/{site_id}/registered_scripts/inline",
            json={
                "sourceCode": source_code,
                "displayName": display_name,
                "version": version,
            },
        )

    # -------------------------------------------------
    # Custom code bindings
    # -------------------------------------------------
    @staticmethod
    def _merge_binding(existing: List[Dict[str, Any]], script_id: str, location: str, version: str):
        scripts = [
            {"id": s["id"], "location": s["location"], "version": s["version"]}
            for s in existing
            if s.get("id") != script_id
        ]
        scripts.append({"id": script_id, "location": LOCATION_SLOTS[location], "version": version})
        return scripts

    def get_page_custom_code(self, page_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/pages/{page_id}/custom_code").get("scripts") or []

    def upsert_page_custom_code(self, page_id: str, script_id: str, location: str, version: str) -> None:
        scripts = self._merge_binding(self.get_page_custom_code(page_id), script_id, location, version)
        self._request("PUT", f"/pages/{page_id}/custom_code", json={"scripts": scripts})

    def get_site_custom_code(self, site_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/sites/{site_id}/custom_code").get("scripts") or []

    def upsert_site_custom_code(self, site_id: str, script_id: str, location: str, version: str) -> None:
        scripts = self._merge_binding(self.get_site_custom_code(site_id), script_id, location, version)
        self._request("PUT", f"/sites/{site_id}/custom_code", json={"scripts": scripts})

    def delete_site_custom_code(self, site_id: str) -> None:
        self._request("DELETE", f"/sites/{site_id}/custom_code")


def client_for_site(site) -> WebflowClient:
    """Build a client from app config using the site's stored token."""
    if not site.access_token:
        raise WebflowAPIError(401, "not_authorized", f"Site {site.external_site_id} has no Webflow access token")
    return WebflowClient.from_config(current_app.config, site.access_token)
