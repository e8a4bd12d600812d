import re
from typing import Any, Mapping

HOME_SLUGS = {"", "/", "index"}

_WORD_START = re.compile(r"\b\w")


def kebab_to_title(value: str) -> str:
    """'about-us' -> 'About Us'"""
    return _WORD_START.sub(lambda m: m.group(0).upper(), value.strip().replace("-", " "))


def _text(record: Mapping[str, Any], field: str):
    value = record.get(field)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def extract_page_name(record: Mapping[str, Any]) -> str:
    """
    Pick the best human name for a remote page record.

    Priority (first match wins):
    displayName > name > title > seoTitle > home slug > last slug
    segment > whole slug > id heuristics > "Unnamed Page (<id8>)".

    Pure function of the record.
    """
    for field in ("displayName", "name", "title", "seoTitle"):
        text = _text(record, field)
        if text:
            return text

    slug = record.get("slug")
    if isinstance(slug, str) and slug in HOME_SLUGS:
        return "Home Page"

    if isinstance(slug, str):
        if "/" in slug:
            segment = slug.split("/")[-1]
            if segment.strip():
                return kebab_to_title(segment)
        if slug.strip():
            return kebab_to_title(slug)

    page_id = str(record.get("id") or "")
    if "404" in page_id:
        return "404 Page"
    if "not-found" in page_id:
        return "Not Found Page"

    return f"Unnamed Page ({page_id[:8]})"
