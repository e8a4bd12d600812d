from .exceptions import InvariantViolation

TARGET_KINDS = ("page", "site")
LOCATIONS = ("head", "body")
LANGUAGES = ("html", "css", "js")


def assert_target_kind(kind):
    if kind not in TARGET_KINDS:
        raise InvariantViolation(
            f"Invalid target type {kind!r}; expected one of {', '.join(TARGET_KINDS)}."
        )


def assert_location(location):
    if location not in LOCATIONS:
        raise InvariantViolation(
            f"Invalid location {location!r}; expected one of {', '.join(LOCATIONS)}."
        )


def assert_language(language):
    if language not in LANGUAGES:
        raise InvariantViolation(
            f"Invalid language {language!r}; expected one of {', '.join(LANGUAGES)}."
        )


def assert_file_list(raw):
    """
    Editor writes must send a JSON list. Shape tolerance for stored data
    lives in normalize_file_ids(); this only rejects non-lists up front.
    """
    if not isinstance(raw, list):
        raise InvariantViolation("File lists must be JSON arrays of file ids.")


def canonical_target_id(target_id) -> int:
    """Local page/site ids are integers; "7", " 7" and 7 share one cache key."""
    if isinstance(target_id, bool):
        raise InvariantViolation(f"Invalid target id {target_id!r}.")
    try:
        return int(str(target_id).strip())
    except (TypeError, ValueError):
        raise InvariantViolation(f"Invalid target id {target_id!r}.")
