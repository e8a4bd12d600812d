def normalize_code_file(code_file, include_code=True):
    data = {
        "id": code_file.id,
        "name": code_file.name,
        "language": code_file.language,
        "site_id": code_file.site_id,
        "created_at": code_file.created_at.isoformat() if code_file.created_at else None,
    }

    if include_code:
        data["code"] = code_file.code or ""

    return data
