def normalize_page(page):
    return {
        "id": page.id,
        "external_page_id": page.external_page_id,
        "site_id": page.site_id,
        "name": page.name,
        "head_files": page.file_ids("head"),
        "body_files": page.file_ids("body"),
        "created_at": page.created_at.isoformat() if page.created_at else None,
    }
