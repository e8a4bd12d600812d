def normalize_site(site):
    # access_token never leaves the server
    return {
        "id": site.id,
        "external_site_id": site.external_site_id,
        "owner": site.owner,
        "head_files": site.file_ids("head"),
        "body_files": site.file_ids("body"),
        "head_script_id": site.head_script_id,
        "body_script_id": site.body_script_id,
    }
