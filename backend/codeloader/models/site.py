from codeloader.extensions import db
from codeloader.domain.file_ids import normalize_file_ids
from .base import BaseModel

class Site(BaseModel):
    __tablename__ = "sites"

    # Webflow identity
    external_site_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    owner = db.Column(db.String(255), nullable=False, default="system")

    # Site-scoped Webflow token, written by the OAuth flow
    access_token = db.Column(db.String(512), nullable=True)

    # Site-wide ordered file lists
    head_files = db.Column(db.JSON, nullable=False, default=list)
    body_files = db.Column(db.JSON, nullable=False, default=list)

    # Registered loader scripts currently bound to the site
    head_script_id = db.Column(db.String(128), nullable=True)
    body_script_id = db.Column(db.String(128), nullable=True)

    pages = db.relationship(
        "Page",
        back_populates="site",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def file_ids(self, location: str) -> list[int]:
        return normalize_file_ids(getattr(self, f"{location}_files"))

    def set_file_ids(self, location: str, raw) -> list[int]:
        ids = normalize_file_ids(raw)
        setattr(self, f"{location}_files", ids)
        return ids

    def set_script_id(self, location: str, script_id):
        setattr(self, f"{location}_script_id", script_id)
