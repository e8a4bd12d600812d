from codeloader.extensions import db
from codeloader.domain.file_ids import normalize_file_ids
from .base import BaseModel
from .site_mixin import SiteMixin

class Page(BaseModel, SiteMixin):
    __tablename__ = "pages"

    external_page_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)

    # Ordered lists of CodeFile ids; order is injection order
    head_files = db.Column(db.JSON, nullable=False, default=list)
    body_files = db.Column(db.JSON, nullable=False, default=list)

    __table_args__ = (
        db.UniqueConstraint("site_id", "external_page_id", name="uq_page_external_id_per_site"),
    )

    site = db.relationship("Site", back_populates="pages")

    def file_ids(self, location: str) -> list[int]:
        return normalize_file_ids(getattr(self, f"{location}_files"))

    def set_file_ids(self, location: str, raw) -> list[int]:
        ids = normalize_file_ids(raw)
        setattr(self, f"{location}_files", ids)
        return ids
