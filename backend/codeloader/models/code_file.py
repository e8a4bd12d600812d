from codeloader.extensions import db
from .base import BaseModel
from .site_mixin import SiteMixin

class CodeFile(BaseModel, SiteMixin):
    __tablename__ = "files"

    name = db.Column(db.String(255), nullable=False)
    language = db.Column(db.String(10), nullable=False, index=True)  # html | css | js
    code = db.Column(db.Text, nullable=False, default="")
