from ..extensions import db
from flask_login import UserMixin
from .base import OrgScopedMixin, TimestampMixin

class User(db.Model, UserMixin, OrgScopedMixin, TimestampMixin):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    first_name = db.Column(db.String(80), nullable=False, default="")
    last_name = db.Column(db.String(80), nullable=False, default="")
    role = db.Column(db.String(50), default="member")  # member/admin/super-admin
    # per-user host override for links in emails (custom domains)
    url_root = db.Column(db.String(255))

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def has_authority(self, roles):
        return self.role in roles
