from ..extensions import db
from .base import TimestampMixin

class Organization(db.Model, TimestampMixin):
    __tablename__ = "organizations"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    # sandbox orgs never receive the periodic updates email
    is_demo = db.Column(db.Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Organization id={self.id} name={self.name!r}>"
