from ..extensions import db
from .base import OrgScopedMixin, TimestampMixin

class Comment(db.Model, OrgScopedMixin, TimestampMixin):
    __tablename__ = "comments"
    id = db.Column(db.Integer, primary_key=True)
    feed_item_id = db.Column(db.Integer, db.ForeignKey("feed_items.id"), nullable=False, index=True)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    body = db.Column(db.Text)
