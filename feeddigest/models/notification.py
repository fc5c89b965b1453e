from ..extensions import db
from .base import OrgScopedMixin, TimestampMixin

class Notification(db.Model, OrgScopedMixin, TimestampMixin):
    __tablename__ = "notifications"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    type = db.Column(db.String(50))  # "updates"
    sent_to = db.Column(db.String(255))
    subject = db.Column(db.String(255))
    provider_message_id = db.Column(db.String(255))
    status = db.Column(db.String(20), default="sent")  # sent/error
    error = db.Column(db.Text)
    sent_at = db.Column(db.DateTime)
