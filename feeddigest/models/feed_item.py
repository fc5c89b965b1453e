from datetime import datetime

from ..extensions import db
from .base import OrgScopedMixin

FEED_TYPE_STORY = "Story"
FEED_TYPE_RECOGNITION = "Recognition"


class FeedItem(db.Model, OrgScopedMixin):
    __tablename__ = "feed_items"
    id = db.Column(db.Integer, primary_key=True)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    cc_element_id = db.Column(db.Integer, db.ForeignKey("cc_elements.id"))
    feed_type = db.Column(db.String(20), nullable=False, default=FEED_TYPE_STORY)  # Story/Recognition
    story = db.Column(db.Text)
    note = db.Column(db.Text)  # Recognition body
    mentions_ids = db.Column(db.JSON)   # [user_id, ...]
    recipient_ids = db.Column(db.JSON)  # Recognition recipients
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    @property
    def is_recognition(self):
        return self.feed_type == FEED_TYPE_RECOGNITION

    def mentions(self, user_id):
        return user_id in (self.mentions_ids or [])

    def recognises(self, user_id):
        return self.is_recognition and user_id in (self.recipient_ids or [])

    def __repr__(self) -> str:
        return f"<FeedItem id={self.id} type={self.feed_type} org_id={self.org_id}>"
