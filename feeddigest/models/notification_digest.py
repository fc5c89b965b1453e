from dataclasses import asdict, dataclass
from datetime import datetime

from ..extensions import db
from .base import OrgScopedMixin, TimestampMixin


@dataclass(frozen=True)
class DigestEntry:
    """One pending event inside a digest array, stored as a plain JSON object."""

    # array column the entry lives in
    array = None
    # keys used to find the entry again when it is retracted
    match_keys = ()

    def to_json(self):
        return asdict(self)

    def matches(self, raw):
        return all(raw.get(k) == getattr(self, k) for k in self.match_keys)


@dataclass(frozen=True)
class RecognitionEntry(DigestEntry):
    feed_item_id: int
    author_id: int
    array = "new_recognitions"


@dataclass(frozen=True)
class CommentEntry(DigestEntry):
    comment_id: int
    author_id: int
    feed_item_id: int
    array = "new_comments"


@dataclass(frozen=True)
class FeedItemLikeEntry(DigestEntry):
    feed_item_id: int
    liker_id: int
    array = "new_likes_feed_item"
    match_keys = ("feed_item_id", "liker_id")


@dataclass(frozen=True)
class CommentLikeEntry(DigestEntry):
    comment_id: int
    liker_id: int
    feed_item_id: int
    array = "new_likes_comment"
    match_keys = ("comment_id", "liker_id")


@dataclass(frozen=True)
class FeedItemMentionEntry(DigestEntry):
    feed_item_id: int
    author_id: int
    array = "new_mentions_feed_item"


@dataclass(frozen=True)
class CommentMentionEntry(DigestEntry):
    comment_id: int
    author_id: int
    feed_item_id: int
    array = "new_mentions_comment"


DIGEST_ARRAYS = (
    "new_recognitions",
    "new_comments",
    "new_likes_feed_item",
    "new_likes_comment",
    "new_mentions_feed_item",
    "new_mentions_comment",
)


class NotificationDigest(db.Model, OrgScopedMixin, TimestampMixin):
    """Pending, not yet delivered notifications for one user in one organisation."""
    __tablename__ = "notifications_digest"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    # OrgScopedMixin: org_id
    notification_count = db.Column(db.Integer, nullable=False, default=0)  # denormalised
    new_recognitions = db.Column(db.JSON, nullable=False, default=list)
    new_comments = db.Column(db.JSON, nullable=False, default=list)
    new_likes_feed_item = db.Column(db.JSON, nullable=False, default=list)
    new_likes_comment = db.Column(db.JSON, nullable=False, default=list)
    new_mentions_feed_item = db.Column(db.JSON, nullable=False, default=list)
    new_mentions_comment = db.Column(db.JSON, nullable=False, default=list)
    # only flipped by DigestLock
    busy = db.Column(db.Boolean, nullable=False, default=False)
    trigger_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'org_id', name='uq_notifications_digest_user_org'),
        db.CheckConstraint('notification_count >= 0', name='ck_notifications_digest_count'),
    )

    def entries(self, array):
        return list(getattr(self, array) or [])

    def pending_total(self):
        return sum(len(self.entries(a)) for a in DIGEST_ARRAYS)

    def push(self, entry):
        # reassign so the JSON column is flagged dirty
        setattr(self, entry.array, self.entries(entry.array) + [entry.to_json()])
        self.notification_count = (self.notification_count or 0) + 1

    def pull(self, entry):
        """Remove every entry matching ``entry``'s keys and return how many were removed."""
        current = self.entries(entry.array)
        kept = [raw for raw in current if not entry.matches(raw)]
        removed = len(current) - len(kept)
        setattr(self, entry.array, kept)
        self.notification_count = (self.notification_count or 0) - removed
        return removed

    def __repr__(self):
        return f"<NotificationDigest id={self.id} user_id={self.user_id} org_id={self.org_id} count={self.notification_count}>"
