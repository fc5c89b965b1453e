from ..extensions import db

CURSOR_ID = 1


class UpdatesDigest(db.Model):
    """Single-row cursor: end of the last window handed to the updates processor."""
    __tablename__ = "updates_digest"
    id = db.Column(db.Integer, primary_key=True)
    last_sent_at = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), onupdate=db.func.now())
