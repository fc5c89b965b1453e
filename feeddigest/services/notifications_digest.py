import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from ..errors import InvalidArgument
from ..extensions import db
from ..models.comment import Comment
from ..models.feed_item import FeedItem
from ..models.notification_digest import (
    DIGEST_ARRAYS,
    CommentEntry,
    CommentLikeEntry,
    CommentMentionEntry,
    FeedItemLikeEntry,
    FeedItemMentionEntry,
    NotificationDigest,
    RecognitionEntry,
)
from .digest_lock import DigestLock

logger = logging.getLogger(__name__)


class NotificationsDigestService:
    """Write API for per-user notification digests.

    Each operation resolves the organisation from the originating comment or
    feed item, then updates every recipient's digest independently under that
    digest's own mutex. There is no atomicity across recipients.
    """

    def __init__(self, lock=None):
        self.lock = lock or DigestLock()

    # helpers

    @staticmethod
    def _coerce_id(value, name, caller):
        """Integer id from an int or a numeric string, as callers pass either."""
        if isinstance(value, bool):
            raise InvalidArgument(f"{name} must be an integer id in {caller}(), got {value!r}")
        if isinstance(value, str):
            value = value.strip()
        try:
            return int(value)
        except (TypeError, ValueError):
            raise InvalidArgument(f"{name} must be an integer id in {caller}(), got {value!r}") from None

    @classmethod
    def _check_recipient_ids(cls, recipient_ids, caller):
        if not isinstance(recipient_ids, (list, tuple)):
            raise InvalidArgument(f"recipient_ids must be a list in {caller}()")
        return [cls._coerce_id(r, 'recipient_ids', caller) for r in recipient_ids]

    @classmethod
    def _get_comment(cls, comment_id, caller):
        comment = db.session.get(Comment, cls._coerce_id(comment_id, 'comment_id', caller))
        if comment is None:
            raise InvalidArgument(f"unknown comment {comment_id} in {caller}()")
        return comment

    @classmethod
    def _get_feed_item(cls, feed_item_id, caller):
        feed_item = db.session.get(FeedItem, cls._coerce_id(feed_item_id, 'feed_item_id', caller))
        if feed_item is None:
            raise InvalidArgument(f"unknown feed item {feed_item_id} in {caller}()")
        return feed_item

    def get_digest_id_for_user(self, user_id, org_id):
        """Return the digest id for (user, org), creating the record on first touch.

        Insert-if-absent against the (user_id, org_id) unique index, so two
        callers racing on the first event for a user still end up with one row.
        """
        values = dict(
            user_id=user_id,
            org_id=org_id,
            notification_count=0,
            trigger_at=datetime.utcnow(),
            busy=False,
            **{array: [] for array in DIGEST_ARRAYS},
        )
        dialect_name = db.session.get_bind().dialect.name
        if dialect_name == "postgresql":
            stmt = pg_insert(NotificationDigest).values(**values).on_conflict_do_nothing(
                index_elements=["user_id", "org_id"]
            )
            db.session.execute(stmt)
        elif dialect_name == "sqlite":
            stmt = sqlite_insert(NotificationDigest).values(**values).on_conflict_do_nothing(
                index_elements=["user_id", "org_id"]
            )
            db.session.execute(stmt)
        else:
            try:
                with db.session.begin_nested():
                    db.session.execute(NotificationDigest.__table__.insert().values(**values))
            except IntegrityError:
                pass  # someone else created it first
        digest_id = db.session.execute(
            select(NotificationDigest.id).where(
                NotificationDigest.user_id == user_id,
                NotificationDigest.org_id == org_id,
            )
        ).scalar_one()
        db.session.commit()
        return digest_id

    def get_digest(self, user_id, org_id):
        return db.session.execute(
            select(NotificationDigest).where(
                NotificationDigest.user_id == user_id,
                NotificationDigest.org_id == org_id,
            )
        ).scalar_one_or_none()

    def _update_with_inc(self, recipient_ids, org_id, entry, trigger_now=False):
        digest_ids = []
        for recipient in recipient_ids:
            digest_id = self.get_digest_id_for_user(recipient, org_id)

            def work(digest_id=digest_id):
                digest = db.session.get(NotificationDigest, digest_id, populate_existing=True)
                digest.push(entry)
                if trigger_now:
                    digest.trigger_at = datetime.utcnow()

            self.lock.with_lock(digest_id, work)
            digest_ids.append(digest_id)
        return digest_ids

    def _update_with_dec(self, recipient_ids, org_id, entry):
        # count and removal happen in one critical section so a concurrent
        # push of the same key can't slip in between them
        digest_ids = []
        for recipient in recipient_ids:
            digest_id = self.get_digest_id_for_user(recipient, org_id)

            def work(digest_id=digest_id):
                digest = db.session.get(NotificationDigest, digest_id, populate_existing=True)
                return digest.pull(entry)

            removed = self.lock.with_lock(digest_id, work)
            logger.debug('digest %s: removed %d %s entries', digest_id, removed, entry.array)
            digest_ids.append(digest_id)
        return digest_ids

    # API

    def add_new_comment(self, recipient_ids, comment_id):
        recipient_ids = self._check_recipient_ids(recipient_ids, 'add_new_comment')
        comment = self._get_comment(comment_id, 'add_new_comment')
        logger.info('new comment %s for %d recipients', comment_id, len(recipient_ids))
        return self._update_with_inc(
            recipient_ids,
            comment.org_id,
            CommentEntry(comment_id=comment.id, author_id=comment.author_id, feed_item_id=comment.feed_item_id),
        )

    def add_new_like_feed_item(self, recipient_ids, feed_item_id, liker_id):
        recipient_ids = self._check_recipient_ids(recipient_ids, 'add_new_like_feed_item')
        liker_id = self._coerce_id(liker_id, 'liker_id', 'add_new_like_feed_item')
        feed_item = self._get_feed_item(feed_item_id, 'add_new_like_feed_item')
        logger.info('new like on feed item %s by %s for %d recipients', feed_item_id, liker_id, len(recipient_ids))
        # rapid like/unlike toggling can push duplicates; consumers dedup
        return self._update_with_inc(
            recipient_ids,
            feed_item.org_id,
            FeedItemLikeEntry(feed_item_id=feed_item.id, liker_id=liker_id),
        )

    def remove_like_feed_item(self, recipient_ids, feed_item_id, liker_id):
        recipient_ids = self._check_recipient_ids(recipient_ids, 'remove_like_feed_item')
        liker_id = self._coerce_id(liker_id, 'liker_id', 'remove_like_feed_item')
        feed_item = self._get_feed_item(feed_item_id, 'remove_like_feed_item')
        logger.info('like removed on feed item %s by %s for %d recipients', feed_item_id, liker_id, len(recipient_ids))
        # may find nothing if the digest was already sent
        return self._update_with_dec(
            recipient_ids,
            feed_item.org_id,
            FeedItemLikeEntry(feed_item_id=feed_item.id, liker_id=liker_id),
        )

    def add_new_like_comment(self, recipient_ids, comment_id, liker_id):
        recipient_ids = self._check_recipient_ids(recipient_ids, 'add_new_like_comment')
        liker_id = self._coerce_id(liker_id, 'liker_id', 'add_new_like_comment')
        comment = self._get_comment(comment_id, 'add_new_like_comment')
        logger.info('new like on comment %s by %s for %d recipients', comment_id, liker_id, len(recipient_ids))
        return self._update_with_inc(
            recipient_ids,
            comment.org_id,
            CommentLikeEntry(comment_id=comment.id, liker_id=liker_id, feed_item_id=comment.feed_item_id),
        )

    def remove_like_comment(self, recipient_ids, comment_id, liker_id):
        recipient_ids = self._check_recipient_ids(recipient_ids, 'remove_like_comment')
        liker_id = self._coerce_id(liker_id, 'liker_id', 'remove_like_comment')
        comment = self._get_comment(comment_id, 'remove_like_comment')
        logger.info('like removed on comment %s by %s for %d recipients', comment_id, liker_id, len(recipient_ids))
        return self._update_with_dec(
            recipient_ids,
            comment.org_id,
            CommentLikeEntry(comment_id=comment.id, liker_id=liker_id, feed_item_id=comment.feed_item_id),
        )

    def add_new_recognition(self, recipient_ids, feed_item_id):
        recipient_ids = self._check_recipient_ids(recipient_ids, 'add_new_recognition')
        feed_item = self._get_feed_item(feed_item_id, 'add_new_recognition')
        logger.info('new recognition %s for %d recipients', feed_item_id, len(recipient_ids))
        return self._update_with_inc(
            recipient_ids,
            feed_item.org_id,
            RecognitionEntry(feed_item_id=feed_item.id, author_id=feed_item.author_id),
            trigger_now=True,
        )

    def add_new_mention_in_feed_item(self, recipient_ids, feed_item_id):
        recipient_ids = self._check_recipient_ids(recipient_ids, 'add_new_mention_in_feed_item')
        feed_item = self._get_feed_item(feed_item_id, 'add_new_mention_in_feed_item')
        logger.info('new mention in feed item %s for %d recipients', feed_item_id, len(recipient_ids))
        return self._update_with_inc(
            recipient_ids,
            feed_item.org_id,
            FeedItemMentionEntry(feed_item_id=feed_item.id, author_id=feed_item.author_id),
            trigger_now=True,
        )

    def add_new_mention_in_comment(self, recipient_ids, comment_id):
        recipient_ids = self._check_recipient_ids(recipient_ids, 'add_new_mention_in_comment')
        comment = self._get_comment(comment_id, 'add_new_mention_in_comment')
        logger.info('new mention in comment %s for %d recipients', comment_id, len(recipient_ids))
        return self._update_with_inc(
            recipient_ids,
            comment.org_id,
            CommentMentionEntry(comment_id=comment.id, author_id=comment.author_id, feed_item_id=comment.feed_item_id),
            trigger_now=True,
        )
