import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models.updates_digest import CURSOR_ID, UpdatesDigest

logger = logging.getLogger(__name__)


def get_last_sent_at():
    cursor = db.session.get(UpdatesDigest, CURSOR_ID)
    return cursor.last_sent_at if cursor else None


def get_and_set_last_sent_at(end_date_window):
    """Claim the window ending at ``end_date_window``.

    Returns the previous ``last_sent_at`` (the start of the window) and moves
    the cursor to ``end_date_window`` in the same committed transaction. The
    very first call only plants the cursor and returns None.
    """
    cursor = db.session.execute(
        select(UpdatesDigest).where(UpdatesDigest.id == CURSOR_ID).with_for_update()
    ).scalar_one_or_none()
    if cursor is None:
        try:
            db.session.add(UpdatesDigest(id=CURSOR_ID, last_sent_at=end_date_window))
            db.session.commit()
        except IntegrityError:
            # another host planted it between our select and insert
            db.session.rollback()
            return get_and_set_last_sent_at(end_date_window)
        logger.info('updates cursor initialised at %s', end_date_window)
        return None

    start_date_window = cursor.last_sent_at
    cursor.last_sent_at = end_date_window
    db.session.commit()
    return start_date_window
