import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import List, Optional

from flask import current_app
from sqlalchemy import select

from ..extensions import db
from ..models.cc_element import CCElement
from ..models.feed_item import FeedItem
from ..models.notification import Notification
from ..models.organization import Organization
from ..models.user import User
from ..services.mail import send_update
from ..services.paths import absolute_url, build_url_root, complete_url
from ..services.render import render_update_email
from ..services.strings import comma_list_of_names_plain, compile_markup, possessive, trim_with_ellipses
from ..services.updates_digest import get_and_set_last_sent_at

logger = logging.getLogger(__name__)

ORG_NAME_TRIM_LENGTH = 50


@dataclass
class CycleResult:
    end: datetime
    start: Optional[datetime] = None
    skipped: bool = False
    orgs_processed: int = 0
    emails_sent: int = 0
    failed_user_ids: List[int] = field(default_factory=list)

    def to_dict(self):
        out = asdict(self)
        out['start'] = self.start.isoformat() if self.start else None
        out['end'] = self.end.isoformat()
        return out


def eligible_feed_items(user_id, feed_items):
    """Feed items worth telling ``user_id`` about in the periodic summary.

    Leaves out what the user wrote, what mentions them and recognitions they
    received; those already reach the user through the notifications digest.
    """
    return [
        item for item in feed_items
        if item.author_id != user_id
        and not item.mentions(user_id)
        and not item.recognises(user_id)
    ]


class UpdatesProcessor:
    """Sends each user a periodic email of new stories and recognitions.

    One instance per scheduler host; ``process`` is not safe to run
    concurrently with itself.
    """

    def __init__(self, app=None, mailer=None, renderer=None, clock=None):
        self.app = app
        self.mailer = mailer or send_update
        self.renderer = renderer or render_update_email
        self.clock = clock or datetime.utcnow

    def run(self):
        """Scheduler entry point: one cycle inside the app context."""
        with self.app.app_context():
            return self.process()

    def _is_demo(self, org):
        return org.is_demo or org.name == current_app.config.get('DEMO_ORG_NAME', 'DEMO')

    def _feeds_in_window(self, org_id, start, end):
        return db.session.execute(
            select(FeedItem)
            .where(FeedItem.org_id == org_id, FeedItem.created_at >= start, FeedItem.created_at < end)
            .order_by(FeedItem.created_at, FeedItem.id)
        ).scalars().all()

    def process(self, now=None):
        end_date_window = now or self.clock()
        # the cursor moves before any email goes out: a crash mid-cycle loses
        # the rest of this window rather than sending it twice
        start_date_window = get_and_set_last_sent_at(end_date_window)
        result = CycleResult(end=end_date_window, start=start_date_window)
        if start_date_window is None:
            logger.info('no updates window established yet, skipping this cycle')
            result.skipped = True
            return result

        logger.info('updates window %s -- %s', start_date_window, end_date_window)
        orgs = db.session.execute(select(Organization).order_by(Organization.id)).scalars().all()
        for org in orgs:
            feeds_in_window = self._feeds_in_window(org.id, start_date_window, end_date_window)
            if not feeds_in_window:
                logger.info('No updates for %s', org.name)
                continue
            if self._is_demo(org):
                logger.info('Skipping %d feeds to update for %s (demo org)', len(feeds_in_window), org.name)
                continue

            logger.info('%d feeds to update for %s', len(feeds_in_window), org.name)
            result.orgs_processed += 1
            users = db.session.execute(
                select(User).where(User.org_id == org.id).order_by(User.id)
            ).scalars().all()
            for user in users:
                feeds_to_update = eligible_feed_items(user.id, feeds_in_window)
                if not feeds_to_update:
                    continue
                try:
                    self._send(user, org, feeds_to_update)
                    result.emails_sent += 1
                except Exception as e:
                    # no retry and no cursor rollback: this user misses this window
                    logger.exception('Update to user %s in %s failed', user.id, org.name)
                    db.session.rollback()
                    self._record(user, org, status='error', error=str(e))
                    result.failed_user_ids.append(user.id)
        return result

    def _subject(self):
        return f"What's been happening on {current_app.config.get('MAIL_FROM_NAME', 'Feed Digest')}"

    def build_email_data(self, recipient, organisation, feeds_to_update):
        url_root = build_url_root(recipient)
        return {
            'logo': absolute_url('/images/logo-email.jpg'),
            'organisation': trim_with_ellipses(organisation.name, ORG_NAME_TRIM_LENGTH),
            'organisation_possessive': possessive(organisation.name),
            'app_link': complete_url(url_root, '/'),
            'recipient': {'first_name': recipient.first_name, 'last_name': recipient.last_name},
            'feeds': [self._feed_item_data(recipient.id, feed, organisation.id, url_root) for feed in feeds_to_update],
        }

    def _send(self, recipient, organisation, feeds_to_update):
        data = self.build_email_data(recipient, organisation, feeds_to_update)
        html = self.renderer(data)
        subject = self._subject()
        status, message_id = self.mailer(recipient.email, recipient.full_name, subject, html)
        self._record(recipient, organisation, status='sent', subject=subject, provider_message_id=message_id)
        logger.info('Update to %s <%s> (%s)', recipient.full_name, recipient.email, status)

    def _record(self, recipient, organisation, status, subject=None, provider_message_id=None, error=None):
        n = Notification(org_id=organisation.id, user_id=recipient.id, type='updates',
                         sent_to=recipient.email, subject=subject or self._subject(),
                         provider_message_id=str(provider_message_id or ''),
                         status=status, error=error, sent_at=datetime.utcnow())
        db.session.add(n)
        db.session.commit()

    def _feed_item_data(self, recipient_id, feed_item, org_id, url_root):
        cfg = current_app.config
        primary = cfg.get('ITEM_TRIM_LENGTH_PRIMARY', 500)
        secondary = cfg.get('ITEM_TRIM_LENGTH_SECONDARY', 250)
        cc_element = db.session.get(CCElement, feed_item.cc_element_id) if feed_item.cc_element_id else None
        author = db.session.get(User, feed_item.author_id)
        data = {
            'author': author.full_name if author else '',
            'narrative': trim_with_ellipses(cc_element.narrative_printable(), secondary) if cc_element else '',
        }
        if feed_item.is_recognition:
            data['is_recognition'] = True
            if feed_item.note:
                data['content'] = trim_with_ellipses(compile_markup(feed_item.note), primary)
            recognition_recipients = db.session.execute(
                select(User)
                .where(User.org_id == org_id, User.id.in_(feed_item.recipient_ids or []))
                .order_by(User.first_name, User.last_name)
            ).scalars().all()
            data['recognition_recipients'] = comma_list_of_names_plain(recognition_recipients, recipient_id)
        else:
            data['is_story'] = True
            if feed_item.story:
                data['content'] = trim_with_ellipses(compile_markup(feed_item.story), primary)
        cc_segment = cc_element.id if cc_element else '-'
        data['link'] = complete_url(url_root, f'/feed/{cc_segment}/{feed_item.id}')
        return data


def run_updates_cycle():
    """RQ / manual-trigger job body; expects an app context."""
    return UpdatesProcessor().process().to_dict()
