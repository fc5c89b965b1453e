from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from feeddigest.errors import MailError
from feeddigest.extensions import db
from feeddigest.jobs.updates_processor import UpdatesProcessor, eligible_feed_items
from feeddigest.models import Notification, UpdatesDigest
from feeddigest.services.updates_digest import get_and_set_last_sent_at, get_last_sent_at

T0 = datetime(2026, 10, 1, 0, 0, 0)


class FakeMailer:
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def __call__(self, to_email, to_name, subject, html):
        if to_email in self.fail_for:
            raise MailError(f"rejected {to_email}")
        self.sent.append({"to": to_email, "name": to_name, "subject": subject, "html": html})
        return 202, f"msg-{len(self.sent)}"


class CapturingRenderer:
    def __init__(self):
        self.calls = []

    def __call__(self, data):
        self.calls.append(data)
        return "<html>%d items</html>" % len(data["feeds"])


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def renderer():
    return CapturingRenderer()


@pytest.fixture
def processor(mailer, renderer):
    return UpdatesProcessor(mailer=mailer, renderer=renderer)


@pytest.fixture
def team(make_org, make_user):
    org = make_org("Acme")
    a = make_user(org, first_name="Ann", last_name="Lee", email="a@example.com")
    b = make_user(org, first_name="Bob", last_name="Ray", email="b@example.com")
    c = make_user(org, first_name="Cat", last_name="Fox", email="c@example.com")
    return org, a, b, c


def _feed_ids_by_recipient(renderer, mailer):
    out = {}
    for call, sent in zip(renderer.calls, mailer.sent):
        out[sent["to"]] = [feed["link"].rsplit("/", 1)[-1] for feed in call["feeds"]]
    return out


def test_first_cycle_plants_cursor_and_skips(processor, mailer, team, make_feed_item):
    org, a, _, _ = team
    make_feed_item(org, a, created_at=T0 - timedelta(hours=1))

    result = processor.process(now=T0)

    assert result.skipped is True
    assert mailer.sent == []
    assert get_last_sent_at() == T0


def test_window_cursor_read_and_advance(app):
    assert get_and_set_last_sent_at(T0) is None
    assert get_and_set_last_sent_at(T0 + timedelta(days=1)) == T0
    assert get_and_set_last_sent_at(T0 + timedelta(days=2)) == T0 + timedelta(days=1)
    assert db.session.execute(select(UpdatesDigest)).scalars().all()[0].last_sent_at == T0 + timedelta(days=2)


def test_authors_do_not_get_their_own_items(processor, mailer, renderer, team, make_feed_item):
    org, a, b, c = team
    processor.process(now=T0)
    item_a = make_feed_item(org, a, story="A's story", created_at=T0 + timedelta(hours=1))
    item_b = make_feed_item(org, b, story="B's story", created_at=T0 + timedelta(hours=2))

    result = processor.process(now=T0 + timedelta(days=1))

    assert result.emails_sent == 3
    assert result.start == T0
    by_recipient = _feed_ids_by_recipient(renderer, mailer)
    assert by_recipient == {
        "a@example.com": [str(item_b.id)],
        "b@example.com": [str(item_a.id)],
        "c@example.com": [str(item_a.id), str(item_b.id)],
    }


def test_second_cycle_without_new_items_sends_nothing(processor, mailer, team, make_feed_item):
    org, a, _, _ = team
    processor.process(now=T0)
    make_feed_item(org, a, created_at=T0 + timedelta(hours=1))
    processor.process(now=T0 + timedelta(days=1))
    sent_first = len(mailer.sent)

    result = processor.process(now=T0 + timedelta(days=2))

    assert sent_first == 2
    assert result.start == T0 + timedelta(days=1)
    assert result.emails_sent == 0
    assert result.orgs_processed == 0
    assert len(mailer.sent) == sent_first


def test_window_is_half_open(processor, mailer, team, make_feed_item):
    org, a, _, _ = team
    end = T0 + timedelta(days=1)
    processor.process(now=T0)
    make_feed_item(org, a, created_at=T0)   # start is inclusive
    make_feed_item(org, a, created_at=end)  # end is exclusive

    processor.process(now=end)
    assert len(mailer.sent) == 2
    assert all("1 items" in m["html"] for m in mailer.sent)

    # the item stamped at the old end belongs to the next window
    processor.process(now=end + timedelta(days=1))
    assert len(mailer.sent) == 4


def test_mentions_and_recognitions_are_left_out(processor, mailer, renderer, team, make_feed_item):
    org, a, b, c = team
    processor.process(now=T0)
    make_feed_item(org, a, story="hey @[Bob Ray](user:%d)" % b.id, mentions_ids=[b.id],
                   created_at=T0 + timedelta(hours=1))
    make_feed_item(org, a, feed_type="Recognition", note="thanks", recipient_ids=[c.id],
                   created_at=T0 + timedelta(hours=2))

    processor.process(now=T0 + timedelta(days=1))

    by_recipient = _feed_ids_by_recipient(renderer, mailer)
    assert set(by_recipient) == {"b@example.com", "c@example.com"}
    assert len(by_recipient["b@example.com"]) == 1
    assert len(by_recipient["c@example.com"]) == 1
    story_for_c = renderer.calls[[m["to"] for m in mailer.sent].index("c@example.com")]["feeds"][0]
    assert story_for_c["content"] == "hey @Bob Ray"
    assert story_for_c["is_story"] is True


def test_eligible_feed_items_filters(team, make_feed_item):
    org, a, b, c = team
    story = make_feed_item(org, a)
    mention = make_feed_item(org, b, mentions_ids=[c.id])
    recognition = make_feed_item(org, b, feed_type="Recognition", recipient_ids=[a.id])
    items = [story, mention, recognition]

    assert eligible_feed_items(a.id, items) == [mention]
    assert eligible_feed_items(b.id, items) == [story]
    assert eligible_feed_items(c.id, items) == [story, recognition]


def test_demo_orgs_are_skipped(processor, mailer, make_org, make_user, make_feed_item):
    demo = make_org("DEMO")
    sandbox = make_org("Sandbox", is_demo=True)
    for org in (demo, sandbox):
        author = make_user(org)
        make_user(org)
        make_feed_item(org, author, created_at=T0 + timedelta(hours=1))
    processor.process(now=T0)

    result = processor.process(now=T0 + timedelta(days=1))

    assert result.orgs_processed == 0
    assert mailer.sent == []


def test_orgs_without_activity_are_skipped(processor, mailer, team, make_org, make_user, make_feed_item):
    org, a, _, _ = team
    quiet = make_org("Quiet")
    make_user(quiet)
    processor.process(now=T0)
    make_feed_item(org, a, created_at=T0 + timedelta(hours=1))

    result = processor.process(now=T0 + timedelta(days=1))

    assert result.orgs_processed == 1
    assert {m["to"] for m in mailer.sent} == {"b@example.com", "c@example.com"}


def test_mail_failure_does_not_stop_the_cycle(renderer, team, make_feed_item):
    org, a, b, c = team
    mailer = FakeMailer(fail_for={"b@example.com"})
    processor = UpdatesProcessor(mailer=mailer, renderer=renderer)
    processor.process(now=T0)
    make_feed_item(org, a, created_at=T0 + timedelta(hours=1))

    result = processor.process(now=T0 + timedelta(days=1))

    assert result.failed_user_ids == [b.id]
    assert [m["to"] for m in mailer.sent] == ["c@example.com"]
    # the cursor is not rolled back for the failed recipient
    assert get_last_sent_at() == T0 + timedelta(days=1)
    rows = db.session.execute(select(Notification).order_by(Notification.id)).scalars().all()
    assert [(r.user_id, r.status) for r in rows] == [(b.id, "error"), (c.id, "sent")]
    assert "rejected" in rows[0].error


def test_email_data_and_rendering(app, mailer, team, make_feed_item, make_cc_element):
    org, a, b, c = team
    processor = UpdatesProcessor(mailer=mailer)
    cc = make_cc_element(org, title="Be curious", narrative="We ask why.")
    long_story = "x" * 800
    processor.process(now=T0)
    story = make_feed_item(org, a, story=long_story, cc_element_id=cc.id, created_at=T0 + timedelta(hours=1))
    make_feed_item(org, b, feed_type="Recognition", note="Great work", recipient_ids=[c.id],
                   created_at=T0 + timedelta(hours=2))

    data = processor.build_email_data(b, org, [story])
    feed = data["feeds"][0]
    assert data["organisation"] == "Acme"
    assert data["organisation_possessive"] == "Acme's"
    assert data["app_link"] == "http://digest.test/"
    assert feed["author"] == "Ann Lee"
    assert feed["narrative"] == "Be curious: We ask why."
    assert len(feed["content"]) == 500
    assert feed["content"].endswith("...")
    assert feed["link"] == f"http://digest.test/feed/{cc.id}/{story.id}"

    processor.process(now=T0 + timedelta(days=1))
    html_for = {m["to"]: m["html"] for m in mailer.sent}
    assert "Hi Ann," in html_for["a@example.com"]
    assert "<strong>Bob Ray</strong> recognised Cat Fox" in html_for["a@example.com"]
    assert "Great work" in html_for["a@example.com"]
    assert set(html_for) == {"a@example.com", "b@example.com", "c@example.com"}
    assert "Be curious: We ask why." in html_for["b@example.com"]
