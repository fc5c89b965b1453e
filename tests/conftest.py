import os
import sys
from datetime import datetime

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from config import TestConfig
from feeddigest import create_app
from feeddigest.extensions import db
from feeddigest.models import CCElement, Comment, FeedItem, Organization, User


@pytest.fixture
def app(tmp_path):
    # file database so worker threads get their own connections
    class Config(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'digest.db'}"

    app = create_app(Config)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def make_org(app):
    def _make(name="Acme", is_demo=False):
        org = Organization(name=name, is_demo=is_demo)
        db.session.add(org)
        db.session.commit()
        return org
    return _make


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(org, first_name="User", last_name=None, role="member", email=None):
        counter["n"] += 1
        user = User(org_id=org.id, first_name=first_name, last_name=last_name or str(counter["n"]),
                    email=email or f"user{counter['n']}@example.com", role=role)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def make_feed_item(app):
    def _make(org, author, feed_type="Story", created_at=None, **kwargs):
        item = FeedItem(org_id=org.id, author_id=author.id, feed_type=feed_type,
                        created_at=created_at or datetime.utcnow(), **kwargs)
        db.session.add(item)
        db.session.commit()
        return item
    return _make


@pytest.fixture
def make_comment(app):
    def _make(feed_item, author, body="nice one"):
        comment = Comment(org_id=feed_item.org_id, feed_item_id=feed_item.id, author_id=author.id, body=body)
        db.session.add(comment)
        db.session.commit()
        return comment
    return _make


@pytest.fixture
def make_cc_element(app):
    def _make(org, title="Be curious", narrative="We ask why."):
        el = CCElement(org_id=org.id, title=title, narrative=narrative)
        db.session.add(el)
        db.session.commit()
        return el
    return _make


def run_in_threads(app, target, args_list):
    """Run ``target(*args)`` for each args tuple on its own thread and app context.

    Returns (results, errors) in completion order.
    """
    import threading

    results, errors = [], []
    guard = threading.Lock()
    start = threading.Barrier(len(args_list))

    def runner(args):
        with app.app_context():
            try:
                start.wait()
                value = target(*args)
                with guard:
                    results.append(value)
            except Exception as e:  # collected and asserted on by the test
                with guard:
                    errors.append(e)

    threads = [threading.Thread(target=runner, args=(args,)) for args in args_list]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results, errors
