from .organization import Organization
from .user import User
from .cc_element import CCElement
from .feed_item import FeedItem
from .comment import Comment
from .notification import Notification
from .notification_digest import NotificationDigest
from .updates_digest import UpdatesDigest
