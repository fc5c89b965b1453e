import logging

from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from redis import Redis
from redis.exceptions import RedisError
from rq import Queue

logger = logging.getLogger(__name__)

# keyword arguments understood by Queue.enqueue but not by the job function
RQ_KEYS = {'job_timeout', 'timeout', 'at_front', 'depends_on', 'result_ttl', 'ttl', 'meta', 'description'}


class RQWrapper:
    def __init__(self):
        self.redis = None
        self.queue = None

    def init_app(self, app):
        url = app.config.get("REDIS_URL")
        if not url:
            # no redis configured (tests, dev machine): run jobs inline
            self.redis = None
            self.queue = None
            return
        self.redis = Redis.from_url(url)
        self.queue = Queue("default", connection=self.redis)

    def _run_inline(self, func, *args, **kwargs):
        safe_kwargs = {k: v for k, v in kwargs.items() if k not in RQ_KEYS}
        return func(*args, **safe_kwargs)

    def enqueue(self, func, *args, **kwargs):
        """Enqueue on RQ, or call ``func`` synchronously when redis is unavailable."""
        if not self.queue:
            return self._run_inline(func, *args, **kwargs)
        try:
            return self.queue.enqueue(func, *args, **kwargs)
        except RedisError:
            logger.exception('RQ enqueue of %s failed, falling back to sync execution', getattr(func, '__name__', func))
            return self._run_inline(func, *args, **kwargs)


db = SQLAlchemy()
login_manager = LoginManager()
rq = RQWrapper()
