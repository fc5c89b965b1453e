"""Scheduler host: runs the daily updates email.

Usage:
  source .venv/bin/activate
  python scripts/run_scheduler.py

Start exactly one of these per deployment. The process builds a single
UpdatesProcessor and hands it to the scheduler; cycles never overlap.
"""

import logging
import os
import sys

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from apscheduler.schedulers.blocking import BlockingScheduler

from feeddigest import create_app
from feeddigest.jobs.scheduler import create_scheduler
from feeddigest.jobs.updates_processor import UpdatesProcessor

logger = logging.getLogger(__name__)


def main():
    app = create_app()
    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    processor = UpdatesProcessor(app)
    scheduler = create_scheduler(app, processor, scheduler_class=BlockingScheduler)
    logger.info('scheduler starting (pid %s)', os.getpid())
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info('scheduler stopped')


if __name__ == '__main__':
    main()
