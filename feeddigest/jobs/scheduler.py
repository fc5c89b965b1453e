import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)

UPDATES_JOB_ID = "UpdatesProcessor.process"


def register_updates_processor(scheduler, processor, hour=0, minute=0):
    """Run ``processor`` once a day at hour:minute UTC.

    The caller owns ``processor``; registering the same id again replaces the
    job rather than adding a second one, and max_instances=1 keeps cycles
    from overlapping.
    """
    job = scheduler.add_job(
        processor.run,
        CronTrigger(hour=hour, minute=minute, timezone="UTC"),
        id=UPDATES_JOB_ID,
        name=f"Daily updates email at {hour:02d}:{minute:02d} UTC",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    logger.info("registered %s, next run %s", UPDATES_JOB_ID, getattr(job, "next_run_time", None))
    return job


def create_scheduler(app, processor, scheduler_class=BackgroundScheduler):
    scheduler = scheduler_class(timezone="UTC")
    register_updates_processor(
        scheduler,
        processor,
        hour=app.config.get("UPDATES_CRON_HOUR", 0),
        minute=app.config.get("UPDATES_CRON_MINUTE", 0),
    )
    return scheduler
