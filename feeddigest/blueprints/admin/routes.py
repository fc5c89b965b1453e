from flask import current_app, jsonify, request
from flask_login import current_user
from . import bp
from ...extensions import rq
from ...jobs.updates_processor import run_updates_cycle
from ...utils.decorators import super_admin_required


@bp.post("/updates-processor/run")
@super_admin_required
def run_updates_processor():
    """Manually run one updates cycle. For testing; not safe to call concurrently."""
    current_app.logger.info('Manual trigger of UpdatesProcessor by user %s', current_user.id)
    if request.args.get("async") in ("1", "true"):
        job = rq.enqueue(run_updates_cycle, job_timeout=3600)
        if isinstance(job, dict):
            # no redis: ran inline
            return jsonify(job)
        return jsonify({"queued": job.id}), 202
    return jsonify(run_updates_cycle())
