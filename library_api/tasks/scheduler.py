# library_api/tasks/scheduler.py
from __future__ import annotations

import atexit
import os

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger


def start_scheduler(app):
    """
    Runs the housekeeping job in the background.
    - Skipped when SCHEDULER_ENABLED is off (tests, one-off CLI commands).
    - Only the real process starts it under the debug reloader.
    - Shut down when the interpreter exits.
    """
    if not app.config.get("SCHEDULER_ENABLED", True):
        return None

    # the reloader parent process has WERKZEUG_RUN_MAIN unset
    if app.debug and os.environ.get("WERKZEUG_RUN_MAIN") != "true":
        app.logger.info("[scheduler] Debug reloader secondary process: scheduler skipped.")
        return None

    from library_api.tasks.housekeeping import run_housekeeping_job

    minutes = app.config.get("HOUSEKEEPING_INTERVAL_MINUTES", 30)
    scheduler = BackgroundScheduler(timezone="UTC")

    def _job_wrapper():
        try:
            run_housekeeping_job(app)
        except Exception as ex:
            app.logger.exception(f"[scheduler] housekeeping_job error: {ex}")

    scheduler.add_job(
        func=_job_wrapper,
        trigger=IntervalTrigger(minutes=minutes),
        id="housekeeping_job",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=120,
    )

    try:
        scheduler.start()
    except Exception as e:
        app.logger.warning(f"[scheduler] Scheduler could not be started: {e}")
        return None

    app.logger.info(f"[scheduler] Housekeeping job started (every {minutes} minutes).")
    app.extensions["apscheduler"] = scheduler

    def _shutdown_scheduler():
        if scheduler.running:
            scheduler.shutdown(wait=False)

    atexit.register(_shutdown_scheduler)
    return scheduler
