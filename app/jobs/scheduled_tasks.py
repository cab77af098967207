import threading
import time

import schedule

from infrastructure.logging import get_module_logger
from infrastructure.notifications import NotificationService
from integrations.brevo import BrevoClient

logger = get_module_logger()


def safe_run(job):
    def wrapper(*args, **kwargs):
        try:
            job(*args, **kwargs)
        except Exception as e:
            logger.error(
                "scheduled_job_failed",
                job=getattr(job, "__name__", "unknown"),
                error=str(e),
            )

    return wrapper


def init(service: NotificationService, client: BrevoClient):
    logger.info("scheduled_tasks_initialized")

    schedule.every(1).minutes.do(safe_run(run_due_notifications), service=service)
    schedule.every(5).minutes.do(safe_run(scheduler_heartbeat))
    schedule.every(5).minutes.do(safe_run(channel_healthchecks), service=service)
    schedule.every().day.at("06:00").do(
        safe_run(check_email_templates), service=service, client=client
    )


def scheduler_heartbeat():
    logger.info("scheduler_heartbeat", at=time.ctime())


def run_due_notifications(service: NotificationService):
    dispatched = service.run_due()
    if dispatched:
        logger.info("due_notifications_run", count=dispatched)


def channel_healthchecks(service: NotificationService):
    logger.info("running_channel_healthchecks")
    for channel, healthy in service.health_check().items():
        if not healthy:
            logger.error("channel_unhealthy", channel=channel)
        else:
            logger.info("channel_healthy", channel=channel)


def check_email_templates(service: NotificationService, client: BrevoClient):
    """Warn about configured template ids that Brevo does not list as active."""
    result = client.list_templates(active_only=True, limit=1000)
    if not result.is_success:
        logger.warning(
            "email_template_check_skipped",
            error=result.message,
            status_code=result.status_code,
        )
        return []

    available = {t["id"] for t in result.data}
    config = service.rule_store.config
    configured = dict(config.templates)
    configured["default"] = config.default_template_id

    missing = sorted(key for key, template_id in configured.items() if template_id not in available)
    for key in missing:
        logger.warning("email_template_not_available", template_key=key, template_id=configured[key])
    return missing


def run_continuously(interval=1):
    """Continuously run, while executing pending jobs at each
    elapsed time interval.
    @return cease_continuous_run: threading. Event which can
    be set to cease continuous run. Please note that it is
    *intended behavior that run_continuously() does not run
    missed jobs*. For example, if you've registered a job that
    should run every minute and you set a continuous run
    interval of one hour then your job won't be run 60 times
    at each interval but only once.
    """
    cease_continuous_run = threading.Event()

    class ScheduleThread(threading.Thread):
        @classmethod
        def run(cls):
            while not cease_continuous_run.is_set():
                schedule.run_pending()
                time.sleep(interval)

    continuous_thread = ScheduleThread()
    continuous_thread.start()
    return cease_continuous_run
