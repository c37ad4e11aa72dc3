import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from config import get_settings
from database import session_scope
from services import InvoiceService, RecurrenceService


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class SchedulerManager:
    def __init__(self) -> None:
        settings = get_settings()
        self.enabled = settings.scheduler_enabled
        self.horizon_months = settings.horizon_months
        self.scheduler = BackgroundScheduler(timezone=settings.timezone)

    def extend_recurrences(self, source: str = "manual") -> int:
        with session_scope() as session:
            created = RecurrenceService(session).extend_all(self.horizon_months)
        logger.info(
            f"recurrence_job: source={source} horizon_months={self.horizon_months} "
            f"occurrences_created={created}"
        )
        return created

    def close_invoices(self, source: str = "manual") -> int:
        with session_scope() as session:
            closed = InvoiceService(session).close_elapsed()
        logger.info(f"invoice_job: source={source} invoices_closed={closed}")
        return closed

    def start(self) -> None:
        if not self.enabled:
            logger.info("Scheduler disabled by LEDGER_SCHEDULER_ENABLED")
            return
        self.extend_recurrences("startup")
        self.close_invoices("startup")

        self.scheduler.add_job(
            self.extend_recurrences,
            CronTrigger(hour=3, minute=15),
            args=["daily_03:15"],
            id="recurrences_daily",
            replace_existing=True,
            misfire_grace_time=3600,
        )
        self.scheduler.add_job(
            self.extend_recurrences,
            IntervalTrigger(hours=1),
            args=["hourly_safety_net"],
            id="recurrences_hourly_safety",
            replace_existing=True,
            misfire_grace_time=300,
        )
        self.scheduler.add_job(
            self.close_invoices,
            CronTrigger(hour=0, minute=5),
            args=["daily_00:05"],
            id="invoices_daily",
            replace_existing=True,
            misfire_grace_time=3600,
        )

        self.scheduler.start()
        logger.info(
            "Scheduler started: recurrences daily 03:15 plus hourly, invoices daily 00:05"
        )

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
