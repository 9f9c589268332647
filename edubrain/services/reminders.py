"""
Reminder sweep and the reminder (notification) log.

A sweep selects every pending fee record whose due date has arrived and which
has not been reminded within the cooldown window, writes one reminder per
record and stamps the record's last_reminder_date. All comparisons are on
calendar dates, so the outcome does not depend on the time of day the sweep
runs.

Each record is handled in its own transaction: a failure on one record is
logged and the sweep moves on to the next.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from sqlalchemy import and_, or_, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from edubrain.config import settings
from edubrain.models.finance import StudentFee, PaymentStatus
from edubrain.models.notifications import Reminder, ReminderStatus
from edubrain.services.ledger import utc_today

logger = logging.getLogger(__name__)


def reminder_eligibility(today: date, cooldown_days: int):
    """SQL criteria for a fee record that is due a reminder on ``today``."""
    cooldown_cutoff = today - timedelta(days=cooldown_days)
    return and_(
        StudentFee.payment_status == PaymentStatus.PENDING.value,
        StudentFee.due_date <= today,
        or_(
            StudentFee.last_reminder_date.is_(None),
            StudentFee.last_reminder_date <= cooldown_cutoff,
        ),
    )


async def select_due_for_reminder(
    db: AsyncSession, today: date, cooldown_days: Optional[int] = None
) -> List[StudentFee]:
    if cooldown_days is None:
        cooldown_days = settings.REMINDER_COOLDOWN_DAYS
    result = await db.execute(
        select(StudentFee)
        .where(reminder_eligibility(today, cooldown_days))
        .order_by(StudentFee.id)
    )
    return list(result.scalars().all())


def _format_amount(amount) -> str:
    # 1000.00 -> "1000", 1250.50 -> "1250.5"
    text = f"{float(amount):.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def render_reminder_message(name: str, due_amount) -> str:
    return (
        f"Dear {name}, This is a reminder from {settings.INSTITUTION_NAME} that your fee of "
        f"{settings.CURRENCY_SYMBOL}{_format_amount(due_amount)} is pending. "
        f"Kindly make the payment at the earliest. Thank you."
    )


def append_reminder(
    db: AsyncSession,
    student_id: int,
    reminder_date: date,
    status: str,
    message: str,
    reminder_type: Optional[str] = None,
) -> Reminder:
    """Add a reminder to the log. Reminders are never updated or deleted."""
    reminder = Reminder(
        student_id=student_id,
        reminder_date=reminder_date,
        reminder_type=reminder_type or settings.REMINDER_CHANNEL,
        status=status,
        message=message,
    )
    db.add(reminder)
    return reminder


async def remind_student(
    db: AsyncSession, student_id: int, today: date, cooldown_days: int
) -> Optional[Reminder]:
    """
    Write the reminder for one fee record and stamp it, in one transaction.

    The record is re-read under a row lock and skipped if a concurrent
    payment or sweep made it ineligible since candidates were selected.
    """
    result = await db.execute(
        select(StudentFee)
        .where(StudentFee.id == student_id, reminder_eligibility(today, cooldown_days))
        .with_for_update()
    )
    student_fee = result.scalars().first()
    if student_fee is None:
        await db.rollback()
        return None

    message = render_reminder_message(student_fee.name, student_fee.due_amount)
    logger.info(f"Sending reminder to {student_fee.name} ({student_fee.phone}): {message}")

    reminder = append_reminder(db, student_fee.id, today, ReminderStatus.SENT.value, message)
    student_fee.last_reminder_date = today
    await db.commit()
    return reminder


async def send_reminders(
    session_factory: Callable[[], AsyncSession],
    today: Optional[date] = None,
    cooldown_days: Optional[int] = None,
) -> int:
    """
    Run one sweep and return the number of reminders written.

    Raises only if the candidate query itself fails; per-record failures are
    logged and skipped.
    """
    today = today or utc_today()
    if cooldown_days is None:
        cooldown_days = settings.REMINDER_COOLDOWN_DAYS

    logger.info(f"Checking for due payments on {today.isoformat()}")
    async with session_factory() as db:
        candidates = [student.id for student in await select_due_for_reminder(db, today, cooldown_days)]

    sent = 0
    for student_id in candidates:
        async with session_factory() as db:
            try:
                if await remind_student(db, student_id, today, cooldown_days):
                    sent += 1
            except Exception:
                await db.rollback()
                logger.exception(f"Failed to send reminder for student {student_id}")

    logger.info(f"Reminder sweep finished: {sent} of {len(candidates)} candidates reminded")
    return sent


async def list_recent_reminders(db: AsyncSession, limit: Optional[int] = None) -> List[dict]:
    """Newest reminders first, joined with the student's name."""
    if limit is None:
        limit = settings.REMINDER_LOG_LIMIT
    result = await db.execute(
        select(Reminder, StudentFee.name)
        .join(StudentFee, Reminder.student_id == StudentFee.id)
        .order_by(desc(Reminder.reminder_date), desc(Reminder.id))
        .limit(limit)
    )
    return [
        {
            "id": reminder.id,
            "student_id": reminder.student_id,
            "student_name": student_name,
            "reminder_date": reminder.reminder_date,
            "reminder_type": reminder.reminder_type,
            "status": reminder.status,
            "message": reminder.message,
        }
        for reminder, student_name in result.all()
    ]


class ReminderScheduler:
    """
    Runs the reminder sweep on a fixed interval.

    Uses an APScheduler AsyncIOScheduler so sweeps run on the application's
    event loop. The first sweep happens one interval after start(); at most
    one sweep runs at a time and missed ticks are coalesced into one.
    """

    JOB_ID = "reminder_sweep"

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        interval_seconds: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else settings.REMINDER_INTERVAL_SECONDS
        )
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)

        # State tracking
        self.last_run_date: Optional[date] = None
        self.last_error: Optional[str] = None
        self.sweep_count = 0

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        """Schedule the periodic sweep. Must be called from a running event loop."""
        if self.running:
            logger.warning("Reminder scheduler already running")
            return

        self.scheduler.add_job(
            func=self._sweep,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=self.JOB_ID,
            name="Send fee reminders",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info(f"Reminder scheduler started [interval: {self.interval_seconds}s]")

    def stop(self) -> None:
        """Stop the scheduler. A sweep in progress is cancelled; its open record rolls back."""
        if not self.running:
            return
        self.scheduler.shutdown(wait=False)
        logger.info("Reminder scheduler stopped")

    def next_run_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(self.JOB_ID) if self.running else None
        return job.next_run_time if job else None

    async def run_once(self, today: Optional[date] = None) -> int:
        sent = await send_reminders(self.session_factory, today=today)
        self.last_run_date = today or utc_today()
        self.sweep_count += 1
        return sent

    async def _sweep(self) -> None:
        try:
            await self.run_once()
            self.last_error = None
        except Exception as e:
            self.last_error = str(e)
            logger.error(f"Reminder sweep failed, waiting for next interval: {str(e)}", exc_info=True)
