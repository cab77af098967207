"""Contract expiry reminders.

A contract with an end date gets ``contract.expiring`` notifications 15 and
5 days before it ends. Rescheduling cancels the previous reminders first, so
editing a contract's end date never leaves stale reminders behind.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Sequence

from infrastructure.logging import get_module_logger
from infrastructure.notifications import NotificationService, ScheduledNotification
from modules.hr.entities import Contract

logger = get_module_logger()

REMINDER_DAYS: Sequence[int] = (15, 5)
REMINDER_TIME = time(9, 0, tzinfo=timezone.utc)
EXPIRING_ACTION = "expiring"


def reminder_dates(end_date: date, days: Sequence[int] = REMINDER_DAYS) -> List[tuple]:
    """(days_remaining, due datetime) pairs for an end date."""
    return [
        (d, datetime.combine(end_date - timedelta(days=d), REMINDER_TIME))
        for d in days
    ]


def schedule_contract_expiry(
    service: NotificationService,
    contract: Contract,
    actor_id: Optional[int] = None,
    days: Sequence[int] = REMINDER_DAYS,
) -> List[ScheduledNotification]:
    """(Re)schedule the expiry reminders of a contract.

    Reminders whose date has already passed are skipped.

    Returns:
        The scheduled entries
    """
    service.cancel("contract", contract.id, EXPIRING_ACTION)
    if contract.end_date is None:
        return []

    scheduled = []
    for days_remaining, due_at in reminder_dates(contract.end_date, days):
        item = service.schedule(
            "contract",
            contract,
            EXPIRING_ACTION,
            due_at,
            extra={"days_remaining": days_remaining},
            actor_id=actor_id,
        )
        if item is not None:
            scheduled.append(item)

    logger.info(
        "contract_expiry_reminders_scheduled",
        contract_id=contract.id,
        count=len(scheduled),
    )
    return scheduled


def cancel_contract_expiry(service: NotificationService, contract: Contract) -> int:
    return service.cancel("contract", contract.id, EXPIRING_ACTION)
