"""First repayment date calculation for loan disbursements"""

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional, Sequence

from dateutil.relativedelta import relativedelta

from mambu_client.domain.exceptions import MissingScheduleConfig
from mambu_client.domain.models import (
    LoanAccount,
    LoanProduct,
    RepaymentPeriodUnit,
    ScheduleDueDatesMethod,
)
from mambu_client.utils.date_utils import (
    DateLike,
    as_utc,
    shift_to_local_midnight,
    utc_midnight,
)

DEFAULT_FIRST_REPAYMENT_DAYS = 4


def _interval(count: int, unit: RepaymentPeriodUnit) -> relativedelta:
    if unit == RepaymentPeriodUnit.DAYS:
        return relativedelta(days=count)
    if unit == RepaymentPeriodUnit.WEEKS:
        return relativedelta(days=count * 7)
    if unit == RepaymentPeriodUnit.MONTHS:
        return relativedelta(months=count)
    if unit == RepaymentPeriodUnit.YEARS:
        return relativedelta(years=count)
    raise MissingScheduleConfig(f"Unsupported repayment period unit: {unit!r}")


def first_repayment_date(
    disbursement_date: DateLike,
    schedule_method: Optional[ScheduleDueDatesMethod],
    repayment_period_count: Optional[int] = None,
    repayment_period_unit: Optional[RepaymentPeriodUnit] = None,
    fixed_days_of_month: Optional[Sequence[int]] = None,
    min_offset_days: Optional[int] = None,
    max_offset_days: Optional[int] = None,
    is_local_midnight: bool = False,
    today: Optional[date] = None,
    local_tz: Optional[tzinfo] = None,
) -> datetime:
    """
    Compute the first repayment date for a disbursement.

    Branches on the product's schedule method:
    - NONE (or unset): disbursement date + 4 days
    - FIXED_DAYS_OF_MONTH: the last fixed day, in the month after ``today``'s
      month, at UTC midnight. Day numbers past the end of that month roll
      into the following one.
    - INTERVAL: UTC midnight of the disbursement day + count * unit, then
      + (1 + offset) days. Offset is min_offset_days, else max_offset_days,
      else 0.

    Args:
        today: reference day for FIXED_DAYS_OF_MONTH (default: current UTC day)
        is_local_midnight: shift the UTC-midnight result back by the local
            UTC offset so a local-time date-only formatter renders the
            computed day
        local_tz: zone used for that shift (default: host zone)

    Raises:
        MissingScheduleConfig: no fixed days for FIXED_DAYS_OF_MONTH, or no
            period count/unit for INTERVAL
    """
    if schedule_method is None or schedule_method == ScheduleDueDatesMethod.NONE:
        return as_utc(disbursement_date) + timedelta(days=DEFAULT_FIRST_REPAYMENT_DAYS)

    if schedule_method == ScheduleDueDatesMethod.FIXED_DAYS_OF_MONTH:
        if not fixed_days_of_month:
            raise MissingScheduleConfig("Fixed days of month are required for FIXED_DAYS_OF_MONTH schedules")
        if today is None:
            today = datetime.now(timezone.utc).date()

        # Last configured day (ascending by convention), always in the next month
        fixed_day = fixed_days_of_month[-1]
        next_month = datetime(today.year, today.month, 1, tzinfo=timezone.utc) + relativedelta(months=1)
        result = next_month + timedelta(days=fixed_day - 1)

    elif schedule_method == ScheduleDueDatesMethod.INTERVAL:
        if repayment_period_count is None or repayment_period_unit is None:
            raise MissingScheduleConfig("Repayment period count and unit are required for INTERVAL schedules")

        # Max offset stands in for the minimum when only the maximum is configured
        if min_offset_days is not None:
            offset = min_offset_days
        elif max_offset_days is not None:
            offset = max_offset_days
        else:
            offset = 0

        result = utc_midnight(disbursement_date) + _interval(repayment_period_count, repayment_period_unit)
        result = result + timedelta(days=1 + offset)

    else:
        raise MissingScheduleConfig(f"Unsupported schedule due dates method: {schedule_method!r}")

    if is_local_midnight:
        result = shift_to_local_midnight(result, local_tz)
    return result


def first_repayment_date_for(
    account: LoanAccount,
    product: LoanProduct,
    is_local_midnight: bool = False,
    today: Optional[date] = None,
    local_tz: Optional[tzinfo] = None,
) -> datetime:
    """
    First repayment date for an account under its product's schedule settings.

    Uses the account's expected disbursement date, or now when the account
    has none yet. Fixed days and the repayment period come from the account;
    the schedule method and due date offsets come from the product.
    """
    details = account.disbursement_details
    disbursement_date = details.expected_disbursement_date if details else None
    if disbursement_date is None:
        disbursement_date = datetime.now(timezone.utc)

    return first_repayment_date(
        disbursement_date,
        product.schedule_due_dates_method,
        repayment_period_count=account.repayment_period_count,
        repayment_period_unit=account.repayment_period_unit,
        fixed_days_of_month=account.fixed_days_of_month,
        min_offset_days=product.min_first_repayment_due_date_offset,
        max_offset_days=product.max_first_repayment_due_date_offset,
        is_local_midnight=is_local_midnight,
        today=today,
        local_tz=local_tz,
    )
