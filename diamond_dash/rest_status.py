"""
Arm-care rest status

Youth pitch-count rules decide how many days a pitcher must rest after an
outing. The status shown on the dashboard is always derived from the most
recent outing and today's date; it is never stored.

Rest days required by pitch count:
    76+     -> 4 days
    61-75   -> 3 days
    46-60   -> 2 days
    31-45   -> 1 day
    0-30    -> 0 days
"""

from datetime import date, datetime
from typing import Optional, Tuple, Union

from .config import DEFAULT_MAX_WEEKLY_PITCHES
from .models import Active, NoData, Resting, RestStatus, ThrewToday, DATE_FORMAT

# (minimum pitches, days required), checked top-down
REST_THRESHOLDS = (
    (76, 4),
    (61, 3),
    (46, 2),
    (31, 1),
)

RESTING_SEVERITY = {
    4: 'danger',
    3: 'caution',
    2: 'warning',
    1: 'neutral',
}


def rest_days_required(pitch_count: int) -> int:
    """Days of rest required after throwing ``pitch_count`` pitches"""
    for minimum, days in REST_THRESHOLDS:
        if pitch_count >= minimum:
            return days
    return 0


def to_calendar_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """
    Normalize an outing date to a calendar date.

    Accepts "YYYY-MM-DD" strings, dates and datetimes (the time of day is
    dropped). Returns None for empty or unparseable input.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip()[:10], DATE_FORMAT).date()
    except ValueError:
        return None


def calculate_rest_status(
    last_outing_date: Union[str, date, datetime, None],
    last_pitch_count: int,
    today: Optional[date] = None
) -> RestStatus:
    """
    Derive the rest status from the most recent outing.

    Args:
        last_outing_date: Date of the most recent outing, or None/"" if the
            pitcher has never thrown
        last_pitch_count: Pitches thrown in that outing
        today: Reference date (defaults to today's local date)

    Returns:
        One of NoData, ThrewToday, Active or Resting
    """
    last_date = to_calendar_date(last_outing_date)
    if last_date is None:
        return NoData()

    today = to_calendar_date(today) or date.today()
    days_since_last = (today - last_date).days

    # Throwing today always wins, even for a zero-pitch outing
    if days_since_last == 0:
        return ThrewToday()

    days_needed = rest_days_required(last_pitch_count)
    if days_needed == 0 or days_since_last > days_needed:
        return Active()

    return Resting(days_needed=days_needed, days_current=days_since_last)


def rest_status_display(status: RestStatus) -> Tuple[str, str]:
    """Return (label, severity) for a rest status badge"""
    if isinstance(status, ThrewToday):
        return 'Threw Today', 'danger'
    if isinstance(status, Active):
        return 'Active', 'active'
    if isinstance(status, Resting):
        label = f'Rest Day {status.days_current}/{status.days_needed}'
        return label, RESTING_SEVERITY.get(status.days_needed, 'neutral')
    return 'No Data', 'neutral'


def severity_rank(status: RestStatus) -> int:
    """Higher is more severe; 4-day rest outranks 1-day rest"""
    if isinstance(status, Resting):
        return 1 + min(status.days_needed, 4)
    if isinstance(status, ThrewToday):
        return 6
    return 0


def pulse_level(seven_day_pulse: int, max_weekly_pitches: int = DEFAULT_MAX_WEEKLY_PITCHES) -> str:
    """
    Workload level for the 7-day pitch total.

    - normal: below 75% of the weekly max
    - warning: 75-89%
    - caution: 90-99%
    - danger: 100% or more
    """
    if max_weekly_pitches <= 0:
        max_weekly_pitches = DEFAULT_MAX_WEEKLY_PITCHES
    percentage = (seven_day_pulse / max_weekly_pitches) * 100

    if percentage >= 100:
        return 'danger'
    if percentage >= 90:
        return 'caution'
    if percentage >= 75:
        return 'warning'
    return 'normal'


def pulse_level_label(seven_day_pulse: int, max_weekly_pitches: int = DEFAULT_MAX_WEEKLY_PITCHES) -> str:
    level = pulse_level(seven_day_pulse, max_weekly_pitches)
    if max_weekly_pitches <= 0:
        max_weekly_pitches = DEFAULT_MAX_WEEKLY_PITCHES
    percentage = round((seven_day_pulse / max_weekly_pitches) * 100)

    if level == 'danger':
        return f'Over limit ({percentage}%)'
    if level == 'caution':
        return f'Near limit ({percentage}%)'
    if level == 'warning':
        return f'Approaching limit ({percentage}%)'
    return f'{seven_day_pulse} / {max_weekly_pitches}'
