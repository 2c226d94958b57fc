"""
Per-pitcher derived statistics

Everything here is a pure function of the roster entry and the outing list.
Nothing is cached or written back; callers rebuild stats on every request.
"""

from datetime import date, timedelta
from typing import List, Optional

from .models import Pitcher, PitcherStats, Outing
from .rest_status import calculate_rest_status, pulse_level, to_calendar_date

PULSE_WINDOW_DAYS = 7


def outings_for_pitcher(pitcher: Pitcher, all_outings: List[Outing]) -> List[Outing]:
    """
    Select a pitcher's outings.

    Outings are joined on pitcher_id. Older rows saved before ids were
    recorded fall back to matching on the pitcher's name.
    """
    selected = []
    for outing in all_outings:
        if outing.pitcher_id:
            if outing.pitcher_id == pitcher.id:
                selected.append(outing)
        elif outing.pitcher_name == pitcher.name:
            selected.append(outing)
    return selected


def _recency_key(outing: Outing):
    return (to_calendar_date(outing.date) or date.min, outing.created_at or '', outing.id)


def _pitch_count(outing: Outing) -> int:
    return max(0, outing.pitch_count or 0)


def seven_day_pulse(outings: List[Outing], today: Optional[date] = None) -> int:
    """Total pitches thrown over the last seven calendar days, today included"""
    today = today or date.today()
    window_start = today - timedelta(days=PULSE_WINDOW_DAYS - 1)
    total = 0
    for outing in outings:
        outing_date = to_calendar_date(outing.date)
        if outing_date and window_start <= outing_date <= today:
            total += _pitch_count(outing)
    return total


def strike_percentage(outings: List[Outing]) -> float:
    """
    Strike percentage over outings where strikes were tracked.

    Outings with strikes=None are left out of both the strike total and the
    pitch total.
    """
    tracked_pitches = 0
    tracked_strikes = 0
    for outing in outings:
        if outing.strikes is None:
            continue
        pitches = _pitch_count(outing)
        tracked_pitches += pitches
        tracked_strikes += max(0, min(outing.strikes, pitches))

    if tracked_pitches == 0:
        return 0.0
    return round(tracked_strikes / tracked_pitches * 100, 2)


def calculate_pitcher_stats(
    pitcher: Pitcher,
    all_outings: List[Outing],
    today: Optional[date] = None
) -> PitcherStats:
    """
    Build the derived statistics for one pitcher.

    The result does not depend on the order of ``all_outings``.
    """
    today = today or date.today()
    base = pitcher.model_dump(include=set(Pitcher.model_fields))
    pitcher_outings = sorted(outings_for_pitcher(pitcher, all_outings), key=_recency_key, reverse=True)

    if not pitcher_outings:
        return PitcherStats(**base)

    pulse = seven_day_pulse(pitcher_outings, today)
    max_velo = max((o.max_velo or 0 for o in pitcher_outings), default=0)
    max_velo = max(max_velo, 0)

    last = pitcher_outings[0]
    last_pitch_count = _pitch_count(last)
    focus = next((o.focus for o in pitcher_outings if o.focus), None)
    coach_notes = next((o.coach_notes for o in pitcher_outings if o.coach_notes), None)

    return PitcherStats(
        **base,
        seven_day_pulse=pulse,
        strike_percentage=strike_percentage(pitcher_outings),
        max_velo=max_velo,
        last_outing=last.date,
        last_pitch_count=last_pitch_count,
        rest_status=calculate_rest_status(last.date, last_pitch_count, today),
        pulse_level=pulse_level(pulse, pitcher.max_weekly_pitches),
        notes=last.notes or '',
        focus=focus,
        coach_notes=coach_notes,
        outings=pitcher_outings,
    )


def build_roster_stats(
    pitchers: List[Pitcher],
    all_outings: List[Outing],
    today: Optional[date] = None
) -> List[PitcherStats]:
    today = today or date.today()
    stats = [calculate_pitcher_stats(p, all_outings, today) for p in pitchers]
    return sorted(stats, key=lambda s: s.name.lower())


def seven_day_leaderboard(stats: List[PitcherStats]) -> List[PitcherStats]:
    """Heaviest 7-day workload first"""
    return sorted(stats, key=lambda s: (-s.seven_day_pulse, s.name.lower()))
