"""
Season report calculations

Grades summarize a pitcher's season for families: accuracy (strike rate
against a 65% target), consistency (how much strike rate swings between
outings) and work ethic (outings per week, three being the target).
"""

from datetime import datetime
from typing import List, Dict, Any, Optional

from .models import Outing, PitcherStats, Active, Resting, ThrewToday
from .rest_status import to_calendar_date
from .utils import format_date_for_display

GRADE_POINTS = {
    'A+': 97,
    'A': 93,
    'B+': 87,
    'B': 83,
    'C+': 77,
    'C': 73,
    'D': 65,
}

GRADE_COLORS = {
    'A+': '#22c55e',
    'A': '#22c55e',
    'B+': '#4ade80',
    'B': '#f59e0b',
    'C+': '#f59e0b',
    'C': '#f97316',
    'D': '#ef4444',
}

TARGET_STRIKE_PCT = 65
TARGET_OUTINGS_PER_WEEK = 3
RECENT_OUTINGS_LIMIT = 10


def letter_grade(score: float) -> str:
    if score >= 90:
        return 'A+'
    if score >= 80:
        return 'A'
    if score >= 70:
        return 'B+'
    if score >= 60:
        return 'B'
    if score >= 50:
        return 'C+'
    if score >= 40:
        return 'C'
    return 'D'


def season_outings(outings: List[Outing], year: int) -> List[Outing]:
    """Outings in a calendar year, oldest first"""
    dated = []
    for outing in outings:
        outing_date = to_calendar_date(outing.date)
        if outing_date and outing_date.year == year:
            dated.append((outing_date, outing.created_at, outing.id, outing))
    return [entry[-1] for entry in sorted(dated, key=lambda e: e[:3])]


def _tracked(outings: List[Outing]) -> List[Outing]:
    return [o for o in outings if o.strikes is not None]


def accuracy_score(outings: List[Outing]) -> float:
    tracked = _tracked(outings)
    pitches = sum(max(0, o.pitch_count) for o in tracked)
    strikes = sum(max(0, min(o.strikes, o.pitch_count)) for o in tracked)
    strike_pct = (strikes / pitches * 100) if pitches > 0 else 0
    return min(100.0, strike_pct / TARGET_STRIKE_PCT * 90)


def consistency_score(outings: List[Outing]) -> float:
    strike_pcts = [
        max(0, min(o.strikes, o.pitch_count)) / o.pitch_count * 100
        for o in _tracked(outings) if o.pitch_count > 0
    ]
    if len(strike_pcts) < 2:
        return 0.0
    diffs = [abs(strike_pcts[i] - strike_pcts[i - 1]) for i in range(1, len(strike_pcts))]
    avg_diff = sum(diffs) / len(diffs)
    return max(0.0, min(100.0, (1 - avg_diff / 20) * 100))


def work_ethic_score(outings: List[Outing]) -> float:
    """Expects outings sorted oldest first"""
    if not outings:
        return 0.0
    first = to_calendar_date(outings[0].date)
    last = to_calendar_date(outings[-1].date)
    weeks = max(1.0, (last - first).days / 7)
    per_week = len(outings) / weeks
    return min(100.0, per_week / TARGET_OUTINGS_PER_WEEK * 100)


def _grade_entry(name: str, score: float, detail: str) -> Dict[str, Any]:
    grade = letter_grade(score)
    return {
        'name': name,
        'score': round(score, 1),
        'grade': grade,
        'color': GRADE_COLORS[grade],
        'detail': detail,
    }


def build_season_report(stats: PitcherStats, year: Optional[int] = None) -> Dict[str, Any]:
    """Collect everything the season report shows for one pitcher"""
    year = year or datetime.now().year
    season = season_outings(stats.outings, year)

    grades = [
        _grade_entry('Accuracy', accuracy_score(season), f'Strike % vs {TARGET_STRIKE_PCT}% target'),
        _grade_entry('Consistency', consistency_score(season), 'Outing-to-outing strike % swing'),
        _grade_entry('Work Ethic', work_ethic_score(season), f'Outings per week vs {TARGET_OUTINGS_PER_WEEK}'),
    ]
    average = sum(GRADE_POINTS[g['grade']] for g in grades) / len(grades)
    overall = letter_grade(average)

    recent = sorted(stats.outings, key=lambda o: (o.date, o.created_at, o.id), reverse=True)

    return {
        'pitcher_name': stats.name,
        'year': year,
        'generated_on': datetime.now().strftime('%B %d, %Y'),
        'seven_day_pulse': stats.seven_day_pulse,
        'max_velo': stats.max_velo,
        'strike_percentage': stats.strike_percentage,
        'last_outing': format_date_for_display(stats.last_outing),
        'total_pitches': sum(max(0, o.pitch_count) for o in stats.outings),
        'season_outings': len(season),
        'grades': grades,
        'overall_grade': overall,
        'overall_color': GRADE_COLORS[overall],
        'recent_outings': recent[:RECENT_OUTINGS_LIMIT],
    }


def rest_status_line(stats: PitcherStats) -> Optional[str]:
    status = stats.rest_status
    if isinstance(status, Active):
        return 'Status: Active - Ready to pitch'
    if isinstance(status, Resting):
        return f'Status: Resting - Day {status.days_current} of {status.days_needed}'
    if isinstance(status, ThrewToday):
        return 'Status: Threw today'
    return None


def share_summary_text(stats: PitcherStats, outings_count: int, dashboard_url: str) -> str:
    """Plain-text summary coaches paste into a message to a player's family"""
    lines = [f'{stats.name} - Pitching Summary', '']
    lines.append(f'7-Day Pulse: {stats.seven_day_pulse} pitches')
    if stats.strike_percentage > 0:
        lines.append(f'Strike %: {stats.strike_percentage:.1f}%')
    if stats.max_velo > 0:
        lines.append(f'Max Velocity: {stats.max_velo:g} mph')
    lines.append(f'Total Outings: {outings_count}')
    lines.append('')

    status_line = rest_status_line(stats)
    if status_line:
        lines.append(status_line)
        lines.append('')

    lines.append(f'Full dashboard: {dashboard_url}')
    return '\n'.join(lines)
