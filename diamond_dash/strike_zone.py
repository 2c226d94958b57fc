"""
Strike zone geometry and pitch-location aggregation

Pitch locations are stored in a normalized space where both axes run from -1
to 1. The origin is the centre of the reference strike zone, +y is up and +x
is toward the batter's right. The plotting grid, the heatmap and the strike
classifier all share these constants so a plotted pitch is classified exactly
as it was drawn.
"""

import math
from typing import List, Dict, Optional, Any, Iterable

from .models import PitchLocation, DEFAULT_PITCH_TYPES

# MLB-proportioned zone (19.94" wide by 25.79" tall including the ball)
# projected into the normalized plotting box
STRIKE_ZONE = {
    'ZONE_LEFT': -0.4,
    'ZONE_RIGHT': 0.4,
    'ZONE_BOTTOM': -0.45,
    'ZONE_TOP': 0.45,
    'ZONE_WIDTH_IN': 19.94,
    'ZONE_HEIGHT_IN': 25.79,
}

GRID_CONFIG = {
    'COLS': 12,
    'ROWS': 16,
    'HEATMAP_COLS': 14,
    'HEATMAP_ROWS': 18,
}


def clamp_coordinate(value: float) -> float:
    """Clamp a coordinate into [-1, 1]; NaN maps to the centre"""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return max(-1.0, min(1.0, value))


def is_strike(x: float, y: float) -> bool:
    """
    Classify a pitch location.

    Bounds are closed: a pitch exactly on the zone edge is a strike.
    """
    x = clamp_coordinate(x)
    y = clamp_coordinate(y)
    return (
        STRIKE_ZONE['ZONE_LEFT'] <= x <= STRIKE_ZONE['ZONE_RIGHT']
        and STRIKE_ZONE['ZONE_BOTTOM'] <= y <= STRIKE_ZONE['ZONE_TOP']
    )


def grid_cell(x: float, y: float, cols: int, rows: int) -> tuple:
    """Return the (row, col) cell a location falls in"""
    x = clamp_coordinate(x)
    y = clamp_coordinate(y)
    col = min(cols - 1, max(0, math.floor(((x + 1) / 2) * cols)))
    row = min(rows - 1, max(0, math.floor(((1 - y) / 2) * rows)))
    return row, col


def aggregate_to_grid(
    points: Iterable[PitchLocation],
    cols: int = GRID_CONFIG['HEATMAP_COLS'],
    rows: int = GRID_CONFIG['HEATMAP_ROWS']
) -> List[List[int]]:
    """
    Bucket pitch locations into a rows x cols count grid.

    Row 0 is the top of the box. Every point lands in exactly one cell, so the
    grid total always equals the number of points.
    """
    if cols < 1 or rows < 1:
        raise ValueError('Grid must have at least one row and one column')

    grid = [[0] * cols for _ in range(rows)]
    for point in points:
        row, col = grid_cell(point.x_location, point.y_location, cols, rows)
        grid[row][col] += 1
    return grid


def heatmap_intensity(grid: List[List[int]]) -> List[List[float]]:
    """Normalize counts by the busiest cell"""
    max_count = max((max(row) for row in grid if row), default=0)
    max_count = max(max_count, 1)
    return [[count / max_count for count in row] for row in grid]


def heatmap_color(count: int, max_count: int) -> str:
    """Three-band colour ramp: green (low), yellow (mid), red (high)"""
    if count <= 0:
        return 'transparent'
    intensity = count / max(max_count, 1)

    if intensity < 0.33:
        return f'hsla(142, 70%, 50%, {0.2 + intensity * 0.8:.2f})'
    elif intensity < 0.66:
        return f'hsla(60, 80%, 50%, {0.3 + intensity * 0.6:.2f})'
    return f'hsla(0, 80%, 50%, {0.4 + intensity * 0.5:.2f})'


def pitch_type_label(pitch_type: int, pitch_types: Optional[Dict[str, str]] = None) -> str:
    labels = pitch_types or DEFAULT_PITCH_TYPES
    return labels.get(str(pitch_type)) or f'P{pitch_type}'


def pitch_mix(
    points: List[PitchLocation],
    pitch_types: Optional[Dict[str, str]] = None
) -> List[Dict[str, Any]]:
    """
    Break down plotted pitches by type.

    Returns one entry per pitch type with its count, share of all pitches and
    strike rate, most-thrown first.
    """
    total = len(points)
    if total == 0:
        return []

    by_type: Dict[int, List[PitchLocation]] = {}
    for point in points:
        by_type.setdefault(point.pitch_type, []).append(point)

    breakdown = []
    for pitch_type, group in by_type.items():
        strikes = sum(1 for p in group if p.is_strike)
        breakdown.append({
            'pitch_type': pitch_type,
            'label': pitch_type_label(pitch_type, pitch_types),
            'count': len(group),
            'percentage': round(len(group) / total * 100, 2),
            'strikes': strikes,
            'strike_rate': round(strikes / len(group) * 100, 2),
        })

    breakdown.sort(key=lambda entry: (-entry['count'], entry['pitch_type']))
    return breakdown


def pitch_summary(points: List[PitchLocation]) -> Dict[str, Any]:
    total = len(points)
    strikes = sum(1 for p in points if p.is_strike)
    return {
        'total': total,
        'strikes': strikes,
        'balls': total - strikes,
        'strike_rate': round(strikes / total * 100, 2) if total else 0.0,
    }


def filter_locations(
    points: List[PitchLocation],
    pitch_type: Optional[int] = None,
    result: Optional[str] = None
) -> List[PitchLocation]:
    """Filter by pitch type and/or result ("strike" or "ball")"""
    filtered = points
    if pitch_type is not None:
        filtered = [p for p in filtered if p.pitch_type == pitch_type]
    if result == 'strike':
        filtered = [p for p in filtered if p.is_strike]
    elif result == 'ball':
        filtered = [p for p in filtered if not p.is_strike]
    return filtered


class ChartingSession:
    """
    Collects pitches while a coach charts a session.

    Every tap becomes exactly one pitch: out-of-range taps are clamped, never
    rejected, and pitch numbers are assigned sequentially from ``start_number``.
    """

    def __init__(self, default_pitch_type: int = 1, start_number: int = 1):
        self.default_pitch_type = default_pitch_type
        self.start_number = start_number
        self._pitches: List[Dict[str, Any]] = []

    def record(self, x: float, y: float, pitch_type: Optional[int] = None) -> Dict[str, Any]:
        x = clamp_coordinate(x)
        y = clamp_coordinate(y)
        pitch = {
            'pitch_number': self.start_number + len(self._pitches),
            'pitch_type': pitch_type or self.default_pitch_type,
            'x_location': x,
            'y_location': y,
            'is_strike': is_strike(x, y),
        }
        self._pitches.append(pitch)
        return pitch

    def undo(self) -> Optional[Dict[str, Any]]:
        """Remove the most recent pitch"""
        if not self._pitches:
            return None
        return self._pitches.pop()

    @property
    def pitches(self) -> List[Dict[str, Any]]:
        return list(self._pitches)

    @property
    def count(self) -> int:
        return len(self._pitches)

    @property
    def strikes(self) -> int:
        return sum(1 for p in self._pitches if p['is_strike'])

    @property
    def strike_rate(self) -> float:
        if not self._pitches:
            return 0.0
        return round(self.strikes / self.count * 100, 2)

    def to_locations(self, outing_id: str, pitcher_id: str) -> List[PitchLocation]:
        return [
            PitchLocation(outing_id=outing_id, pitcher_id=pitcher_id, **pitch)
            for pitch in self._pitches
        ]
