from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import List, Dict, Any, Callable, Optional, TypeVar
import math
import re

from .models import EventType, LEGACY_EVENT_TYPES, DATE_FORMAT

T = TypeVar('T')

MAX_PITCH_COUNT = 300
MAX_VELO = 120
MAX_NOTES_LENGTH = 2000
MAX_FOCUS_LENGTH = 200
MAX_URL_LENGTH = 500
MAX_NAME_LENGTH = 100
MAX_WEEKLY_PITCHES_LIMIT = 500

URL_PATTERN = re.compile(r'^https?://[^\s/$.?#].[^\s]*$', re.IGNORECASE)


def format_date_for_display(date_str: str) -> str:
    """Format "YYYY-MM-DD" as "Sat, Apr 18, 2026" """
    if not date_str:
        return "-"
    try:
        dt = datetime.strptime(date_str, DATE_FORMAT)
        return dt.strftime("%a, %b %d, %Y")
    except ValueError:
        return date_str


def parse_input_date(date_input: str) -> str:
    """Accept "YYYY-MM-DD" or "MM/DD/YYYY" and return "YYYY-MM-DD" """
    date_input = (date_input or '').strip()
    for fmt in (DATE_FORMAT, "%m/%d/%Y"):
        try:
            return datetime.strptime(date_input, fmt).strftime(DATE_FORMAT)
        except ValueError:
            continue
    return date_input


def parse_int(value: Any) -> Optional[int]:
    """Whole number from a form or JSON value, or None"""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and re.fullmatch(r'-?\d+', value.strip()):
        return int(value.strip())
    return None


def parse_number(value: Any) -> Optional[float]:
    """Number from a form or JSON value, or None"""
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_outing_data(data: Dict[str, Any]) -> List[str]:
    """Validate outing form data and return list of errors"""
    errors = []

    if not data.get('pitcher_id') and is_blank(data.get('pitcher_name')):
        errors.append("Pitcher is required")
    elif len(str(data.get('pitcher_name') or '').strip()) > MAX_NAME_LENGTH:
        errors.append("Name too long")

    if is_blank(data.get('date')):
        errors.append("Date is required")
    else:
        try:
            datetime.strptime(parse_input_date(str(data['date'])), DATE_FORMAT)
        except ValueError:
            errors.append("Date must be in format 'YYYY-MM-DD'")

    event_type = data.get('event_type')
    valid_events = [e.value for e in EventType] + list(LEGACY_EVENT_TYPES)
    if is_blank(event_type) or event_type not in valid_events:
        errors.append("Please select an event type")

    raw_count = data.get('pitch_count')
    pitch_count = 0 if is_blank(raw_count) else parse_int(raw_count)
    if pitch_count is None:
        errors.append("Pitch count must be a whole number")
    elif pitch_count < 0:
        errors.append("Pitch count cannot be negative")
    elif pitch_count > MAX_PITCH_COUNT:
        errors.append("Pitch count seems unrealistic")

    if not is_blank(data.get('strikes')):
        strikes = parse_int(data.get('strikes'))
        if strikes is None:
            errors.append("Strikes must be a whole number")
        elif strikes < 0:
            errors.append("Strikes cannot be negative")
        elif pitch_count is not None and strikes > pitch_count:
            errors.append("Strikes cannot exceed pitch count")

    if not is_blank(data.get('max_velo')):
        velo = parse_number(data.get('max_velo'))
        if velo is None or not math.isfinite(velo):
            errors.append("Velocity must be a number")
        elif velo < 0:
            errors.append("Velocity cannot be negative")
        elif velo > MAX_VELO:
            errors.append("Velocity seems unrealistic")

    if len(data.get('notes') or '') > MAX_NOTES_LENGTH:
        errors.append(f"Notes must be less than {MAX_NOTES_LENGTH} characters")
    if len(data.get('focus') or '') > MAX_FOCUS_LENGTH:
        errors.append(f"Focus must be less than {MAX_FOCUS_LENGTH} characters")

    for field in ('video_url', 'video_url_1', 'video_url_2'):
        url = data.get(field)
        if is_blank(url):
            continue
        url = str(url).strip()
        if len(url) > MAX_URL_LENGTH:
            errors.append("URL too long")
        elif not URL_PATTERN.match(url):
            errors.append("Please enter a valid URL")

    return errors


def validate_pitcher_data(data: Dict[str, Any]) -> List[str]:
    """Validate roster form data and return list of errors"""
    errors = []

    name = data.get('name')
    if is_blank(name):
        errors.append("Name is required")
    elif len(str(name).strip()) > MAX_NAME_LENGTH:
        errors.append(f"Name must be less than {MAX_NAME_LENGTH} characters")

    if 'max_weekly_pitches' in data and not is_blank(data.get('max_weekly_pitches')):
        max_weekly = parse_int(data.get('max_weekly_pitches'))
        if max_weekly is None:
            errors.append("Max weekly pitches must be a whole number")
        elif max_weekly < 1:
            errors.append("Max weekly pitches must be at least 1")
        elif max_weekly > MAX_WEEKLY_PITCHES_LIMIT:
            errors.append(f"Maximum is {MAX_WEEKLY_PITCHES_LIMIT} pitches")

    return errors


def validate_pitch_types(mapping: Any) -> List[str]:
    """Pitch-type labels map positive integer codes to short non-empty labels"""
    if not isinstance(mapping, dict) or not mapping:
        return ["Pitch types must be a non-empty mapping"]
    errors = []
    for code, label in mapping.items():
        parsed = parse_int(code)
        if parsed is None or parsed < 1:
            errors.append(f"Invalid pitch type code: {code}")
        if not isinstance(label, str) or not label.strip():
            errors.append(f"Label for pitch type {code} cannot be empty")
        elif len(label.strip()) > 20:
            errors.append(f"Label for pitch type {code} is too long")
    return errors


def outing_fields_from_form(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert validated form data into Outing constructor arguments"""
    strikes = data.get('strikes')
    velo = data.get('max_velo')
    fields = {
        'date': parse_input_date(str(data['date'])),
        'event_type': data['event_type'],
        'pitch_count': parse_int(data.get('pitch_count')) or 0,
        'strikes': None if is_blank(strikes) else parse_int(strikes),
        'max_velo': 0 if is_blank(velo) else parse_number(velo),
        'notes': (data.get('notes') or '').strip(),
        'focus': (data.get('focus') or '').strip() or None,
        'coach_notes': (data.get('coach_notes') or '').strip() or None,
    }
    for field in ('video_url', 'video_url_1', 'video_url_2'):
        value = data.get(field)
        fields[field] = None if is_blank(value) else str(value).strip()
    for field in ('video_1_pitch_type', 'video_2_pitch_type'):
        fields[field] = parse_int(data.get(field)) if not is_blank(data.get(field)) else None
    for field in ('video_1_velocity', 'video_2_velocity'):
        fields[field] = parse_number(data.get(field)) if not is_blank(data.get(field)) else None
    return fields


def fetch_with_deadline(fetch: Callable[[], T], default: T, timeout: float) -> T:
    """
    Run ``fetch`` with a deadline.

    Returns ``default`` if the call takes longer than ``timeout`` seconds or
    raises. Used for secondary lookups that must not block a page.
    """
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(fetch)
    try:
        return future.result(timeout=timeout)
    except Exception:
        return default
    finally:
        executor.shutdown(wait=False)


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe file operations"""
    filename = re.sub(r'[<>:"/\\|?*\s]', '_', filename)
    filename = re.sub(r'_+', '_', filename)
    filename = filename.strip('_.')
    return filename
