from flask import Blueprint, request, jsonify, send_file, current_app
from flask_login import login_required
from datetime import date
import io
from typing import Dict, Any, Optional

from .models import Outing, Pitcher, PitcherStats, DEFAULT_PITCH_TYPES
from .storage import StorageError
from .pitcher_stats import calculate_pitcher_stats, build_roster_stats, seven_day_leaderboard, outings_for_pitcher
from .rest_status import rest_status_display, pulse_level_label
from .strike_zone import (
    ChartingSession, GRID_CONFIG, aggregate_to_grid, heatmap_intensity, heatmap_color,
    pitch_mix, pitch_summary, filter_locations,
)
from .reports import build_season_report, share_summary_text
from .pdf import generate_season_report_pdf
from .utils import (
    validate_outing_data, validate_pitcher_data, validate_pitch_types, outing_fields_from_form,
    fetch_with_deadline, sanitize_filename, parse_input_date, parse_int, parse_number, is_blank,
)

# Create blueprint
bp = Blueprint('main', __name__)


def get_storage():
    return current_app.extensions['storage']


def _write_failed(e: StorageError, action: str):
    """Response for a write that did not go through; the stored data is unchanged"""
    current_app.logger.error(f"Failed to {action}: {e}")
    return jsonify({
        'success': False,
        'errors': [f'Could not {action}. Please try again.'],
        'retryable': True
    }), 500


def _stats_payload(stats: PitcherStats, include_outings: bool = False) -> Dict[str, Any]:
    exclude = None if include_outings else {'outings'}
    payload = stats.model_dump(mode='json', exclude=exclude)
    label, severity = rest_status_display(stats.rest_status)
    payload['rest_label'] = label
    payload['rest_severity'] = severity
    payload['pulse_label'] = pulse_level_label(stats.seven_day_pulse, stats.max_weekly_pitches)
    return payload


def _pitcher_stats(pitcher: Pitcher) -> PitcherStats:
    return calculate_pitcher_stats(pitcher, get_storage().get_all_outings(), date.today())


def _resolve_pitcher(data: Dict[str, Any]) -> Optional[Pitcher]:
    """
    Find the roster entry an outing belongs to.

    An unknown name is added to the roster so its outings get a pitcher_id.
    """
    storage = get_storage()
    if data.get('pitcher_id'):
        return storage.get_pitcher(data['pitcher_id'])

    name = str(data.get('pitcher_name', '')).strip()
    pitcher = storage.get_pitcher_by_name(name)
    if pitcher is None:
        pitcher = Pitcher(name=name, max_weekly_pitches=current_app.config['DEFAULT_MAX_WEEKLY_PITCHES'])
        storage.save_pitcher(pitcher)
        current_app.logger.info(f"Added {name} to the roster")
    return pitcher


def _outing_pitcher(outing: Outing) -> Optional[Pitcher]:
    storage = get_storage()
    if outing.pitcher_id:
        return storage.get_pitcher(outing.pitcher_id)
    return storage.get_pitcher_by_name(outing.pitcher_name)


# Roster
@bp.route('/api/pitchers')
@login_required
def list_pitchers():
    """Roster with derived stats, sorted by name"""
    storage = get_storage()
    stats = build_roster_stats(storage.get_all_pitchers(), storage.get_all_outings(), date.today())
    return jsonify({'success': True, 'pitchers': [_stats_payload(s) for s in stats]})


@bp.route('/api/pitchers', methods=['POST'])
@login_required
def create_pitcher():
    """Add a pitcher to the roster"""
    data = request.get_json(silent=True) or {}

    errors = validate_pitcher_data(data)
    if errors:
        return jsonify({'success': False, 'errors': errors}), 400

    storage = get_storage()
    if storage.get_pitcher_by_name(data['name']):
        return jsonify({'success': False, 'errors': ['A pitcher with this name already exists']}), 409

    try:
        max_weekly = data.get('max_weekly_pitches')
        pitcher = Pitcher(
            name=data['name'],
            max_weekly_pitches=(
                parse_int(max_weekly) if not is_blank(max_weekly)
                else current_app.config['DEFAULT_MAX_WEEKLY_PITCHES']
            ),
        )
    except (ValueError, TypeError, KeyError) as e:
        return jsonify({'success': False, 'errors': [f'Invalid pitcher data: {str(e)}']}), 400

    try:
        pitcher_id = storage.save_pitcher(pitcher)
    except StorageError as e:
        return _write_failed(e, 'save pitcher')

    return jsonify({'success': True, 'pitcher_id': pitcher_id, 'pitcher': pitcher.model_dump()}), 201


@bp.route('/api/pitchers/<pitcher_id>')
@login_required
def get_pitcher(pitcher_id):
    """Stats and outing history for one pitcher"""
    pitcher = get_storage().get_pitcher(pitcher_id)
    if not pitcher:
        return jsonify({'success': False, 'errors': ['Pitcher not found']}), 404
    return jsonify({'success': True, 'pitcher': _stats_payload(_pitcher_stats(pitcher), include_outings=True)})


@bp.route('/api/pitchers/<pitcher_id>', methods=['PUT'])
@login_required
def update_pitcher(pitcher_id):
    """Rename a pitcher or change their weekly limit"""
    storage = get_storage()
    existing = storage.get_pitcher(pitcher_id)
    if not existing:
        return jsonify({'success': False, 'errors': ['Pitcher not found']}), 404

    data = request.get_json(silent=True) or {}
    merged = existing.model_dump()
    merged.update({k: v for k, v in data.items() if k in ('name', 'max_weekly_pitches')})

    errors = validate_pitcher_data(merged)
    if errors:
        return jsonify({'success': False, 'errors': errors}), 400

    new_name = str(merged['name']).strip()
    clash = storage.get_pitcher_by_name(new_name)
    if clash and clash.id != pitcher_id:
        return jsonify({'success': False, 'errors': ['A pitcher with this name already exists']}), 409

    try:
        if new_name != existing.name:
            storage.rename_pitcher(pitcher_id, new_name)
        pitcher = storage.get_pitcher(pitcher_id)
        if not is_blank(merged.get('max_weekly_pitches')):
            pitcher.max_weekly_pitches = parse_int(merged['max_weekly_pitches'])
        storage.save_pitcher(pitcher)
    except StorageError as e:
        return _write_failed(e, 'update pitcher')

    return jsonify({'success': True, 'pitcher': pitcher.model_dump()})


@bp.route('/api/pitchers/<pitcher_id>', methods=['DELETE'])
@login_required
def delete_pitcher(pitcher_id):
    """Remove a pitcher from the roster"""
    try:
        success = get_storage().delete_pitcher(pitcher_id)
    except StorageError as e:
        return _write_failed(e, 'delete pitcher')
    if success:
        return jsonify({'success': True})
    return jsonify({'success': False, 'errors': ['Pitcher not found']}), 404


@bp.route('/api/dashboard/seven-day')
@login_required
def seven_day_dashboard():
    """Roster ranked by 7-day workload"""
    storage = get_storage()
    stats = build_roster_stats(storage.get_all_pitchers(), storage.get_all_outings(), date.today())
    leaderboard = seven_day_leaderboard(stats)
    return jsonify({
        'success': True,
        'pitchers': [_stats_payload(s) for s in leaderboard],
        'total_pitches': sum(s.seven_day_pulse for s in leaderboard),
    })


# Outings
@bp.route('/api/outings')
@login_required
def list_outings():
    """Outings, newest first, optionally for one pitcher"""
    storage = get_storage()
    outings = storage.get_all_outings()
    pitcher_id = request.args.get('pitcher_id')
    if pitcher_id:
        pitcher = storage.get_pitcher(pitcher_id)
        if not pitcher:
            return jsonify({'success': False, 'errors': ['Pitcher not found']}), 404
        outings = outings_for_pitcher(pitcher, outings)
    return jsonify({'success': True, 'outings': [o.model_dump(mode='json') for o in outings]})


@bp.route('/api/outings', methods=['POST'])
@login_required
def create_outing():
    """Log a new outing"""
    data = request.get_json(silent=True) or {}

    errors = validate_outing_data(data)
    if errors:
        return jsonify({'success': False, 'errors': errors}), 400

    try:
        pitcher = _resolve_pitcher(data)
        if not pitcher:
            return jsonify({'success': False, 'errors': ['Pitcher not found']}), 404

        outing = Outing(pitcher_id=pitcher.id, pitcher_name=pitcher.name, **outing_fields_from_form(data))
        outing_id = get_storage().save_outing(outing)
    except StorageError as e:
        return _write_failed(e, 'save outing')
    except (ValueError, TypeError, KeyError) as e:
        return jsonify({'success': False, 'errors': [f'Invalid outing data: {str(e)}']}), 400

    current_app.logger.info(f"Outing {outing_id} logged for {pitcher.name}: {outing.pitch_count} pitches")
    return jsonify({'success': True, 'outing_id': outing_id, 'outing': outing.model_dump(mode='json')}), 201


@bp.route('/api/outings/<outing_id>')
@login_required
def get_outing(outing_id):
    """Get a specific outing"""
    outing = get_storage().get_outing(outing_id)
    if outing:
        return jsonify({'success': True, 'outing': outing.model_dump(mode='json')})
    return jsonify({'success': False, 'errors': ['Outing not found']}), 404


@bp.route('/api/outings/<outing_id>', methods=['PUT'])
@login_required
def update_outing(outing_id):
    """Update an existing outing"""
    storage = get_storage()
    existing = storage.get_outing(outing_id)
    if not existing:
        return jsonify({'success': False, 'errors': ['Outing not found']}), 404

    changes = request.get_json(silent=True) or {}
    data = dict(existing.model_dump(mode='json'))
    if changes.get('pitcher_name') and not changes.get('pitcher_id'):
        # Reassigning by name
        data.pop('pitcher_id', None)
    data.update(changes)

    errors = validate_outing_data(data)
    if errors:
        return jsonify({'success': False, 'errors': errors}), 400

    try:
        pitcher = _resolve_pitcher(data)
        if not pitcher:
            return jsonify({'success': False, 'errors': ['Pitcher not found']}), 404

        updated = Outing(
            id=outing_id,
            pitcher_id=pitcher.id,
            pitcher_name=pitcher.name,
            created_at=existing.created_at,
            **outing_fields_from_form(data)
        )
        storage.save_outing(updated)
    except StorageError as e:
        return _write_failed(e, 'update outing')
    except (ValueError, TypeError, KeyError) as e:
        return jsonify({'success': False, 'errors': [f'Invalid outing data: {str(e)}']}), 400

    return jsonify({'success': True, 'outing': updated.model_dump(mode='json')})


@bp.route('/api/outings/<outing_id>', methods=['DELETE'])
@login_required
def delete_outing(outing_id):
    """Delete an outing and its pitch map"""
    try:
        success = get_storage().delete_outing(outing_id)
    except StorageError as e:
        return _write_failed(e, 'delete outing')
    if success:
        return jsonify({'success': True})
    return jsonify({'success': False, 'errors': ['Outing not found']}), 404


# Pitch maps
@bp.route('/api/outings/<outing_id>/pitch-locations')
@login_required
def get_pitch_locations(outing_id):
    """An outing's plotted pitches in pitch order"""
    storage = get_storage()
    if not storage.get_outing(outing_id):
        return jsonify({'success': False, 'errors': ['Outing not found']}), 404
    locations = storage.get_pitch_locations_for_outing(outing_id)
    return jsonify({
        'success': True,
        'pitch_locations': [p.model_dump() for p in locations],
        'summary': pitch_summary(locations),
    })


@bp.route('/api/outings/<outing_id>/pitch-locations', methods=['POST'])
@login_required
def save_pitch_locations(outing_id):
    """
    Store a charted batch of pitches.

    Body: {"pitches": [{"x": .., "y": .., "pitch_type": ..}], "replace": false}.
    Coordinates are clamped and classified here; with replace=true the
    outing's existing map is swapped for the new one.
    """
    storage = get_storage()
    outing = storage.get_outing(outing_id)
    if not outing:
        return jsonify({'success': False, 'errors': ['Outing not found']}), 404

    pitcher = _outing_pitcher(outing)
    if not pitcher:
        return jsonify({'success': False, 'errors': ['Outing is not linked to a rostered pitcher']}), 400

    data = request.get_json(silent=True) or {}
    pitches = data.get('pitches')
    if not isinstance(pitches, list):
        return jsonify({'success': False, 'errors': ['pitches must be a list']}), 400

    replace = data.get('replace', False)
    if not isinstance(replace, bool):
        return jsonify({'success': False, 'errors': ['replace must be true or false']}), 400
    start_number = 1 if replace else storage.next_pitch_number(outing_id)
    session = ChartingSession(start_number=start_number)

    for i, pitch in enumerate(pitches, start=1):
        if not isinstance(pitch, dict):
            return jsonify({'success': False, 'errors': [f'Pitch {i} is not an object']}), 400
        x = parse_number(pitch.get('x'))
        y = parse_number(pitch.get('y'))
        if x is None or y is None:
            return jsonify({'success': False, 'errors': [f'Pitch {i} needs numeric x and y']}), 400
        pitch_type = None
        if not is_blank(pitch.get('pitch_type')):
            pitch_type = parse_int(pitch.get('pitch_type'))
            if pitch_type is None or pitch_type < 1:
                return jsonify({'success': False, 'errors': [f'Pitch {i} has an invalid pitch type']}), 400
        session.record(x, y, pitch_type)

    locations = session.to_locations(outing_id, pitcher.id)
    try:
        if replace:
            saved = storage.replace_pitch_locations(outing_id, pitcher.id, locations)
        else:
            saved = storage.add_pitch_locations(outing_id, pitcher.id, locations)
    except StorageError as e:
        return _write_failed(e, 'save pitch locations')

    return jsonify({
        'success': True,
        'saved': saved,
        'strikes': session.strikes,
        'strike_rate': session.strike_rate,
        'pitch_locations': [p.model_dump() for p in locations],
    }), 201


@bp.route('/api/outings/<outing_id>/pitch-locations', methods=['DELETE'])
@login_required
def clear_pitch_locations(outing_id):
    """Clear one outing's pitch map"""
    storage = get_storage()
    if not storage.get_outing(outing_id):
        return jsonify({'success': False, 'errors': ['Outing not found']}), 404
    try:
        removed = storage.delete_pitch_locations_for_outing(outing_id)
    except StorageError as e:
        return _write_failed(e, 'clear pitch locations')
    return jsonify({'success': True, 'removed': removed})


@bp.route('/api/pitchers/<pitcher_id>/pitch-types')
@login_required
def get_pitch_types(pitcher_id):
    storage = get_storage()
    if not storage.get_pitcher(pitcher_id):
        return jsonify({'success': False, 'errors': ['Pitcher not found']}), 404
    return jsonify({'success': True, 'pitch_types': storage.get_pitch_types(pitcher_id)})


@bp.route('/api/pitchers/<pitcher_id>/pitch-types', methods=['PUT'])
@login_required
def update_pitch_types(pitcher_id):
    """Replace a pitcher's pitch-type labels"""
    data = request.get_json(silent=True) or {}
    mapping = data.get('pitch_types', data)

    errors = validate_pitch_types(mapping)
    if errors:
        return jsonify({'success': False, 'errors': errors}), 400

    storage = get_storage()
    try:
        updated = storage.update_pitch_types(pitcher_id, {str(int(k)): v for k, v in mapping.items()})
    except StorageError as e:
        return _write_failed(e, 'save pitch types')
    if not updated:
        return jsonify({'success': False, 'errors': ['Pitcher not found']}), 404
    return jsonify({'success': True, 'pitch_types': storage.get_pitch_types(pitcher_id)})


@bp.route('/api/pitchers/<pitcher_id>/pitch-map')
@login_required
def pitch_map(pitcher_id):
    """
    Heat map data for a pitcher's plotted pitches.

    Query args: outing_id, start, end (YYYY-MM-DD), pitch_type,
    result (strike|ball), cols, rows.
    """
    storage = get_storage()
    pitcher = storage.get_pitcher(pitcher_id)
    if not pitcher:
        return jsonify({'success': False, 'errors': ['Pitcher not found']}), 404

    args = request.args
    cols = parse_int(args.get('cols', GRID_CONFIG['HEATMAP_COLS']))
    rows = parse_int(args.get('rows', GRID_CONFIG['HEATMAP_ROWS']))
    if cols is None or rows is None or cols < 1 or rows < 1:
        return jsonify({'success': False, 'errors': ['cols and rows must be positive whole numbers']}), 400

    pitch_type = None
    if args.get('pitch_type'):
        pitch_type = parse_int(args['pitch_type'])
        if pitch_type is None:
            return jsonify({'success': False, 'errors': ['pitch_type must be a whole number']}), 400

    result = args.get('result') or None
    if result not in (None, 'strike', 'ball'):
        return jsonify({'success': False, 'errors': ["result must be 'strike' or 'ball'"]}), 400

    outing_id = args.get('outing_id')
    if outing_id:
        locations = [p for p in storage.get_pitch_locations_for_outing(outing_id) if p.pitcher_id == pitcher_id]
    else:
        start = parse_input_date(args['start']) if args.get('start') else None
        end = parse_input_date(args['end']) if args.get('end') else None
        locations = storage.get_pitch_locations_for_pitcher(pitcher_id, start, end)

    filtered = filter_locations(locations, pitch_type=pitch_type, result=result)
    grid = aggregate_to_grid(filtered, cols=cols, rows=rows)
    max_count = max((max(row) for row in grid), default=0)
    pitch_types = storage.get_pitch_types(pitcher_id)

    return jsonify({
        'success': True,
        'cols': cols,
        'rows': rows,
        'grid': grid,
        'intensity': heatmap_intensity(grid),
        'colors': [[heatmap_color(count, max_count) for count in row] for row in grid],
        'pitch_mix': pitch_mix(locations, pitch_types),
        'summary': pitch_summary(filtered),
        'pitch_types': pitch_types,
    })


# Reports
@bp.route('/api/pitchers/<pitcher_id>/share-summary')
@login_required
def share_summary(pitcher_id):
    """Text coaches can paste into a message to a player's family"""
    pitcher = get_storage().get_pitcher(pitcher_id)
    if not pitcher:
        return jsonify({'success': False, 'errors': ['Pitcher not found']}), 404

    stats = _pitcher_stats(pitcher)
    dashboard_url = f"{current_app.config['PUBLIC_BASE_URL']}/player/{pitcher_id}"
    return jsonify({
        'success': True,
        'text': share_summary_text(stats, len(stats.outings), dashboard_url),
        'dashboard_url': dashboard_url,
    })


@bp.route('/api/pitchers/<pitcher_id>/report.pdf')
@login_required
def season_report_pdf(pitcher_id):
    """Download the season report"""
    pitcher = get_storage().get_pitcher(pitcher_id)
    if not pitcher:
        return jsonify({'success': False, 'errors': ['Pitcher not found']}), 404

    year = parse_int(request.args.get('year')) if request.args.get('year') else None
    report = build_season_report(_pitcher_stats(pitcher), year)

    filename = f"{sanitize_filename(pitcher.name)}_Season_Report_{report['year']}.pdf"
    buffer = io.BytesIO()
    try:
        generate_season_report_pdf(report, buffer, current_app.config['TEAM_NAME'])
    except (OSError, ValueError) as e:
        current_app.logger.error(f"PDF generation error for {pitcher_id}: {e}", exc_info=True)
        return jsonify({'success': False, 'errors': ['Could not generate report']}), 500

    buffer.seek(0)
    return send_file(
        buffer,
        as_attachment=True,
        download_name=filename,
        mimetype='application/pdf'
    )


@bp.route('/api/export')
@login_required
def export_data():
    """Roster, outings and pitch maps as JSON"""
    return jsonify({'success': True, 'data': get_storage().export_data()})


# Public
@bp.route('/player/<pitcher_id>')
def player_view(pitcher_id):
    """
    Read-only dashboard for a player and their family.

    Pitch-type labels are a secondary lookup: if they don't arrive within
    PITCH_TYPE_FETCH_TIMEOUT the view uses the default labels.
    """
    storage = get_storage()
    pitcher = storage.get_pitcher(pitcher_id)
    if not pitcher:
        return jsonify({'success': False, 'errors': ['Player not found']}), 404

    stats = _pitcher_stats(pitcher)
    pitch_types = fetch_with_deadline(
        lambda: storage.get_pitch_types(pitcher_id),
        dict(DEFAULT_PITCH_TYPES),
        current_app.config['PITCH_TYPE_FETCH_TIMEOUT'],
    )

    return jsonify({
        'success': True,
        'team_name': current_app.config['TEAM_NAME'],
        'pitcher': _stats_payload(stats, include_outings=True),
        'pitch_types': pitch_types,
    })
