"""
Authentication routes for Diamond Dash
"""

from flask import Blueprint, request, jsonify, session, current_app
from flask_login import login_user, logout_user, login_required
from werkzeug.security import check_password_hash, generate_password_hash
import time
import re

from .auth import limiter, create_user_session
from .storage import StorageError

# Pre-generated hash so a failed lookup costs the same as a wrong password
DUMMY_PASSWORD_HASH = generate_password_hash("dummy-password-for-timing-protection")

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

# Create blueprint
auth_bp = Blueprint('auth', __name__)


def get_storage():
    return current_app.extensions['storage']


def _start_session(user):
    # Clear old session data to prevent fixation attacks
    session.clear()
    session.permanent = True
    login_user(create_user_session(user), remember=True)


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
def login():
    """Log a coach in"""
    data = request.get_json(silent=True) or request.form.to_dict()

    username = str(data.get('username', '')).strip()
    password = str(data.get('password', ''))

    if not username or not password:
        return jsonify({'success': False, 'errors': ['Username and password are required']}), 400

    user = get_storage().get_user_by_username(username)

    # Always perform a hash check, even if the user doesn't exist
    password_hash_to_check = DUMMY_PASSWORD_HASH
    if user and user.password_hash:
        password_hash_to_check = user.password_hash

    try:
        password_valid = check_password_hash(password_hash_to_check, password)
    except ValueError as e:
        current_app.logger.error(f"Password hash validation error for user {username}: {e}", exc_info=True)
        password_valid = False

    if not user or not password_valid or not user.is_active:
        time.sleep(0.1)
        current_app.logger.info(f"Failed login attempt for username: {username}")
        return jsonify({'success': False, 'errors': ['Invalid username or password']}), 401

    _start_session(user)
    current_app.logger.info(f"Coach logged in: {username}")
    return jsonify({'success': True, 'user_id': str(user.id)})


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("5 per minute")
def register():
    """Create a coach account and log it in"""
    data = request.get_json(silent=True) or request.form.to_dict()

    username = str(data.get('username', '')).strip()
    password = str(data.get('password', ''))
    email_value = str(data.get('email') or '').strip()
    email = email_value.lower() if email_value else None

    if not username or not password:
        return jsonify({'success': False, 'errors': ['Username and password are required']}), 400
    if len(username) < 3:
        return jsonify({'success': False, 'errors': ['Username must be at least 3 characters']}), 400
    if ' ' in username:
        return jsonify({'success': False, 'errors': ['Username cannot contain spaces']}), 400
    if len(password) < 8:
        return jsonify({'success': False, 'errors': ['Password must be at least 8 characters']}), 400
    if email and not EMAIL_PATTERN.match(email):
        return jsonify({'success': False, 'errors': ['Please enter a valid email address']}), 400

    storage = get_storage()
    if storage.get_user_by_username(username):
        return jsonify({'success': False, 'errors': ['Username already exists']}), 409

    try:
        user = storage.create_user(username, password, email)
    except StorageError as e:
        current_app.logger.error(f"Error creating user {username}: {e}", exc_info=True)
        return jsonify({
            'success': False,
            'errors': ['An error occurred during registration. Please try again.'],
            'retryable': True
        }), 500

    if not user:
        return jsonify({'success': False, 'errors': ['Username already exists']}), 409

    current_app.logger.info(f"NEW COACH REGISTRATION: username={username}, user_id={user.id}")
    _start_session(user)
    return jsonify({'success': True, 'user_id': str(user.id)}), 201


@auth_bp.route('/logout')
@login_required
def logout():
    """Logout"""
    logout_user()
    return jsonify({'success': True})
