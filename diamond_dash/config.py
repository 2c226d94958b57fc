"""
Configuration constants for Diamond Dash
"""
import os

# Where the JSON row store lives
DATA_DIR = os.environ.get('DATA_DIR', 'data')

TEAM_NAME = os.environ.get('TEAM_NAME', 'Hawks Pitching')

# Base URL used when building shareable player links
PUBLIC_BASE_URL = os.environ.get('PUBLIC_BASE_URL', 'http://127.0.0.1:8080').rstrip('/')

# Weekly pitch ceiling used when a roster entry doesn't set its own
DEFAULT_MAX_WEEKLY_PITCHES = int(os.environ.get('DEFAULT_MAX_WEEKLY_PITCHES', '120'))

# Seconds the public player view waits for pitch-type labels before using defaults
PITCH_TYPE_FETCH_TIMEOUT = float(os.environ.get('PITCH_TYPE_FETCH_TIMEOUT', '2.0'))

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
