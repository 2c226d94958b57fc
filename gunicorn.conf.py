"""
Gunicorn Configuration for Production
Usage: gunicorn -c gunicorn.conf.py wsgi:app
"""

import os

# Server socket
# Use PORT environment variable for managed hosting platforms (Heroku, Railway, Render, etc.)
# Fall back to 8080 for VPS deployments
port = int(os.environ.get('PORT', 8080))
bind = f"0.0.0.0:{port}"
backlog = 2048

# Worker processes
# The JSON row store does read-modify-write on every save, so requests must be
# handled one at a time: a single sync worker
workers = int(os.environ.get('GUNICORN_WORKERS', 1))
worker_class = 'sync'
timeout = 30
keepalive = 2

# Logging
accesslog = os.environ.get('GUNICORN_ACCESS_LOG', '-')  # '-' means stdout
errorlog = os.environ.get('GUNICORN_ERROR_LOG', '-')  # '-' means stderr
loglevel = os.environ.get('GUNICORN_LOG_LEVEL', 'info')
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = 'diamond-dash'

# Server mechanics
daemon = False
pidfile = os.environ.get('GUNICORN_PIDFILE', None)
umask = 0
user = os.environ.get('GUNICORN_USER', None)
group = os.environ.get('GUNICORN_GROUP', None)

# SSL, when not terminated at a reverse proxy
keyfile = os.environ.get('GUNICORN_KEYFILE', None)
certfile = os.environ.get('GUNICORN_CERTFILE', None)

# Performance
max_requests = 1000
max_requests_jitter = 50
preload_app = True

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

def when_ready(server):
    """Called just after the server is started"""
    server.log.info("Diamond Dash server is ready. Accepting connections.")

def worker_int(worker):
    """Called when a worker receives INT or QUIT signal"""
    worker.log.info("Worker received INT or QUIT signal")

def post_fork(server, worker):
    """Called just after a worker has been forked"""
    server.log.info("Worker spawned (pid: %s)", worker.pid)

def post_worker_init(worker):
    """Called just after a worker has initialized the application"""
    worker.log.info("Worker initialized (pid: %s)", worker.pid)

