"""
Gunicorn configuration for the MonitorWatch API.

Env vars that override defaults:
  PORT     — TCP port to bind
  WORKERS  — number of worker processes (default: 1)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Every worker runs its own note scheduler in the app lifespan, so more than
# one worker means duplicate scheduled notes.
workers = int(os.environ.get("WORKERS", "1"))

worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# Daily note generation awaits the AI provider; leave room for it.
timeout = 120

loglevel = "info"
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

# Lets a sleep/shutdown generation finish (SHUTDOWN_WAIT_SECONDS defaults to 30).
graceful_timeout = 35
