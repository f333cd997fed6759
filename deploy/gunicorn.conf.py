"""
Gunicorn configuration for the exam portal API.

    gunicorn -c deploy/gunicorn.conf.py gate_portal.main:app

Each worker builds its own engine from the environment at startup. With
the default SQLite database keep WEB_CONCURRENCY at 1; use a server
database (DATABASE_URL) to run more workers.
"""
import multiprocessing
import os

# Server socket
bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"
backlog = 2048

# Worker processes
workers = int(os.environ.get("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
timeout = 60
graceful_timeout = 30
keepalive = 5

# Logging goes to stdout/stderr; the container runtime collects it
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s %(D)sus "%(a)s"'

proc_name = "gate_portal"

# Request limits (answer sheets are small JSON bodies)
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def when_ready(server):
    server.log.info(f"gate_portal ready with {workers} workers on {bind}")


def worker_exit(server, worker):
    server.log.info(f"Worker {worker.pid} exited")
