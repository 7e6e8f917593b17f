"""
Gunicorn configuration for the loyalty portal.
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

# Redemption in-flight tracking and resource generations live in process
# memory; scale with threads rather than extra workers.
workers = int(os.getenv('GUNICORN_WORKERS', '1'))
threads = int(os.getenv('GUNICORN_THREADS', '8'))
worker_class = 'gthread'
timeout = 60  # Supabase calls time out at 30 s
keepalive = 5

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info')
capture_output = True

proc_name = 'loyalty-portal'

preload_app = True
graceful_timeout = 30


def on_starting(server):
    print("[Gunicorn] Starting loyalty portal...")


def on_exit(server):
    print("[Gunicorn] Loyalty portal shutting down...")
