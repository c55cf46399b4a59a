# gunicorn -c gunicorn.conf.py
import multiprocessing
import os

wsgi_app = "thermogestion.main:app"
worker_class = "uvicorn.workers.UvicornWorker"

bind = f"0.0.0.0:{os.getenv('PORT', '8000')}"
workers = int(os.getenv("WEB_CONCURRENCY", min(4, multiprocessing.cpu_count() * 2)))

# WeasyPrint renders of long invoices are CPU bound
timeout = int(os.getenv("GUNICORN_TIMEOUT", "120"))
graceful_timeout = 30
keepalive = 5

# recycle workers to bound font cache growth in WeasyPrint
max_requests = 500
max_requests_jitter = 50

# behind the load balancer, trust X-Forwarded-* for client IPs (rate limiting)
forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "*")

accesslog = None  # request_finished events from the app replace the access log
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
