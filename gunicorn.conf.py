# gunicorn.conf.py
import os

wsgi_app = "paste_service.main:app"
bind = f"0.0.0.0:{os.getenv('PORT', '8000')}"
worker_class = "uvicorn.workers.UvicornWorker"
workers = int(os.getenv("WEB_CONCURRENCY", "2"))

# proxied downloads kunnen lang lopen (tot LARGE_PROXY_THRESHOLD)
timeout = int(os.getenv("WEB_TIMEOUT", "300"))
graceful_timeout = 30
keepalive = 5

# X-Forwarded-For van de proxy vertrouwen (rate limit key)
forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "127.0.0.1")

max_requests = 1000
max_requests_jitter = 100
accesslog = None  # request logging zit in de app (structlog)
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
