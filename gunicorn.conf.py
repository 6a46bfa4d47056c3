import multiprocessing
import os

# 使用者圖片 context 預設存在程序記憶體內，多 worker 時請改用 USER_CONTEXT_BACKEND=cache
worker_class = 'uvicorn.workers.UvicornWorker'
workers = int(os.getenv('WEB_CONCURRENCY', str(min(multiprocessing.cpu_count(), 2))))
bind = f"0.0.0.0:{os.getenv('PORT', '8002')}"
timeout = int(os.getenv('WEB_TIMEOUT', '120'))
graceful_timeout = int(os.getenv('WEB_GRACEFUL_TIMEOUT', '30'))
keepalive = int(os.getenv('WEB_KEEPALIVE', '5'))
max_requests = 1000
max_requests_jitter = 50
loglevel = os.getenv('LOG_LEVEL', 'info').lower()
accesslog = '-'
errorlog = '-'
forwarded_allow_ips = '*'
wsgi_app = 'Foodbot.asgi:application'
