# type: ignore
from pathlib import Path
import os
import environ

# ================================
# 環境變數設定
# ================================

BASE_DIR = Path(__file__).resolve().parent.parent

env = environ.Env(
    DEBUG=(bool, False),
)

env_file = os.path.join(BASE_DIR, '.env')
if os.path.exists(env_file):
    environ.Env.read_env(env_file)

# ================================
# 基本設定
# ================================

SECRET_KEY = env('SECRET_KEY', default='django-insecure-change-me-in-production')
DEBUG = env('DEBUG', default=False)
ALLOWED_HOSTS = env('ALLOWED_HOSTS', default='localhost,127.0.0.1').split(',')
ROOT_URLCONF = 'Foodbot.urls'
APPEND_SLASH = True

# ================================
# 應用程式設定
# ================================

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'django.contrib.staticfiles',
    'rest_framework',
    'corsheaders',
    'drf_spectacular',
    'messaging',
    'vision',
]

# ================================
# 中介層設定
# ================================
MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    # 'django.middleware.csrf.CsrfViewMiddleware',  # Webhook 與 API 皆不使用 CSRF
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

# 服務本身不持有資料表，使用者圖片 context 只存在記憶體或快取
DATABASES = {}

# ================================
# LINE Messaging API
# ================================

LINE_CHANNEL_SECRET = env('LINE_CHANNEL_SECRET', default='')
LINE_CHANNEL_ACCESS_TOKEN = env('LINE_CHANNEL_ACCESS_TOKEN', default='')
LINE_API_TIMEOUT = env.float('LINE_API_TIMEOUT', default=10.0)
LINE_CONTENT_TIMEOUT = env.float('LINE_CONTENT_TIMEOUT', default=30.0)

# ================================
# OpenAI 影像辨識
# ================================

OPENAI_API_KEY = env('OPENAI_API_KEY', default='')
OPENAI_IMAGE_MODEL = env('OPENAI_IMAGE_MODEL', default='gpt-4o-mini')
OPENAI_VISION_TIMEOUT = env.float('OPENAI_VISION_TIMEOUT', default=30.0)

# ================================
# 儲存流程
# ================================

SAVE_FETCH_TIMEOUT = env.float('SAVE_FETCH_TIMEOUT', default=15.0)
SAVE_UPLOAD_TIMEOUT = env.float('SAVE_UPLOAD_TIMEOUT', default=15.0)

# memory: 單一程序內的字典；cache: Django 快取（Redis），多個 worker 共用
USER_CONTEXT_BACKEND = env('USER_CONTEXT_BACKEND', default='memory')

# ================================
# S3 設定 (django-storages)
# ================================

AWS_STORAGE_BUCKET_NAME = env('AWS_STORAGE_BUCKET_NAME', default='')
AWS_S3_REGION_NAME = env('AWS_S3_REGION_NAME', default='')
AWS_ACCESS_KEY_ID = env('AWS_ACCESS_KEY_ID', default='')
AWS_SECRET_ACCESS_KEY = env('AWS_SECRET_ACCESS_KEY', default='')
FOOD_IMAGE_URL_TTL = env.int('FOOD_IMAGE_URL_TTL', default=3600)

# ================================
# REST framework 設定
# ================================

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'Foodbot.renderers.ORJSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
    ],
    'EXCEPTION_HANDLER': 'Foodbot.exception_handler.custom_exception_handler',
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'DEFAULT_METADATA_CLASS': None,
    'UNAUTHENTICATED_USER': None,
    'UNAUTHENTICATED_TOKEN': None,
}

# ================================
# SWAGGER 設定
# ================================

SPECTACULAR_SETTINGS = {
    'OAS_VERSION': '3.1.0',
    'TITLE': 'Foodbot API',
    'DESCRIPTION': 'LINE 食物辨識機器人 Webhook 與圖片查詢 API.',
    'VERSION': '1.0.0',
    'SERVE_PERMISSIONS': ['rest_framework.permissions.AllowAny'],
    'SWAGGER_UI_SETTINGS': {
        'deepLinking': True,
        'displayRequestDuration': True,
    },
    'COMPONENT_SPLIT_REQUEST': True,
    'DISABLE_ERRORS_AND_WARNINGS': True,
}

# ================================
# CORS 設定
# ================================

CORS_ALLOW_ALL_ORIGINS = True
CORS_ALLOW_CREDENTIALS = True

# ================================
# 快取設定
# ================================

CACHES = {
    'default': {
        'BACKEND': 'django_redis.cache.RedisCache',
        'LOCATION': f'redis://{env("REDIS_HOST", default="localhost")}:{env.int("REDIS_PORT", default=6379)}/{env("REDIS_DB", default=0)}',
        'OPTIONS': {
            'CLIENT_CLASS': 'django_redis.client.DefaultClient',
            'SOCKET_CONNECT_TIMEOUT': 0.5,
            'SOCKET_TIMEOUT': 0.5,
            'IGNORE_EXCEPTIONS': True,
        },
        'KEY_PREFIX': 'foodbot',
    }
}

# ================================
# 日誌設定
# ================================

LOG_LEVEL = env('LOG_LEVEL', default='INFO').upper()
LOG_DIR = env('LOG_DIR', default=os.path.join(BASE_DIR, 'storage', 'logs'))
if not os.path.exists(LOG_DIR):
    os.makedirs(LOG_DIR)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(levelname)s %(asctime)s %(module)s %(message)s',
            'style': '%',
        },
    },
    'handlers': {
        'console': {
            'level': 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
        'daily_file': {
            'level': 'INFO',
            'class': 'logging.handlers.TimedRotatingFileHandler',
            'filename': os.path.join(LOG_DIR, 'foodbot.log'),
            'when': 'midnight',
            'backupCount': 7,
            'encoding': 'utf-8',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': True,
        },
        'messaging': {
            'handlers': ['console', 'daily_file'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'vision': {
            'handlers': ['console', 'daily_file'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}

# ================================
# i18n 與時間設定
# ================================

LANGUAGE_CODE = 'zh-hant'
TIME_ZONE = 'Asia/Taipei'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = os.path.join(BASE_DIR, 'staticfiles')

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

ASGI_APPLICATION = 'Foodbot.asgi.application'
