import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'dev-only-insecure-key')
DEBUG = os.environ.get('DJANGO_DEBUG', '') == '1'
ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost').split(',')

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'catalog_sync',
]

DATABASES = {
    'default': {
        'ENGINE': os.environ.get('DATABASE_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': os.environ.get('DATABASE_NAME', str(BASE_DIR / 'db.sqlite3')),
        'USER': os.environ.get('DATABASE_USER', ''),
        'PASSWORD': os.environ.get('DATABASE_PASSWORD', ''),
        'HOST': os.environ.get('DATABASE_HOST', ''),
        'PORT': os.environ.get('DATABASE_PORT', ''),
        'CONN_MAX_AGE': None,
    }
}

CACHES = {
    'default': {
        # Shared across worker processes; the per-shop sync lock lives here.
        'BACKEND': os.environ.get('CACHE_BACKEND', 'django.core.cache.backends.redis.RedisCache'),
        'LOCATION': os.environ.get('CACHE_LOCATION', 'redis://localhost:6379/1'),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
USE_TZ = True
TIME_ZONE = 'UTC'

# Celery
CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_ACCEPT_CONTENT = ['json']

# Catalog API
CATALOG_API_VERSION = os.environ.get('CATALOG_API_VERSION', '2024-10')
CATALOG_API_TIMEOUT = float(os.environ.get('CATALOG_API_TIMEOUT', '30'))

# Sync
CATALOG_SYNC_PAGE_SIZE = int(os.environ.get('CATALOG_SYNC_PAGE_SIZE', '50'))
CATALOG_SYNC_LOCK_TIMEOUT = int(os.environ.get('CATALOG_SYNC_LOCK_TIMEOUT', '3600'))
CATALOG_SYNC_DATABASE = os.environ.get('CATALOG_SYNC_DATABASE', 'default')
CATALOG_SYNC_WEBHOOK_BASE_URL = os.environ.get('CATALOG_SYNC_WEBHOOK_BASE_URL', '')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'catalog_sync': {
            'handlers': ['console'],
            'level': os.environ.get('LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
