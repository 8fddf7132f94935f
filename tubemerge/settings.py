"""
Django settings for the tubemerge project.

Every deployment knob is read from the environment so the web process and the
huey consumer (``python manage.py run_huey``) share one configuration.
"""

import os
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def env_int(name, default):
    value = os.environ.get(name)
    if value in (None, ''):
        return default
    return int(value)


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-tubemerge-dev-key')

DEBUG = env_bool('DJANGO_DEBUG', False)

ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', '*').split(',') if h]

# Test runs (manage.py test / pytest) execute huey tasks inline
TESTING = (
    (len(sys.argv) > 1 and sys.argv[1] == 'test')
    or 'pytest' in sys.argv[0]
    or 'PYTEST_VERSION' in os.environ
)

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'huey.contrib.djhuey',
    'downloads',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'tubemerge.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'tubemerge.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('DATABASE_PATH', str(BASE_DIR / 'db.sqlite3')),
    }
}

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Working directories
MERGE_TEMP_DIR = os.environ.get('TEMP_DIR', str(BASE_DIR / 'tmp'))
MERGE_PUBLIC_DIR = os.environ.get('MERGE_PUBLIC_DIR', str(BASE_DIR / 'public' / 'downloads'))
MERGE_LOG_DIR = os.environ.get('MERGE_LOG_DIR', str(BASE_DIR / 'logs' / 'jobs'))

# Base URL used when the local publisher hands out download links
MERGE_PUBLIC_BASE_URL = os.environ.get(
    'PUBLIC_BASE_URL', f'http://localhost:{os.environ.get("PORT", "8000")}'
)

# External tools
MERGE_YTDLP_PATH = os.environ.get('YTDLP_PATH', '')
MERGE_YTDLP_EXTRA_ARGS = os.environ.get('MERGE_YTDLP_EXTRA_ARGS', '')
MERGE_FFMPEG_PATH = os.environ.get('FFMPEG_PATH', 'ffmpeg')

# Audio profile applied when a separate audio track is merged
MERGE_AUDIO_CODEC = os.environ.get('MERGE_AUDIO_CODEC', 'aac')
MERGE_AUDIO_BITRATE = os.environ.get('MERGE_AUDIO_BITRATE', '192k')

# Queue behaviour
MERGE_JOB_ATTEMPTS = env_int('MERGE_JOB_ATTEMPTS', 2)
MERGE_MAX_CONCURRENT = env_int('MAX_CONCURRENT_MERGES', 1)
MERGE_QUEUE_REMOVE_ON_COMPLETE = env_bool('MERGE_QUEUE_REMOVE_ON_COMPLETE', True)
MERGE_RESULT_TTL = env_int('JOB_RESULT_TTL', 86400)
MERGE_FILENAME_MAX_CHARS = env_int('MERGE_FILENAME_MAX_CHARS', 100)

# Object storage (publisher falls back to MERGE_PUBLIC_DIR when unset)
MERGE_S3_BUCKET = os.environ.get('S3_BUCKET', '')
MERGE_S3_REGION = os.environ.get('S3_REGION', 'us-east-1')
MERGE_S3_ENDPOINT = os.environ.get('S3_ENDPOINT', '')
MERGE_S3_PRESIGNED_EXPIRES = env_int('S3_PRESIGNED_EXPIRES', 3600)
MERGE_S3_ACCESS_KEY_ID = os.environ.get('AWS_ACCESS_KEY_ID', '')
MERGE_S3_SECRET_ACCESS_KEY = os.environ.get('AWS_SECRET_ACCESS_KEY', '')

HUEY = {
    'huey_class': 'huey.SqliteHuey',
    'name': 'merge-queue',
    'filename': os.environ.get('HUEY_DB_PATH', str(BASE_DIR / 'huey.sqlite3')),
    'results': False,
    'immediate': TESTING or env_bool('HUEY_IMMEDIATE', False),
    'consumer': {
        'workers': MERGE_MAX_CONCURRENT,
        'worker_type': 'thread',
    },
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    },
    # Results are read after completed queue records are pruned
    'results': {
        'BACKEND': os.environ.get(
            'RESULT_CACHE_BACKEND', 'django.core.cache.backends.db.DatabaseCache'
        ),
        'LOCATION': os.environ.get('RESULT_CACHE_LOCATION', 'merge_result_cache'),
        'TIMEOUT': MERGE_RESULT_TTL,
        # Unexpired results must never be culled
        'OPTIONS': {
            'MAX_ENTRIES': env_int('RESULT_CACHE_MAX_ENTRIES', 10_000_000),
        },
    },
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'console': {'class': 'logging.StreamHandler'},
    },
    'loggers': {
        'huey': {
            'handlers': ['console'],
            'level': os.environ.get('HUEY_LOG_LEVEL', 'INFO'),
        },
    },
}
