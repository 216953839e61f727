"""
Django settings for the videosender project.

Only the pieces the sender app needs are configured: no database models,
no admin, no templates. Every VIDEOSENDER_* option can be overridden from
the environment.
"""

import os
import shutil
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'videosender-insecure-dev-key')

DEBUG = os.environ.get('DJANGO_DEBUG', 'false').lower() == 'true'

ALLOWED_HOSTS = []

INSTALLED_APPS = [
    'huey.contrib.djhuey',
    'sender',
]

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

USE_TZ = True
TIME_ZONE = 'UTC'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


def _optional_int(name, default=None):
    value = os.environ.get(name)
    if value in (None, ''):
        return default
    return int(value)


# Directory holding transient downloads and remuxed files.
# Relative paths are resolved against BASE_DIR.
VIDEOSENDER_TEMP_DIR = Path(os.environ.get('VIDEOSENDER_TEMP_DIR', 'data/videoTemp'))
if not VIDEOSENDER_TEMP_DIR.is_absolute():
    VIDEOSENDER_TEMP_DIR = BASE_DIR / VIDEOSENDER_TEMP_DIR

# Absolute path to the ffmpeg executable. Empty means "not available".
VIDEOSENDER_FFMPEG_PATH = os.environ.get('VIDEOSENDER_FFMPEG_PATH', shutil.which('ffmpeg') or '')

# Container produced by the remux step
VIDEOSENDER_TARGET_FORMAT = os.environ.get('VIDEOSENDER_TARGET_FORMAT', 'mkv')

# Seconds; the remux timeout is unbounded unless set.
# FETCH_TIMEOUT limits each socket read, FETCH_MAX_DURATION the whole download.
VIDEOSENDER_FETCH_TIMEOUT = _optional_int('VIDEOSENDER_FETCH_TIMEOUT', 30)
VIDEOSENDER_FETCH_MAX_DURATION = _optional_int('VIDEOSENDER_FETCH_MAX_DURATION', 600)
VIDEOSENDER_REMUX_TIMEOUT = _optional_int('VIDEOSENDER_REMUX_TIMEOUT')

# cleanup_tmp treats files older than this as abandoned
VIDEOSENDER_TMP_MAX_AGE_MINUTES = _optional_int('VIDEOSENDER_TMP_MAX_AGE_MINUTES', 60)

HUEY = {
    'huey_class': 'huey.SqliteHuey',
    'name': 'videosender',
    'filename': str(BASE_DIR / 'huey.sqlite3'),
    'immediate': os.environ.get('HUEY_IMMEDIATE', 'false').lower() == 'true',
    'consumer': {
        'workers': _optional_int('HUEY_WORKERS', 4),
        'worker_type': 'thread',
    },
}
