# backend/config/settings.py

from pathlib import Path
from corsheaders.defaults import default_headers
import os

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-local-test-tube-lab')

DEBUG = os.getenv('DEBUG', 'False') == 'True'

_render_host     = os.getenv('RENDER_EXTERNAL_HOSTNAME', '')
_extra_hosts_raw = os.getenv('DJANGO_EXTRA_HOSTS', '')
_extra_hosts     = [h.strip() for h in _extra_hosts_raw.split(',') if h.strip()]

ALLOWED_HOSTS = ['localhost', '127.0.0.1', 'testserver'] + (
    [_render_host] if _render_host else []
) + _extra_hosts

INSTALLED_APPS = [
    'daphne',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.staticfiles',
    'rest_framework',
    'corsheaders',
    'channels',
    'reactions',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
            ],
        },
    },
]

ASGI_APPLICATION = 'config.asgi.application'

# ── Channel Layers ────────────────────────────────────────────────────────────
# Every lab session lives inside its own WebSocket connection and nothing is
# broadcast between connections, so the in-memory layer is all we need.
CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    }
}

# ── Database ──────────────────────────────────────────────────────────────────
# Nothing is persisted; sessions live and die with their socket.  Django
# still wants a default alias for the contrib apps.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

LANGUAGE_CODE = 'en-us'
TIME_ZONE     = 'UTC'
USE_I18N      = True
USE_TZ        = True

STATIC_URL  = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

STORAGES = {
    "staticfiles": {
        "BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage",
    },
}

# ── CORS / CSRF ───────────────────────────────────────────────────────────────
_BASE_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://localhost:4173",
    "http://127.0.0.1:5173",
]

_frontend_url  = os.getenv('FRONTEND_URL', '')
_extra_raw     = os.getenv('DJANGO_EXTRA_ORIGINS', '')
_extra_origins = [o.strip() for o in _extra_raw.split(',') if o.strip()]

_all_origins = _BASE_ORIGINS + (
    [_frontend_url] if _frontend_url else []
) + _extra_origins

CORS_ALLOWED_ORIGINS  = _all_origins
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_HEADERS    = list(default_headers) + ['ngrok-skip-browser-warning']

CSRF_TRUSTED_ORIGINS = _all_origins

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.AllowAny'],
    'UNAUTHENTICATED_USER': None,
}

# ── Lab engine ────────────────────────────────────────────────────────────────
# Overrides for lab_engine.config.LabSettings; anything not listed keeps the
# engine default.
LAB_ENGINE = {}

if os.getenv('LAB_BREAK_INTENSITY'):
    LAB_ENGINE['break_intensity'] = float(os.getenv('LAB_BREAK_INTENSITY'))
if os.getenv('LAB_POUR_DURATION'):
    LAB_ENGINE['pour_duration'] = float(os.getenv('LAB_POUR_DURATION'))

# ── Logging ───────────────────────────────────────────────────────────────────
# Session transitions and effect cues log at DEBUG; set LAB_LOG_LEVEL=DEBUG
# to follow a lab frame by frame in the Render / Railway log viewer.
_LAB_LOG_LEVEL = os.getenv('LAB_LOG_LEVEL', 'INFO')

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "[%(levelname)s] %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {
            "class":     "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "loggers": {
        "reactions": {
            "handlers":  ["console"],
            "level":     _LAB_LOG_LEVEL,
            "propagate": False,
        },
        "lab_engine": {
            "handlers":  ["console"],
            "level":     _LAB_LOG_LEVEL,
            "propagate": False,
        },
    },
}
