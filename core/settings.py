import sys

from environs import Env
from loguru import logger
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

env = Env()
env.read_env(BASE_DIR / '.env')

APP_ENV = env.str('APP_ENV', 'local')

SECRET_KEY = env.str('APP_SECRET_KEY', 'change-me')

DEBUG = APP_ENV != 'production'

ALLOWED_HOSTS = env.list('ALLOWED_HOSTS', default=['*'])

INSTALLED_APPS = [
    'django.contrib.staticfiles',
    'ebook',
]

MIDDLEWARE = [
    'core.middleware.canonical_host_middleware',
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'core.urls'

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

WSGI_APPLICATION = 'core.wsgi.application'
ASGI_APPLICATION = 'core.asgi.application'

# Entitlement state lives in the credential cache and the page storage only.
DATABASES = {}

if env.bool('USE_X_FORWARDED_PROTO', False):
    SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')

REDIS_URL = env.str('REDIS_URL', '')

if REDIS_URL:
    CREDENTIAL_CACHE = {
        'BACKEND': 'django.core.cache.backends.redis.RedisCache',
        'LOCATION': REDIS_URL,
        'KEY_PREFIX': 'ebook_session',
    }
else:
    CREDENTIAL_CACHE = {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'ebook-credentials',
        'KEY_PREFIX': 'ebook_session',
    }

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    },
    'credentials': CREDENTIAL_CACHE,
}

EBOOK_CONTENT_ROOT = env.path('EBOOK_CONTENT_ROOT', BASE_DIR / 'content')

STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
    'ebook': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
        'OPTIONS': {
            'location': str(EBOOK_CONTENT_ROOT),
        },
    },
}


LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'UTC'

USE_I18N = False

USE_TZ = True


STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'static'

LOG_LEVEL = env.str('LOG_LEVEL', 'INFO').upper()

logger.remove()
logger.add(sys.stderr, level=LOG_LEVEL)

EBOOK_TITLE = env.str('EBOOK_TITLE', 'Untitled')
EBOOK_PRICE_ID = env.str('EBOOK_PRICE_ID', '')
EBOOK_PAGE_COUNT = env.int('EBOOK_PAGE_COUNT', 1)
EBOOK_SESSION_COOKIE = 'ebook_session'
EBOOK_CREDENTIAL_TTL_SECONDS = env.int(
    'EBOOK_CREDENTIAL_TTL_SECONDS', 60 * 60 * 24 * 365)

STRIPE_SECRET_KEY = env.str('STRIPE_SECRET_KEY', '')
STRIPE_API_BASE = env.str('STRIPE_API_BASE', 'https://api.stripe.com')
