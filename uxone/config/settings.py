"""
Django settings for the UXOne backend.

Values are read from environment variables; the defaults are suitable for
local development only.
"""
import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-uxone-development-key')
DEBUG = env_bool('DJANGO_DEBUG', True)
ALLOWED_HOSTS = [h.strip() for h in os.environ.get('DJANGO_ALLOWED_HOSTS', '*').split(',') if h.strip()]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'rest_framework_simplejwt',
    'django_filters',
    'uxone.core',
    'uxone.projects',
    'uxone.helpdesk',
    'uxone.procurement',
    'uxone.jde',
    'uxone.documents',
    'uxone.integration',
    'uxone.reports',
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

ROOT_URLCONF = 'uxone.config.urls'
WSGI_APPLICATION = 'uxone.config.wsgi.application'

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


def database_from_env(prefix, default_name):
    """Build a DATABASES entry from <prefix>_ENGINE/_NAME/_USER/... variables"""
    engine = os.environ.get(f'{prefix}_ENGINE', 'django.db.backends.sqlite3')
    if engine == 'django.db.backends.sqlite3':
        return {
            'ENGINE': engine,
            'NAME': os.environ.get(f'{prefix}_NAME', str(BASE_DIR / default_name)),
        }
    return {
        'ENGINE': engine,
        'NAME': os.environ.get(f'{prefix}_NAME', ''),
        'USER': os.environ.get(f'{prefix}_USER', ''),
        'PASSWORD': os.environ.get(f'{prefix}_PASSWORD', ''),
        'HOST': os.environ.get(f'{prefix}_HOST', 'localhost'),
        'PORT': os.environ.get(f'{prefix}_PORT', ''),
        'CONN_MAX_AGE': 60,
    }


DATABASES = {
    'default': database_from_env('DATABASE', 'db.sqlite3'),
    # Legacy database shared with the mobile app
    'mobile': database_from_env('MOBILE_DATABASE', 'mobile.sqlite3'),
}

# JDE (Oracle) is read-only and optional
if os.environ.get('JDE_DB_HOST'):
    DATABASES['jde'] = {
        'ENGINE': 'django.db.backends.oracle',
        'NAME': f"{os.environ['JDE_DB_HOST']}:{os.environ.get('JDE_DB_PORT', '1521')}/{os.environ.get('JDE_DB_SERVICE', '')}",
        'USER': os.environ.get('JDE_DB_USER', ''),
        'PASSWORD': os.environ.get('JDE_DB_PASSWORD', ''),
    }

DATABASE_ROUTERS = ['uxone.integration.routers.MobileDatabaseRouter']

# Mobile models reuse the legacy table names (users, notifications) in their own database
SILENCED_SYSTEM_CHECKS = ['models.W035']

AUTH_USER_MODEL = 'core.User'

AUTHENTICATION_BACKENDS = [
    'django.contrib.auth.backends.ModelBackend',
    'uxone.core.auth_backends.CentralAPIBackend',
]

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('DJANGO_TIME_ZONE', 'Asia/Ho_Chi_Minh')
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
MEDIA_URL = '/media/'
MEDIA_ROOT = BASE_DIR / 'media'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'DEFAULT_FILTER_BACKENDS': (
        'django_filters.rest_framework.DjangoFilterBackend',
    ),
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(hours=int(os.environ.get('JWT_ACCESS_HOURS', '8'))),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=int(os.environ.get('JWT_REFRESH_DAYS', '7'))),
    'ROTATE_REFRESH_TOKENS': False,
    'AUTH_HEADER_TYPES': ('Bearer',),
}

REDIS_URL = os.environ.get('REDIS_URL')
if REDIS_URL:
    CACHES = {
        'default': {
            'BACKEND': 'django_redis.cache.RedisCache',
            'LOCATION': REDIS_URL,
            'OPTIONS': {
                'CLIENT_CLASS': 'django_redis.client.DefaultClient',
                'IGNORE_EXCEPTIONS': True,
            },
            'KEY_PREFIX': 'uxone',
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'uxone-local',
        }
    }

# External systems
CENTRAL_API_URL = os.environ.get('CENTRAL_API_URL', '')
CENTRAL_API_TIMEOUT = int(os.environ.get('CENTRAL_API_TIMEOUT', '10'))
MOBILE_WEBHOOK_URL = os.environ.get('MOBILE_WEBHOOK_URL', 'http://localhost:3001/api/notifications/webhook')
WEBHOOK_SECRET = os.environ.get('WEBHOOK_SECRET', '')
WEBHOOK_TIMEOUT = int(os.environ.get('WEBHOOK_TIMEOUT', '10'))
EMAIL_WEBHOOK_SECRET = os.environ.get('EMAIL_WEBHOOK_SECRET', '')
JDE_AIS_URL = os.environ.get('JDE_AIS_URL', '')
JDE_AIS_USER = os.environ.get('JDE_AIS_USER', '')
JDE_AIS_PASSWORD = os.environ.get('JDE_AIS_PASSWORD', '')
JDE_AIS_TIMEOUT = int(os.environ.get('JDE_AIS_TIMEOUT', '30'))
JDE_SCHEMA = os.environ.get('JDE_SCHEMA', 'PRODDTA')

TASK_ATTACHMENT_MAX_SIZE = 10 * 1024 * 1024
DOCUMENT_MAX_SIZE = int(os.environ.get('DOCUMENT_MAX_SIZE', str(50 * 1024 * 1024)))

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'uxone': {
            'handlers': ['console'],
            'level': os.environ.get('UXONE_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
