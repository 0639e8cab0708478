from .base import *

SECRET_KEY = "test-secret-key"
DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': str(BASE_DIR / 'test_db.sqlite3'),
        'OPTIONS': dict(SQLITE_OPTIONS),
        # File-backed so threaded tests see the same database and its locking
        'TEST': {'NAME': str(BASE_DIR / 'test_db.sqlite3')},
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = False
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
PUSH_GATEWAY_URL = ""

LOGGING['root']['level'] = 'CRITICAL'
for _logger in LOGGING['loggers'].values():
    _logger['level'] = 'CRITICAL'
