"""Test settings.

SQLite in memory, in-process email outbox and eager Celery so the queue
can be exercised without a broker.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

NOTIFICATIONS = {
    **NOTIFICATIONS,  # noqa: F405
    'SMS_GATEWAY_URL': 'https://sms.example.test/send',
    'SMS_GATEWAY_TOKEN': 'sms-token',
    'PUSH_GATEWAY_URL': 'https://push.example.test/send',
    'PUSH_GATEWAY_TOKEN': 'push-token',
    'DISPATCH_WORKERS': 2,
    'SEND_TIMEOUT_SECONDS': 2,
    'EVENT_TIMEOUT_SECONDS': 5,
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {'null': {'class': 'logging.NullHandler'}},
    'root': {'handlers': ['null'], 'level': 'WARNING'},
}
