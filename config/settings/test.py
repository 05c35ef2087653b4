"""Test settings: in-memory SQLite and fixed engine configuration."""

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CHALETS = {
    'CURRENCY': 'USD',
    'WEEKEND_DAYS': [4, 5],
    'DEPOSIT_TYPE': 'percentage',
    'DEPOSIT_PERCENTAGE': '30',
    'DEPOSIT_FIXED': '100',
    'CHECK_IN_TIME': '14:00',
    'CHECK_OUT_TIME': '11:00',
}

# Let pytest's caplog see engine records
LOGGING['loggers']['apps.chalets'] = {'level': 'DEBUG', 'propagate': True}  # noqa: F405
LOGGING['loggers']['shared'] = {'level': 'DEBUG', 'propagate': True}  # noqa: F405
