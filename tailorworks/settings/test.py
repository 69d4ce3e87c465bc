"""
Test settings. File backed SQLite, quiet logging, no retry backoff.
"""

from .base import *

DEPLOYMENT_MODE = 'test'

DEBUG = False

# File backed so threaded tests get a connection each. IMMEDIATE makes every
# transaction take the write lock up front, and ``timeout`` lets the others
# queue behind it.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
        'OPTIONS': {
            'timeout': 20,
            'transaction_mode': 'IMMEDIATE',
        },
        'TEST': {
            'NAME': str(BASE_DIR / 'test_tailorworks.sqlite3'),
        },
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

WORKFLOW_RETRY_BACKOFF_SECONDS = 0

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
        },
    },
    'loggers': {
        'workshop': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
    },
}
