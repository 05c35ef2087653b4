"""Development settings for the chalet reservation project.

This module extends the base settings with development specific
configuration, such as enabling debug, allowing all hosts and verbose
engine logging. Do not use these settings in production!
"""

from .base import *  # noqa: F401,F403

# Enable debug mode for development
DEBUG = True

# Allow all hosts in development
ALLOWED_HOSTS = ['*']

LOGGING['loggers']['apps.chalets']['level'] = 'DEBUG'  # noqa: F405
