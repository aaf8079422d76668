"""Development settings for the campground booking project.

This module extends the base settings with development specific
configuration, such as enabling debug, allowing all hosts, using the
console email backend and human-readable log lines. Do not use these
settings in production!
"""

from .base import *  # noqa: F401,F403

# Enable debug mode for development
DEBUG = True

# Allow all hosts in development
ALLOWED_HOSTS = ['*']

# Use console email backend during development
EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'

# Readable log lines instead of JSON
LOGGING['handlers']['console']['formatter'] = 'console'  # noqa: F405
