"""WSGI config for the chalet reservation project.

This module exposes the WSGI application used to serve the admin. It
mirrors the default generated file but points to our settings package.
"""

import os
from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.dev')

application = get_wsgi_application()
