"""
WSGI config for the tourhub project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "tourhub.settings")

application = get_wsgi_application()
