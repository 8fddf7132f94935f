"""
WSGI config for the tubemerge project.

The huey consumer runs separately: ``python manage.py run_huey``.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'tubemerge.settings')

application = get_wsgi_application()
