"""WSGI entry point for the labops project"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'labops.config.settings')

application = get_wsgi_application()
