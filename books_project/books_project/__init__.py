# Celery instance is defined in books_project/celery.py
# It creates celery_app and points it to Django settings
from .celery import celery_app

# 'from books_project import *' only exports celery_app
__all__ = ("celery_app",)

""" Run workers with "celery -A books_project worker -l info".
    -A books_project imports books_project/__init__.py,
    which exposes celery_app to the worker. """
