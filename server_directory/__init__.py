from .app import app, celery, db

# Registers routes, CLI commands and Celery tasks on import
from . import commands, tasks, views  # noqa: F401
