"""
Service layer for merge jobs.

This module contains the Django-model-free pieces of the pipeline: catalog
lookup, stream selection, external process running, track merging and
publishing. These functions are used by:
- The huey worker (downloads/tasks.py via downloads/processing.py)
- The management commands (downloads/management/commands/)
"""
