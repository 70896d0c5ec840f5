"""
Celery tasks for background course and research package generation.
"""
