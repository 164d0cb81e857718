"""
Celery tasks for background email delivery.
"""
