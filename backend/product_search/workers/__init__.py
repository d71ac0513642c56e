"""Background workers (Celery)"""
