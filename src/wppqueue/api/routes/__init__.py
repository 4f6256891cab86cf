"""API route modules."""

from wppqueue.api.routes import metrics, phones, queue

__all__ = ["metrics", "phones", "queue"]
