"""WPP Redirect Queue - per-phone waiting queues for WhatsApp lines."""

__version__ = "0.1.0"
