"""Task Master: task management API with image attachments."""

__version__ = "0.1.0"
