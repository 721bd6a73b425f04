class NotificationError(Exception):
    """Raised when an execution outcome cannot be published."""
