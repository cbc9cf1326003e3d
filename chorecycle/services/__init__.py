from chorecycle.services import notification_service


__all__ = [
    "notification_service",
]
