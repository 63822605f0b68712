from fastapi import Request

from app.core.exceptions import DependencyUnavailableError
from app.modules.notifications.services.notification_events import NotificationDispatcher

def get_dispatcher(request: Request) -> NotificationDispatcher:
    """
    Dependency for the notification dispatcher created at startup
    """
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise DependencyUnavailableError("Notification dispatcher is not running")
    return dispatcher
