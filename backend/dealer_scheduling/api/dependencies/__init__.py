from .database import get_db, get_session_factory
from .services import get_availability_service, get_calendar_config_service, get_dispatcher

__all__ = [
    "get_availability_service",
    "get_calendar_config_service",
    "get_db",
    "get_dispatcher",
    "get_session_factory",
]
