from . import admin_calendar, availability, bookings, health, prometheus

__all__ = ["admin_calendar", "availability", "bookings", "health", "prometheus"]
