"""Appointment scheduling and capacity allocation for dealership test drives and service visits."""

__version__ = "1.0.0"
