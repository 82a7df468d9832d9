"""Agenda: weekly availability rules → bookable slots → reservations."""

__version__ = "0.1.0"
