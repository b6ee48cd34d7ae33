"""Orders API: order records, validation rules and event-driven updates."""

__version__ = "1.0.0"
