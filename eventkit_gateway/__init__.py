"""
EventKit Gateway - JSON command-line access to macOS Calendar and Reminders.
"""

__version__ = "1.0.0"
