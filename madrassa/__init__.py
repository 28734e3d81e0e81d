"""Madrassa student administration: roster import, student service, roster views."""

__version__ = "0.1.0"
