"""Roster file import: read, resolve headers, normalize, gate, submit."""
