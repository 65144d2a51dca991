"""Credential profile switching for a running IDE host."""

__version__ = "0.1.0"
