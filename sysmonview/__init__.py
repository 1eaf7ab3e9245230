"""Viewer for Sysmon syslog XML events, with helpers for procfs, timestamps, wide strings and network tracking."""

__version__ = "0.1.0"