"""Shared models, IPC messages, event logging and threat-intelligence event handling for Sanctum."""

__version__ = "0.0.2"