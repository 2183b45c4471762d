from __future__ import annotations


class MonitorError(Exception):
    """Base for errors raised by the monitor itself (not by probed URLs)."""


class ConfigError(MonitorError):
    """Fatal misconfiguration; startup halts before the first cycle."""


class NotifyError(MonitorError):
    """An alert could not be delivered to the outbound channel."""


class ServiceError(MonitorError):
    """A host service control command failed."""
