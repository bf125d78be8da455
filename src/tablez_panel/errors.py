"""Exception types raised by the panel core."""


class TablezError(Exception):
    """Base class for panel errors."""


class ConfigError(TablezError, ValueError):
    """Configuration payload or edit path is invalid."""


class DriverError(TablezError):
    """The driver failed to read or apply a configuration."""
