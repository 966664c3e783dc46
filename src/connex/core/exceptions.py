"""Custom exceptions for Connex.

All Connex-specific exceptions inherit from ConnexError. The discovery
core itself never raises on malformed content; these are raised at the
input and configuration boundaries.
"""


class ConnexError(Exception):
    """Base exception for Connex errors."""

    pass


class InputError(ConnexError):
    """Error while loading a transcript, profile or graph file.

    Raised when an input file is missing, is not valid JSON, or does
    not have the expected top-level shape.
    """

    pass


class ConfigError(ConnexError):
    """Error during configuration loading.

    Raised when the config file has invalid TOML syntax
    or contains values outside the allowed range.
    """

    pass
