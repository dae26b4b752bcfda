"""Exception types raised while loading server configuration."""

from __future__ import annotations


class ConfigError(ValueError):
    """Base error for configuration that cannot be loaded."""


class ConfigSchemaError(ConfigError):
    """Document or section does not have the expected shape."""


class ConfigValidationError(ConfigError):
    """A required value is missing or out of range."""


class ConfigParseError(ConfigError):
    def __init__(self, message: str, raw: str) -> None:
        super().__init__(message)
        self.raw = raw


class DurationParseError(ConfigParseError):
    pass


class ByteSizeParseError(ConfigParseError):
    pass


class LoggingConfigError(ConfigError):
    pass


class MissingBaseClassError(ConfigError):
    def __init__(self, name: str, base: str) -> None:
        super().__init__(f"oper class '{name}' extends '{base}', which does not exist")
        self.name = name
        self.base = base


class OperClassCycleError(ConfigError):
    def __init__(self) -> None:
        super().__init__(
            "oper-classes contains a looping dependency, or a class extends from a class that never resolves"
        )


class UnknownOperClassError(ConfigError):
    def __init__(self, operator: str, oper_class: str) -> None:
        super().__init__(
            f"could not load operator '{operator}': they use oper class '{oper_class}', which does not exist"
        )
        self.operator = operator
        self.oper_class = oper_class


class OperatorNameError(ConfigError):
    pass


class DuplicateOperatorError(ConfigError):
    pass


class FatalConfigError(RuntimeError):
    """Unrecoverable load failure: undecodable credentials or an unusable TLS pair."""
