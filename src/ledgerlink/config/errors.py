"""Configuration errors."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """An environment setting is present but unusable."""

    def __init__(self, message: str, *, variable: str | None = None) -> None:
        super().__init__(message)
        self.variable = variable


class MissingConfigurationError(ConfigurationError):
    """One or more required settings are absent or blank."""

    def __init__(self, variables: list[str]) -> None:
        super().__init__(f"Missing configuration for: {', '.join(sorted(variables))}")
        self.variables = tuple(sorted(variables))
