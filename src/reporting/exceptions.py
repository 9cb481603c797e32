"""
Exceptions for report modules and pipelines.

These cover setup problems raised before a module runs. Failures during
a run are reported through status values instead.
"""


class ReportModuleError(Exception):
    """Base exception for report module errors."""
    pass


class ConfigurationError(ReportModuleError):
    """Raised when a pipeline or module configuration is invalid."""
    pass


class UnknownModuleError(ReportModuleError):
    """Raised when a pipeline names a module that is not registered."""

    def __init__(self, module_name: str, available: list[str] | None = None):
        self.module_name = module_name
        self.available = available or []
        message = f"Unknown report module '{module_name}'"
        if self.available:
            message += f" (available: {', '.join(sorted(self.available))})"
        super().__init__(message)
