"""
Report module registry.
"""

from typing import Any, Dict, List, Optional, Type

from core.logging import get_logger

from .base import BaseReportModule, ModuleMetadata, ReportContext
from .exceptions import ConfigurationError, UnknownModuleError

LOGGER = get_logger("reporting.registry")


class ModuleRegistry:
    """
    Name-to-class registry of report modules.

    Usage:
        registry = ModuleRegistry()            # built-in modules registered
        module = registry.create("save_interesting_files", context)
        names = registry.names()
    """

    def __init__(self, register_builtin: bool = True):
        self._modules: Dict[str, Type[BaseReportModule]] = {}
        if register_builtin:
            self._register_builtin()

    def _register_builtin(self) -> None:
        from .save_interesting import SaveInterestingFilesModule

        self.register(SaveInterestingFilesModule)

    def register(self, module_cls: Type[BaseReportModule]) -> None:
        metadata = module_cls.identify()
        if metadata.name in self._modules:
            LOGGER.warning("Replacing registered report module %s", metadata.name)
        self._modules[metadata.name] = module_cls
        LOGGER.debug("Registered report module %s (%s)", metadata.name, metadata.version)

    def get(self, name: str) -> Optional[Type[BaseReportModule]]:
        return self._modules.get(name)

    def names(self) -> List[str]:
        return sorted(self._modules)

    def metadata(self) -> List[ModuleMetadata]:
        return [self._modules[name].identify() for name in self.names()]

    def create(self, name: str, context: ReportContext, **options: Any) -> BaseReportModule:
        """
        Instantiate a registered module.

        Raises:
            UnknownModuleError: If no module is registered under ``name``
            ConfigurationError: If the module rejects ``options``
        """
        module_cls = self.get(name)
        if module_cls is None:
            raise UnknownModuleError(name, self.names())
        try:
            return module_cls(context, **options)
        except TypeError as exc:
            raise ConfigurationError(f"Invalid options for module '{name}': {exc}") from exc
