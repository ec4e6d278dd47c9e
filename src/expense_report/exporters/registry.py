"""Export sink discovery and registration."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from expense_report.exporters.base import ExportSink

logger = structlog.get_logger()

# Format name -> sink class
_registry: dict[str, type[ExportSink]] = {}


def register_sink(name: str):
    """Class decorator adding a sink to the registry under a format name.

    Usage:
        @register_sink("xlsx")
        class XlsxSink(ExportSink):
            extension = "xlsx"
    """

    def decorator(cls: type[ExportSink]) -> type[ExportSink]:
        cls.name = name
        _registry[name] = cls
        logger.debug("sink_registered", name=name, cls=cls.__name__)
        return cls

    return decorator


def get_sink(name: str) -> ExportSink:
    """Instantiate the sink for a format name.

    Raises:
        KeyError: If the format is not registered.
    """
    sink_cls = _registry.get(name.lower())
    if sink_cls is None:
        available = ", ".join(sorted(_registry)) or "(none)"
        raise KeyError(f"Unknown export format '{name}'. Available: {available}")
    return sink_cls()


def sink_for_path(path: Path) -> ExportSink | None:
    """The sink whose file extension matches `path`, if any."""
    suffix = path.suffix.lower().lstrip(".")
    if not suffix:
        return None
    for sink_cls in _registry.values():
        if sink_cls.extension == suffix:
            return sink_cls()
    return None


def list_sinks() -> dict[str, type[ExportSink]]:
    return dict(_registry)


def discover_sinks() -> None:
    """Import the built-in sink modules so their decorators run."""
    import expense_report.exporters.pdf  # noqa: F401
    import expense_report.exporters.screen  # noqa: F401
    import expense_report.exporters.word  # noqa: F401
    import expense_report.exporters.xlsx  # noqa: F401

    logger.debug("sinks_discovered", names=sorted(_registry))
