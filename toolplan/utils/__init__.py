"""Utility functions and helpers for toolplan."""

from .config import ConfigManager
from .error_handling import handle_errors
from .logging_config import (
    StructuredLogger,
    get_logger,
    get_structured_logger,
    setup_logging,
    setup_logging_from_config,
)
from .schema import (
    AnalyzerConfig,
    CatalogConfig,
    EstimatorConfig,
    LoggingConfig,
    SchedulerConfig,
    ToolPlanConfig,
)

__all__ = [
    # Configuration
    "ConfigManager",
    "ToolPlanConfig",
    "LoggingConfig",
    "SchedulerConfig",
    "EstimatorConfig",
    "AnalyzerConfig",
    "CatalogConfig",
    # Errors
    "handle_errors",
    # Logging
    "StructuredLogger",
    "get_logger",
    "get_structured_logger",
    "setup_logging",
    "setup_logging_from_config",
]
