"""
Configuration schemas for validation.
"""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    json_format: bool = False
    file: Optional[str] = None


@dataclass
class SchedulerConfig:
    # None disables the per-task deadline / the concurrency limit
    task_timeout_s: Optional[float] = None
    max_concurrency: Optional[int] = None


@dataclass
class EstimatorConfig:
    average_task_duration_ms: float = 300.0


@dataclass
class AnalyzerConfig:
    reference_markers: List[str] = field(default_factory=lambda: ["$", "result"])


@dataclass
class CatalogConfig:
    # YAML catalog file; relative paths are resolved against the config directory
    path: Optional[str] = None


@dataclass
class ToolPlanConfig:
    name: str = "toolplan"
    version: str = "0.1.0"
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    estimator: EstimatorConfig = field(default_factory=EstimatorConfig)
    analyzer: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
