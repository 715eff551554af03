"""Dependency Injection Container."""

from injector import Injector, Module, provider, singleton

from ..converter import ProjectConverter
from ..mapping import MappingTable, load_mapping_table
from ..monitoring import MetricsCollector, metrics_collector
from .config import Settings, get_settings


class CoreModule(Module):
    """Core dependencies."""

    def __init__(self, settings: Settings, metrics: MetricsCollector | None = None) -> None:
        self.settings = settings
        self.metrics = metrics or metrics_collector

    @singleton
    @provider
    def provide_settings(self) -> Settings:
        return self.settings

    @singleton
    @provider
    def provide_mapping_table(self, settings: Settings) -> MappingTable:
        """Load the component mapping table once per container."""
        return load_mapping_table(settings.mapping_path)

    @singleton
    @provider
    def provide_metrics(self) -> MetricsCollector:
        return self.metrics

    @singleton
    @provider
    def provide_project_converter(
        self, settings: Settings, table: MappingTable, metrics: MetricsCollector
    ) -> ProjectConverter:
        """Provide the project converter with all dependencies."""
        return ProjectConverter(table, settings=settings, metrics=metrics)


def create_container(
    settings: Settings | None = None, metrics: MetricsCollector | None = None
) -> Injector:
    """Create configured injector."""
    return Injector([CoreModule(settings or get_settings(), metrics)])
