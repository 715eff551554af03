"""
Conversion Pipeline
Runs the layout and block stages for a screen and assembles whole projects.
"""

import time
from dataclasses import dataclass, field

from returns.result import Failure, Result, Success

from .assembler import ProjectArchive, ProjectAssembler
from .blocks import BlockCompiler, BlockParser
from .core import (
    ConversionError,
    ConversionTimeout,
    Deadline,
    Diagnostic,
    Diagnostics,
    IdentifierAllocator,
    LogContext,
    MalformedBlockDescriptor,
    MalformedLayoutDescriptor,
    Settings,
    get_logger,
    get_settings,
    to_kotlin_identifier,
)
from .core.tracing import trace_operation
from .layout import LayoutGenerator, LayoutParser
from .mapping import MappingTable
from .monitoring import MetricsCollector

logger = get_logger(__name__)

LAYOUT_NAME = "activity_main"
ACTIVITY_NAME = "MainActivity"


@dataclass(frozen=True)
class GeneratedArtifact:
    """One output file, path relative to the project root."""

    path: str
    content: str | bytes


@dataclass(frozen=True)
class ScreenSource:
    """The two descriptors of one screen, as UTF-8 text."""

    name: str
    layout: str
    blocks: str = ""


@dataclass(frozen=True)
class ScreenArtifacts:
    """Successful screen conversion: layout and activity plus diagnostics."""

    screen: str
    artifacts: tuple[GeneratedArtifact, ...]
    diagnostics: tuple[Diagnostic, ...] = ()
    app_name: str | None = None


@dataclass(frozen=True)
class ScreenFailure:
    """A screen that could not be converted at all."""

    screen: str
    reason: str
    error: ConversionError | None = field(default=None, compare=False)


@dataclass(frozen=True)
class ConvertedProject:
    """Every output file of a project, keyed by path in emission order."""

    name: str
    files: dict[str, str | bytes]
    diagnostics: tuple[Diagnostic, ...] = ()


def package_name(prefix: str, project_name: str) -> str:
    """Kotlin package for a project ('com.example', 'MyApp' -> 'com.example.myapp')."""
    segment = to_kotlin_identifier(project_name).lower()
    return f"{prefix}.{segment}" if prefix else segment


class ScreenConverter:
    """Layout parse -> layout generate -> block parse -> block compile, for one screen."""

    def __init__(self, table: MappingTable, settings: Settings | None = None) -> None:
        self.table = table
        self.settings = settings or get_settings()

    def convert(
        self,
        source: ScreenSource,
        package: str,
        deadline: Deadline | None = None,
    ) -> Result[ScreenArtifacts, ScreenFailure]:
        """
        Convert one screen.

        Structural defects in either descriptor yield a Failure for the
        screen; node and block level defects are diagnostics on the Success.

        Raises:
            ConversionTimeout: If the deadline expires mid-run
        """
        deadline = deadline or Deadline(self.settings.conversion_timeout)
        allocator = IdentifierAllocator()
        limits = {
            "max_size": self.settings.max_descriptor_size,
            "max_depth": self.settings.max_nesting_depth,
            "deadline": deadline,
            "screen": source.name,
        }

        with LogContext(screen=source.name), trace_operation("convert_screen", screen=source.name):
            try:
                parsed = LayoutParser(**limits, repair=self.settings.repair_descriptors).parse(source.layout)
                layout = LayoutGenerator(
                    self.table,
                    allocator=allocator,
                    deadline=deadline,
                    screen=source.name,
                    activity=ACTIVITY_NAME,
                ).generate(parsed.root)
                program = BlockParser(**limits).parse(source.blocks)
            except (MalformedLayoutDescriptor, MalformedBlockDescriptor) as e:
                logger.error("screen_failed", error=str(e), error_type=type(e).__name__)
                return Failure(ScreenFailure(screen=source.name, reason=str(e), error=e))

            compiled = BlockCompiler(
                layout.components,
                package=package,
                activity=ACTIVITY_NAME,
                layout_name=LAYOUT_NAME,
                deadline=deadline,
                screen=source.name,
                table=self.table,
            ).compile(program)

        diagnostics = Diagnostics(source.name)
        for stage in (parsed.diagnostics, layout.diagnostics, program.diagnostics, compiled.diagnostics):
            diagnostics.extend(stage)

        package_path = package.replace(".", "/")
        artifacts = (
            GeneratedArtifact(f"app/src/main/res/layout/{LAYOUT_NAME}.xml", layout.markup),
            GeneratedArtifact(f"app/src/main/java/{package_path}/{ACTIVITY_NAME}.kt", compiled.source),
        )
        app_name = parsed.root.properties.get("AppName") or parsed.root.properties.get("Title")
        logger.info("screen_converted", screen=source.name, diagnostics=len(diagnostics))
        return Success(
            ScreenArtifacts(
                screen=source.name,
                artifacts=artifacts,
                diagnostics=tuple(diagnostics),
                app_name=str(app_name) if app_name not in (None, "") else None,
            )
        )


class ProjectConverter:
    """Converts a read archive into the full Android Studio file set."""

    def __init__(
        self,
        table: MappingTable,
        settings: Settings | None = None,
        assembler: ProjectAssembler | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.screens = ScreenConverter(table, self.settings)
        self.assembler = assembler or ProjectAssembler()
        self.metrics = metrics

    def convert(
        self, archive: ProjectArchive, project_name: str | None = None
    ) -> Result[ConvertedProject, ScreenFailure]:
        """
        Convert the entry screen and assemble the project.

        Raises:
            ConversionTimeout: If the conversion deadline expires
        """
        project_name = project_name or self.settings.default_project_name
        package = package_name(self.settings.package_prefix, project_name)
        deadline = Deadline(self.settings.conversion_timeout)
        source = ScreenSource(name=archive.screen_name, layout=archive.layout, blocks=archive.blocks)
        start = time.perf_counter()

        with LogContext(project=project_name), trace_operation("convert_project", project=project_name):
            try:
                result = self.screens.convert(source, package, deadline)
            except ConversionTimeout:
                self._record("timeout", start)
                logger.error("conversion_timeout", project=project_name)
                raise

            if isinstance(result, Failure):
                self._record("failed", start)
                return result

            screen = result.unwrap()
            files = self.assembler.assemble(
                project_name=project_name,
                package=package,
                screen=screen,
                assets=archive.assets,
            )

        self._record("success", start, screen.diagnostics)
        logger.info(
            "project_converted",
            project=project_name,
            files=len(files),
            diagnostics=len(screen.diagnostics),
        )
        return Success(ConvertedProject(name=project_name, files=files, diagnostics=screen.diagnostics))

    def _record(self, status: str, start: float, diagnostics: tuple[Diagnostic, ...] = ()) -> None:
        if self.metrics is None:
            return
        self.metrics.record_conversion(status, time.perf_counter() - start)
        self.metrics.record_screen(status)
        for diagnostic in diagnostics:
            self.metrics.record_diagnostic(diagnostic.code.value)
