"""
Project Assembler
Merges screen artifacts, boilerplate and assets into one project file set.
"""

import io
import zipfile
from typing import TYPE_CHECKING, Mapping

from ..core import get_logger, safe_json_dumps
from ..mapping import resource_name
from .archive import AssetFile
from .templates import TemplateRenderer

if TYPE_CHECKING:
    from ..converter import ScreenArtifacts

logger = get_logger(__name__)

REPORT_FILE = "conversion-report.json"
IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "webp", "bmp"})

# Fixed timestamp so identical input zips to identical bytes
ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)


def asset_path(name: str) -> str:
    """Resource path for an asset: images under drawable/, everything else under raw/."""
    extension = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    directory = "drawable" if extension in IMAGE_EXTENSIONS else "raw"
    suffix = f".{extension}" if extension else ""
    return f"app/src/main/res/{directory}/{resource_name(name)}{suffix}"


class ProjectAssembler:
    """Lays out the Android Studio project around the generated screen."""

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    def assemble(
        self,
        project_name: str,
        package: str,
        screen: "ScreenArtifacts",
        assets: tuple[AssetFile, ...] = (),
    ) -> dict[str, str | bytes]:
        """
        Build the path -> content mapping, every path under ``project_name/``.

        Insertion order is deterministic: generated sources, boilerplate,
        the diagnostics report, assets.
        """
        relative: dict[str, str | bytes] = {}
        for artifact in screen.artifacts:
            relative[artifact.path] = artifact.content

        render = self.renderer.render
        relative["app/src/main/AndroidManifest.xml"] = render("manifest", package=package)
        relative["app/src/main/res/values/strings.xml"] = render(
            "strings", app_name=screen.app_name or project_name
        )
        relative["build.gradle"] = render("root_gradle")
        relative["settings.gradle"] = render("settings_gradle", project_name=project_name)
        relative["app/build.gradle"] = render("app_gradle", package=package)

        relative[REPORT_FILE] = safe_json_dumps(
            {
                "project": project_name,
                "package": package,
                "screen": screen.screen,
                "diagnostics": [diagnostic.to_dict() for diagnostic in screen.diagnostics],
            },
            indent=2,
        )

        for asset in assets:
            path = asset_path(asset.name)
            if path in relative:
                logger.warning("asset_name_collision", asset=asset.name, path=path)
                continue
            relative[path] = asset.data

        return {f"{project_name}/{path}": content for path, content in relative.items()}


def zip_project(files: Mapping[str, str | bytes]) -> bytes:
    """Deflate the file set into zip bytes, entries in mapping order."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path, content in files.items():
            info = zipfile.ZipInfo(path, date_time=ZIP_DATE_TIME)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            data = content.encode("utf-8") if isinstance(content, str) else content
            archive.writestr(info, data)
    return buffer.getvalue()
