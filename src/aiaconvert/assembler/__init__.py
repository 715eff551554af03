"""
Project Assembly
Archive reading, boilerplate rendering and output packaging.
"""

from .archive import AssetFile, ProjectArchive, read_archive, read_archive_async
from .templates import TemplateRenderer, android_string
from .project import REPORT_FILE, ProjectAssembler, asset_path, zip_project

__all__ = [
    "AssetFile",
    "ProjectArchive",
    "read_archive",
    "read_archive_async",
    "TemplateRenderer",
    "android_string",
    "REPORT_FILE",
    "ProjectAssembler",
    "asset_path",
    "zip_project",
]
