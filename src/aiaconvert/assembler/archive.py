"""
Project Archive Reader
Locates the entry screen and assets inside an uploaded .aia (zip) archive.
"""

import asyncio
import io
import zipfile
from dataclasses import dataclass

from ..core import ArchiveError, get_logger

logger = get_logger(__name__)

ASSETS_DIR = "assets/"


@dataclass(frozen=True)
class AssetFile:
    """A media file shipped with the project."""

    name: str
    data: bytes


@dataclass(frozen=True)
class ProjectArchive:
    """Entry screen descriptors and assets, in deterministic order."""

    screen_name: str
    layout: str
    blocks: str
    assets: tuple[AssetFile, ...] = ()


def _screen_entry(names: list[str], file_name: str) -> str | None:
    """First (sorted) entry whose base name is ``file_name``."""
    matches = [name for name in names if name == file_name or name.endswith(f"/{file_name}")]
    if len(matches) > 1:
        logger.warning("archive_duplicate_screen_entry", file=file_name, used=matches[0])
    return matches[0] if matches else None


def _decode(name: str, raw: bytes) -> str:
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ArchiveError(f"Entry {name} is not valid UTF-8: {e}") from e


async def read_archive_async(
    data: bytes,
    screen_name: str = "Screen1",
    max_descriptor_size: int = 4 * 1024 * 1024,
    max_total_size: int = 50 * 1024 * 1024,
) -> ProjectArchive:
    """
    Read an .aia archive, decoding entries concurrently.

    Entries are read on the default executor and gathered in sorted
    entry-name order, so the result never depends on completion order.

    Raises:
        ArchiveError: If the archive is not a zip, lacks the screen's layout
            descriptor, or exceeds the size limits
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"Uploaded file is not a valid .aia archive: {e}") from e

    with archive:
        infos = {info.filename: info for info in archive.infolist() if not info.is_dir()}
        names = sorted(infos)

        layout_entry = _screen_entry(names, f"{screen_name}.scm")
        if layout_entry is None:
            raise ArchiveError(f"Archive has no {screen_name}.scm entry")
        blocks_entry = _screen_entry(names, f"{screen_name}.bky")
        if blocks_entry is None:
            logger.warning("archive_missing_blocks", screen=screen_name)

        asset_entries = [name for name in names if name.startswith(ASSETS_DIR)]

        for entry in filter(None, (layout_entry, blocks_entry)):
            if infos[entry].file_size > max_descriptor_size:
                raise ArchiveError(f"Entry {entry} exceeds maximum size of {max_descriptor_size} bytes")
        total = sum(infos[name].file_size for name in asset_entries)
        if total > max_total_size:
            raise ArchiveError(f"Assets exceed maximum total size of {max_total_size} bytes")

        wanted = [entry for entry in (layout_entry, blocks_entry) if entry] + asset_entries
        loop = asyncio.get_running_loop()
        try:
            contents = await asyncio.gather(
                *(loop.run_in_executor(None, archive.read, name) for name in wanted)
            )
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveError(f"Could not read archive entries: {e}") from e

    raw = dict(zip(wanted, contents))
    layout = _decode(layout_entry, raw[layout_entry])
    blocks = _decode(blocks_entry, raw[blocks_entry]) if blocks_entry else ""
    assets = tuple(AssetFile(name[len(ASSETS_DIR):], raw[name]) for name in asset_entries)

    logger.info(
        "archive_read",
        screen=screen_name,
        layout_entry=layout_entry,
        blocks_entry=blocks_entry,
        assets=len(assets),
    )
    return ProjectArchive(screen_name=screen_name, layout=layout, blocks=blocks, assets=assets)


def read_archive(data: bytes, screen_name: str = "Screen1", **limits: int) -> ProjectArchive:
    """Blocking wrapper around read_archive_async for callers without a loop."""
    return asyncio.run(read_archive_async(data, screen_name, **limits))
