"""Command line entry point: ``aiaconvert convert`` and ``aiaconvert serve``."""

import argparse
import sys
from pathlib import Path

from returns.result import Failure

from .assembler import read_archive, zip_project
from .converter import ProjectConverter
from .core import (
    ArchiveError,
    ConversionTimeout,
    ConvertRequest,
    configure_logging,
    create_container,
    get_logger,
    get_settings,
)
from .core.tracing import init_tracer

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_SCREEN_FAILED = 1
EXIT_BAD_INPUT = 2


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aiaconvert", description="Convert App Inventor projects into Android Studio projects"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    convert = commands.add_parser("convert", help="Convert an .aia archive into a project zip")
    convert.add_argument("input", type=Path, help="Path to input .aia file")
    convert.add_argument("-o", "--output", type=Path, help="Output .zip (default: <project>.zip)")
    convert.add_argument("-n", "--project-name", help="Android project name (default: input file stem)")

    serve = commands.add_parser("serve", help="Run the HTTP conversion service")
    serve.add_argument("--host", help="Bind address")
    serve.add_argument("--port", type=int, help="Bind port")
    return parser


def _project_name(args: argparse.Namespace) -> str:
    """Explicit name, else the input stem if it is a valid project name."""
    candidate = args.project_name or args.input.stem
    try:
        return ConvertRequest(file="-", projectName=candidate).project_name
    except ValueError:
        if args.project_name:
            raise
        return get_settings().default_project_name


def convert_file(input_path: Path, output_path: Path | None, project_name: str) -> int:
    settings = get_settings()
    converter = create_container(settings).get(ProjectConverter)
    try:
        archive = read_archive(
            input_path.read_bytes(),
            settings.screen_name,
            max_descriptor_size=settings.max_descriptor_size,
            max_total_size=settings.max_upload_bytes,
        )
        result = converter.convert(archive, project_name)
    except (ArchiveError, ConversionTimeout) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT

    if isinstance(result, Failure):
        failure = result.failure()
        print(f"error: screen {failure.screen} could not be converted: {failure.reason}", file=sys.stderr)
        return EXIT_SCREEN_FAILED

    project = result.unwrap()
    output_path = output_path or Path(f"{project.name}.zip")
    output_path.write_bytes(zip_project(project.files))
    for diagnostic in project.diagnostics:
        print(f"warning: [{diagnostic.code.value}] {diagnostic.message}", file=sys.stderr)
    print(f"Wrote {output_path} ({len(project.files)} files, {len(project.diagnostics)} diagnostics)")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    settings = get_settings()

    if args.command == "serve":
        from .server import serve

        serve(host=args.host, port=args.port)
        return EXIT_OK

    configure_logging(settings.log_level, settings.json_logs)
    init_tracer("aiaconvert")
    input_path: Path = args.input
    if not input_path.exists() or not input_path.is_file():
        parser.error(f"input file not found: '{input_path}'")
    try:
        project_name = _project_name(args)
    except ValueError as e:
        parser.error(str(e))
    return convert_file(input_path, args.output, project_name)


if __name__ == "__main__":
    raise SystemExit(main())
