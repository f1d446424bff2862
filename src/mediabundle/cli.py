"""CLI interface for mediabundle."""

import json
from pathlib import Path
from typing import Annotated

import typer

from mediabundle import __version__
from mediabundle.builder.bundle import bundle_file
from mediabundle.builder.output import (
    atomic_write_text,
    default_output_path,
    load_replacement_map,
    write_bundle_report,
)
from mediabundle.builder.relocate import relocate_videos_in_tree
from mediabundle.config import load_settings
from mediabundle.core.logging_setup import setup_logging
from mediabundle.ingest.error_handling import InvalidSearchRootsError
from mediabundle.ingest.search_roots import build_search_roots
from mediabundle.model.bundle_options import DEFAULT_CATEGORY, BundleOptions
from mediabundle.transform.rewrite import count_references, rewrite_references
from mediabundle.types import BundleResult
from mediabundle.ui.progress import ProgressReporter

app = typer.Typer(
    name="mediabundle",
    help="Bundle HTML reports into self-contained documents.",
    no_args_is_help=True,
)


def _print_result(result: BundleResult) -> None:
    typer.echo(f"🖼️  Embedded images: {result.embedded_count}")
    typer.echo(f"🎬 Relocated videos: {result.relocated_count}")
    typer.echo(f"⏭️  Skipped references: {result.skipped_count}")
    for path in result.skipped_references:
        reason = result.skip_reasons.get(path)
        typer.echo(f"⚠️  Skipped: {path} ({reason.value if reason else 'unknown'})")


@app.command("bundle")
def bundle_command(
    html_file: Annotated[
        Path,
        typer.Argument(
            help="Path to the HTML document to bundle",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    search_root: Annotated[
        list[Path] | None,
        typer.Option(
            "--search-root",
            "-r",
            help="Directory to search for assets, highest priority first (repeatable). "
            "Defaults to the HTML file's directory.",
        ),
    ] = None,
    reports_dir: Annotated[
        Path | None,
        typer.Option(
            "--reports-dir",
            help="Shared reports directory searched after the search roots "
            "(default: $MEDIABUNDLE_REPORTS_DIR)",
        ),
    ] = None,
    subdirs: Annotated[
        bool,
        typer.Option(
            "--subdirs/--no-subdirs",
            help="Also search immediate subdirectories of each directory (default: yes)",
        ),
    ] = True,
    owner_id: Annotated[
        str | None,
        typer.Option("--owner-id", help="Owner scope for relocated videos (e.g. a book id)"),
    ] = None,
    category: Annotated[
        str,
        typer.Option("--category", help="Category folder for relocated videos"),
    ] = DEFAULT_CATEGORY,
    storage_root: Annotated[
        Path | None,
        typer.Option(
            "--storage-root",
            help="Directory receiving relocated videos (default: $MEDIABUNDLE_STORAGE_ROOT)",
        ),
    ] = None,
    url_prefix: Annotated[
        str | None,
        typer.Option("--url-prefix", help="Public URL prefix for relocated videos (default: /uploads)"),
    ] = None,
    out: Annotated[
        Path | None,
        typer.Option("--out", "-o", help="Output file (default: <name>_bundled.html)"),
    ] = None,
    report: Annotated[
        Path | None,
        typer.Option("--report", help="Write a JSON report with counts and the video URL map"),
    ] = None,
    max_embed_bytes: Annotated[
        int | None,
        typer.Option("--max-embed-bytes", help="Largest image to inline, in bytes (0 = no limit)"),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", help="Worker threads for resolving and embedding"),
    ] = None,
    deadline: Annotated[
        float | None,
        typer.Option("--deadline", help="Overall deadline in seconds; keeps partial results"),
    ] = None,
    progress: Annotated[
        bool,
        typer.Option("--progress/--no-progress", help="Show a progress bar (default: yes)"),
    ] = True,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Only log warnings and errors")] = False,
) -> None:
    """
    Inline images and relocate videos referenced by an HTML document.

    Examples:

        # Bundle a report using the images next to it
        mediabundle bundle report.html

        # Search an extracted upload first, then the shared reports directory
        mediabundle bundle upload/index.html -r upload --reports-dir /srv/book-reports

        # Relocate videos into public storage
        mediabundle bundle page.html --owner-id book-42 --category marketing-assets \\
            --storage-root public/uploads --report page.json
    """
    setup_logging(verbose, quiet=quiet)
    settings = load_settings()

    primary = search_root or [html_file.resolve().parent]
    shared_dir = reports_dir or settings.reports_dir
    roots = build_search_roots(
        primary, [shared_dir] if shared_dir else [], include_subdirectories=subdirs
    )
    if not roots:
        typer.echo("Error: none of the search directories exist")
        raise typer.Exit(1)

    try:
        options = BundleOptions.from_cli(
            owner_id=owner_id,
            category=category,
            storage_root=storage_root or settings.storage_root,
            url_prefix=url_prefix or settings.url_prefix,
            max_embed_bytes=max_embed_bytes if max_embed_bytes is not None else settings.max_embed_bytes,
            workers=workers if workers is not None else settings.workers,
            deadline=deadline if deadline is not None else settings.deadline_seconds,
        )
    except ValueError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(1) from exc

    output_path = out or default_output_path(html_file.resolve())

    typer.echo(f"📄 Bundling: {html_file}")
    typer.echo(f"🔍 Search roots: {len(roots)}")
    typer.echo(f"🎬 Video relocation: {'Yes' if options.relocation_enabled else 'No'}")

    try:
        if progress:
            with ProgressReporter() as pr:
                result = bundle_file(html_file, roots, options, output_path=output_path, on_progress=pr.emit)
        else:
            result = bundle_file(html_file, roots, options, output_path=output_path)
    except (InvalidSearchRootsError, ValueError) as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(1) from exc
    except OSError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(1) from exc

    _print_result(result)
    if report is not None:
        write_bundle_report(report, result)
        typer.echo(f"🗃️  Report: {report}")
    typer.echo(f"\n✅ Wrote bundled HTML to {output_path}")


@app.command("relocate-videos")
def relocate_videos_command(
    directory: Annotated[
        Path,
        typer.Argument(
            help="Extracted upload directory to scan for videos",
            exists=True,
            file_okay=False,
            dir_okay=True,
        ),
    ],
    owner_id: Annotated[str, typer.Option("--owner-id", help="Owner scope for relocated videos")],
    category: Annotated[
        str,
        typer.Option("--category", help="Category folder for relocated videos"),
    ] = DEFAULT_CATEGORY,
    storage_root: Annotated[
        Path | None,
        typer.Option("--storage-root", help="Directory receiving relocated videos"),
    ] = None,
    url_prefix: Annotated[
        str | None,
        typer.Option("--url-prefix", help="Public URL prefix for relocated videos"),
    ] = None,
    map_file: Annotated[
        Path | None,
        typer.Option("--map", help="Write the old -> new URL map to this JSON file"),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    """Copy every video under DIRECTORY to storage and print the URL map."""
    setup_logging(verbose)
    settings = load_settings()

    try:
        options = BundleOptions.from_cli(
            owner_id=owner_id,
            category=category,
            storage_root=storage_root or settings.storage_root,
            url_prefix=url_prefix or settings.url_prefix,
        )
    except ValueError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(1) from exc
    if not options.relocation_enabled:
        typer.echo("Error: --storage-root (or $MEDIABUNDLE_STORAGE_ROOT) is required")
        raise typer.Exit(1)

    try:
        replacements = relocate_videos_in_tree(directory, options)
    except ValueError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(1) from exc
    text = json.dumps(replacements, ensure_ascii=False, sort_keys=True, indent=2)
    if map_file is not None:
        atomic_write_text(map_file, text + "\n")
        typer.echo(f"✅ Wrote {len(replacements)} mapping(s) to {map_file}")
    else:
        typer.echo(text)


@app.command("rewrite")
def rewrite_command(
    html_file: Annotated[
        Path,
        typer.Argument(help="HTML document to rewrite", exists=True, file_okay=True, dir_okay=False),
    ],
    map_file: Annotated[
        Path,
        typer.Option(
            "--map",
            help="JSON object of old -> new references, or a bundle report",
            exists=True,
            file_okay=True,
            dir_okay=False,
        ),
    ],
    out: Annotated[
        Path | None,
        typer.Option("--out", "-o", help="Output file (default: <name>_bundled.html)"),
    ] = None,
) -> None:
    """Apply a stored replacement map (e.g. a video URL map) to another document."""
    try:
        replacements = load_replacement_map(map_file)
    except (ValueError, json.JSONDecodeError) as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(1) from exc

    html = html_file.read_text(encoding="utf-8")
    count = count_references(html, replacements)
    output_path = out or default_output_path(html_file.resolve())
    atomic_write_text(output_path, rewrite_references(html, replacements))
    typer.echo(f"✅ Rewrote {count} reference(s) into {output_path}")


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"mediabundle version {__version__}")


def version_callback(value: bool) -> None:
    """Version callback for --version flag."""
    if value:
        typer.echo(f"mediabundle version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """
    mediabundle - Bundle HTML reports into self-contained documents.

    Images referenced by relative path are inlined as data URIs, videos are
    copied to owner-scoped storage and linked by stable URL. References that
    cannot be resolved are left untouched and reported.

    For detailed usage, run: mediabundle bundle --help
    """
    pass


if __name__ == "__main__":  # pragma: no cover - executed only via `python -m`
    app()
