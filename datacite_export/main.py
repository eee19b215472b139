"""Command line entry point for DataCite export and registration."""

import logging
import shutil
import tempfile
from typing import List, Tuple

import click

from datacite_export.__version__ import __version__
from datacite_export.config import DataciteSettings
from datacite_export.export.orchestrator import ExportOrchestrator
from datacite_export.models import Exportable
from datacite_export.repositories import CatalogRepository, InMemoryDoiStatusStore
from datacite_export.utils.catalog_loader import CatalogLoadError, load_catalog

OBJECT_TYPES = ("publications", "chapters", "publicationFormats")

logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO):
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler('datacite_export.log', encoding='utf-8'),
            logging.StreamHandler()
        ]
    )


def _resolve_objects(repository: CatalogRepository, object_type: str, ids: List[int]) -> List[Exportable]:
    lookup = {
        "publications": repository.get_publication,
        "chapters": repository.get_chapter,
        "publicationFormats": repository.get_publication_format,
    }[object_type]

    objects = []
    for object_id in ids:
        obj = lookup(object_id)
        if obj is None:
            click.echo(f"Warning: {object_type} {object_id} not found, skipping", err=True)
            continue
        objects.append(obj)
    if not objects:
        raise click.ClickException(f"None of the requested {object_type} were found")
    return objects


def _build_orchestrator(ctx: click.Context, catalog: str) -> Tuple[ExportOrchestrator, CatalogRepository]:
    try:
        context, repository = load_catalog(catalog)
    except (CatalogLoadError, FileNotFoundError) as e:
        raise click.ClickException(str(e))

    settings = DataciteSettings.from_env(ctx.obj.get("env_file"))
    orchestrator = ExportOrchestrator(context, settings, repository, InMemoryDoiStatusStore())
    return orchestrator, repository


def _select_objects(orchestrator, repository, object_type, ids, with_children) -> List[Exportable]:
    objects = _resolve_objects(repository, object_type, list(ids))
    if with_children and object_type == "publications":
        objects = orchestrator.collect_submission_items(objects)
        if not objects:
            raise click.ClickException("The requested publications have no DOIs to export")
    return objects


@click.group()
@click.version_option(version=__version__)
@click.option('--env-file', type=click.Path(dir_okay=False), default=None,
              help='.env file with DATACITE_* settings')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, env_file, verbose):
    """
    Export monograph metadata as DataCite XML and register DOIs.
    """
    setup_logging(logging.DEBUG if verbose else logging.INFO)
    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file


@cli.command()
@click.argument('output_file', type=click.Path(dir_okay=False))
@click.argument('catalog', type=click.Path(exists=True, dir_okay=False))
@click.argument('object_type', metavar='TYPE', type=click.Choice(OBJECT_TYPES))
@click.argument('ids', nargs=-1, required=True, type=int)
@click.option('--with-children', is_flag=True,
              help='Include chapters and formats of the publications that carry a DOI')
@click.pass_context
def export(ctx, output_file, catalog, object_type, ids, with_children):
    """Write DataCite XML (or a .tar.gz of several files) to OUTPUT_FILE."""
    orchestrator, repository = _build_orchestrator(ctx, catalog)
    objects = _select_objects(orchestrator, repository, object_type, ids, with_children)

    with tempfile.TemporaryDirectory() as work_dir:
        result = orchestrator.export_as_download(objects, work_dir)
        for key, message in result.errors:
            click.echo(f"Error! {key}: {message}", err=True)
        if result.path is None:
            raise click.ClickException("Nothing was exported")
        shutil.move(result.path, output_file)

    click.echo(f"Export written to {output_file}")
    if result.errors:
        ctx.exit(1)


@cli.command()
@click.argument('catalog', type=click.Path(exists=True, dir_okay=False))
@click.argument('object_type', metavar='TYPE', type=click.Choice(OBJECT_TYPES))
@click.argument('ids', nargs=-1, required=True, type=int)
@click.option('--with-children', is_flag=True,
              help='Include chapters and formats of the publications that carry a DOI')
@click.pass_context
def register(ctx, catalog, object_type, ids, with_children):
    """Deposit the metadata of the given objects with DataCite."""
    orchestrator, repository = _build_orchestrator(ctx, catalog)
    objects = _select_objects(orchestrator, repository, object_type, ids, with_children)

    success, report = orchestrator.export_and_deposit(objects)
    if report:
        click.echo(report)
    if not success:
        ctx.exit(1)
    click.echo("Registration finished")


def main():
    """Main entry point for the application."""
    cli(obj={})


if __name__ == "__main__":
    main()
