"""gene-names command: resolve Ensembl IDs to external gene names."""

import logging
import sys
from pathlib import Path

import click

from sparsenet_pipeline.config.loader import load_config_with_overrides
from sparsenet_pipeline.gene_mapping import GeneNameResolver

logger = logging.getLogger(__name__)


@click.command('gene-names')
@click.argument('ensembl_ids', nargs=-1, required=True)
@click.option(
    '--source',
    type=click.Choice(['biomart', 'mygene']),
    default=None,
    help='Name service (default: biomart.source from config)'
)
@click.option(
    '--output',
    type=click.Path(path_type=Path),
    default=None,
    help='Write the table as TSV instead of printing it'
)
@click.pass_context
def gene_names(ctx, ensembl_ids, source, output):
    """Resolve Ensembl gene IDs to external gene names.

    Falls back to using each ID as its own name when the service fails.
    """
    config_path = ctx.obj['config_path']

    try:
        overrides = {'biomart.source': source} if source is not None else {}
        config = load_config_with_overrides(config_path, overrides)

        resolver = GeneNameResolver.from_config(config)
        result = resolver.resolve(list(ensembl_ids))
    except Exception as e:
        click.echo(click.style(f"Gene name lookup failed: {e}", fg='red'), err=True)
        logger.exception("gene-names command failed")
        sys.exit(1)

    if not result.resolved:
        click.echo(click.style(
            f"Name service unavailable, using IDs as names: {result.error}",
            fg='yellow'
        ), err=True)
    elif result.unmatched:
        click.echo(click.style(
            f"No name found for: {', '.join(result.unmatched)}",
            fg='yellow'
        ), err=True)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        result.table.write_csv(output, separator='\t')
        click.echo(click.style(f"Saved {result.table.height} rows to {output}", fg='green'))
    else:
        click.echo(result.table.write_csv(separator='\t'), nl=False)
