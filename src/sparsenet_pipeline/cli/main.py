"""Main CLI entry point for sparsenet-pipeline.

Provides command group with global options and annotation subcommands.
"""

import logging
from pathlib import Path

import click

from sparsenet_pipeline import __version__
from sparsenet_pipeline.api_clients.base import CachedAPIClient
from sparsenet_pipeline.config.loader import load_config
from sparsenet_pipeline.cli.gene_names_cmd import gene_names
from sparsenet_pipeline.cli.hallmarks_cmd import hallmarks


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@click.group()
@click.option(
    '--config',
    type=click.Path(exists=True, path_type=Path),
    default='config/default.yaml',
    help='Path to configuration YAML file'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Enable verbose logging (DEBUG level)'
)
@click.pass_context
def cli(ctx, config, verbose):
    """Sparsenet-pipeline: gene annotation helpers for network-regularized Cox models.

    Resolves Ensembl IDs to gene names and retrieves hallmarks of cancer
    annotations for the genes selected by a fitted model.
    """
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Verbose logging enabled")


@cli.command()
@click.pass_context
def info(ctx):
    """Display version and configuration summary."""
    config_path = ctx.obj['config_path']

    click.echo(f"Sparsenet Pipeline v{__version__}")
    click.echo(f"Config: {config_path}")
    click.echo()

    try:
        config = load_config(config_path)

        click.echo(f"Config Hash: {config.config_hash()[:16]}...")
        click.echo()

        click.echo(click.style("Paths:", bold=True))
        click.echo(f"  Data Directory: {config.data_dir}")
        click.echo(f"  Cache Directory: {config.cache_dir}")
        click.echo()

        click.echo(click.style("Hallmarks Service:", bold=True))
        click.echo(f"  URL: {config.hallmarks.base_url}")
        click.echo(f"  Metric: {config.hallmarks.metric}")
        click.echo(f"  Hierarchy: {config.hallmarks.hierarchy}")
        click.echo()

        click.echo(click.style("Gene Names:", bold=True))
        click.echo(f"  Source: {config.biomart.source}")
        click.echo(f"  BioMart Host: {config.biomart.host}")
        click.echo(f"  Dataset: {config.biomart.dataset}")
        click.echo()

        click.echo(click.style("API Configuration:", bold=True))
        click.echo(f"  Rate Limit: {config.api.rate_limit_per_second} req/s")
        click.echo(f"  Max Retries: {config.api.max_retries}")
        click.echo(f"  Cache TTL: {config.api.cache_ttl_seconds}s")
        click.echo(f"  Timeout: {config.api.timeout_seconds}s")
        click.echo()

        stats = CachedAPIClient.from_config(config).cache_stats()
        click.echo(click.style("Response Cache:", bold=True))
        click.echo(f"  Path: {stats['cache_path']}")
        click.echo(f"  Exists: {stats['cache_exists']}")
        click.echo(f"  Size: {stats['cache_size_bytes']} bytes")

    except Exception as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        ctx.exit(1)


@cli.command('clear-cache')
@click.pass_context
def clear_cache(ctx):
    """Remove all cached hallmarks and gene-name responses."""
    config_path = ctx.obj['config_path']

    try:
        config = load_config(config_path)
        client = CachedAPIClient.from_config(config)
        client.clear_cache()
    except Exception as e:
        click.echo(click.style(f"Error clearing cache: {e}", fg='red'), err=True)
        ctx.exit(1)

    click.echo(click.style(f"Cleared response cache in {config.cache_dir}", fg='green'))


# Register commands
cli.add_command(gene_names)
cli.add_command(hallmarks)


if __name__ == '__main__':
    cli()
