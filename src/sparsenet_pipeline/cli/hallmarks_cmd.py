"""hallmarks command: annotate genes with hallmarks of cancer."""

import logging
import sys
from pathlib import Path

import click

from sparsenet_pipeline.config.loader import load_config_with_overrides
from sparsenet_pipeline.hallmarks import (
    VALID_HIERARCHIES,
    VALID_METRICS,
    ParseError,
    query_hallmarks,
)

logger = logging.getLogger(__name__)


@click.command('hallmarks')
@click.argument('genes', nargs=-1, required=True)
@click.option(
    '--metric',
    type=click.Choice(list(VALID_METRICS)),
    default=None,
    help='Association measure (default: hallmarks.metric from config)'
)
@click.option(
    '--hierarchy',
    type=click.Choice(list(VALID_HIERARCHIES)),
    default=None,
    help='Hallmark hierarchy (default: hallmarks.hierarchy from config)'
)
@click.option(
    '--normalize',
    is_flag=True,
    help='Also write the row-scaled table'
)
@click.option(
    '--plot',
    type=click.Path(path_type=Path),
    default=None,
    help='Render the heatmap to this PNG path'
)
@click.option(
    '--output',
    type=click.Path(path_type=Path),
    default=None,
    help='Write the hallmark table as TSV instead of printing it'
)
@click.pass_context
def hallmarks(ctx, genes, metric, hierarchy, normalize, plot, output):
    """Retrieve hallmarks of cancer annotations for GENES."""
    config_path = ctx.obj['config_path']

    try:
        overrides = {}
        if metric is not None:
            overrides['hallmarks.metric'] = metric
        if hierarchy is not None:
            overrides['hallmarks.hierarchy'] = hierarchy
        config = load_config_with_overrides(config_path, overrides)

        result = query_hallmarks(
            list(genes),
            metric=config.hallmarks.metric,
            hierarchy=config.hallmarks.hierarchy,
            generate_plot=plot is not None,
            normalize=normalize,
            config=config,
            output_path=plot,
        )
    except ParseError as e:
        click.echo(click.style(f"Malformed hallmarks response: {e}", fg='red'), err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(click.style(f"Hallmarks query failed: {e}", fg='red'), err=True)
        logger.exception("hallmarks command failed")
        sys.exit(1)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        result.hallmarks.write_csv(output, separator='\t')
        click.echo(click.style(f"Saved {result.hallmarks.height} genes to {output}", fg='green'))
        if result.scaled is not None:
            scaled_path = output.with_name(output.stem + '.scaled' + output.suffix)
            result.scaled.write_csv(scaled_path, separator='\t')
            click.echo(click.style(f"Saved scaled table to {scaled_path}", fg='green'))
    else:
        click.echo(result.hallmarks.write_csv(separator='\t'), nl=False)
        if result.scaled is not None:
            click.echo()
            click.echo(result.scaled.write_csv(separator='\t'), nl=False)

    click.echo(
        f"Genes without hallmarks ({len(result.no_hallmarks)}): "
        f"{', '.join(result.no_hallmarks)}",
        err=True,
    )
    if result.heatmap is not None:
        click.echo(click.style(f"Heatmap saved: {result.heatmap}", fg='green'))
