"""Hallmarks of cancer query workflow: validate, fetch, parse, scale and plot."""

import time
from pathlib import Path

import polars as pl
import structlog

from sparsenet_pipeline.api_clients.base import CachedAPIClient
from sparsenet_pipeline.config.loader import default_config
from sparsenet_pipeline.config.schema import PipelineConfig
from sparsenet_pipeline.hallmarks.fetch import fetch_hallmark_lines
from sparsenet_pipeline.hallmarks.models import (
    CPROB_BUG_REPORT,
    VALID_HIERARCHIES,
    VALID_METRICS,
    HallmarksResult,
)
from sparsenet_pipeline.hallmarks.parse import GENE_NAME_COLUMN, parse_hallmarks_response
from sparsenet_pipeline.output.visualizations import plot_hallmarks_heatmap

logger = structlog.get_logger()


def validate_query(metric: str, hierarchy: str) -> None:
    """Reject metrics and hierarchies the service does not understand.

    Raises:
        ValueError: If metric or hierarchy is not one of the supported values
    """
    if metric not in VALID_METRICS:
        raise ValueError(
            "measure argument is not valid, it must be one of the following: "
            + ", ".join(VALID_METRICS)
        )
    if hierarchy not in VALID_HIERARCHIES:
        raise ValueError(
            "hierarchy argument is not valid, it must be one of the following: "
            + ", ".join(VALID_HIERARCHIES)
        )


def scale_hallmarks(df: pl.DataFrame) -> pl.DataFrame:
    """Center and scale each gene's row of hallmark values.

    Row-wise z-score: subtract the row mean and divide by the row sample
    standard deviation (ddof=1). Nulls are ignored and stay null. Rows with
    zero variance (e.g. all zeros) or a single value come out as NaN.

    Args:
        df: Hallmark table with gene_name plus one Float64 column per hallmark

    Returns:
        Table with the same shape and column order, values scaled per row
    """
    hallmark_columns = [c for c in df.columns if c != GENE_NAME_COLUMN]
    if not hallmark_columns or df.height == 0:
        return df.clone()

    cols = [pl.col(c) for c in hallmark_columns]

    df = df.with_columns(
        pl.mean_horizontal(cols).alias("_row_mean"),
        pl.sum_horizontal([c.is_not_null().cast(pl.Float64) for c in cols]).alias("_row_n"),
    )
    df = df.with_columns(
        (
            pl.sum_horizontal([(c - pl.col("_row_mean")) ** 2 for c in cols])
            / (pl.col("_row_n") - 1.0)
        ).sqrt().alias("_row_sd")
    )
    df = df.with_columns([
        ((pl.col(c) - pl.col("_row_mean")) / pl.col("_row_sd")).alias(c)
        for c in hallmark_columns
    ])

    return df.drop(["_row_mean", "_row_n", "_row_sd"])


def query_hallmarks(
    genes: list[str],
    metric: str = "count",
    hierarchy: str = "full",
    generate_plot: bool = True,
    normalize: bool = False,
    client: CachedAPIClient | None = None,
    config: PipelineConfig | None = None,
    output_path: Path | None = None,
) -> HallmarksResult:
    """Retrieve hallmarks of cancer annotations for a set of genes.

    See http://chat.lionproject.net/api for the meaning of each metric and
    hierarchy. ``cprob`` is answered in two steps: a ``count`` query first
    selects the genes with at least one hallmark, then those genes are queried
    with ``cprob``. Genes without hallmarks are taken from the count query in
    that case.

    Args:
        genes: Gene names (duplicates are removed, order does not matter)
        metric: count, cprob, pmi or npmi
        hierarchy: full or top
        generate_plot: Render the heatmap PNG
        normalize: Also return a row-scaled copy of the table
        client: HTTP client; built from ``config`` when omitted
        config: Pipeline configuration; when omitted, default_config() is used,
            which creates ./data and ./data/cache in the working directory
        output_path: Heatmap location (default: data_dir/hallmarks_heatmap_<metric>.png)

    Returns:
        HallmarksResult with the table sorted by gene_name

    Raises:
        ValueError: On an unsupported metric or hierarchy
        ParseError: If the service response is malformed
        requests.RequestException: If the service cannot be reached
    """
    validate_query(metric, hierarchy)

    if config is None:
        config = default_config()
    if client is None:
        client = CachedAPIClient.from_config(config)

    all_genes = sorted(set(genes))
    logger.info("query_hallmarks_start", gene_count=len(all_genes), metric=metric)

    no_hallmarks = None
    if metric == "cprob":
        counts = query_hallmarks(
            all_genes,
            metric="count",
            hierarchy="full",
            generate_plot=False,
            client=client,
            config=config,
        )
        no_hallmarks = counts.no_hallmarks
        without = set(no_hallmarks)
        all_genes = sorted(
            g for g in counts.hallmarks[GENE_NAME_COLUMN].to_list() if g not in without
        )

        # The pause only matters before a real cprob request
        if all_genes:
            logger.warning(
                "hallmarks_cprob_delay",
                seconds=config.hallmarks.cprob_delay_seconds,
                bug_report=CPROB_BUG_REPORT,
            )
            time.sleep(config.hallmarks.cprob_delay_seconds)

    lines = fetch_hallmark_lines(
        client,
        all_genes,
        metric=metric,
        hierarchy=hierarchy,
        base_url=config.hallmarks.base_url,
    )
    parsed = parse_hallmarks_response(lines, metric)
    table = parsed.table.sort(GENE_NAME_COLUMN)

    if no_hallmarks is None:
        no_hallmarks = parsed.no_hallmarks

    scaled = scale_hallmarks(table) if normalize else None

    heatmap = None
    if generate_plot:
        if output_path is None:
            output_path = config.data_dir / f"hallmarks_heatmap_{metric}.png"
        heatmap = plot_hallmarks_heatmap(table, no_hallmarks, Path(output_path))

    logger.info(
        "query_hallmarks_complete",
        gene_count=table.height,
        hallmark_count=table.width - 1,
        no_hallmarks=len(no_hallmarks),
    )

    return HallmarksResult(
        hallmarks=table,
        no_hallmarks=no_hallmarks,
        scaled=scaled,
        heatmap=heatmap,
    )
