"""Heatmap rendering for hallmarks annotations."""

import logging
import textwrap
from pathlib import Path

import matplotlib
import polars as pl

# Use Agg backend (non-interactive, safe for headless/CLI use)
matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import seaborn as sns  # noqa: E402

logger = logging.getLogger(__name__)

GENE_NAME_COLUMN = "gene_name"


def hallmarks_long_format(df: pl.DataFrame) -> pl.DataFrame:
    """
    Melt a hallmark table to (gene_name, hallmark, value) rows with value > 0.

    Args:
        df: Table with gene_name plus one column per hallmark

    Returns:
        Long-format DataFrame; null and non-positive cells are dropped
    """
    hallmark_columns = [c for c in df.columns if c != GENE_NAME_COLUMN]
    if not hallmark_columns:
        return pl.DataFrame(
            schema={GENE_NAME_COLUMN: pl.Utf8, "hallmark": pl.Utf8, "value": pl.Float64}
        )

    return (
        df.unpivot(
            index=GENE_NAME_COLUMN,
            on=hallmark_columns,
            variable_name="hallmark",
            value_name="value",
        )
        .filter(pl.col("value") > 0)
    )


def plot_hallmarks_heatmap(
    df: pl.DataFrame,
    no_hallmarks: list[str],
    output_path: Path,
) -> Path:
    """
    Create a hallmark-by-gene heatmap of the annotation values.

    Args:
        df: Hallmark table (gene_name plus one column per hallmark)
        no_hallmarks: Genes without any hallmark, listed in the subtitle
        output_path: Path where PNG will be saved

    Returns:
        Path to the saved PNG file

    Notes:
        - Only positive values are drawn; everything else is left blank
        - Genes run along the x axis, hallmarks along the y axis
        - Saves at 300 DPI for publication quality
    """
    long_df = hallmarks_long_format(df)

    sns.set_theme(style="white", context="paper")

    n_genes = max(long_df[GENE_NAME_COLUMN].n_unique(), 1)
    n_hallmarks = max(long_df["hallmark"].n_unique(), 1)
    fig, ax = plt.subplots(
        figsize=(max(6, 0.4 * n_genes + 4), max(4, 0.35 * n_hallmarks + 2))
    )

    if long_df.height > 0:
        matrix = long_df.to_pandas().pivot(
            index="hallmark",
            columns=GENE_NAME_COLUMN,
            values="value",
        )
        sns.heatmap(
            matrix,
            cmap="YlGnBu",
            linewidths=0.5,
            cbar_kws={"label": "value"},
            ax=ax,
        )
        plt.setp(ax.get_xticklabels(), rotation=90, ha="center")
    else:
        ax.set_xticks([])
        ax.set_yticks([])

    subtitle = textwrap.fill(
        "Selected genes without hallmarks ({}): {}".format(
            len(no_hallmarks), ", ".join(no_hallmarks)
        ),
        width=50,
    )
    fig.suptitle("Hallmarks heatmap", fontweight="bold")
    ax.set_title(subtitle, fontsize="small", loc="left")
    ax.set_xlabel("External Gene Name")
    ax.set_ylabel("")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=300, bbox_inches="tight")

    # Close figure to prevent memory leak
    plt.close(fig)

    logger.info(f"Saved hallmarks heatmap to {output_path}")
    return output_path
