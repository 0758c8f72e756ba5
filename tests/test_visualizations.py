"""Tests for hallmarks heatmap generation."""

import polars as pl
import pytest

from sparsenet_pipeline.output.visualizations import (
    hallmarks_long_format,
    plot_hallmarks_heatmap,
)


@pytest.fixture
def hallmarks_df():
    """Synthetic hallmark count table."""
    return pl.DataFrame({
        "gene_name": ["MOB1A", "RFLNB", "SPIC"],
        "sustaining proliferative signaling": [12.0, None, None],
        "evading growth suppressors": [3.0, 2.0, None],
        "genome instability and mutation": [0.0, 4.0, None],
    })


def test_long_format_drops_null_and_zero(hallmarks_df):
    """Test melt keeps only positive values."""
    long_df = hallmarks_long_format(hallmarks_df)

    assert long_df.columns == ["gene_name", "hallmark", "value"]
    assert long_df.height == 4
    assert long_df.filter(pl.col("gene_name") == "SPIC").height == 0
    assert (long_df["value"] > 0).all()


def test_long_format_without_hallmark_columns():
    df = pl.DataFrame({"gene_name": ["A"]})

    assert hallmarks_long_format(df).height == 0


def test_plot_heatmap_creates_file(hallmarks_df, tmp_path):
    """Test that the heatmap plot creates a PNG file."""
    output_path = tmp_path / "heatmap.png"

    result = plot_hallmarks_heatmap(hallmarks_df, ["SPIC"], output_path)

    assert result == output_path
    assert output_path.exists()
    assert output_path.stat().st_size > 0


def test_plot_heatmap_creates_parent_dirs(hallmarks_df, tmp_path):
    output_path = tmp_path / "nested" / "dir" / "heatmap.png"

    plot_hallmarks_heatmap(hallmarks_df, [], output_path)

    assert output_path.exists()


def test_plot_heatmap_handles_empty_table(tmp_path):
    """Test that an empty table still renders a figure."""
    empty_df = pl.DataFrame(schema={"gene_name": pl.Utf8})
    output_path = tmp_path / "empty.png"

    plot_hallmarks_heatmap(empty_df, [], output_path)

    assert output_path.exists()


def test_plot_heatmap_long_no_hallmarks_list(hallmarks_df, tmp_path):
    """Test subtitle wrapping with many genes without hallmarks."""
    output_path = tmp_path / "many.png"
    missing = [f"GENE{i}" for i in range(40)]

    plot_hallmarks_heatmap(hallmarks_df, missing, output_path)

    assert output_path.exists()
