"""Output generation: plots of annotation results."""

from sparsenet_pipeline.output.visualizations import (
    hallmarks_long_format,
    plot_hallmarks_heatmap,
)

__all__ = [
    "hallmarks_long_format",
    "plot_hallmarks_heatmap",
]
