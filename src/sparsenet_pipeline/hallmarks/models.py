"""Data models for hallmarks of cancer annotations."""

from pathlib import Path

import polars as pl
from pydantic import BaseModel, ConfigDict

VALID_METRICS = ("count", "cprob", "pmi", "npmi")
VALID_HIERARCHIES = ("full", "top")

# Endpoint returning tab-delimited chart data, relative to the service root
CHARTDATA_PATH = "/chartdata"

# Upstream bug requiring a pause before cprob queries
CPROB_BUG_REPORT = "https://github.com/cambridgeltl/chat/issues/6"


class HallmarksResult(BaseModel):
    """Outcome of a hallmarks query.

    Attributes:
        hallmarks: Gene-by-hallmark table sorted by gene_name; null = no value
        no_hallmarks: Sorted genes without any hallmark
        scaled: Row-scaled copy of ``hallmarks`` (only when normalization was requested)
        heatmap: Path of the rendered heatmap PNG (only when a plot was requested)
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    hallmarks: pl.DataFrame
    no_hallmarks: list[str] = []
    scaled: pl.DataFrame | None = None
    heatmap: Path | None = None
