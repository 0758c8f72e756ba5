"""Hallmarks of cancer annotation layer."""

from sparsenet_pipeline.hallmarks.models import (
    HallmarksResult,
    VALID_HIERARCHIES,
    VALID_METRICS,
)
from sparsenet_pipeline.hallmarks.parse import (
    ParsedHallmarks,
    ParseError,
    parse_hallmarks_response,
)
from sparsenet_pipeline.hallmarks.fetch import (
    build_hallmarks_params,
    fetch_hallmark_lines,
)
from sparsenet_pipeline.hallmarks.transform import (
    query_hallmarks,
    scale_hallmarks,
    validate_query,
)

__all__ = [
    "HallmarksResult",
    "VALID_HIERARCHIES",
    "VALID_METRICS",
    "ParsedHallmarks",
    "ParseError",
    "parse_hallmarks_response",
    "build_hallmarks_params",
    "fetch_hallmark_lines",
    "query_hallmarks",
    "scale_hallmarks",
    "validate_query",
]
