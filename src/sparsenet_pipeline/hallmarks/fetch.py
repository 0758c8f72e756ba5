"""Fetch hallmarks of cancer annotations from the CHAT web service."""

import structlog

from sparsenet_pipeline.api_clients.base import CachedAPIClient
from sparsenet_pipeline.hallmarks.models import CHARTDATA_PATH

logger = structlog.get_logger()


def build_hallmarks_params(
    genes: list[str],
    metric: str,
    hierarchy: str,
) -> dict[str, str | list[str]]:
    """Build query parameters; each gene becomes a repeated ``q`` key."""
    return {
        "measure": metric,
        "hallmarks": hierarchy,
        "q": list(genes),
    }


def fetch_hallmark_lines(
    client: CachedAPIClient,
    genes: list[str],
    metric: str,
    hierarchy: str,
    base_url: str,
) -> list[str]:
    """Query the hallmarks service and return the response body as lines.

    Args:
        client: HTTP client (cached, with retry)
        genes: Gene names to annotate
        metric: One of count, cprob, pmi, npmi
        hierarchy: Hallmark hierarchy level ("full" or "top")
        base_url: Service root, e.g. http://chat.lionproject.net

    Returns:
        Response lines without line terminators

    Raises:
        requests.HTTPError, requests.Timeout, requests.ConnectionError:
            After retries are exhausted
    """
    if not genes:
        logger.info("fetch_hallmarks_skipped", reason="no genes")
        return []

    url = base_url.rstrip("/") + CHARTDATA_PATH
    params = build_hallmarks_params(genes, metric, hierarchy)

    logger.info(
        "fetch_hallmarks_start",
        gene_count=len(genes),
        metric=metric,
        hierarchy=hierarchy,
    )

    text = client.get_text(url, params=params)
    lines = text.splitlines()

    logger.info("fetch_hallmarks_complete", line_count=len(lines))

    return lines
