"""HTTP clients for external annotation services."""

from sparsenet_pipeline.api_clients.base import CachedAPIClient

__all__ = ["CachedAPIClient"]
