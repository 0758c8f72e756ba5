"""Pydantic models for pipeline configuration."""

import hashlib
import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class APIConfig(BaseModel):
    """Configuration for HTTP clients."""

    rate_limit_per_second: int = Field(
        default=5,
        ge=1,
        description="Maximum API requests per second",
    )
    max_retries: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum retry attempts for failed requests",
    )
    cache_ttl_seconds: int = Field(
        default=86400,
        ge=0,
        description="Cache time-to-live in seconds (0 = infinite)",
    )
    timeout_seconds: int = Field(
        default=30,
        ge=1,
        description="Request timeout in seconds",
    )


class HallmarksConfig(BaseModel):
    """Settings for the hallmarks of cancer annotation service."""

    base_url: str = Field(
        default="http://chat.lionproject.net",
        description="Root URL of the hallmarks annotation service",
    )
    metric: Literal["count", "cprob", "pmi", "npmi"] = Field(
        default="count",
        description="Association measure requested from the service",
    )
    hierarchy: Literal["full", "top"] = Field(
        default="full",
        description="Hallmark hierarchy level",
    )
    cprob_delay_seconds: float = Field(
        default=5.5,
        ge=0.0,
        description="Pause between the count pre-query and a cprob query",
    )


class BiomartConfig(BaseModel):
    """Settings for gene-name resolution."""

    source: Literal["biomart", "mygene"] = Field(
        default="biomart",
        description="Service used to resolve Ensembl IDs to gene names",
    )
    host: str = Field(
        default="http://www.ensembl.org",
        description="BioMart host serving /biomart/martservice",
    )
    dataset: str = Field(
        default="hsapiens_gene_ensembl",
        description="BioMart dataset name",
    )


class PipelineConfig(BaseModel):
    """Main configuration."""

    data_dir: Path = Field(
        ...,
        description="Directory for generated tables and plots",
    )
    cache_dir: Path = Field(
        ...,
        description="Directory for API response caching",
    )
    api: APIConfig = Field(
        default_factory=APIConfig,
        description="HTTP client configuration",
    )
    hallmarks: HallmarksConfig = Field(
        default_factory=HallmarksConfig,
        description="Hallmarks service configuration",
    )
    biomart: BiomartConfig = Field(
        default_factory=BiomartConfig,
        description="Gene-name resolution configuration",
    )

    @field_validator("data_dir", "cache_dir")
    @classmethod
    def create_directory(cls, v: Path) -> Path:
        """Create directory if it doesn't exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    def config_hash(self) -> str:
        """
        Compute SHA-256 hash of the configuration.

        Deterministic over all config values; useful for tagging outputs
        produced under a given configuration.
        """
        config_json = json.dumps(
            self.model_dump(mode="python"),
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(config_json.encode()).hexdigest()
