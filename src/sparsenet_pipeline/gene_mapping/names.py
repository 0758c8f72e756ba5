"""Ensembl gene ID to gene name resolution with identity fallback.

Names come from BioMart (martservice TSV query) or mygene. A failing lookup
never raises: it yields a FallbackGeneNames result whose table maps each
identifier to itself, so downstream plots and tables still get one row per
input gene.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

import mygene
import polars as pl

from sparsenet_pipeline.api_clients.base import CachedAPIClient
from sparsenet_pipeline.config.loader import default_config
from sparsenet_pipeline.config.schema import PipelineConfig

logger = logging.getLogger(__name__)

MARTSERVICE_PATH = "/biomart/martservice"
NAME_COLUMNS = ["external_gene_name", "ensembl_gene_id"]


class GeneNameLookupError(RuntimeError):
    """Raised internally when a name service answers with an error payload."""


@dataclass
class GeneNameLookup:
    """Result of a gene-name lookup.

    Attributes:
        table: DataFrame with external_gene_name and ensembl_gene_id columns
    """
    table: pl.DataFrame

    @property
    def resolved(self) -> bool:
        return False


@dataclass
class ResolvedGeneNames(GeneNameLookup):
    """Names obtained from the service, sorted by external_gene_name.

    Attributes:
        unmatched: Input IDs the service did not know (kept with identity names)
        source: Service that answered ("biomart" or "mygene")
    """
    unmatched: list[str] = field(default_factory=list)
    source: str = "biomart"

    @property
    def resolved(self) -> bool:
        return True


@dataclass
class FallbackGeneNames(GeneNameLookup):
    """Identity mapping used when the service could not be queried.

    Attributes:
        error: Description of the failure
    """
    error: str = ""


def identity_gene_names(ensembl_ids: list[str]) -> pl.DataFrame:
    """Table mapping every ID to itself, in input order."""
    return pl.DataFrame(
        {
            "external_gene_name": list(ensembl_ids),
            "ensembl_gene_id": list(ensembl_ids),
        },
        schema={"external_gene_name": pl.Utf8, "ensembl_gene_id": pl.Utf8},
    )


def build_biomart_query(ensembl_ids: list[str], dataset: str) -> str:
    """Build the BioMart XML query for external_gene_name by ensembl_gene_id."""
    query = ET.Element(
        "Query",
        virtualSchemaName="default",
        formatter="TSV",
        header="0",
        uniqueRows="1",
        datasetConfigVersion="0.6",
    )
    ds = ET.SubElement(query, "Dataset", name=dataset, interface="default")
    ET.SubElement(ds, "Filter", name="ensembl_gene_id", value=",".join(ensembl_ids))
    for attribute in NAME_COLUMNS:
        ET.SubElement(ds, "Attribute", name=attribute)

    return '<?xml version="1.0" encoding="UTF-8"?><!DOCTYPE Query>' + ET.tostring(
        query, encoding="unicode"
    )


def parse_biomart_response(text: str) -> dict[str, str]:
    """Parse martservice TSV output (name<TAB>id per line) into {id: name}.

    Raises:
        GeneNameLookupError: If BioMart reports a query error
    """
    if "Query ERROR" in text or text.lstrip().startswith("<"):
        raise GeneNameLookupError(text.strip().splitlines()[0] if text.strip() else text)

    names: dict[str, str] = {}
    for line in text.splitlines():
        if not line.strip():
            continue
        fields = line.split("\t")
        if len(fields) < 2:
            raise GeneNameLookupError(f"Unexpected BioMart line: {line!r}")
        name, ensembl_id = fields[0].strip(), fields[1].strip()
        # First non-empty name wins for IDs reported more than once
        if name and ensembl_id not in names:
            names[ensembl_id] = name
    return names


class GeneNameResolver:
    """Resolve Ensembl gene IDs to external gene names.

    Successful lookups are memoized per resolver, keyed by the exact input
    list; fallbacks are not, so a later call can still succeed.
    """

    def __init__(
        self,
        client: CachedAPIClient | None = None,
        source: str = "biomart",
        host: str = "http://www.ensembl.org",
        dataset: str = "hsapiens_gene_ensembl",
        batch_size: int = 1000,
    ):
        """Initialize resolver.

        Args:
            client: HTTP client for BioMart (required when source="biomart")
            source: "biomart" or "mygene"
            host: BioMart host
            dataset: BioMart dataset
            batch_size: IDs per mygene batch query
        """
        if source not in ("biomart", "mygene"):
            raise ValueError(f"Unknown gene name source: {source}")
        if source == "biomart" and client is None:
            raise ValueError("BioMart lookups require a CachedAPIClient")

        self.client = client
        self.source = source
        self.host = host
        self.dataset = dataset
        self.batch_size = batch_size
        self.mg = mygene.MyGeneInfo() if source == "mygene" else None
        self._memo: dict[tuple[str, ...], ResolvedGeneNames] = {}

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        client: CachedAPIClient | None = None,
    ) -> "GeneNameResolver":
        """Create resolver from pipeline configuration."""
        if client is None:
            client = CachedAPIClient.from_config(config)
        return cls(
            client=client,
            source=config.biomart.source,
            host=config.biomart.host,
            dataset=config.biomart.dataset,
        )

    def _query_biomart(self, ensembl_ids: list[str]) -> dict[str, str]:
        url = self.host.rstrip("/") + MARTSERVICE_PATH
        text = self.client.get_text(
            url,
            params={"query": build_biomart_query(ensembl_ids, self.dataset)},
        )
        return parse_biomart_response(text)

    def _query_mygene(self, ensembl_ids: list[str]) -> dict[str, str]:
        names: dict[str, str] = {}
        for i in range(0, len(ensembl_ids), self.batch_size):
            batch = ensembl_ids[i:i + self.batch_size]
            batch_results = self.mg.querymany(
                batch,
                scopes="ensembl.gene",
                fields="symbol",
                species="human",
                returnall=True,
            )
            for hit in batch_results.get("out", []):
                if hit.get("notfound", False):
                    continue
                query = hit.get("query")
                symbol = hit.get("symbol")
                if query and symbol and query not in names:
                    names[query] = symbol
        return names

    def resolve(self, ensembl_ids: list[str]) -> GeneNameLookup:
        """Look up external gene names for Ensembl gene IDs.

        Args:
            ensembl_ids: Ensembl gene IDs (ENSG format)

        Returns:
            ResolvedGeneNames sorted by external_gene_name, or FallbackGeneNames
            in input order when the service fails
        """
        key = tuple(ensembl_ids)
        if key in self._memo:
            return self._memo[key]

        unique_ids = list(dict.fromkeys(ensembl_ids))
        if not unique_ids:
            return ResolvedGeneNames(table=identity_gene_names([]), source=self.source)

        logger.info(f"Resolving {len(unique_ids)} gene names via {self.source}")

        try:
            if self.source == "biomart":
                names = self._query_biomart(unique_ids)
            else:
                names = self._query_mygene(unique_ids)
        except Exception as e:
            logger.warning(f"Error when finding gene names:\n\t{e}")
            return FallbackGeneNames(table=identity_gene_names(ensembl_ids), error=str(e))

        unmatched = [gene_id for gene_id in unique_ids if gene_id not in names]
        if unmatched:
            logger.warning(
                f"{len(unmatched)}/{len(unique_ids)} gene IDs had no name; "
                f"keeping the ID as name"
            )

        table = pl.DataFrame(
            {
                "external_gene_name": [names.get(g, g) for g in unique_ids],
                "ensembl_gene_id": unique_ids,
            },
            schema={"external_gene_name": pl.Utf8, "ensembl_gene_id": pl.Utf8},
        ).sort("external_gene_name")

        result = ResolvedGeneNames(table=table, unmatched=unmatched, source=self.source)
        self._memo[key] = result
        return result


def gene_names(
    ensembl_ids: list[str],
    resolver: GeneNameResolver | None = None,
) -> pl.DataFrame:
    """Return the external_gene_name / ensembl_gene_id table for ``ensembl_ids``.

    Without a resolver, a BioMart resolver is built from default_config(),
    which creates ./data and ./data/cache in the working directory.
    """
    if resolver is None:
        resolver = GeneNameResolver.from_config(default_config())
    return resolver.resolve(ensembl_ids).table
