"""Gene ID to gene name resolution.

Provides BioMart and mygene backed lookups with an identity fallback.
"""

from sparsenet_pipeline.gene_mapping.names import (
    FallbackGeneNames,
    GeneNameLookup,
    GeneNameLookupError,
    GeneNameResolver,
    ResolvedGeneNames,
    build_biomart_query,
    gene_names,
    identity_gene_names,
    parse_biomart_response,
)

__all__ = [
    "FallbackGeneNames",
    "GeneNameLookup",
    "GeneNameLookupError",
    "GeneNameResolver",
    "ResolvedGeneNames",
    "build_biomart_query",
    "gene_names",
    "identity_gene_names",
    "parse_biomart_response",
]
