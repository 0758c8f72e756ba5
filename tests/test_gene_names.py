"""Tests for gene-name resolution.

Uses mocked BioMart and mygene responses to avoid real API calls.
"""

import xml.etree.ElementTree as ET
from unittest.mock import MagicMock, patch

import polars as pl
import pytest
import requests

from sparsenet_pipeline.config.schema import PipelineConfig
from sparsenet_pipeline.gene_mapping import (
    FallbackGeneNames,
    GeneNameLookupError,
    GeneNameResolver,
    ResolvedGeneNames,
    build_biomart_query,
    gene_names,
    identity_gene_names,
    parse_biomart_response,
)


BIOMART_TSV = (
    "TP53\tENSG00000141510\n"
    "BRCA2\tENSG00000139618\n"
)

MOCK_MYGENE_RESPONSE = {
    'out': [
        {'query': 'ENSG00000139618', 'symbol': 'BRCA2'},
        {'query': 'ENSG00000141510', 'symbol': 'TP53'},
        {'query': 'ENSG00000000000', 'notfound': True},
    ],
    'missing': ['ENSG00000000000'],
}


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.get_text.return_value = BIOMART_TSV
    return client


def test_identity_gene_names_keeps_order():
    """Test the fallback table maps IDs to themselves in input order."""
    df = identity_gene_names(["X2", "X1"])

    assert df["ensembl_gene_id"].to_list() == ["X2", "X1"]
    assert df["external_gene_name"].to_list() == ["X2", "X1"]


def test_build_biomart_query():
    """Test the XML query structure."""
    xml = build_biomart_query(["ENSG1", "ENSG2"], "hsapiens_gene_ensembl")

    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?><!DOCTYPE Query>')
    root = ET.fromstring(xml.split("<!DOCTYPE Query>", 1)[1])
    dataset = root.find("Dataset")
    assert root.get("formatter") == "TSV"
    assert dataset.get("name") == "hsapiens_gene_ensembl"
    assert dataset.find("Filter").get("value") == "ENSG1,ENSG2"
    assert [a.get("name") for a in dataset.findall("Attribute")] == [
        "external_gene_name",
        "ensembl_gene_id",
    ]


def test_parse_biomart_response():
    names = parse_biomart_response(BIOMART_TSV + "\n\tENSG00000000001\n")

    assert names == {
        "ENSG00000141510": "TP53",
        "ENSG00000139618": "BRCA2",
    }


def test_parse_biomart_query_error():
    with pytest.raises(GeneNameLookupError):
        parse_biomart_response("Query ERROR: caught BioMart::Exception::Usage\n")


def test_resolver_requires_client_for_biomart():
    with pytest.raises(ValueError):
        GeneNameResolver(source="biomart")


def test_resolver_rejects_unknown_source(mock_client):
    with pytest.raises(ValueError):
        GeneNameResolver(client=mock_client, source="ncbi")


def test_biomart_resolved_sorted_by_name(mock_client):
    """Test successful lookup is sorted by external_gene_name."""
    resolver = GeneNameResolver(client=mock_client)

    result = resolver.resolve(["ENSG00000141510", "ENSG00000139618"])

    assert isinstance(result, ResolvedGeneNames)
    assert result.resolved is True
    assert result.table.columns == ["external_gene_name", "ensembl_gene_id"]
    assert result.table["external_gene_name"].to_list() == ["BRCA2", "TP53"]
    assert result.table["ensembl_gene_id"].to_list() == ["ENSG00000139618", "ENSG00000141510"]
    assert result.unmatched == []

    url = mock_client.get_text.call_args.args[0]
    assert url == "http://www.ensembl.org/biomart/martservice"
    assert "query" in mock_client.get_text.call_args.kwargs["params"]


def test_biomart_unmatched_keep_identity(mock_client):
    """Test IDs BioMart does not know stay with their ID as name."""
    resolver = GeneNameResolver(client=mock_client)

    result = resolver.resolve(["ENSG00000141510", "ENSG00000000000"])

    assert result.unmatched == ["ENSG00000000000"]
    row = result.table.filter(pl.col("ensembl_gene_id") == "ENSG00000000000").row(0, named=True)
    assert row["external_gene_name"] == "ENSG00000000000"


def test_fallback_when_service_unreachable():
    """Test identity fallback, input order, no exception."""
    client = MagicMock()
    client.get_text.side_effect = requests.exceptions.ConnectionError("unreachable")
    resolver = GeneNameResolver(client=client)

    result = resolver.resolve(["X1", "X2"])

    assert isinstance(result, FallbackGeneNames)
    assert result.resolved is False
    assert "unreachable" in result.error
    assert result.table["ensembl_gene_id"].to_list() == ["X1", "X2"]
    assert result.table["external_gene_name"].to_list() == ["X1", "X2"]


def test_fallback_on_biomart_error_payload():
    client = MagicMock()
    client.get_text.return_value = "Query ERROR: caught BioMart::Exception\n"
    resolver = GeneNameResolver(client=client)

    result = resolver.resolve(["X1"])

    assert isinstance(result, FallbackGeneNames)


def test_resolved_lookups_memoized(mock_client):
    """Test repeated identical lookups hit the service once."""
    resolver = GeneNameResolver(client=mock_client)
    ids = ["ENSG00000141510", "ENSG00000139618"]

    first = resolver.resolve(ids)
    second = resolver.resolve(list(ids))

    assert first is second
    assert mock_client.get_text.call_count == 1

    # A different list is a different key
    resolver.resolve(list(reversed(ids)))
    assert mock_client.get_text.call_count == 2


def test_fallback_not_memoized():
    """Test that a failed lookup is retried on the next call."""
    client = MagicMock()
    client.get_text.side_effect = [
        requests.exceptions.Timeout("slow"),
        BIOMART_TSV,
    ]
    resolver = GeneNameResolver(client=client)

    assert isinstance(resolver.resolve(["ENSG00000141510"]), FallbackGeneNames)
    assert isinstance(resolver.resolve(["ENSG00000141510"]), ResolvedGeneNames)


def test_mygene_source():
    """Test mygene backend with a notfound gene."""
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mg = MagicMock()
        mock_mg.querymany.return_value = MOCK_MYGENE_RESPONSE
        mock_mygene.return_value = mock_mg

        resolver = GeneNameResolver(source="mygene")
        result = resolver.resolve([
            'ENSG00000139618',
            'ENSG00000141510',
            'ENSG00000000000',
        ])

    assert isinstance(result, ResolvedGeneNames)
    assert result.source == "mygene"
    assert result.unmatched == ['ENSG00000000000']
    assert result.table["external_gene_name"].to_list() == [
        "BRCA2",
        "ENSG00000000000",
        "TP53",
    ]
    assert mock_mg.querymany.call_args.kwargs["scopes"] == "ensembl.gene"


def test_mygene_batching():
    """Test mygene queries are split into batches."""
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mg = MagicMock()
        mock_mg.querymany.return_value = {'out': [], 'missing': []}
        mock_mygene.return_value = mock_mg

        resolver = GeneNameResolver(source="mygene", batch_size=2)
        resolver.resolve([f'ENSG{i:011d}' for i in range(5)])

    assert mock_mg.querymany.call_count == 3


def test_mygene_failure_falls_back():
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mg = MagicMock()
        mock_mg.querymany.side_effect = RuntimeError("mygene down")
        mock_mygene.return_value = mock_mg

        resolver = GeneNameResolver(source="mygene")
        result = resolver.resolve(["X1", "X2"])

    assert isinstance(result, FallbackGeneNames)
    assert result.table["external_gene_name"].to_list() == ["X1", "X2"]


def test_from_config(tmp_path, mock_client):
    config = PipelineConfig(data_dir=tmp_path / "data", cache_dir=tmp_path / "cache")
    config.biomart.host = "http://useast.ensembl.org"

    resolver = GeneNameResolver.from_config(config, client=mock_client)
    resolver.resolve(["ENSG00000141510"])

    assert resolver.source == "biomart"
    assert mock_client.get_text.call_args.args[0] == (
        "http://useast.ensembl.org/biomart/martservice"
    )


def test_gene_names_returns_table(mock_client):
    resolver = GeneNameResolver(client=mock_client)

    df = gene_names(["ENSG00000141510"], resolver=resolver)

    assert df["external_gene_name"].to_list() == ["TP53"]
