"""Parse hallmarks annotation responses into a gene-by-hallmark table.

The service answers with repeating blocks of tab-delimited lines::

    MOB1A<TAB>count
    sustaining proliferative signaling<TAB>12
    evading growth suppressors<TAB>3
    SPIC<TAB>count
    ...

Each block opens with a header (gene identifier and metric name) followed by
zero or more ``hallmark<TAB>value`` detail lines.
"""

import math
import re
from dataclasses import dataclass, field

import polars as pl
import structlog

logger = structlog.get_logger()

GENE_NAME_COLUMN = "gene_name"
GENE_ID_PATTERN = r"[A-Za-z0-9._,-]+"


class ParseError(ValueError):
    """Raised when a hallmarks response line cannot be interpreted.

    Attributes:
        line: Offending line as received
        line_number: 1-based position of the line in the response
        gene: Gene identifier of the block being parsed (None before any header)
    """

    def __init__(self, message: str, line: str, line_number: int, gene: str | None = None):
        self.line = line
        self.line_number = line_number
        self.gene = gene
        location = f"line {line_number}"
        if gene is not None:
            location += f" (gene {gene})"
        super().__init__(f"{message} at {location}: {line!r}")


@dataclass
class ParsedHallmarks:
    """Parser output.

    Attributes:
        table: One row per gene, ``gene_name`` first, then one Float64 column per
            hallmark in first-seen order. Absent values are null, not zero.
        no_hallmarks: Sorted genes without any non-null, finite, non-zero value
    """
    table: pl.DataFrame
    no_hallmarks: list[str] = field(default_factory=list)


def header_pattern(metric: str) -> re.Pattern:
    """Compile the pattern recognizing block headers for ``metric``."""
    return re.compile(rf"^({GENE_ID_PATTERN})\t{re.escape(metric)}$")


def group_lines(lines: list[str], metric: str) -> list[tuple[int, list[tuple[int, str]]]]:
    """Split response lines into blocks keyed by a running header count.

    Returns ``(group_key, [(line_number, line), ...])`` pairs where the first
    entry of every group is its header. Blank lines before the first header
    are dropped; any other line there raises ParseError since no gene can be
    attached to it.
    """
    pattern = header_pattern(metric)
    groups: list[tuple[int, list[tuple[int, str]]]] = []
    header_count = 0

    for line_number, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if pattern.match(line):
            header_count += 1
            groups.append((header_count, []))
        elif header_count == 0:
            if line.strip() == "":
                continue
            raise ParseError("Detail line before any gene header", raw, line_number)
        groups[-1][1].append((line_number, line))

    return groups


def _parse_group(
    entries: list[tuple[int, str]],
    metric: str,
    columns: dict[str, None],
) -> tuple[str, dict[str, float], dict[str, None]]:
    """Turn one block into ``(gene, {hallmark: value})``.

    ``columns`` is the running, insertion-ordered set of hallmark names; an
    updated copy is returned alongside the row.
    """
    _, header = entries[0]
    gene = header[: -len(f"\t{metric}")]
    values: dict[str, float] = {}
    columns = dict(columns)

    for line_number, line in entries[1:]:
        if line.strip() == "":
            continue
        if "\t" not in line:
            raise ParseError("Missing tab separator", line, line_number, gene)

        # Fields past the second are ignored
        fields = line.split("\t")
        hallmark, raw_value = fields[0], fields[1]
        if hallmark == GENE_NAME_COLUMN:
            raise ParseError(
                f"Hallmark name {GENE_NAME_COLUMN!r} is reserved for the identifier column",
                line,
                line_number,
                gene,
            )
        try:
            value = float(raw_value)
        except ValueError:
            raise ParseError("Non-numeric hallmark value", line, line_number, gene) from None

        # Repeated hallmark inside a block: later value wins
        values[hallmark] = value
        columns.setdefault(hallmark, None)

    return gene, values, columns


def _has_hallmark(values: dict[str, float]) -> bool:
    return any(math.isfinite(v) and v != 0 for v in values.values())


def parse_hallmarks_response(lines: list[str], metric: str) -> ParsedHallmarks:
    """Parse a hallmarks service response.

    Args:
        lines: Response body split into lines
        metric: Metric name used in the block headers (e.g. "count")

    Returns:
        ParsedHallmarks with the gene-by-hallmark table and genes without hallmarks

    Raises:
        ParseError: On a non-numeric value, a detail line without a tab, content
            before the first header, a gene header seen twice, or a hallmark
            named ``gene_name``
    """
    columns: dict[str, None] = {}
    rows: list[tuple[str, dict[str, float]]] = []
    seen: dict[str, int] = {}

    for _, entries in group_lines(lines, metric):
        gene, values, columns = _parse_group(entries, metric, columns)
        header_number, header = entries[0]
        if gene in seen:
            raise ParseError(
                f"Duplicate gene header (first seen at line {seen[gene]})",
                header,
                header_number,
                gene,
            )
        seen[gene] = header_number
        rows.append((gene, values))

    schema = {GENE_NAME_COLUMN: pl.Utf8}
    schema.update({name: pl.Float64 for name in columns})

    data = {GENE_NAME_COLUMN: [gene for gene, _ in rows]}
    for name in columns:
        data[name] = [values.get(name) for _, values in rows]
    table = pl.DataFrame(data, schema=schema)

    no_hallmarks = sorted(gene for gene, values in rows if not _has_hallmark(values))

    logger.debug(
        "parse_hallmarks_response_complete",
        genes=len(rows),
        hallmarks=len(columns),
        no_hallmarks=len(no_hallmarks),
    )

    return ParsedHallmarks(table=table, no_hallmarks=no_hallmarks)
