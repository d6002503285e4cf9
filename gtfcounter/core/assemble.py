"""
MIT License

Assemble the run metadata and README for gtfcounter output bundles.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict

from ..io.tsv import write_lines


def write_run_metadata(path: str | Path, metadata: Dict[str, object]) -> None:
    """Write run.jsonl with a single NDJSON record."""

    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    metadata = dict(metadata)
    if "date_utc" not in metadata:
        metadata["date_utc"] = datetime.now(timezone.utc).isoformat()
    with out_path.open("w", encoding="utf-8") as handle:
        handle.write(json.dumps(metadata) + "\n")


def write_readme(path: str | Path) -> None:
    """Emit README.txt summarizing usage and schemas."""

    out_path = Path(path)
    content = """gtfcounter
==========

Quickstart
----------
Summarize a GTF file:
    python -m gtfcounter --gtf gencode.annotation.gtf.gz --out out_dir

Parse a single attribute column:
    python -m gtfcounter attributes 'gene_id "ENSG00000223972.5"; gene_type "lncRNA";'

Key behaviors
-------------
* Attribute entries must read key "value"; others are skipped (warned with --strict).
* --allow-unquoted true also accepts bare values such as level 2; and adds the
  level and exon_number columns to the default set.
* Missing values are written as . (null in jsonl); a literal "NA" value stays "NA".
* Malformed lines are skipped unless --on-malformed fail.

Schema overview
---------------
01_records.tsv                One row per GTF record plus attribute columns and length.
02_feature_counts.tsv         Records per feature_type.
03_source_feature_counts.tsv  source x feature_type counts.
04_genes_per_chromosome.tsv   Gene records per chromosome.
05_gene_type_counts.tsv       Gene records per gene_type.
06_transcripts_per_gene.tsv   Transcript records per gene_id.
07_exons_per_transcript.tsv   Exon records per transcript_id.
08_length_quantiles.tsv       Length count/mean/quantiles per feature_type.
09_tsl_distribution.tsv       Transcripts per transcript_support_level.
run.jsonl                     Run parameters and files written.

This bundle is text-only (TSV/CSV/JSONL/TXT)."""
    write_lines(content.splitlines(), out_path)


__all__ = ["write_run_metadata", "write_readme"]
