"""
MIT License

High-level orchestration for a gtfcounter run: read, parse, project, aggregate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import pandas as pd

from . import counts
from .normalize import add_length, records_to_frame, select_features
from ..io.gtf import read_gtf
from ..util.logging import get_logger

LOGGER = get_logger()


@dataclass
class RunConfig:
    gtf: str
    keys: Optional[List[str]] = None
    feature_types: Optional[List[str]] = None
    strict: bool = False
    allow_unquoted: bool = False
    on_malformed: str = "skip"
    quantiles: Tuple[float, ...] = counts.DEFAULT_QUANTILES


@dataclass
class RunResult:
    config: RunConfig
    table: pd.DataFrame
    feature_counts: pd.DataFrame
    source_feature_counts: pd.DataFrame
    genes_per_chromosome: pd.DataFrame
    gene_type_counts: pd.DataFrame
    transcripts_per_gene: pd.DataFrame
    exons_per_transcript: pd.DataFrame
    length_quantiles: pd.DataFrame
    tsl_distribution: pd.DataFrame

    @property
    def n_records(self) -> int:
        return int(len(self.table))


def build_table(config: RunConfig) -> pd.DataFrame:
    """Read and project the GTF named in ``config`` into the canonical table."""

    records = read_gtf(
        config.gtf,
        keys=config.keys,
        strict=config.strict,
        allow_unquoted=config.allow_unquoted,
        on_malformed=config.on_malformed,
    )
    table = records_to_frame(records, keys=config.keys)
    table = select_features(table, config.feature_types)
    return add_length(table)


def summarize(config: RunConfig, table: pd.DataFrame) -> RunResult:
    """Compute every summary table from an already-built canonical table."""

    return RunResult(
        config=config,
        table=table,
        feature_counts=counts.feature_counts(table),
        source_feature_counts=counts.source_feature_counts(table),
        genes_per_chromosome=counts.genes_per_chromosome(table),
        gene_type_counts=counts.gene_type_counts(table),
        transcripts_per_gene=counts.transcripts_per_gene(table),
        exons_per_transcript=counts.exons_per_transcript(table),
        length_quantiles=counts.length_quantiles(table, quantiles=config.quantiles),
        tsl_distribution=counts.tsl_distribution(table),
    )


def run(config: RunConfig) -> RunResult:
    """Execute the full pipeline for one GTF file and return structured data."""

    LOGGER.info("Processing %s", config.gtf)
    table = build_table(config)
    result = summarize(config, table)
    LOGGER.info(
        "Summarized %s records across %s feature types",
        result.n_records,
        len(result.feature_counts),
    )
    return result


__all__ = ["RunConfig", "RunResult", "build_table", "summarize", "run"]
