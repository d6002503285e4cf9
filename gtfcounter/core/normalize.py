"""
MIT License

Normalization of GTF records into the gtfcounter canonical table.

Every function here returns a new DataFrame; inputs are never modified in place.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..io.gtf import POSITIONAL_COLUMNS, GTFRecord
from ..util.logging import get_logger

LOGGER = get_logger()

DEFAULT_KEYS = [
    "gene_id",
    "gene_type",
    "gene_name",
    "transcript_id",
    "transcript_type",
    "transcript_name",
    "transcript_support_level",
]

# GENCODE writes these without quotes; they are only useful with allow_unquoted.
UNQUOTED_KEYS = ["exon_number", "level"]

RESERVED_COLUMNS = POSITIONAL_COLUMNS + ["length"]


def _attribute_columns(records: Sequence[GTFRecord]) -> List[str]:
    seen: Dict[str, None] = {}
    for record in records:
        for key in record.attributes:
            seen.setdefault(key, None)
    return list(seen)


def records_to_frame(
    records: Iterable[GTFRecord],
    keys: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Build the canonical table from parsed records.

    Positional columns come first, followed by one ``string`` column per attribute key.
    With ``keys`` the attribute columns are exactly those keys; otherwise the union of
    keys seen across records, in first-seen order. Missing attributes are ``pd.NA``.

    Keys named like a positional column or ``length`` are rejected when requested
    explicitly and dropped with a warning when discovered.
    """

    records = list(records)
    if keys is not None:
        attr_cols = list(keys)
        clashes = [col for col in attr_cols if col in RESERVED_COLUMNS]
        if clashes:
            raise ValueError(f"Attribute keys collide with table columns: {', '.join(clashes)}")
    else:
        discovered = _attribute_columns(records)
        attr_cols = [col for col in discovered if col not in RESERVED_COLUMNS]
        dropped = [col for col in discovered if col in RESERVED_COLUMNS]
        if dropped:
            LOGGER.warning("Dropping attributes that collide with table columns: %s", ", ".join(dropped))

    rows = []
    for record in records:
        row = {
            "chrom": record.chrom,
            "source": record.source,
            "feature_type": record.feature_type,
            "start": record.start,
            "end": record.end,
            "score": record.score,
            "strand": record.strand,
            "phase": record.phase,
        }
        for col in attr_cols:
            row[col] = record.attributes.get(col)
        rows.append(row)

    df = pd.DataFrame(rows, columns=POSITIONAL_COLUMNS + attr_cols)
    df["start"] = df["start"].astype(np.int64)
    df["end"] = df["end"].astype(np.int64)
    for col in attr_cols:
        df[col] = df[col].astype("string")
    LOGGER.info("Normalized %s records into %s columns", len(df), len(df.columns))
    return df


def add_length(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy with ``length = end - start + 1``."""
    return df.assign(length=df["end"] - df["start"] + 1)


def select_features(df: pd.DataFrame, feature_types: Optional[Iterable[str]]) -> pd.DataFrame:
    """Keep only rows whose ``feature_type`` is listed; ``None`` keeps everything."""
    if feature_types is None:
        return df.copy()
    wanted = list(feature_types)
    return df[df["feature_type"].isin(wanted)].reset_index(drop=True)


def project(df: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise KeyError(f"Columns not in table: {', '.join(missing)}")
    return df[list(columns)].copy()


__all__ = [
    "DEFAULT_KEYS",
    "UNQUOTED_KEYS",
    "RESERVED_COLUMNS",
    "records_to_frame",
    "add_length",
    "select_features",
    "project",
]
