"""
MIT License

Group-by, count and quantile summaries over the canonical GTF table.
"""

from __future__ import annotations

import re
from typing import Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd

from .normalize import add_length
from ..util.logging import get_logger

LOGGER = get_logger()

DEFAULT_QUANTILES = (0.25, 0.5, 0.75)

_CHROM_PREFIX_RE = re.compile(r"^chr", re.IGNORECASE)
_SEX_AND_MITO = {"X": 0, "Y": 1, "M": 2, "MT": 2}


def _has_columns(df: pd.DataFrame, columns: Sequence[str], label: str) -> bool:
    missing = [col for col in columns if col not in df.columns]
    if missing:
        LOGGER.warning("Skipping %s: table lacks %s", label, ", ".join(missing))
        return False
    return True


def _as_keys(df: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    work = df[list(columns)].copy()
    for col in columns:
        if not pd.api.types.is_numeric_dtype(work[col]):
            work[col] = work[col].astype("string")
    return work


def count_by(df: pd.DataFrame, columns: Sequence[str], name: str = "n") -> pd.DataFrame:
    """Count rows per group, largest groups first, missing keys kept as ``pd.NA`` and sorted last."""

    columns = list(columns)
    if df.empty or not _has_columns(df, columns, f"count by {', '.join(columns)}"):
        return pd.DataFrame(columns=columns + [name])
    work = _as_keys(df, columns)
    counts = work.groupby(columns, sort=False, dropna=False).size().reset_index(name=name)
    counts[name] = counts[name].astype(np.int64)
    counts = counts.sort_values(
        [name] + columns,
        ascending=[False] + [True] * len(columns),
        kind="mergesort",
        na_position="last",
    )
    return counts.reset_index(drop=True)


def feature_counts(df: pd.DataFrame) -> pd.DataFrame:
    return count_by(df, ["feature_type"])


def source_feature_counts(df: pd.DataFrame) -> pd.DataFrame:
    """Cross-tabulate annotation source against feature type."""

    if df.empty:
        return pd.DataFrame(columns=["source"])
    table = pd.crosstab(df["source"], df["feature_type"])
    table.columns.name = None
    return table.reset_index()


def chromosome_sort_key(name: str) -> Tuple[int, int, str]:
    """Order chromosomes as chr1..chr22, chrX, chrY, chrM, then anything else."""
    bare = _CHROM_PREFIX_RE.sub("", name)
    if bare.isdigit():
        return (0, int(bare), "")
    if bare.upper() in _SEX_AND_MITO:
        return (1, _SEX_AND_MITO[bare.upper()], "")
    return (2, 0, name)


def genes_per_chromosome(df: pd.DataFrame) -> pd.DataFrame:
    genes = df[df["feature_type"] == "gene"] if not df.empty else df
    counts = count_by(genes, ["chrom"], name="n_genes")
    if counts.empty:
        return counts
    order = sorted(counts["chrom"], key=chromosome_sort_key)
    return counts.set_index("chrom").loc[order].reset_index()


def gene_type_counts(df: pd.DataFrame) -> pd.DataFrame:
    genes = df[df["feature_type"] == "gene"] if not df.empty else df
    return count_by(genes, ["gene_type"], name="n_genes")


def features_per_parent(
    df: pd.DataFrame,
    feature_type: str,
    parent_key: str,
    name: str = "n",
) -> pd.DataFrame:
    """
    Count child features per parent identifier.

    Rows of ``feature_type`` lacking ``parent_key`` cannot be attributed to a parent and
    are left out; how many were left out is logged.
    """

    if df.empty or not _has_columns(df, [parent_key], f"{feature_type} per {parent_key}"):
        return pd.DataFrame(columns=[parent_key, name])
    children = df[df["feature_type"] == feature_type]
    orphans = int(children[parent_key].isna().sum())
    if orphans:
        LOGGER.warning("%s %s rows have no %s", orphans, feature_type, parent_key)
    return count_by(children[children[parent_key].notna()], [parent_key], name=name)


def transcripts_per_gene(df: pd.DataFrame) -> pd.DataFrame:
    return features_per_parent(df, "transcript", "gene_id", name="n_transcripts")


def exons_per_transcript(df: pd.DataFrame) -> pd.DataFrame:
    return features_per_parent(df, "exon", "transcript_id", name="n_exons")


def _quantile_label(q: float) -> str:
    return f"q{q * 100:g}"


def validate_quantiles(quantiles: Sequence[float]) -> List[float]:
    """
    Check a quantile vector and drop exact repeats.

    Distinct quantiles that would share a ``qNN`` column label (``0.5`` and
    ``0.5000001``) are rejected rather than producing duplicate columns.
    """
    values = np.asarray(list(quantiles), dtype=float)
    if values.size == 0:
        raise ValueError("At least one quantile is required")
    if np.isnan(values).any() or ((values < 0) | (values > 1)).any():
        raise ValueError(f"Quantiles must lie in [0, 1]: {list(quantiles)}")
    by_label: Dict[str, float] = {}
    for q in values.tolist():
        label = _quantile_label(q)
        if label in by_label and by_label[label] != q:
            raise ValueError(f"Quantiles {by_label[label]} and {q} share the column label {label}")
        by_label.setdefault(label, q)
    return list(by_label.values())


def length_quantiles(
    df: pd.DataFrame,
    by: str = "feature_type",
    quantiles: Sequence[float] = DEFAULT_QUANTILES,
) -> pd.DataFrame:
    """
    Summarize feature lengths per group.

    Output columns are ``by``, ``n``, ``mean_length`` and one ``qNN`` column per
    requested quantile (``q25``, ``q50``, ...). Rows with no ``by`` value are left out
    and their number is logged.
    """

    qs = validate_quantiles(quantiles)
    columns = [by, "n", "mean_length"] + [_quantile_label(q) for q in qs]
    if df.empty or not _has_columns(df, [by], f"length quantiles by {by}"):
        return pd.DataFrame(columns=columns)

    work = df if "length" in df.columns else add_length(df)
    unkeyed = int(work[by].isna().sum())
    if unkeyed:
        LOGGER.warning("%s rows have no %s and are left out of length quantiles", unkeyed, by)
        work = work[work[by].notna()]
    if work.empty:
        return pd.DataFrame(columns=columns)
    work = _as_keys(work, [by]).assign(length=work["length"].astype(float))
    grouped = work.groupby(by, sort=True)["length"]
    stats = grouped.agg(["count", "mean"]).rename(columns={"count": "n", "mean": "mean_length"})
    spread = grouped.quantile(qs).unstack()
    spread.columns = [_quantile_label(q) for q in spread.columns]
    summary = stats.join(spread).reset_index()
    summary["n"] = summary["n"].astype(np.int64)
    return summary[columns]


def tsl_distribution(df: pd.DataFrame) -> pd.DataFrame:
    """
    Transcripts per transcript support level, ordered by level.

    Transcripts without the attribute form their own ``pd.NA`` group, placed last and
    kept apart from a literal ``"NA"`` level.
    """

    transcripts = df[df["feature_type"] == "transcript"] if not df.empty else df
    counts = count_by(transcripts, ["transcript_support_level"], name="n_transcripts")
    if counts.empty:
        return counts
    ordered = counts.sort_values("transcript_support_level", kind="mergesort", na_position="last")
    return ordered.reset_index(drop=True)


__all__ = [
    "DEFAULT_QUANTILES",
    "count_by",
    "feature_counts",
    "source_feature_counts",
    "chromosome_sort_key",
    "genes_per_chromosome",
    "gene_type_counts",
    "features_per_parent",
    "transcripts_per_gene",
    "exons_per_transcript",
    "validate_quantiles",
    "length_quantiles",
    "tsl_distribution",
]
