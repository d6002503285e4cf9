"""
MIT License

TSV/CSV/JSONL helpers for gtfcounter.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List
import json

import pandas as pd

from ..util.logging import get_logger

LOGGER = get_logger()

SUPPORTED_FORMATS = ("tsv", "csv", "jsonl")
MISSING_TEXT = "."


def _jsonable(value: object) -> object:
    if value is pd.NA or (isinstance(value, float) and pd.isna(value)):
        return None
    if hasattr(value, "item"):
        return value.item()
    return value


def _colliding_columns(df: pd.DataFrame) -> List[str]:
    columns = []
    for col in df.columns:
        if pd.api.types.is_numeric_dtype(df[col]):
            continue
        present = df[col].dropna()
        if (present.astype(str) == MISSING_TEXT).any():
            columns.append(str(col))
    return columns


def write_table(df: pd.DataFrame, path: str | Path, fmt: str = "tsv") -> None:
    """
    Persist a DataFrame in the requested serialization format.

    Missing values are written as ``.``, the GTF empty-field marker, in delimited output
    and as ``null`` in JSONL. A present value that is itself ``.`` would read back as
    missing from TSV/CSV, so such columns are logged; JSONL keeps them apart.

    Parameters
    ----------
    df:
        DataFrame to serialize.
    path:
        Output file path.
    fmt:
        One of ``tsv``, ``csv`` or ``jsonl``.
    """
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported format: {fmt}")
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    if fmt in ("tsv", "csv"):
        collisions = _colliding_columns(df)
        if collisions:
            LOGGER.warning(
                "%s: values equal to %r in %s are indistinguishable from missing; use jsonl",
                out_path,
                MISSING_TEXT,
                ", ".join(collisions),
            )
        sep = "\t" if fmt == "tsv" else ","
        df.to_csv(out_path, sep=sep, index=False, na_rep=MISSING_TEXT)
    else:
        with out_path.open("w", encoding="utf-8") as handle:
            for record in df.to_dict(orient="records"):
                clean = {key: _jsonable(value) for key, value in record.items()}
                handle.write(json.dumps(clean) + "\n")


def write_lines(lines: Iterable[str], path: str | Path) -> None:
    """Write plain-text lines joined by newlines."""
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8") as handle:
        for line in lines:
            handle.write(f"{line}\n")


__all__ = ["SUPPORTED_FORMATS", "MISSING_TEXT", "write_table", "write_lines"]
