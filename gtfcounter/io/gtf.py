"""
MIT License

GTF parsing utilities.

A GTF line carries eight positional columns followed by an attribute column made of
``key "value";`` entries. The attribute column is scanned once from left to right with an
anchored pattern, so a key is only ever matched as a whole token and a ``;`` inside a
quoted value never splits an entry.
"""

from __future__ import annotations

import gzip
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, TextIO

from ..util.logging import get_logger

LOGGER = get_logger()

MISSING = None

VALID_STRANDS = frozenset({"+", "-", "."})
MALFORMED_POLICIES = ("skip", "fail")
POSITIONAL_COLUMNS = [
    "chrom",
    "source",
    "feature_type",
    "start",
    "end",
    "score",
    "strand",
    "phase",
]

_SEPARATORS_RE = re.compile(r"[\s;]*")
_QUOTED_ENTRY_RE = re.compile(
    r'(?P<key>[^\s";]+)\s+"(?P<value>(?:[^"\\]|\\.)*)"\s*(?:;|\Z)'
)
_LOOSE_ENTRY_RE = re.compile(
    r'(?P<key>[^\s";]+)\s+(?:"(?P<value>(?:[^"\\]|\\.)*)"|(?P<bare>[^\s";]+))\s*(?:;|\Z)'
)


class GTFFormatError(ValueError):
    """A GTF line could not be split into a well-formed record."""

    def __init__(self, message: str, filename: str = "", line_number: int = 0):
        super().__init__(message)
        self.filename = filename
        self.line_number = line_number

    def __str__(self) -> str:
        if self.filename and self.line_number:
            return f"{self.filename}:{self.line_number}: {super().__str__()}"
        if self.line_number:
            return f"line {self.line_number}: {super().__str__()}"
        return super().__str__()


class AttributeParseWarning(UserWarning):
    """Emitted in strict mode for attribute entries that were skipped."""


@dataclass(frozen=True)
class GTFRecord:
    """Representation of a single GTF record."""

    chrom: str
    source: str
    feature_type: str
    start: int
    end: int
    score: Optional[str]
    strand: str
    phase: Optional[str]
    attributes: Dict[str, Optional[str]] = field(default_factory=dict)

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def get(self, key: str) -> Optional[str]:
        return self.attributes.get(key, MISSING)


def parse_attributes(
    text: str,
    keys: Optional[Sequence[str]] = None,
    strict: bool = False,
    allow_unquoted: bool = False,
) -> Dict[str, Optional[str]]:
    """
    Parse a GTF attribute column into a key -> value mapping.

    Parameters
    ----------
    text:
        Raw attribute text, e.g. ``gene_id "ENSG00000223972.5"; gene_type "lncRNA";``.
    keys:
        Keys of interest. When given, the result holds exactly these keys in this order
        and a key absent from ``text`` maps to ``MISSING``. When omitted, every key found
        is returned in first-seen order.
    strict:
        Emit an ``AttributeParseWarning`` for every malformed entry that is skipped.
    allow_unquoted:
        Also accept bare values such as ``level 2;``.

    Returns
    -------
    dict
        Values with their surrounding quotes stripped. A repeated key keeps its first
        value.
    """
    if not isinstance(text, str):
        raise TypeError(f"attribute text must be str, not {type(text).__name__}")

    entry_re = _LOOSE_ENTRY_RE if allow_unquoted else _QUOTED_ENTRY_RE
    found: Dict[str, str] = {}
    pos = 0
    size = len(text)
    while True:
        pos = _SEPARATORS_RE.match(text, pos).end()
        if pos >= size:
            break
        match = entry_re.match(text, pos)
        if match is None:
            stop = text.find(";", pos)
            fragment = text[pos:] if stop == -1 else text[pos:stop]
            if strict:
                warnings.warn(
                    f"Skipping malformed attribute entry: {fragment.strip()!r}",
                    AttributeParseWarning,
                    stacklevel=2,
                )
            if stop == -1:
                break
            pos = stop + 1
            continue
        key = match.group("key")
        if key not in found:
            value = match.group("value")
            if value is None:
                value = match.group("bare")
            found[key] = value
        pos = match.end()

    if keys is None:
        return dict(found)
    return {key: found.get(key, MISSING) for key in keys}


def format_attributes(attributes: Dict[str, Optional[str]]) -> str:
    """Render a mapping back into GTF attribute text, skipping missing values."""
    parts = [f'{key} "{value}";' for key, value in attributes.items() if value is not MISSING]
    return " ".join(parts)


def _optional(value: str) -> Optional[str]:
    return None if value == "." else value


def parse_line(
    line: str,
    keys: Optional[Sequence[str]] = None,
    strict: bool = False,
    allow_unquoted: bool = False,
) -> GTFRecord:
    """Split one non-comment GTF line into a ``GTFRecord``."""
    parts = line.rstrip("\r\n").split("\t")
    if len(parts) != 9:
        raise GTFFormatError(f"expected 9 tab-separated fields, found {len(parts)}")
    chrom, source, ftype, start, end, score, strand, phase, attrs = parts
    try:
        start_pos, end_pos = int(start), int(end)
    except ValueError:
        raise GTFFormatError(f"non-integer coordinates: {start!r}, {end!r}") from None
    if end_pos < start_pos:
        raise GTFFormatError(f"end {end_pos} is before start {start_pos}")
    if strand not in VALID_STRANDS:
        raise GTFFormatError(f"invalid strand: {strand!r}")
    return GTFRecord(
        chrom=chrom,
        source=source,
        feature_type=ftype,
        start=start_pos,
        end=end_pos,
        score=_optional(score),
        strand=strand,
        phase=_optional(phase),
        attributes=parse_attributes(attrs, keys=keys, strict=strict, allow_unquoted=allow_unquoted),
    )


def format_line(record: GTFRecord) -> str:
    """Render a ``GTFRecord`` as a tab-separated GTF line without a newline."""
    fields = [
        record.chrom,
        record.source,
        record.feature_type,
        str(record.start),
        str(record.end),
        record.score if record.score is not None else ".",
        record.strand,
        record.phase if record.phase is not None else ".",
        format_attributes(record.attributes),
    ]
    return "\t".join(fields)


def _open_text(path: Path) -> TextIO:
    if path.suffix == ".gz":
        return gzip.open(path, "rt", encoding="utf-8")
    return path.open("r", encoding="utf-8")


def iter_gtf(
    path: str | Path,
    keys: Optional[Sequence[str]] = None,
    strict: bool = False,
    allow_unquoted: bool = False,
    on_malformed: str = "skip",
) -> Iterator[GTFRecord]:
    """
    Stream records from a GTF file, plain or gzip-compressed.

    Blank lines and ``#`` comments are ignored. Malformed lines are logged and skipped
    with ``on_malformed="skip"``; with ``"fail"`` the ``GTFFormatError`` propagates with
    the file name and line number attached.
    """
    if on_malformed not in MALFORMED_POLICIES:
        raise ValueError(f"Unsupported malformed-line policy: {on_malformed}")
    gtf_path = Path(path)
    skipped = 0
    with _open_text(gtf_path) as handle:
        for line_number, line in enumerate(handle, 1):
            if not line.strip() or line.startswith("#"):
                continue
            try:
                yield parse_line(line, keys=keys, strict=strict, allow_unquoted=allow_unquoted)
            except GTFFormatError as exc:
                exc.filename = str(gtf_path)
                exc.line_number = line_number
                if on_malformed == "fail":
                    raise
                skipped += 1
                LOGGER.warning("Skipping malformed line: %s", exc)
    if skipped:
        LOGGER.info("Skipped %s malformed lines in %s", skipped, gtf_path)


def read_gtf(
    path: str | Path,
    keys: Optional[Sequence[str]] = None,
    strict: bool = False,
    allow_unquoted: bool = False,
    on_malformed: str = "skip",
) -> List[GTFRecord]:
    """Load a GTF file into memory."""
    records = list(
        iter_gtf(path, keys=keys, strict=strict, allow_unquoted=allow_unquoted, on_malformed=on_malformed)
    )
    LOGGER.info("Read %s records from %s", len(records), path)
    return records


def write_gtf(records: Iterable[GTFRecord], path: str | Path) -> None:
    """Write records as GTF lines."""
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8") as handle:
        for record in records:
            handle.write(format_line(record) + "\n")


__all__ = [
    "MISSING",
    "POSITIONAL_COLUMNS",
    "GTFFormatError",
    "AttributeParseWarning",
    "GTFRecord",
    "parse_attributes",
    "format_attributes",
    "parse_line",
    "format_line",
    "iter_gtf",
    "read_gtf",
    "write_gtf",
]
