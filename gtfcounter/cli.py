"""
MIT License

Command-line interface for gtfcounter.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from .core.assemble import write_readme, write_run_metadata
from .core.counts import DEFAULT_QUANTILES, validate_quantiles
from .core.normalize import DEFAULT_KEYS, UNQUOTED_KEYS
from .core.pipeline import RunConfig, RunResult, run
from .io.gtf import MALFORMED_POLICIES, GTFFormatError, parse_attributes
from .io.tsv import SUPPORTED_FORMATS, write_table
from .util.logging import get_logger, set_verbosity

LOGGER = get_logger()

VERSION = "0.1.0"

ARTIFACTS = {
    "records": "01_records.tsv",
    "feature_counts": "02_feature_counts.tsv",
    "source_feature_counts": "03_source_feature_counts.tsv",
    "genes_per_chromosome": "04_genes_per_chromosome.tsv",
    "gene_type_counts": "05_gene_type_counts.tsv",
    "transcripts_per_gene": "06_transcripts_per_gene.tsv",
    "exons_per_transcript": "07_exons_per_transcript.tsv",
    "length_quantiles": "08_length_quantiles.tsv",
    "tsl_distribution": "09_tsl_distribution.tsv",
    "readme": "README.txt",
    "run": "run.jsonl",
}


def _bool(value: str | bool) -> bool:
    if isinstance(value, bool):
        return value
    normalized = value.strip().lower()
    if normalized in {"true", "1", "yes"}:
        return True
    if normalized in {"false", "0", "no"}:
        return False
    raise argparse.ArgumentTypeError(f"Invalid boolean: {value}")


def _csv_list(value: str) -> List[str]:
    items = [item.strip() for item in value.split(",") if item.strip()]
    if not items:
        raise argparse.ArgumentTypeError("Expected a comma-separated list")
    return items


def _quantile_list(value: str) -> List[float]:
    try:
        items = [float(item) for item in _csv_list(value)]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid quantile list: {value}") from None
    try:
        return validate_quantiles(items)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gtfcounter", description="GTF annotation summaries")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...)")
    add_run_args(parser)
    subparsers = parser.add_subparsers(dest="command")

    attr_parser = subparsers.add_parser("attributes", help="Parse one GTF attribute string and print JSON")
    attr_parser.set_defaults(handler=run_attributes_command)
    attr_parser.add_argument("text", help="Attribute column text")
    attr_parser.add_argument("--keys", type=_csv_list, default=None, help="Keys of interest (comma-separated)")
    attr_parser.add_argument("--strict", action="store_true", help="Warn about malformed entries")
    attr_parser.add_argument("--allow-unquoted", type=_bool, default=False)

    dump_parser = subparsers.add_parser("dump", help="Emit a specific artifact from an output folder")
    dump_parser.set_defaults(handler=run_dump_command)
    dump_parser.add_argument("--out", required=True, help="Run output folder")
    dump_parser.add_argument("--what", required=True, choices=sorted(ARTIFACTS))
    return parser


def add_run_args(parser: argparse.ArgumentParser) -> None:
    parser.set_defaults(handler=run_summary_command)
    parser.add_argument("--gtf", required=False, help="GTF annotation file (.gtf or .gtf.gz)")
    parser.add_argument("--out", required=False, default="out", help="Output directory")
    parser.add_argument(
        "--keys",
        type=_csv_list,
        default=None,
        help=(
            f"Attribute keys to keep as columns (default: {','.join(DEFAULT_KEYS)}, plus "
            f"{','.join(UNQUOTED_KEYS)} with --allow-unquoted true; 'all' keeps every key)"
        ),
    )
    parser.add_argument("--features", type=_csv_list, default=None, help="Feature types to keep")
    parser.add_argument("--strict", action="store_true", help="Warn about malformed attribute entries")
    parser.add_argument("--allow-unquoted", type=_bool, default=False)
    parser.add_argument("--on-malformed", choices=list(MALFORMED_POLICIES), default="skip")
    parser.add_argument(
        "--quantiles",
        type=_quantile_list,
        default=list(DEFAULT_QUANTILES),
        help="Length quantiles to report, e.g. 0.25,0.5,0.75",
    )
    parser.add_argument("--emit", choices=list(SUPPORTED_FORMATS), default="tsv")


def dispatch(args: argparse.Namespace) -> None:
    set_verbosity(getattr(args, "log_level", "INFO"))
    if getattr(args, "handler", None) is None:
        args.handler = run_summary_command
    args.handler(args)


def _resolve_keys(keys: Optional[List[str]], allow_unquoted: bool) -> Optional[List[str]]:
    if keys is None:
        return list(DEFAULT_KEYS) + (list(UNQUOTED_KEYS) if allow_unquoted else [])
    if keys == ["all"]:
        return None
    return keys


def run_summary_command(args: argparse.Namespace) -> None:
    if not args.gtf or not args.out:
        raise SystemExit("Summary mode requires --gtf and --out")
    if not Path(args.gtf).exists():
        raise SystemExit(f"GTF file not found: {args.gtf}")
    config = RunConfig(
        gtf=args.gtf,
        keys=_resolve_keys(args.keys, _bool(args.allow_unquoted)),
        feature_types=args.features,
        strict=args.strict,
        allow_unquoted=_bool(args.allow_unquoted),
        on_malformed=args.on_malformed,
        quantiles=tuple(args.quantiles),
    )
    try:
        result = run(config)
    except GTFFormatError as exc:
        raise SystemExit(f"Malformed GTF: {exc}") from None
    except ValueError as exc:
        raise SystemExit(str(exc)) from None
    out_dir = Path(args.out)
    write_bundle(result, out_dir, emit=args.emit)
    LOGGER.info("Bundle written to %s", out_dir)


def write_bundle(result: RunResult, out_dir: Path, emit: str) -> List[str]:
    out_dir.mkdir(parents=True, exist_ok=True)
    tables: Dict[str, pd.DataFrame] = {
        "records": result.table,
        "feature_counts": result.feature_counts,
        "source_feature_counts": result.source_feature_counts,
        "genes_per_chromosome": result.genes_per_chromosome,
        "gene_type_counts": result.gene_type_counts,
        "transcripts_per_gene": result.transcripts_per_gene,
        "exons_per_transcript": result.exons_per_transcript,
        "length_quantiles": result.length_quantiles,
        "tsl_distribution": result.tsl_distribution,
    }
    files_written: List[str] = []
    for name, df in tables.items():
        path = out_dir / ARTIFACTS[name]
        write_table(df, path, fmt=emit)
        files_written.append(str(path))

    write_readme(out_dir / ARTIFACTS["readme"])
    files_written.append(str(out_dir / ARTIFACTS["readme"]))

    config = result.config
    write_run_metadata(
        out_dir / ARTIFACTS["run"],
        {
            "version": VERSION,
            "gtf": config.gtf,
            "keys": config.keys,
            "feature_types": config.feature_types,
            "strict": config.strict,
            "allow_unquoted": config.allow_unquoted,
            "on_malformed": config.on_malformed,
            "quantiles": list(config.quantiles),
            "n_records": result.n_records,
            "emit": emit,
            "files": files_written,
        },
    )
    return files_written


def run_attributes_command(args: argparse.Namespace) -> None:
    parsed = parse_attributes(
        args.text,
        keys=args.keys,
        strict=args.strict,
        allow_unquoted=_bool(args.allow_unquoted),
    )
    sys.stdout.write(json.dumps(parsed) + "\n")


def run_dump_command(args: argparse.Namespace) -> None:
    target = Path(args.out) / ARTIFACTS[args.what]
    if not target.exists():
        raise SystemExit(f"Artifact not found: {target}")
    with target.open("r", encoding="utf-8") as handle:
        for line in handle:
            sys.stdout.write(line)


__all__ = ["build_parser", "dispatch", "write_bundle"]
