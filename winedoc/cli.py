"""Command-line interface for wine label and receipt processing.

Provides subcommands for extracting a single image, processing a folder
of images into an inventory CSV, and classifying plain OCR text.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path

from winedoc.cache.content_cache import CacheStatistics
from winedoc.classification.classifier import DocumentClassifier
from winedoc.classification.policy import get_policy
from winedoc.export.records import RECORD_COLUMNS, build_records
from winedoc.pipeline.processor import SUPPORTED_EXTENSIONS, DocumentPipeline, build_pipeline
from winedoc.utils.config import AppConfig, load_config
from winedoc.utils.errors import WinedocError
from winedoc.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_META_COLUMNS = [
    "filename",
    "status",
    "document_type",
    "confidence",
    "cached",
    "processing_time_s",
    "error",
]


def _find_images(input_dir: Path) -> list[Path]:
    """Find all supported image files in a directory.

    Args:
        input_dir: Directory to scan for images.

    Returns:
        Sorted list of image file paths.
    """
    return sorted(
        p for p in input_dir.iterdir()
        if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS
    )


def _process_single_file(file_path: Path, pipeline: DocumentPipeline) -> list[dict[str, object]]:
    """Process one image and flatten it into CSV rows.

    Args:
        file_path: Path to the image file.
        pipeline: Pipeline instance.

    Returns:
        One row per inventory record, or a single metadata row when the
        document produced no records.
    """
    result = pipeline.process(str(file_path))
    meta: dict[str, object] = {
        "filename": file_path.name,
        "status": "failed" if result.error else "success",
        "document_type": str(result.document.type),
        "confidence": round(result.classification.confidence, 3),
        "cached": result.cached,
        "error": result.error,
    }

    records = build_records(result, image_ref=str(file_path))
    if not records:
        return [meta]
    return [{**meta, **record} for record in records]


def process_folder(
    input_dir: Path,
    output_csv: Path,
    config: AppConfig,
    verbose: bool = False,
) -> dict[str, int]:
    """Process all images in a folder and export inventory rows to CSV.

    Args:
        input_dir: Directory containing label and receipt photos.
        output_csv: Path for the output CSV file.
        config: Application configuration.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    files = _find_images(input_dir)
    if not files:
        logger.warning("No images found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d images to process", len(files))
    pipeline = build_pipeline(config)

    rows: list[dict[str, object]] = []
    successful = 0
    failed = 0

    try:
        for i, file_path in enumerate(files, 1):
            if verbose:
                print(f"Processing [{i}/{len(files)}]: {file_path.name}")

            start_time = time.time()
            try:
                file_rows = _process_single_file(file_path, pipeline)
            except WinedocError as exc:
                logger.error("Failed to process %s: %s", file_path.name, exc)
                rows.append(
                    {"filename": file_path.name, "status": "failed", "error": str(exc)}
                )
                failed += 1
                continue

            elapsed = round(time.time() - start_time, 2)
            for row in file_rows:
                row["processing_time_s"] = elapsed
            rows.extend(file_rows)
            if file_rows[0]["status"] == "success":
                successful += 1
            else:
                failed += 1

        stats = pipeline.cache.stats() if pipeline.cache is not None else None
    finally:
        if pipeline.cache is not None:
            pipeline.cache.close()

    _write_csv(rows, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv, stats)
    return summary


def _format_cell(value: object) -> object:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return value


def _write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    """Write inventory rows to a CSV file.

    Args:
        rows: List of row dictionaries.
        output_path: Path for the output CSV file.
    """
    if not rows:
        return

    all_keys: set[str] = set()
    for r in rows:
        all_keys.update(r.keys())

    columns = [c for c in _META_COLUMNS + RECORD_COLUMNS if c in all_keys]

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow({k: _format_cell(v) for k, v in row.items()})


def _print_summary(
    summary: dict[str, int], output_csv: Path, stats: CacheStatistics | None
) -> None:
    """Print batch processing summary to stdout.

    Args:
        summary: Counts of total, successful, and failed images.
        output_csv: Path to the output CSV.
        stats: Cache counters, if the cache was enabled.
    """
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")
    if stats is not None:
        print(
            f"Cache:      {stats.hits} hits, {stats.misses} misses "
            f"({stats.hit_rate:.0%} hit rate), {stats.key_count} keys"
        )


def extract_single(image_ref: str, config: AppConfig) -> dict[str, object]:
    """Process a single image and return structured results.

    Args:
        image_ref: Local path or URL of the image.
        config: Application configuration.

    Returns:
        Dictionary with the document type, fields and raw text.
    """
    pipeline = build_pipeline(config)
    try:
        result = pipeline.process(image_ref)
    finally:
        if pipeline.cache is not None:
            pipeline.cache.close()
    return {"image": image_ref, **result.to_dict()}


def classify_text(text: str, config: AppConfig) -> dict[str, object]:
    """Classify OCR text without running OCR.

    Args:
        text: OCR text.
        config: Application configuration.

    Returns:
        Dictionary with type, confidence and matched indicators.
    """
    classifier = DocumentClassifier(get_policy(config.classifier.policy_version))
    result = classifier.classify(text)
    return {
        "type": str(result.type),
        "confidence": round(result.confidence, 4),
        "indicators": list(result.indicators),
        "policy_version": classifier.policy.version,
    }


def _emit(payload: dict[str, object], output: Path | None) -> None:
    output_str = json.dumps(payload, indent=2, ensure_ascii=False)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(output_str, encoding="utf-8")
        print(f"Output written to {output}")
    else:
        print(output_str)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Wine label and receipt processor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="YAML configuration file")
    parser.add_argument(
        "--env",
        choices=["development", "production", "test"],
        help="Configuration environment (default: $WINEDOC_ENV or development)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of images")
    batch_parser.add_argument("input_dir", type=Path, help="Input directory with images")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("wines.csv"),
        help="Output CSV file (default: wines.csv)",
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    single_parser = subparsers.add_parser("extract", help="Process a single image")
    single_parser.add_argument("image", help="Image file path or URL")
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    classify_parser = subparsers.add_parser("classify", help="Classify an OCR text file")
    classify_parser.add_argument("text_file", type=Path, help="File with OCR text")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    config = load_config(args.config, args.env)
    setup_logging(config.log_level)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, config, args.verbose)
    elif args.command == "extract":
        try:
            result = extract_single(args.image, config)
        except WinedocError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        _emit(result, args.output)
    elif args.command == "classify":
        if not args.text_file.exists():
            print(f"Error: {args.text_file} does not exist", file=sys.stderr)
            sys.exit(1)
        _emit(classify_text(args.text_file.read_text(encoding="utf-8"), config), None)


if __name__ == "__main__":
    main()
