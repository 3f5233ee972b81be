"""Command-line interface for offline marksheet processing and admin setup.

Provides subcommands for extracting a folder of scanned marksheets to
CSV, inspecting a single marksheet, creating admin accounts, and
running the API server.
"""

import argparse
import csv
import json
import os
import sys
from pathlib import Path

from result_portal.errors import ConflictError, ExtractionFailed
from result_portal.extraction.field_extractor import FieldExtractor
from result_portal.ocr.orchestrator import RecordOrchestrator
from result_portal.ocr.tesseract_engine import TesseractEngine
from result_portal.preprocessing.pipeline import PreprocessingPipeline
from result_portal.storage.json_store import JsonStorage
from result_portal.utils.config import AppConfig, load_config
from result_portal.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.jpg", "*.jpeg", "*.png", "*.tif", "*.tiff")
_COLUMNS = [
    "filename",
    "status",
    "name",
    "tuRegd",
    "result",
    "grade",
    "marks",
    "totalMarks",
    "subject",
    "program",
    "faculty",
    "needsReview",
    "error",
]


def _find_marksheets(input_dir: Path) -> list[Path]:
    """Find all supported image files in a directory, sorted by name."""
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _build_orchestrator(config: AppConfig) -> RecordOrchestrator:
    engine = TesseractEngine(config.ocr, PreprocessingPipeline(config.preprocessing))
    return RecordOrchestrator(
        engine, FieldExtractor(config.extraction), config.ocr.max_workers
    )


def process_folder(
    input_dir: Path,
    output_csv: Path,
    verbose: bool = False,
    config: AppConfig | None = None,
) -> dict[str, int]:
    """Extract every marksheet in a folder and write the results to CSV.

    Args:
        input_dir: Directory containing marksheet images.
        output_csv: Path for the output CSV file.
        verbose: Whether to print per-file outcomes.
        config: Application configuration; loaded from disk when omitted.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    config = config or load_config()
    files = _find_marksheets(input_dir)
    if not files:
        logger.warning("No marksheets found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d marksheets to process", len(files))
    orchestrator = _build_orchestrator(config)
    outcomes = orchestrator.process_batch([(f.name, f.read_bytes()) for f in files])

    rows: list[dict[str, object]] = []
    for outcome in outcomes:
        if outcome.success:
            row: dict[str, object] = {"filename": outcome.filename, "status": "success"}
            row.update(outcome.result.to_dict())
        else:
            row = {"filename": outcome.filename, "status": "failed", "error": outcome.error}
        rows.append(row)
        if verbose:
            print(f"{outcome.filename}: {row['status']}")

    _write_csv(rows, output_csv)
    logger.info("Results written to %s", output_csv)

    successful = sum(1 for o in outcomes if o.success)
    summary = {"total": len(outcomes), "successful": successful, "failed": len(outcomes) - successful}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Marksheet Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def extract_single(file_path: Path, config: AppConfig | None = None) -> dict[str, object]:
    """Extract one marksheet.

    Returns:
        Dictionary with the filename and either the extracted fields or
        the error explaining why extraction failed.
    """
    orchestrator = _build_orchestrator(config or load_config())
    try:
        result = orchestrator.process(file_path.read_bytes(), file_path.name)
    except ExtractionFailed as exc:
        return {"filename": file_path.name, "success": False, "error": exc.hint}
    return {"filename": file_path.name, "success": True, "extracted": result.to_dict()}


def create_admin(email: str, name: str, password: str, config: AppConfig | None = None) -> int:
    """Add an administrator to the configured store and return its id."""
    config = config or load_config()
    storage = JsonStorage(Path(config.storage.data_path), config.auth.bcrypt_rounds)
    return storage.create_admin(email=email, password=password, name=name).id


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="University Result Portal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help="YAML configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of marksheets")
    batch_parser.add_argument("input_dir", type=Path, help="Directory with marksheet images")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    single_parser = subparsers.add_parser("extract", help="Process a single marksheet")
    single_parser.add_argument("file", type=Path, help="Marksheet image to process")
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    admin_parser = subparsers.add_parser("create-admin", help="Create an admin account")
    admin_parser.add_argument("--email", required=True)
    admin_parser.add_argument("--name", required=True)
    admin_parser.add_argument("--password", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, args.verbose, config)
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        result = extract_single(args.file, config)
        output_str = json.dumps(result, indent=2)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "create-admin":
        try:
            admin_id = create_admin(args.email, args.name, args.password, config)
        except ConflictError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        print(f"Created admin {args.email} (id {admin_id})")
    elif args.command == "serve":
        from result_portal.main import serve

        if args.config:
            os.environ["RESULT_PORTAL_CONFIG"] = str(args.config)
        serve(args.host, args.port)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
