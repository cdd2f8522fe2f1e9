"""Export utilities for enrichment results."""

import csv
import json
from pathlib import Path

from leadsleuth.exceptions import InvalidRequestError
from leadsleuth.logging_config import get_logger
from leadsleuth.models import EnrichmentRequest, EnrichmentResult
from leadsleuth.resilience.batch import BatchSummary

logger = get_logger(__name__)

CSV_FIELDNAMES = [
    "business_name",
    "owner_name",
    "owner_title",
    "best_email",
    "best_email_verified",
    "emails",
    "phones",
    "linkedin_profiles",
    "social_urls",
    "company",
    "confidence",
    "sources_used",
    "sources_failed",
]


def read_requests(input_path: Path) -> list[EnrichmentRequest]:
    """Load enrichment requests from a CSV file (header row) or JSONL file.

    Args:
        input_path: ``.csv`` or ``.jsonl``/``.json`` file

    Returns:
        Requests in file order

    Raises:
        InvalidRequestError: Unsupported extension or malformed JSON line
    """
    suffix = input_path.suffix.lower()
    requests = []

    if suffix == ".csv":
        with open(input_path, newline="", encoding="utf-8") as csvfile:
            for row in csv.DictReader(csvfile):
                requests.append(EnrichmentRequest.from_dict(row))
    elif suffix in (".jsonl", ".json"):
        with open(input_path, encoding="utf-8") as jsonlfile:
            for line_number, line in enumerate(jsonlfile, start=1):
                if not line.strip():
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError as e:
                    raise InvalidRequestError(f"{input_path}:{line_number}: invalid JSON: {e}") from e
                if not isinstance(data, dict):
                    raise InvalidRequestError(f"{input_path}:{line_number}: expected a JSON object")
                requests.append(EnrichmentRequest.from_dict(data))
    else:
        raise InvalidRequestError(f"unsupported input format: {input_path.suffix or '(none)'}")

    logger.info("requests_loaded", path=str(input_path), count=len(requests))
    return requests


def export_results_to_jsonl(summary: BatchSummary, output_path: Path) -> None:
    """Export successful batch results to JSONL format (one JSON object per line).

    Args:
        summary: Batch summary carrying the results
        output_path: Output file path
    """
    results: list[EnrichmentResult] = summary.results
    if not results:
        logger.warning("no_results_to_export")
        return

    with open(output_path, "w", encoding="utf-8") as jsonlfile:
        for result in results:
            jsonlfile.write(json.dumps(result.to_dict(), ensure_ascii=False) + "\n")

    logger.info("jsonl_export_completed", path=str(output_path), count=len(results))


def export_results_to_csv(summary: BatchSummary, output_path: Path) -> None:
    """Export successful batch results to CSV, one flattened row per business.

    Args:
        summary: Batch summary carrying the results
        output_path: Output file path
    """
    results: list[EnrichmentResult] = summary.results
    if not results:
        logger.warning("no_results_to_export")
        return

    with open(output_path, "w", newline="", encoding="utf-8") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=CSV_FIELDNAMES)
        writer.writeheader()

        for result in results:
            best = result.best_email
            writer.writerow(
                {
                    "business_name": result.business_name,
                    "owner_name": result.owner_name or "",
                    "owner_title": result.owner_title or "",
                    "best_email": best.address if best else "",
                    "best_email_verified": "yes" if best and best.verified else "no",
                    "emails": ";".join(e.address for e in result.emails),
                    "phones": ";".join(result.phones),
                    "linkedin_profiles": ";".join(p.profile_url for p in result.profiles),
                    "social_urls": ";".join(result.social_urls),
                    "company": result.company.name if result.company else "",
                    "confidence": result.confidence,
                    "sources_used": ";".join(result.sources_used),
                    "sources_failed": ";".join(result.sources_failed),
                }
            )

    logger.info("csv_export_completed", path=str(output_path), count=len(results))


def export_batch_report(summary: BatchSummary, output_path: Path) -> None:
    """Write the per-item batch breakdown as JSON.

    Args:
        summary: Batch summary
        output_path: Output file path
    """
    with open(output_path, "w", encoding="utf-8") as jsonfile:
        json.dump(summary.to_dict(), jsonfile, indent=2, ensure_ascii=False)

    logger.info("batch_report_exported", path=str(output_path), total=summary.total, failed=summary.failed)
