"""CSV search-criteria input plus JSON/CSV result and chart export."""

from __future__ import annotations

from collections.abc import Sequence
import csv
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from market_analyzer.schemas import ChartBundle, FusedResult, Query

logger = logging.getLogger(__name__)

RESULTS_JSON = "airbnb_analysis_results.json"
SUMMARY_CSV = "airbnb_analysis_summary.csv"
CHART_FILES = {
    "comparison": "price_comparison_chart.json",
    "distribution": "value_distribution_chart.json",
    "scatter": "capacity_price_scatter.json",
    "seasonal": "seasonal_trends_chart.json",
}
DASHBOARD_FILE = "airbnb_dashboard.json"

SUMMARY_COLUMNS = [
    "location",
    "guests",
    "check_in",
    "check_out",
    "budget_max",
    "property_type",
    "average_price",
    "price_range",
    "value_rating",
    "best_neighborhoods",
    "competition_level",
    "market_trends",
    "scraped_listings_count",
    "analyzed_at",
]
CRITERIA_COLUMNS = ("location", "guests", "check_in", "check_out", "budget_max", "property_type")


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def read_search_criteria(path: str | Path) -> list[Query]:
    """Read search queries from CSV; rows that fail validation are logged and skipped."""

    queries: list[Query] = []
    with Path(path).open(newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        for line_number, row in enumerate(reader, start=2):
            fields: dict[str, Any] = {key: _blank_to_none(row.get(key)) for key in CRITERIA_COLUMNS}
            if fields["guests"] is None:
                fields["guests"] = 2
            try:
                queries.append(Query(**fields))
            except ValidationError as exc:
                logger.warning(
                    "skipping search criteria row %s in %s: %s",
                    line_number,
                    path,
                    exc.errors(include_url=False),
                )
    logger.info("loaded %s search queries from %s", len(queries), path)
    return queries


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def export_results(results: Sequence[FusedResult], output_dir: str | Path) -> tuple[Path, Path]:
    """Write the detailed JSON results and the fixed-column CSV summary."""

    out = Path(output_dir)
    json_path = out / RESULTS_JSON
    _write_json(json_path, [result.model_dump(mode="json") for result in results])

    csv_path = out / SUMMARY_CSV
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=SUMMARY_COLUMNS)
        writer.writeheader()
        for result in results:
            row = result.model_dump(mode="json", include=set(SUMMARY_COLUMNS))
            writer.writerow({column: "" if row[column] is None else row[column] for column in SUMMARY_COLUMNS})

    logger.info("exported %s results to %s and %s", len(results), json_path, csv_path)
    return json_path, csv_path


def save_charts(bundle: ChartBundle, charts_dir: str | Path) -> list[Path]:
    """Write one JSON file per chart plus the combined dashboard."""

    out = Path(charts_dir)
    written: list[Path] = []
    for attribute, filename in CHART_FILES.items():
        path = out / filename
        _write_json(path, getattr(bundle, attribute).model_dump(mode="json"))
        written.append(path)

    dashboard_path = out / DASHBOARD_FILE
    _write_json(dashboard_path, bundle.dashboard.model_dump(mode="json"))
    written.append(dashboard_path)
    logger.info("saved %s chart files to %s", len(written), out)
    return written
