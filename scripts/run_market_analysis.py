#!/usr/bin/env python3
"""Run the market analysis batch over a search-criteria CSV and export results.

  python scripts/run_market_analysis.py
  python scripts/run_market_analysis.py --criteria searches/search_criteria.csv --output-dir outputs

Uses .env / load_settings(). Without OPENROUTER_API_KEY the analysis runs in
demo mode; without FIRECRAWL_API_KEY listings are simulated.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dotenv import load_dotenv

from market_analyzer.agents.analysis_fusion import AnalysisFusion
from market_analyzer.agents.chart_aggregator import ChartAggregator
from market_analyzer.agents.listing_synthesizer import ListingSynthesizer
from market_analyzer.agents.market_analysis_pipeline import (
    EmptyBatchError,
    MarketAnalysisPipeline,
    MarketAnalyzer,
)
from market_analyzer.agents.price_estimator import PriceEstimator
from market_analyzer.agents.structured_analysis import StructuredAnalysisGenerator
from market_analyzer.config import Settings, load_settings
from market_analyzer.services.chat_service import ChatService
from market_analyzer.services.firecrawl_client import FirecrawlClient, RetryPolicy
from market_analyzer.services.result_exporter import export_results, read_search_criteria, save_charts
from market_analyzer.services.summary_report import build_summary_report

logger = logging.getLogger("run_market_analysis")


def build_analyzer(settings: Settings) -> MarketAnalyzer:
    estimator = PriceEstimator()
    chat_service = ChatService(
        api_key=settings.openrouter_api_key,
        base_url=settings.openrouter_base_url,
        model=settings.chat_model,
        max_output_tokens=settings.chat_max_output_tokens,
    )
    firecrawl_client = None
    if settings.scraping_enabled:
        firecrawl_client = FirecrawlClient(
            api_key=settings.firecrawl_api_key or "",
            base_url=settings.firecrawl_base_url,
            timeout_seconds=settings.firecrawl_timeout_seconds,
            policy=RetryPolicy(
                max_retries=settings.fetch_max_retries,
                base_delay_seconds=settings.fetch_backoff_seconds,
            ),
        )
    else:
        logger.warning("FIRECRAWL_API_KEY not set, using simulated listings")
    if settings.demo_mode:
        logger.warning("OPENROUTER_API_KEY not set, running analysis in demo mode")

    pipeline = MarketAnalysisPipeline(
        price_estimator=estimator,
        listing_synthesizer=ListingSynthesizer(
            price_estimator=estimator,
            count_range=(settings.simulated_listings_min, settings.simulated_listings_max),
        ),
        analysis_generator=StructuredAnalysisGenerator(chat_service=chat_service),
        fusion=AnalysisFusion(),
        firecrawl_client=firecrawl_client,
        search_limit=settings.search_limit,
    )
    return MarketAnalyzer(pipeline=pipeline)


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser for the batch runner."""

    parser = argparse.ArgumentParser(description="Analyze short-term-rental markets for a batch of searches.")
    parser.add_argument("--criteria", type=Path, default=None, help="Search criteria CSV path.")
    parser.add_argument("--output-dir", type=Path, default=None, help="Directory for results and charts.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv(ROOT / ".env")
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    criteria_path = args.criteria or Path(settings.search_criteria_path)
    output_dir = args.output_dir or Path(settings.output_dir)
    if not criteria_path.exists():
        logger.error("search criteria file not found: %s", criteria_path)
        return 1

    queries = read_search_criteria(criteria_path)
    try:
        outcome = build_analyzer(settings).analyze_batch(queries)
    except EmptyBatchError as exc:
        logger.error("%s (%s)", exc, criteria_path)
        return 1

    for failure in outcome.failures:
        logger.warning("failed to analyze %s: %s", failure.location, failure.error)

    if outcome.results:
        export_results(outcome.results, output_dir)
        bundle = ChartAggregator().aggregate(outcome.results)
        if bundle is not None:
            save_charts(bundle, output_dir / "charts")
        print(build_summary_report(outcome.results))

    print(f"Analyzed {len(outcome.results)}/{len(queries)} searches; outputs in {output_dir}")
    return 0 if outcome.results else 1


if __name__ == "__main__":
    raise SystemExit(main())
