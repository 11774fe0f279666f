"""Per-query market analysis pipeline and the sequential batch runner.

Uses composable RunnableLambda stages: estimate -> collect listings ->
generate analysis -> fuse. Each stage returns incremental state updates and
appends a StepLog. The batch runner isolates per-query failures so one bad
query never aborts the rest of the batch.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
import logging
from typing import Any

from langchain_core.runnables import RunnableLambda

from market_analyzer.agents.analysis_fusion import AnalysisFusion
from market_analyzer.agents.listing_synthesizer import ListingSynthesizer
from market_analyzer.agents.price_estimator import PriceEstimator
from market_analyzer.agents.structured_analysis import StructuredAnalysisGenerator
from market_analyzer.schemas import FusedResult, ListingBatch, Query, StepLog
from market_analyzer.services.firecrawl_client import FirecrawlClient

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 25


class EmptyBatchError(ValueError):
    """Raised when a batch run is requested with no queries."""


@dataclass(frozen=True)
class QueryFailure:
    index: int
    location: str
    error: str


@dataclass
class BatchOutcome:
    """Results in processing order plus isolated per-query failures and the full trace."""

    results: list[FusedResult] = field(default_factory=list)
    failures: list[QueryFailure] = field(default_factory=list)
    steps: list[StepLog] = field(default_factory=list)


def _query_prompt(query: Query) -> dict[str, Any]:
    return query.model_dump(mode="json")


class MarketAnalysisPipeline:
    """Market analysis for one query, composed of RunnableLambda stages."""

    def __init__(
        self,
        *,
        price_estimator: PriceEstimator,
        listing_synthesizer: ListingSynthesizer,
        analysis_generator: StructuredAnalysisGenerator,
        fusion: AnalysisFusion,
        firecrawl_client: FirecrawlClient | None = None,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> None:
        self._estimator = price_estimator
        self._synthesizer = listing_synthesizer
        self._generator = analysis_generator
        self._fusion = fusion
        self._firecrawl = firecrawl_client
        self._search_limit = search_limit

        self.estimate_prices = RunnableLambda(self._estimate_stage).with_config(
            run_name="EstimatePrices",
        )
        self.collect_listings = RunnableLambda(self._collect_listings_stage).with_config(
            run_name="CollectListings",
        )
        self.generate_analysis = RunnableLambda(self._generate_analysis_stage).with_config(
            run_name="GenerateAnalysis",
        )
        self.fuse_result = RunnableLambda(self._fuse_stage).with_config(
            run_name="FuseResult",
        )

    @staticmethod
    def _apply(state: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
        """Merge stage updates into pipeline state, accumulating steps via addition."""
        merged = dict(state)
        new_steps = updates.pop("steps", [])
        merged.update(updates)
        merged["steps"] = merged.get("steps", []) + new_steps
        return merged

    def invoke(self, state: dict[str, Any]) -> dict[str, Any]:
        state = self._apply(state, self.estimate_prices.invoke(state))
        state = self._apply(state, self.collect_listings.invoke(state))
        state = self._apply(state, self.generate_analysis.invoke(state))
        state = self._apply(state, self.fuse_result.invoke(state))
        return state

    def run(self, query: Query) -> tuple[FusedResult, list[StepLog]]:
        state = self.invoke({"query": query, "steps": []})
        return state["result"], state["steps"]

    def _estimate_stage(self, state: dict[str, Any]) -> dict[str, Any]:
        query: Query = state["query"]
        estimate = self._estimator.estimate(query.location, query.property_type, query.guests)
        return {
            "estimate": estimate,
            "steps": [
                StepLog(
                    module="market_analysis.price_estimation",
                    prompt=_query_prompt(query),
                    response={
                        "average_price": estimate.average_price,
                        "price_range": estimate.price_range,
                        "peak_season_price": estimate.peak_season_price,
                        "value_rating": estimate.value_rating,
                        "competition_level": estimate.competition_level,
                    },
                )
            ],
        }

    def _collect_listings_stage(self, state: dict[str, Any]) -> dict[str, Any]:
        query: Query = state["query"]
        if self._firecrawl is None:
            batch = self._synthesizer.synthesize(query.location, query.guests, query.property_type)
            return self._listing_updates(query, batch, mode="simulated")

        error: str | None = None
        try:
            fetched = self._firecrawl.search_listings(
                query.location,
                guests=query.guests,
                property_type=query.property_type,
                budget_max=query.budget_max,
                check_in=query.check_in,
                check_out=query.check_out,
                limit=self._search_limit,
            )
            error = fetched.error
            records = fetched.data
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            records = []

        if records:
            batch = self._synthesizer.extract(records)
            return self._listing_updates(query, batch, mode="live")

        logger.warning(
            "no live listings for %s (error=%s), using simulated listings",
            query.location,
            error,
        )
        batch = self._synthesizer.synthesize(
            query.location,
            query.guests,
            query.property_type,
            source="enhanced_simulation",
        )
        return self._listing_updates(query, batch, mode="live_fallback", error=error)

    def _listing_updates(
        self,
        query: Query,
        batch: ListingBatch,
        *,
        mode: str,
        error: str | None = None,
    ) -> dict[str, Any]:
        response: dict[str, Any] = {"source": batch.source, "count": batch.count}
        if error:
            response["error"] = error
        return {
            "listing_batch": batch,
            "steps": [
                StepLog(
                    module="market_analysis.listing_collection",
                    prompt={"location": query.location, "mode": mode, "limit": self._search_limit},
                    response=response,
                )
            ],
        }

    def _generate_analysis_stage(self, state: dict[str, Any]) -> dict[str, Any]:
        query: Query = state["query"]
        analysis = self._generator.analyze(query, state["listing_batch"], state["estimate"])
        if analysis is None:
            response: dict[str, Any] = {"status": "absent"}
        else:
            response = {
                "status": "demo" if analysis.demo_mode else "generated",
                "schema_validated": analysis.schema_validated,
            }
        return {
            "analysis": analysis,
            "steps": [
                StepLog(
                    module="market_analysis.analysis_generation",
                    prompt={"location": query.location, "demo_mode": self._generator.demo_mode},
                    response=response,
                )
            ],
        }

    def _fuse_stage(self, state: dict[str, Any]) -> dict[str, Any]:
        query: Query = state["query"]
        result = self._fusion.fuse(
            query,
            state["listing_batch"],
            state["estimate"],
            state.get("analysis"),
        )
        return {
            "result": result,
            "steps": [
                StepLog(
                    module="market_analysis.fusion",
                    prompt={"location": query.location},
                    response={
                        "average_price": result.average_price,
                        "value_rating": result.value_rating,
                        "scraped_data_source": result.scraped_data_source,
                        "schema_validated": result.schema_validated,
                    },
                )
            ],
        }


class MarketAnalyzer:
    """Runs the pipeline over a batch of queries, one at a time, in input order."""

    name = "market_analyzer"

    def __init__(self, *, pipeline: MarketAnalysisPipeline) -> None:
        self._pipeline = pipeline

    def analyze(self, query: Query) -> FusedResult:
        result, _ = self._pipeline.run(query)
        return result

    def analyze_batch(self, queries: Sequence[Query]) -> BatchOutcome:
        if not queries:
            raise EmptyBatchError("no search queries to analyze")

        outcome = BatchOutcome()
        for index, query in enumerate(queries):
            logger.info("analyzing query %s/%s location=%s", index + 1, len(queries), query.location)
            try:
                result, steps = self._pipeline.run(query)
            except Exception as exc:
                error = f"{type(exc).__name__}: {exc}"
                logger.warning("query %s (%s) failed: %s", index, query.location, error)
                outcome.failures.append(QueryFailure(index=index, location=query.location, error=error))
                outcome.steps.append(
                    StepLog(
                        module="market_analysis.batch",
                        prompt=_query_prompt(query),
                        response={"error": error},
                    )
                )
                continue
            outcome.results.append(result)
            outcome.steps.extend(steps)

        logger.info(
            "batch complete results=%s failures=%s",
            len(outcome.results),
            len(outcome.failures),
        )
        return outcome
