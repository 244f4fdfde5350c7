"""
Split Controller - Orchestrates the complete split calculation workflow.

This module ties table parsing, metric derivation, split generation and
summary aggregation together behind three operations: the full batch
calculation and the two ad hoc recalculations for a single region.
"""

import logging
from typing import Dict, Iterable, Optional

import pandas as pd

from config.settings import config_manager, AppConfig
from data.parsers import RatingsTableParser, PriceTableParser, pre_parse_ratings
from models.data_models import BlendWeights, BriefData, CalculationResults, WeightingLogic
from .error_handler import (
    error_handler, CalculationOutcome, InvalidSharesError, InvalidWeightsError, UnknownRegionError
)
from .metric_calculator import MetricCalculator
from .split_generator import SplitGenerator, SPLIT_CONSTRUCTOR, SPLIT_MANUAL
from .summary_aggregator import SummaryAggregator

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class SplitController:
    """
    Main controller for the split calculation workflow.

    Every public operation returns a CalculationOutcome; errors never escape
    as exceptions.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        """
        Initialize the split controller.

        Args:
            config: Optional configuration, loaded from settings when omitted
        """
        self.config = config or config_manager.load_config()
        self.metric_calculator = MetricCalculator(self.config)
        self.split_generator = SplitGenerator(self.config)
        self.summary_aggregator = SummaryAggregator()

        logger.info("SplitController initialized")

    def calculate_all(self,
                      ratings_frame: pd.DataFrame,
                      prices_frame: pd.DataFrame,
                      brief: BriefData) -> CalculationOutcome:
        """
        Compute every systematic split and the regional summaries.

        Args:
            ratings_frame: Ratings export
            prices_frame: Price list
            brief: Campaign brief

        Returns:
            CalculationOutcome with CalculationResults as its value
        """
        try:
            logger.info(f"Starting split calculation for {len(brief.regions)} regions")

            snapshot = self.metric_calculator.build_snapshot(
                RatingsTableParser(ratings_frame), PriceTableParser(prices_frame), brief
            )
            splits = self.split_generator.generate_all_splits(snapshot, brief)
            summaries = self.summary_aggregator.generate_summaries(splits, brief.regions)

            results = CalculationResults(
                splits=splits,
                summaries=summaries,
                base_snapshot=snapshot,
                brief=brief
            )
            logger.info("Split calculation complete")
            return CalculationOutcome.success(results)

        except Exception as e:
            return error_handler.to_outcome(e, "Split calculation")

    def calculate_constructor_split(self,
                                    results: CalculationResults,
                                    region: str,
                                    channel_names: Iterable[str],
                                    logic: WeightingLogic,
                                    weights: Optional[BlendWeights] = None) -> CalculationOutcome:
        """
        Recompute the constructor split of one region from a chosen channel list.

        Args:
            results: Results of a previous full calculation
            region: Region to recompute
            channel_names: Channel display names chosen by the user
            logic: Weighting strategy
            weights: Blend weights, required for the custom strategy

        Returns:
            CalculationOutcome with new CalculationResults; the input is not modified
        """
        try:
            self._check_region(results, region)
            if logic == WeightingLogic.CUSTOM:
                if weights is None or not weights.is_valid():
                    total = weights.total if weights is not None else 0
                    raise InvalidWeightsError(f"Blend weights must sum to 100%, got {total:g}%")

            records = self.split_generator.generate_constructor_split(
                results.base_snapshot, region, results.brief.for_region(region),
                channel_names, logic, weights
            )
            return CalculationOutcome.success(
                self.summary_aggregator.update_with_split(results, SPLIT_CONSTRUCTOR, records, region)
            )

        except Exception as e:
            return error_handler.to_outcome(e, "Constructor split")

    def calculate_manual_split(self,
                               results: CalculationResults,
                               region: str,
                               shares: Dict[str, float]) -> CalculationOutcome:
        """
        Recompute the manual split of one region from explicit percentages.

        Args:
            results: Results of a previous full calculation
            region: Region to recompute
            shares: Channel display name -> share in percent, summing to 100

        Returns:
            CalculationOutcome with new CalculationResults; the input is not modified
        """
        try:
            self._check_region(results, region)
            if any(value < 0 for value in shares.values()):
                raise InvalidSharesError("Manual shares cannot be negative")
            total = sum(shares.values())
            if abs(total - 100.0) >= self.config.manual_share_tolerance:
                raise InvalidSharesError(f"Manual shares must sum to 100%, got {total:g}%")

            records = self.split_generator.generate_manual_split(results.base_snapshot, region, shares)
            return CalculationOutcome.success(
                self.summary_aggregator.update_with_split(results, SPLIT_MANUAL, records, region)
            )

        except Exception as e:
            return error_handler.to_outcome(e, "Manual split")

    def pre_parse_ratings(self, ratings_frame: pd.DataFrame) -> CalculationOutcome:
        """Regions and target audiences available in a ratings table."""
        try:
            return CalculationOutcome.success(pre_parse_ratings(ratings_frame))
        except Exception as e:
            return error_handler.to_outcome(e, "Ratings pre-parse")

    def _check_region(self, results: CalculationResults, region: str):
        if region not in results.brief.region_briefs:
            raise UnknownRegionError(region)
