"""
Per-channel metric derivation.

Joins the ratings export with the price list on normalized names and derives
affinity, cost per target point (TCPP) and the relative TCPP index for every
channel of every region in the brief.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

import pandas as pd

from config.settings import config_manager, AppConfig
from data.normalizer import (
    normalize_region_name, is_orbital, price_lookup_key, strip_orbital_suffix, ORBITAL_SUFFIX
)
from data.parsers import (
    RatingsTableParser, PriceTableParser, parse_number, cell_text,
    REGION_COLUMN, CHANNEL_COLUMN, BLOCK_COLUMN, SALES_TVR_COLUMN, GRP_BUYING_COLUMN
)
from models.data_models import BaseSnapshot, BriefData, BuyType, ChannelMetrics
from .error_handler import EmptyRegionSetError

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Values of the buying GRP column that mean "bought per minute"
MINUTE_MARKERS = {'', 'n/a', 'n\\a', 'nan'}


def classify_buy_type(grp_buying_value: str) -> BuyType:
    """Minute-based when the buying GRP indicator is blank or N/A."""
    return BuyType.MINUTE if cell_text(grp_buying_value).lower() in MINUTE_MARKERS else BuyType.GRP


def calculate_affinity(total_tvr_ta: Optional[float], sales_tvr: Optional[float]) -> Optional[float]:
    if total_tvr_ta is not None and sales_tvr is not None and total_tvr_ta > 0 and sales_tvr > 0:
        return total_tvr_ta / sales_tvr
    return None


def calculate_tcpp(buy_type: BuyType,
                   cpp: Optional[float],
                   affinity: Optional[float],
                   avg_tvr_ta: Optional[float],
                   minute_divisor: float = 3.0) -> Optional[float]:
    """
    Cost per target rating point.

    GRP channels: price / affinity. Minute channels: price / divisor / rating.
    """
    if not cpp or cpp <= 0:
        return None
    if buy_type == BuyType.GRP:
        if affinity and affinity > 0:
            return cpp / affinity
        return None
    if avg_tvr_ta is not None and avg_tvr_ta > 0 and minute_divisor > 0:
        return cpp / minute_divisor / avg_tvr_ta
    return None


def recalculate_sales_tvr(avg_tvr_ta: Optional[float], affinity: Optional[float]) -> Optional[float]:
    """Buying-audience rating consistent with the average target rating."""
    if affinity and affinity > 0 and avg_tvr_ta is not None:
        return avg_tvr_ta / affinity
    return None


class MetricCalculator:
    """
    Builds the immutable base snapshot shared by every split variant.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or config_manager.load_config()

    def build_snapshot(self,
                       ratings: RatingsTableParser,
                       prices: PriceTableParser,
                       brief: BriefData) -> BaseSnapshot:
        """
        Derive channel metrics for every brief region.

        Args:
            ratings: Parser over the ratings export
            prices: Parser over the price list
            brief: Campaign brief

        Returns:
            BaseSnapshot with metric-annotated channels

        Raises:
            EmptyRegionSetError: If the brief has no regions
            MissingColumnError: If a required column is missing in either table
            UnknownAudienceError: If a brief audience has no rating columns
        """
        try:
            regions = brief.regions
            if not regions:
                raise EmptyRegionSetError()

            ratings.validate()
            price_map = prices.build_price_map()
            audience_columns = self._resolve_audiences(ratings, brief)

            channels = self._derive_rows(ratings, price_map, audience_columns, brief)
            channels = self._apply_tcpp_index(channels, regions)

            snapshot = BaseSnapshot(channels, regions)
            for region in regions:
                if not snapshot.region_row_ids(region):
                    logger.warning(f"No ratings rows found for region {region}")

            logger.info(f"Built base snapshot: {len(snapshot)} channels across {len(regions)} regions")
            return snapshot

        except Exception as e:
            logger.error(f"Error building base snapshot: {str(e)}")
            raise

    def _resolve_audiences(self, ratings: RatingsTableParser, brief: BriefData) -> Dict[str, Tuple[str, str]]:
        audiences = []
        for region_brief in brief.region_briefs.values():
            audience = (region_brief.target_audience or '').strip()
            if audience and audience not in audiences:
                audiences.append(audience)

        return {audience: ratings.resolve_audience_columns(audience) for audience in audiences}

    def _derive_rows(self,
                     ratings: RatingsTableParser,
                     price_map: Dict[str, Dict[str, float]],
                     audience_columns: Dict[str, Tuple[str, str]],
                     brief: BriefData) -> List[ChannelMetrics]:
        region_col = ratings.column(REGION_COLUMN)
        channel_col = ratings.column(CHANNEL_COLUMN)
        block_col = ratings.column(BLOCK_COLUMN)
        sales_col = ratings.column(SALES_TVR_COLUMN)
        grp_col = ratings.column(GRP_BUYING_COLUMN)

        brief_regions = {normalize_region_name(name): name for name in brief.regions}
        sort_order = {name: i + 1 for i, name in enumerate(brief.regions)}

        channels = []
        for _, row in ratings.frame.iterrows():
            region_key = normalize_region_name(cell_text(row[region_col]))
            if not region_key:
                continue

            region = brief_regions.get(region_key)
            if region is None:
                continue

            raw_channel = cell_text(row[channel_col])
            # Rows like "Первый / Россия 1" are aggregates, not channels
            if not raw_channel or '/' in raw_channel:
                continue

            target_audience = (brief.region_briefs[region].target_audience or '').strip()
            if target_audience not in audience_columns:
                continue
            avg_col, total_col = audience_columns[target_audience]

            block_type = cell_text(row[block_col]) if block_col is not None else ''
            base_name = raw_channel.split('(')[0].strip()
            orbital = is_orbital(block_type, base_name)
            if orbital:
                base_name = strip_orbital_suffix(base_name)
            display_name = base_name + ORBITAL_SUFFIX if orbital else base_name

            avg_tvr_ta = parse_number(row[avg_col])
            total_tvr_ta = parse_number(row[total_col])
            reported_sales_tvr = parse_number(row[sales_col])
            cpp = price_map.get(region_key, {}).get(price_lookup_key(base_name, orbital))

            buy_type = classify_buy_type(row[grp_col] if grp_col is not None else '')
            affinity = calculate_affinity(total_tvr_ta, reported_sales_tvr)
            tcpp = calculate_tcpp(buy_type, cpp, affinity, avg_tvr_ta, self.config.minute_to_point_divisor)

            channels.append(ChannelMetrics(
                row_id=len(channels),
                region=region,
                channel=display_name,
                buy_type=buy_type,
                target_audience=target_audience,
                tvr_ta=avg_tvr_ta,
                affinity=affinity,
                sales_tvr=recalculate_sales_tvr(avg_tvr_ta, affinity),
                cpp=cpp,
                tcpp=tcpp,
                index_tcpp=None,
                is_orbital=orbital,
                sort_order=sort_order.get(region, 99)
            ))

        return channels

    def _apply_tcpp_index(self, channels: List[ChannelMetrics], regions: List[str]) -> List[ChannelMetrics]:
        """TCPP relative to the most expensive channel of the same region."""
        max_tcpp = {}
        for region in regions:
            values = [m.tcpp for m in channels if m.region == region and m.tcpp is not None]
            if values:
                max_tcpp[region] = max(values)

        indexed = []
        for m in channels:
            top = max_tcpp.get(m.region)
            if m.tcpp is not None and top and top > 0:
                indexed.append(replace(m, index_tcpp=m.tcpp / top))
            else:
                indexed.append(m)
        return indexed


def build_snapshot_from_frames(ratings_frame: pd.DataFrame,
                               prices_frame: pd.DataFrame,
                               brief: BriefData,
                               config: Optional[AppConfig] = None) -> BaseSnapshot:
    """Convenience wrapper over raw tables."""
    calculator = MetricCalculator(config)
    return calculator.build_snapshot(RatingsTableParser(ratings_frame), PriceTableParser(prices_frame), brief)
