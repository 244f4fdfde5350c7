"""
Iterative share optimization for TV splits.

This module converts a weighting strategy plus the brief constraints into a
normalized distribution of channel shares: weighted ratings are computed,
normalized to shares, channels below the minimum share are dropped, and the
loop repeats until nothing changes. The combined share of orbital channels
is capped once the loop has settled.
"""

import logging
from typing import List, Optional, Tuple

from config.settings import config_manager, AppConfig
from models.data_models import (
    BlendWeights, BriefData, ChannelMetrics, ChannelOverlay, SplitVariant, WeightingLogic
)

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

Row = Tuple[ChannelMetrics, ChannelOverlay]


def affinity_rating(metrics: ChannelMetrics) -> float:
    """Target rating scaled by affinity; channels without affinity count as 1.0."""
    return (metrics.tvr_ta or 0.0) * (metrics.affinity or 1.0)


def efficiency_rating(metrics: ChannelMetrics) -> float:
    """Target rating per unit of price."""
    if metrics.cpp is not None and metrics.cpp > 0:
        return (metrics.tvr_ta or 0.0) / metrics.cpp
    return 0.0


def tcpp_rating(metrics: ChannelMetrics, avg_tcpp: float) -> float:
    """Target rating divided by TCPP relative to the average of the selected set."""
    if avg_tcpp > 0 and metrics.tcpp and metrics.tcpp > 0:
        return (metrics.tvr_ta or 0.0) / (metrics.tcpp / avg_tcpp)
    return 0.0


def average_tcpp(rows: List[Row]) -> float:
    """Mean TCPP over the selected rows; missing TCPP counts as zero."""
    if not rows:
        return 0.0
    return sum((m.tcpp or 0.0) for m, _ in rows) / len(rows)


class ShareOptimizer:
    """
    Computes channel shares of a split variant under the brief constraints.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or config_manager.load_config()

    def optimize(self,
                 variant: SplitVariant,
                 brief: BriefData,
                 logic: WeightingLogic,
                 apply_limits: bool = True,
                 weights: Optional[BlendWeights] = None) -> SplitVariant:
        """
        Optimize the shares of every region of a variant in place.

        Args:
            variant: Variant whose selection flags are already set
            brief: Brief with the constraints of each region
            logic: Weighting strategy
            apply_limits: Enforce minimum share and orbital cap
            weights: Blend weights, required for the custom strategy

        Returns:
            The same variant, with shares, points and comments filled in
        """
        try:
            if logic == WeightingLogic.CUSTOM and weights is None:
                raise ValueError("Custom weighting requires blend weights")

            iterations = 0
            while iterations < self.config.max_iterations:
                iterations += 1

                for region in variant.regions:
                    self._assign_shares(variant, region, logic, weights)

                if not apply_limits or not self._apply_min_share(variant, brief):
                    break
            else:
                logger.warning(f"{variant.name}: share optimization stopped after "
                               f"{self.config.max_iterations} passes without settling")
                # Renormalize over the channels that survived the last floor pass
                for region in variant.regions:
                    self._assign_shares(variant, region, logic, weights)

            if apply_limits:
                for region in variant.regions:
                    self._apply_orbital_cap(variant, brief, region)

            self._finalize(variant)

            logger.info(f"{variant.name}: optimized with {logic.value} logic in {iterations} passes")
            return variant

        except Exception as e:
            logger.error(f"Error optimizing {variant.name}: {str(e)}")
            raise

    def _weighted_ratings(self,
                          selected: List[Row],
                          logic: WeightingLogic,
                          weights: Optional[BlendWeights]) -> List[float]:
        avg_tcpp = average_tcpp(selected)

        if logic == WeightingLogic.CUSTOM:
            components = [
                [affinity_rating(m) for m, _ in selected],
                [tcpp_rating(m, avg_tcpp) for m, _ in selected],
                [efficiency_rating(m) for m, _ in selected],
            ]
            normalized = []
            for values in components:
                total = sum(values)
                normalized.append([v / total if total > 0 else 0.0 for v in values])

            return [
                (weights.affinity / 100) * aff + (weights.tcpp / 100) * tcpp + (weights.efficiency / 100) * eff
                for aff, tcpp, eff in zip(*normalized)
            ]

        if logic == WeightingLogic.AFFINITY:
            return [affinity_rating(m) for m, _ in selected]
        if logic == WeightingLogic.EFFICIENCY:
            return [efficiency_rating(m) for m, _ in selected]
        if logic == WeightingLogic.TCPP:
            return [tcpp_rating(m, avg_tcpp) for m, _ in selected]
        return [m.tvr_ta or 0.0 for m, _ in selected]

    def _assign_shares(self,
                       variant: SplitVariant,
                       region: str,
                       logic: WeightingLogic,
                       weights: Optional[BlendWeights]):
        selected = variant.selected_rows(region)
        if not selected:
            return

        ratings = self._weighted_ratings(selected, logic, weights)
        for (_, overlay), rating in zip(selected, ratings):
            overlay.weighted_rating = rating

        total = sum(ratings)
        for metrics, overlay in variant.rows(region):
            if overlay.selected and total > 0:
                overlay.share = (overlay.weighted_rating or 0.0) / total
            else:
                overlay.share = 0.0

    def _min_share(self, brief: BriefData, region: str) -> float:
        region_brief = brief.region_briefs.get(region)
        percent = self.config.default_min_channel_share
        if region_brief is not None and region_brief.min_channel_share is not None:
            percent = region_brief.min_channel_share
        return percent / 100

    def _apply_min_share(self, variant: SplitVariant, brief: BriefData) -> bool:
        """Deselect channels under the floor. Returns True if anything changed."""
        changes_made = False
        for region in variant.regions:
            if region not in brief.region_briefs:
                continue
            min_share = self._min_share(brief, region)
            for metrics, overlay in variant.selected_rows(region):
                if overlay.share is not None and overlay.share < min_share:
                    overlay.selected = False
                    overlay.comment = f"Low share (<{min_share * 100:.1f}%)"
                    changes_made = True
                    logger.debug(f"{variant.name}: {metrics.channel} in {region} dropped below floor")
        return changes_made

    def _apply_orbital_cap(self, variant: SplitVariant, brief: BriefData, region: str):
        """
        Scale orbital shares down to the cap and hand the freed share to network
        channels in proportion to their shares. The floor is not re-checked.
        """
        region_brief = brief.region_briefs.get(region)
        if region_brief is None or region_brief.max_orbital_share is None:
            return

        selected = variant.selected_rows(region)
        orbital = [o for m, o in selected if m.is_orbital]
        network = [o for m, o in selected if not m.is_orbital]
        total_orbital = sum(o.share or 0.0 for o in orbital)

        max_share = region_brief.max_orbital_share / 100
        if total_orbital <= max_share:
            return

        reduction_factor = max_share / total_orbital
        freed_share = total_orbital - max_share
        for overlay in orbital:
            overlay.share = (overlay.share or 0.0) * reduction_factor
            overlay.comment = f"Orbital share capped at {region_brief.max_orbital_share:g}%"

        total_network = sum(o.share or 0.0 for o in network)
        if total_network > 0:
            for overlay in network:
                overlay.share = overlay.share + (overlay.share / total_network) * freed_share
        else:
            logger.warning(f"{variant.name}: no network channels in {region} to take "
                           f"{freed_share:.1%} of freed orbital share")

        logger.info(f"{variant.name}: orbital share in {region} capped from "
                    f"{total_orbital:.1%} to {max_share:.1%}")

    def _finalize(self, variant: SplitVariant):
        total_trp = self.config.total_trp
        for _, overlay in variant.all_rows():
            if overlay.selected:
                overlay.trp = (overlay.share or 0.0) * total_trp
            else:
                overlay.share = 0.0
                overlay.trp = 0.0

