"""
Split generation: selection policy followed by share optimization.

Every variant is a fresh overlay over the same base snapshot, so generating
one variant never touches another.
"""

import logging
from typing import Dict, Iterable, List, Optional

from config.settings import config_manager, AppConfig
from models.data_models import (
    BaseSnapshot, BlendWeights, BriefData, ChannelRecord, SplitVariant, WeightingLogic
)
from .selection_filter import SelectionFilter
from .share_optimizer import ShareOptimizer

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SPLIT_TCPP = "Split (TCPP)"
SPLIT_AFFINITY = "Split (Affinity)"
SPLIT_EFFICIENCY = "Split (Efficiency)"
SPLIT_NATURAL = "Split (Natural)"
SPLIT_CONSTRUCTOR = "Constructor"
SPLIT_MANUAL = "Manual shares"

# (name, weighting logic, apply limits)
# Natural runs without min share floor and orbital cap
SYSTEMATIC_SPLITS = [
    (SPLIT_TCPP, WeightingLogic.TCPP, True),
    (SPLIT_AFFINITY, WeightingLogic.AFFINITY, True),
    (SPLIT_EFFICIENCY, WeightingLogic.EFFICIENCY, True),
    (SPLIT_NATURAL, WeightingLogic.NATURAL, False),
]

BASE_SPLIT_ORDER = [name for name, _, _ in SYSTEMATIC_SPLITS]


def ordered_split_names(names: Iterable[str]) -> List[str]:
    """Systematic splits first in fixed order, then ad hoc splits alphabetically."""
    names = list(names)
    return [n for n in BASE_SPLIT_ORDER if n in names] + sorted(n for n in names if n not in BASE_SPLIT_ORDER)


class SplitGenerator:
    """
    Produces systematic and ad hoc split variants from a base snapshot.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or config_manager.load_config()
        self.selection_filter = SelectionFilter(self.config)
        self.optimizer = ShareOptimizer(self.config)

    def generate_systematic_split(self,
                                  snapshot: BaseSnapshot,
                                  brief: BriefData,
                                  name: str,
                                  logic: WeightingLogic,
                                  apply_limits: bool) -> List[ChannelRecord]:
        """
        Natural splits take every channel with data; the others drop the most
        expensive channels first.
        """
        variant = SplitVariant(name, snapshot, brief.regions)
        if logic == WeightingLogic.NATURAL:
            self.selection_filter.apply_natural(variant)
        else:
            self.selection_filter.apply_cutoff(variant, brief)

        self.optimizer.optimize(variant, brief, logic, apply_limits)
        return variant.to_records()

    def generate_all_splits(self, snapshot: BaseSnapshot, brief: BriefData) -> Dict[str, List[ChannelRecord]]:
        """Run the four systematic splits independently."""
        splits = {}
        for name, logic, apply_limits in SYSTEMATIC_SPLITS:
            splits[name] = self.generate_systematic_split(snapshot, brief, name, logic, apply_limits)
        logger.info(f"Generated {len(splits)} systematic splits for {len(brief.regions)} regions")
        return splits

    def generate_constructor_split(self,
                                   snapshot: BaseSnapshot,
                                   region: str,
                                   region_brief: BriefData,
                                   channel_names: Iterable[str],
                                   logic: WeightingLogic,
                                   weights: Optional[BlendWeights] = None) -> List[ChannelRecord]:
        """
        Shares over a user-chosen set of channels of one region.

        Args:
            snapshot: Base snapshot
            region: Region to compute
            region_brief: Brief holding the constraints of that region
            channel_names: Channel display names chosen by the user
            logic: Weighting strategy
            weights: Blend weights for the custom strategy

        Returns:
            Records of the region, sorted by descending share
        """
        variant = SplitVariant(SPLIT_CONSTRUCTOR, snapshot, [region])
        self.selection_filter.apply_allow_list(variant, channel_names)
        self.optimizer.optimize(variant, region_brief, logic, apply_limits=True, weights=weights)
        return variant.to_records()

    def generate_manual_split(self,
                              snapshot: BaseSnapshot,
                              region: str,
                              shares: Dict[str, float]) -> List[ChannelRecord]:
        """Records of one region with shares taken as given (percent per channel)."""
        variant = SplitVariant(SPLIT_MANUAL, snapshot, [region])
        self.selection_filter.apply_explicit_shares(variant, shares)
        return variant.to_records()
