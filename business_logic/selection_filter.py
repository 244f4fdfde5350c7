"""
Initial channel selection policies applied before share optimization.
"""

import logging
import math
from typing import Dict, Iterable, Optional

from config.settings import config_manager, AppConfig
from models.data_models import BriefData, SplitVariant

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

COMMENT_EXPENSIVE = "Expensive Index TCPP"
COMMENT_NO_TCPP = "No data to calculate TCPP"
COMMENT_NO_DATA = "No rating data or zero CPP"
COMMENT_NOT_CHOSEN = "Not selected by user"
COMMENT_MANUAL = "Share set manually"
COMMENT_ZERO_SHARE = "Share 0%"
COMMENT_NOT_LISTED = "Not selected"


class SelectionFilter:
    """
    Decides the candidate set of every region of a split variant.

    Each policy writes only the selection flag and the exclusion comment of
    the variant's overlays; the base snapshot is left untouched.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or config_manager.load_config()

    def apply_cutoff(self, variant: SplitVariant, brief: BriefData):
        """
        Drop the most expensive cutoff% of channels by Index TCPP in every region.

        The number of dropped channels is rounded up. Channels without an index
        are excluded as well.
        """
        for region in variant.regions:
            region_brief = brief.region_briefs.get(region)
            cutoff = self.config.default_expensive_channel_cutoff
            if region_brief is not None and region_brief.expensive_channel_cutoff is not None:
                cutoff = region_brief.expensive_channel_cutoff

            rows = variant.rows(region)
            ranked = sorted((pair for pair in rows if pair[0].index_tcpp is not None),
                            key=lambda pair: pair[0].index_tcpp, reverse=True)
            channels_to_cut = math.ceil(len(ranked) * cutoff / 100) if ranked else 0
            excluded = {metrics.row_id for metrics, _ in ranked[:channels_to_cut]}

            for metrics, overlay in rows:
                if metrics.index_tcpp is None:
                    overlay.selected = False
                    overlay.comment = COMMENT_NO_TCPP
                elif metrics.row_id in excluded:
                    overlay.selected = False
                    overlay.comment = COMMENT_EXPENSIVE
                else:
                    overlay.selected = True

            logger.info(f"Cutoff {cutoff:g}% in {region}: {len(excluded)} of {len(ranked)} "
                        f"indexed channels excluded")

    def apply_natural(self, variant: SplitVariant):
        """Select every channel with a positive target rating and a positive price."""
        for metrics, overlay in variant.all_rows():
            if metrics.tvr_ta and metrics.tvr_ta > 0 and metrics.cpp is not None and metrics.cpp > 0:
                overlay.selected = True
            else:
                overlay.selected = False
                overlay.comment = COMMENT_NO_DATA

    def apply_allow_list(self, variant: SplitVariant, channel_names: Iterable[str]):
        """Select listed channels; channels without a TCPP are never selected."""
        allowed = set(channel_names)
        for metrics, overlay in variant.all_rows():
            if metrics.tcpp and metrics.tcpp > 0:
                overlay.selected = metrics.channel in allowed
                if not overlay.selected:
                    overlay.comment = COMMENT_NOT_CHOSEN
            else:
                overlay.selected = False
                overlay.comment = COMMENT_NO_TCPP

    def apply_explicit_shares(self, variant: SplitVariant, shares: Dict[str, float]):
        """
        Write shares straight from a channel -> percent map, bypassing optimization.

        Args:
            variant: Variant to fill
            shares: Channel display name -> share in percent
        """
        total_trp = self.config.total_trp
        for metrics, overlay in variant.all_rows():
            share_percent = shares.get(metrics.channel)
            if share_percent is not None and share_percent > 0:
                overlay.selected = True
                overlay.share = share_percent / 100
                overlay.trp = overlay.share * total_trp
                overlay.comment = COMMENT_MANUAL
            else:
                overlay.selected = False
                overlay.share = 0.0
                overlay.trp = 0.0
                overlay.comment = COMMENT_ZERO_SHARE if metrics.channel in shares else COMMENT_NOT_LISTED
