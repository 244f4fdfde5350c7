"""
Regional KPI rollups across split variants.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterable, List

from models.data_models import CalculationResults, ChannelRecord, RegionSummary, SummaryKPIs

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def calculate_kpis(records: Iterable[ChannelRecord]) -> SummaryKPIs:
    """
    KPIs over the selected channels of one region and one variant.

    Averages are weighted by share; budget is average TCPP times delivered points.
    """
    selected = [r for r in records if r.selected]
    if not selected:
        return SummaryKPIs()

    total_trps = sum(r.trp for r in selected)
    avr_tvr = sum((r.tvr_ta or 0.0) * r.share for r in selected)
    affinity = sum((r.affinity or 0.0) * r.share for r in selected)
    cpp_ta = sum((r.tcpp or 0.0) * r.share for r in selected)

    return SummaryKPIs(
        trps=total_trps,
        avr_tvr=avr_tvr,
        affinity=affinity,
        cpp_ta=cpp_ta,
        budget=cpp_ta * total_trps
    )


def apply_cost_index(kpis: Dict[str, SummaryKPIs]):
    """Budget of each variant relative to the most expensive one."""
    budgets = [kpi.budget for kpi in kpis.values() if kpi.budget > 0]
    max_budget = max(budgets) if budgets else 0.0
    for kpi in kpis.values():
        kpi.cost_index = kpi.budget / max_budget if max_budget > 0 else 0.0


class SummaryAggregator:
    """
    Builds per-region summaries: a channel x variant share matrix and a KPI
    bundle per variant.
    """

    def summarize_region(self, region: str, splits: Dict[str, List[ChannelRecord]]) -> RegionSummary:
        summary = RegionSummary(region=region)

        by_split = {name: [r for r in records if r.region == region] for name, records in splits.items()}

        channels = []
        for records in by_split.values():
            for r in records:
                if (r.selected or r.share > 0) and r.channel not in channels:
                    channels.append(r.channel)

        for channel in channels:
            summary.channels[channel] = {}
            for name, records in by_split.items():
                match = next((r for r in records if r.channel == channel), None)
                summary.channels[channel][name] = match.share if match is not None else None

        for name, records in by_split.items():
            summary.kpis[name] = calculate_kpis(records)
        apply_cost_index(summary.kpis)

        return summary

    def generate_summaries(self,
                           splits: Dict[str, List[ChannelRecord]],
                           regions: Iterable[str]) -> Dict[str, RegionSummary]:
        """
        Args:
            splits: Split name -> finalized records
            regions: Regions to summarize, in presentation order

        Returns:
            Region -> RegionSummary
        """
        summaries = {region: self.summarize_region(region, splits) for region in regions}
        logger.info(f"Generated summaries for {len(summaries)} regions over {len(splits)} splits")
        return summaries

    def update_with_split(self,
                          results: CalculationResults,
                          split_name: str,
                          records: List[ChannelRecord],
                          region: str) -> CalculationResults:
        """
        New results with one region of a split replaced and that region's summary recomputed.

        Records of the split for other regions are kept. The given results
        object and its splits are left as they were.
        """
        kept = [r for r in results.splits.get(split_name, []) if r.region != region]
        merged = kept + [r for r in records if r.region == region]

        splits = dict(results.splits)
        splits[split_name] = sorted(merged, key=lambda r: (r.sort_order, -r.share))

        summaries = dict(results.summaries)
        summaries[region] = self.summarize_region(region, splits)

        logger.info(f"Updated {split_name} for {region}")
        return replace(results, splits=splits, summaries=summaries)
