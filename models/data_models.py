"""
Core data models for the TV split optimizer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple


class BuyType(Enum):
    """How a channel is bought."""
    GRP = "GRP"
    MINUTE = "Minute"


class WeightingLogic(Enum):
    """Weighting strategy used to turn ratings into shares."""
    TCPP = "TCPP"
    AFFINITY = "Affinity"
    EFFICIENCY = "Efficiency"
    NATURAL = "Natural"
    CUSTOM = "Custom"


@dataclass
class RegionBrief:
    """Campaign constraints for a single region. Percentages are 0-100."""
    target_audience: str
    min_channel_share: Optional[float] = 2.0
    max_orbital_share: Optional[float] = None
    expensive_channel_cutoff: Optional[float] = 20.0


@dataclass
class BriefData:
    """Brief for all regions, keyed by region name in presentation order."""
    region_briefs: Dict[str, RegionBrief]

    @property
    def regions(self) -> List[str]:
        return list(self.region_briefs.keys())

    def for_region(self, region: str) -> 'BriefData':
        """Brief narrowed down to one region."""
        return BriefData(region_briefs={region: self.region_briefs[region]})


@dataclass
class BlendWeights:
    """Percent weights of the three components of the custom blend."""
    affinity: float = 40.0
    tcpp: float = 30.0
    efficiency: float = 30.0

    @property
    def total(self) -> float:
        return self.affinity + self.tcpp + self.efficiency

    def is_valid(self, tolerance: float = 1e-9) -> bool:
        if min(self.affinity, self.tcpp, self.efficiency) < 0:
            return False
        return abs(self.total - 100.0) <= tolerance


@dataclass(frozen=True)
class ChannelMetrics:
    """Metric-annotated channel row of the base snapshot. Never mutated."""
    row_id: int
    region: str
    channel: str
    buy_type: BuyType
    target_audience: str
    tvr_ta: Optional[float]
    affinity: Optional[float]
    sales_tvr: Optional[float]
    cpp: Optional[float]
    tcpp: Optional[float]
    index_tcpp: Optional[float]
    is_orbital: bool
    sort_order: int


@dataclass
class ChannelOverlay:
    """Per-variant mutable state of one channel."""
    selected: bool = False
    weighted_rating: Optional[float] = None
    share: Optional[float] = None
    trp: Optional[float] = None
    comment: Optional[str] = None


@dataclass(frozen=True)
class ChannelRecord:
    """One channel within one region for one split variant."""
    region: str
    channel: str
    buy_type: BuyType
    target_audience: str
    tvr_ta: Optional[float]
    affinity: Optional[float]
    sales_tvr: Optional[float]
    cpp: Optional[float]
    tcpp: Optional[float]
    index_tcpp: Optional[float]
    is_orbital: bool
    selected: bool
    weighted_rating: Optional[float]
    share: float
    trp: float
    comment: Optional[str]
    sort_order: int

    @classmethod
    def from_parts(cls, metrics: ChannelMetrics, overlay: ChannelOverlay) -> 'ChannelRecord':
        return cls(
            region=metrics.region,
            channel=metrics.channel,
            buy_type=metrics.buy_type,
            target_audience=metrics.target_audience,
            tvr_ta=metrics.tvr_ta,
            affinity=metrics.affinity,
            sales_tvr=metrics.sales_tvr,
            cpp=metrics.cpp,
            tcpp=metrics.tcpp,
            index_tcpp=metrics.index_tcpp,
            is_orbital=metrics.is_orbital,
            selected=overlay.selected,
            weighted_rating=overlay.weighted_rating,
            share=overlay.share or 0.0,
            trp=overlay.trp or 0.0,
            comment=overlay.comment,
            sort_order=metrics.sort_order
        )


class BaseSnapshot:
    """
    Immutable list of metric-annotated channels shared by every variant.

    The per-region index is built once so that the optimizer never scans
    the full list inside its loop.
    """

    def __init__(self, channels: Iterable[ChannelMetrics], regions: Iterable[str]):
        self.channels: Tuple[ChannelMetrics, ...] = tuple(channels)
        self.regions: Tuple[str, ...] = tuple(regions)
        self._by_id = {m.row_id: m for m in self.channels}
        self._region_index: Dict[str, Tuple[int, ...]] = {region: () for region in self.regions}
        for m in self.channels:
            self._region_index[m.region] = self._region_index.get(m.region, ()) + (m.row_id,)

    def __len__(self) -> int:
        return len(self.channels)

    def get(self, row_id: int) -> ChannelMetrics:
        return self._by_id[row_id]

    def region_row_ids(self, region: str) -> Tuple[int, ...]:
        return self._region_index.get(region, ())

    def channels_in_region(self, region: str) -> List[ChannelMetrics]:
        return [self._by_id[row_id] for row_id in self.region_row_ids(region)]


class SplitVariant:
    """
    Working copy of one split: the shared base snapshot plus an overlay per row.

    Only overlays are written by selection and optimization, so any number
    of variants can be derived from one snapshot independently.
    """

    def __init__(self, name: str, snapshot: BaseSnapshot, regions: Optional[Iterable[str]] = None):
        self.name = name
        self.snapshot = snapshot
        self.regions: Tuple[str, ...] = tuple(regions) if regions is not None else snapshot.regions
        self.overlays: Dict[int, ChannelOverlay] = {}
        for region in self.regions:
            for row_id in snapshot.region_row_ids(region):
                self.overlays[row_id] = ChannelOverlay()

    def rows(self, region: str) -> List[Tuple[ChannelMetrics, ChannelOverlay]]:
        """Pairs of (metrics, overlay) for a region, in snapshot order."""
        return [(self.snapshot.get(row_id), self.overlays[row_id])
                for row_id in self.snapshot.region_row_ids(region)
                if row_id in self.overlays]

    def all_rows(self) -> List[Tuple[ChannelMetrics, ChannelOverlay]]:
        pairs = []
        for region in self.regions:
            pairs.extend(self.rows(region))
        return pairs

    def selected_rows(self, region: str) -> List[Tuple[ChannelMetrics, ChannelOverlay]]:
        return [(m, o) for m, o in self.rows(region) if o.selected]

    def to_records(self) -> List['ChannelRecord']:
        """Finalized records sorted by region order, then by descending share."""
        records = [ChannelRecord.from_parts(m, o) for m, o in self.all_rows()]
        return sorted(records, key=lambda r: (r.sort_order, -r.share))


@dataclass
class SummaryKPIs:
    """Key indicators of one split variant within one region."""
    trps: float = 0.0
    avr_tvr: float = 0.0
    affinity: float = 0.0
    cpp_ta: float = 0.0
    budget: float = 0.0
    cost_index: float = 0.0


@dataclass
class RegionSummary:
    """Share matrix and KPI bundle per variant for one region."""
    region: str
    channels: Dict[str, Dict[str, Optional[float]]] = field(default_factory=dict)
    kpis: Dict[str, SummaryKPIs] = field(default_factory=dict)


@dataclass
class CalculationResults:
    """All split variants, their regional summaries and the shared snapshot."""
    splits: Dict[str, List[ChannelRecord]]
    summaries: Dict[str, RegionSummary]
    base_snapshot: BaseSnapshot
    brief: BriefData
