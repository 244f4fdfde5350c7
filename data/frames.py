"""
Tabular views of split results for presentation and export collaborators.
"""

from typing import List, Optional

import pandas as pd

from models.data_models import ChannelRecord, RegionSummary

SPLIT_COLUMNS = ["Region", "Channel", "Type", "TA", "TVR TA", "Aff", "Sales TVR", "CPP", "TCPP",
                 "Index TCPP", "Weighted rating", "Selected", "Share", "TRP", "Comment"]

KPI_ROWS = [
    ('trps', "TRP's"),
    ('avr_tvr', 'Avg TVR'),
    ('affinity', 'Affinity'),
    ('cpp_ta', 'CPP TA'),
    ('cost_index', 'Cost index'),
    ('budget', 'Budget'),
]


def split_to_frame(records: List[ChannelRecord]) -> pd.DataFrame:
    """One row per channel record, in record order."""
    rows = [[
        r.region,
        r.channel,
        r.buy_type.value,
        r.target_audience,
        r.tvr_ta,
        r.affinity,
        r.sales_tvr,
        r.cpp,
        r.tcpp,
        r.index_tcpp,
        r.weighted_rating,
        'x' if r.selected else '',
        r.share,
        r.trp,
        r.comment or ''
    ] for r in records]
    return pd.DataFrame(rows, columns=SPLIT_COLUMNS)


def summary_to_frame(summary: RegionSummary, split_order: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Share matrix followed by the KPI rows, one column per split.

    Channels are ordered by descending share in the first split.
    """
    splits = split_order or list(summary.kpis.keys())
    splits = [name for name in splits if name in summary.kpis]
    first = splits[0] if splits else None

    channels = sorted(summary.channels.keys(),
                      key=lambda ch: -(summary.channels[ch].get(first) or 0.0) if first else 0.0)

    index = []
    rows = []
    for channel in channels:
        index.append(channel)
        rows.append([summary.channels[channel].get(name) or 0.0 for name in splits])

    for key, label in KPI_ROWS:
        index.append(label)
        rows.append([getattr(summary.kpis[name], key) for name in splits])

    return pd.DataFrame(rows, index=index, columns=splits)
