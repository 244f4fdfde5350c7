"""
Unit tests for regional KPI summaries.
"""

import pytest

from business_logic.summary_aggregator import SummaryAggregator, calculate_kpis, apply_cost_index
from data.frames import summary_to_frame, split_to_frame, SPLIT_COLUMNS
from models.data_models import (
    BaseSnapshot, BriefData, BuyType, CalculationResults, ChannelMetrics, ChannelOverlay,
    ChannelRecord, RegionBrief, SummaryKPIs
)


def make_record(channel, share, tvr_ta=1.0, affinity=1.0, tcpp=100.0, selected=True, region='Москва'):
    metrics = ChannelMetrics(
        row_id=0, region=region, channel=channel, buy_type=BuyType.GRP,
        target_audience='W 25-45 BC', tvr_ta=tvr_ta, affinity=affinity, sales_tvr=None,
        cpp=None, tcpp=tcpp, index_tcpp=None, is_orbital=False, sort_order=1
    )
    overlay = ChannelOverlay(selected=selected, share=share if selected else 0.0,
                             trp=share * 1000 if selected else 0.0)
    return ChannelRecord.from_parts(metrics, overlay)


class TestKPIs:
    """Test KPI formulas."""

    def test_weighted_kpis(self):
        records = [
            make_record('A', 0.6, tvr_ta=2.0, affinity=1.5, tcpp=100.0),
            make_record('B', 0.4, tvr_ta=1.0, affinity=0.5, tcpp=200.0),
            make_record('C', 0.0, selected=False),
        ]
        kpis = calculate_kpis(records)

        assert kpis.trps == pytest.approx(1000.0)
        assert kpis.avr_tvr == pytest.approx(1.6)
        assert kpis.affinity == pytest.approx(1.1)
        assert kpis.cpp_ta == pytest.approx(140.0)
        assert kpis.budget == pytest.approx(140000.0)

    def test_no_selected_channels(self):
        kpis = calculate_kpis([make_record('A', 0.0, selected=False)])

        assert kpis == SummaryKPIs()

    def test_cost_index(self):
        kpis = {'one': SummaryKPIs(budget=140000.0), 'two': SummaryKPIs(budget=100000.0), 'three': SummaryKPIs()}
        apply_cost_index(kpis)

        assert kpis['one'].cost_index == 1.0
        assert kpis['two'].cost_index == pytest.approx(100000 / 140000)
        assert kpis['three'].cost_index == 0.0


class TestSummaryAggregator:
    """Test region summaries and split updates."""

    def setup_method(self):
        self.aggregator = SummaryAggregator()
        self.splits = {
            'first': [make_record('A', 0.6, tvr_ta=2.0, affinity=1.5, tcpp=100.0),
                      make_record('B', 0.4, tvr_ta=1.0, affinity=0.5, tcpp=200.0),
                      make_record('C', 0.0, selected=False)],
            'second': [make_record('A', 1.0, tcpp=100.0),
                       make_record('B', 0.0, selected=False)],
        }

    def test_share_matrix(self):
        summary = self.aggregator.summarize_region('Москва', self.splits)

        assert list(summary.channels.keys()) == ['A', 'B']
        assert summary.channels['A'] == {'first': 0.6, 'second': 1.0}
        assert summary.channels['B'] == {'first': 0.4, 'second': 0.0}

    def test_channel_absent_from_split(self):
        self.splits['third'] = [make_record('B', 1.0)]
        summary = self.aggregator.summarize_region('Москва', self.splits)

        assert summary.channels['A']['third'] is None

    def test_kpis_per_split(self):
        summary = self.aggregator.summarize_region('Москва', self.splits)

        assert summary.kpis['first'].budget == pytest.approx(140000.0)
        assert summary.kpis['second'].budget == pytest.approx(100000.0)
        assert summary.kpis['first'].cost_index == 1.0
        assert summary.kpis['second'].cost_index == pytest.approx(0.714286, abs=1e-6)

    def test_region_without_rows(self):
        summary = self.aggregator.summarize_region('Казань', self.splits)

        assert summary.channels == {}
        assert summary.kpis['first'] == SummaryKPIs()

    def test_update_with_split_copies(self):
        brief = BriefData(region_briefs={'Москва': RegionBrief(target_audience='W 25-45 BC')})
        results = CalculationResults(
            splits=self.splits,
            summaries=self.aggregator.generate_summaries(self.splits, ['Москва']),
            base_snapshot=BaseSnapshot([], ['Москва']),
            brief=brief
        )

        updated = self.aggregator.update_with_split(results, 'Manual shares', [make_record('B', 1.0)], 'Москва')

        assert 'Manual shares' not in results.splits
        assert 'Manual shares' not in results.summaries['Москва'].kpis
        assert updated.summaries['Москва'].channels['B']['Manual shares'] == 1.0
        assert updated.splits['first'] is results.splits['first']

    def test_summary_frame(self):
        summary = self.aggregator.summarize_region('Москва', self.splits)
        frame = summary_to_frame(summary, ['first', 'second'])

        assert list(frame.columns) == ['first', 'second']
        assert list(frame.index[:2]) == ['A', 'B']
        assert frame.loc['Budget', 'second'] == pytest.approx(100000.0)

    def test_split_frame(self):
        frame = split_to_frame(self.splits['first'])

        assert list(frame.columns) == SPLIT_COLUMNS
        assert list(frame['Selected']) == ['x', 'x', '']
