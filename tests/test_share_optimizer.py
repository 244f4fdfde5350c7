"""
Unit tests for the iterative share optimizer.
"""

import pytest
from unittest.mock import patch

from config.settings import AppConfig
from business_logic.share_optimizer import ShareOptimizer, efficiency_rating, tcpp_rating, average_tcpp
from models.data_models import (
    BaseSnapshot, BlendWeights, BriefData, BuyType, ChannelMetrics, RegionBrief, SplitVariant, WeightingLogic
)


def make_channel(row_id, channel, tvr_ta=1.0, affinity=1.0, cpp=100.0, tcpp=100.0, is_orbital=False):
    return ChannelMetrics(
        row_id=row_id, region='Москва', channel=channel, buy_type=BuyType.GRP,
        target_audience='W 25-45 BC', tvr_ta=tvr_ta, affinity=affinity, sales_tvr=None,
        cpp=cpp, tcpp=tcpp, index_tcpp=None, is_orbital=is_orbital, sort_order=1
    )


def make_brief(min_share=2.0, max_orbital=None):
    return BriefData(region_briefs={
        'Москва': RegionBrief(target_audience='W 25-45 BC', min_channel_share=min_share,
                              max_orbital_share=max_orbital)
    })


def select_all(snapshot):
    variant = SplitVariant('test', snapshot)
    for _, overlay in variant.all_rows():
        overlay.selected = True
    return variant


def shares(variant):
    return [o.share for _, o in variant.rows('Москва')]


class TestRatingHelpers:
    """Test the weighted rating formulas."""

    def test_efficiency_rating(self):
        assert efficiency_rating(make_channel(0, 'A', tvr_ta=2.0, cpp=100.0)) == pytest.approx(0.02)
        assert efficiency_rating(make_channel(0, 'A', cpp=None)) == 0.0

    def test_tcpp_rating(self):
        rows = select_all(BaseSnapshot([make_channel(0, 'A', tcpp=100.0),
                                        make_channel(1, 'B', tcpp=300.0)], ['Москва'])).rows('Москва')
        avg = average_tcpp(rows)

        assert avg == 200.0
        assert tcpp_rating(rows[0][0], avg) == pytest.approx(2.0)
        assert tcpp_rating(rows[0][0], 0.0) == 0.0


class TestShareOptimizer:
    """Test share optimization for each weighting strategy."""

    def setup_method(self):
        self.config = AppConfig(total_trp=1000.0)
        self.optimizer = ShareOptimizer(self.config)

    def test_efficiency_equal_shares(self):
        snapshot = BaseSnapshot([
            make_channel(0, 'A', tvr_ta=2.0, cpp=100.0),
            make_channel(1, 'B', tvr_ta=1.0, cpp=50.0),
            make_channel(2, 'C', tvr_ta=1.0, cpp=50.0),
        ], ['Москва'])
        variant = self.optimizer.optimize(select_all(snapshot), make_brief(), WeightingLogic.EFFICIENCY)

        assert shares(variant) == pytest.approx([1 / 3] * 3)
        assert [o.trp for _, o in variant.rows('Москва')] == pytest.approx([333.333333] * 3)

    def test_natural_shares_follow_ratings(self):
        snapshot = BaseSnapshot([
            make_channel(0, 'A', tvr_ta=2.0),
            make_channel(1, 'B', tvr_ta=1.0),
            make_channel(2, 'C', tvr_ta=1.0),
        ], ['Москва'])
        variant = self.optimizer.optimize(select_all(snapshot), make_brief(), WeightingLogic.NATURAL)

        assert shares(variant) == pytest.approx([0.5, 0.25, 0.25])

    def test_affinity_missing_counts_as_one(self):
        snapshot = BaseSnapshot([
            make_channel(0, 'A', affinity=2.0),
            make_channel(1, 'B', affinity=None),
        ], ['Москва'])
        variant = self.optimizer.optimize(select_all(snapshot), make_brief(), WeightingLogic.AFFINITY)

        assert shares(variant) == pytest.approx([2 / 3, 1 / 3])

    def test_tcpp_favours_cheaper_channel(self):
        snapshot = BaseSnapshot([
            make_channel(0, 'A', tcpp=100.0),
            make_channel(1, 'B', tcpp=300.0),
        ], ['Москва'])
        variant = self.optimizer.optimize(select_all(snapshot), make_brief(), WeightingLogic.TCPP)

        assert shares(variant) == pytest.approx([0.75, 0.25])

    def test_custom_blend(self):
        snapshot = BaseSnapshot([
            make_channel(0, 'A', affinity=2.0, cpp=100.0, tcpp=50.0),
            make_channel(1, 'B', affinity=1.0, cpp=50.0, tcpp=50.0),
        ], ['Москва'])
        variant = self.optimizer.optimize(select_all(snapshot), make_brief(), WeightingLogic.CUSTOM,
                                          weights=BlendWeights(affinity=40, tcpp=30, efficiency=30))

        assert shares(variant) == pytest.approx([0.516667, 0.483333], abs=1e-6)

    def test_custom_requires_weights(self):
        snapshot = BaseSnapshot([make_channel(0, 'A')], ['Москва'])
        with pytest.raises(ValueError):
            self.optimizer.optimize(select_all(snapshot), make_brief(), WeightingLogic.CUSTOM)

    def test_min_share_drops_small_channel(self):
        snapshot = BaseSnapshot([
            make_channel(0, 'A', tvr_ta=10.0),
            make_channel(1, 'B', tvr_ta=9.0),
            make_channel(2, 'C', tvr_ta=1.0),
        ], ['Москва'])
        variant = self.optimizer.optimize(select_all(snapshot), make_brief(min_share=10), WeightingLogic.NATURAL)
        overlays = [o for _, o in variant.rows('Москва')]

        assert shares(variant) == pytest.approx([10 / 19, 9 / 19, 0.0])
        assert not overlays[2].selected
        assert overlays[2].trp == 0.0
        assert overlays[2].comment == "Low share (<10.0%)"

    def test_no_limits_keeps_small_channel(self):
        snapshot = BaseSnapshot([
            make_channel(0, 'A', tvr_ta=10.0),
            make_channel(1, 'B', tvr_ta=9.0),
            make_channel(2, 'C', tvr_ta=1.0),
        ], ['Москва'])
        variant = self.optimizer.optimize(select_all(snapshot), make_brief(min_share=10),
                                          WeightingLogic.NATURAL, apply_limits=False)

        assert shares(variant) == pytest.approx([0.5, 0.45, 0.05])

    def test_pass_cap_still_normalizes(self):
        optimizer = ShareOptimizer(AppConfig(max_iterations=1))
        snapshot = BaseSnapshot([
            make_channel(0, 'A', tvr_ta=10.0),
            make_channel(1, 'B', tvr_ta=9.0),
            make_channel(2, 'C', tvr_ta=1.0),
        ], ['Москва'])
        variant = optimizer.optimize(select_all(snapshot), make_brief(min_share=10), WeightingLogic.NATURAL)

        assert sum(shares(variant)) == pytest.approx(1.0)
        assert shares(variant)[2] == 0.0

    def test_orbital_cap(self):
        snapshot = BaseSnapshot([
            make_channel(0, 'N1', tvr_ta=4.0),
            make_channel(1, 'N2', tvr_ta=2.0),
            make_channel(2, 'O1 - 0', tvr_ta=4.0, is_orbital=True),
        ], ['Москва'])
        variant = self.optimizer.optimize(select_all(snapshot), make_brief(max_orbital=20), WeightingLogic.NATURAL)
        overlays = [o for _, o in variant.rows('Москва')]

        assert shares(variant) == pytest.approx([0.4 + 0.2 * 2 / 3, 0.2 + 0.2 / 3, 0.2])
        assert sum(shares(variant)) == pytest.approx(1.0)
        assert overlays[2].comment == "Orbital share capped at 20%"

    def test_orbital_cap_not_applied_without_limits(self):
        snapshot = BaseSnapshot([
            make_channel(0, 'N1', tvr_ta=4.0),
            make_channel(1, 'N2', tvr_ta=2.0),
            make_channel(2, 'O1 - 0', tvr_ta=4.0, is_orbital=True),
        ], ['Москва'])
        variant = self.optimizer.optimize(select_all(snapshot), make_brief(max_orbital=20),
                                          WeightingLogic.NATURAL, apply_limits=False)

        assert shares(variant) == pytest.approx([0.4, 0.2, 0.4])

    def test_capped_orbital_channel_below_floor_stays_selected(self):
        snapshot = BaseSnapshot([
            make_channel(0, 'N1', tvr_ta=6.0),
            make_channel(1, 'O1 - 0', tvr_ta=2.0, is_orbital=True),
            make_channel(2, 'O2 - 0', tvr_ta=2.0, is_orbital=True),
        ], ['Москва'])
        variant = self.optimizer.optimize(select_all(snapshot), make_brief(min_share=5, max_orbital=6),
                                          WeightingLogic.NATURAL)
        overlays = [o for _, o in variant.rows('Москва')]

        assert shares(variant) == pytest.approx([0.94, 0.03, 0.03])
        assert all(o.selected for o in overlays)
        assert overlays[1].share < 0.05
        assert overlays[1].trp == pytest.approx(30.0)

    @patch('business_logic.share_optimizer.logger')
    def test_orbital_cap_without_network_channels(self, mock_logger):
        snapshot = BaseSnapshot([
            make_channel(0, 'O1 - 0', tvr_ta=1.0, is_orbital=True),
            make_channel(1, 'O2 - 0', tvr_ta=1.0, is_orbital=True),
            make_channel(2, 'N1', tvr_ta=0.0),
        ], ['Москва'])
        variant = SplitVariant('test', snapshot)
        variant.overlays[0].selected = True
        variant.overlays[1].selected = True
        self.optimizer.optimize(variant, make_brief(max_orbital=50), WeightingLogic.NATURAL)

        assert shares(variant) == pytest.approx([0.25, 0.25, 0.0])
        assert sum(shares(variant)) == pytest.approx(0.5)
        assert mock_logger.warning.called
        assert 'no network channels' in mock_logger.warning.call_args[0][0]

    def test_zero_ratings_give_zero_shares(self):
        snapshot = BaseSnapshot([
            make_channel(0, 'A', cpp=None),
            make_channel(1, 'B', cpp=None),
        ], ['Москва'])
        variant = self.optimizer.optimize(select_all(snapshot), make_brief(), WeightingLogic.EFFICIENCY)

        assert shares(variant) == [0.0, 0.0]
        assert all(o.trp == 0.0 for _, o in variant.rows('Москва'))

    def test_unselected_channels_have_no_share(self):
        snapshot = BaseSnapshot([
            make_channel(0, 'A', tvr_ta=2.0),
            make_channel(1, 'B', tvr_ta=1.0),
        ], ['Москва'])
        variant = SplitVariant('test', snapshot)
        variant.overlays[0].selected = True
        self.optimizer.optimize(variant, make_brief(), WeightingLogic.NATURAL)

        assert shares(variant) == [1.0, 0.0]
        assert variant.overlays[1].trp == 0.0

    def test_variants_are_independent(self):
        snapshot = BaseSnapshot([
            make_channel(0, 'A', tvr_ta=2.0, tcpp=100.0),
            make_channel(1, 'B', tvr_ta=1.0, tcpp=300.0),
        ], ['Москва'])
        natural = self.optimizer.optimize(select_all(snapshot), make_brief(), WeightingLogic.NATURAL)
        tcpp = self.optimizer.optimize(select_all(snapshot), make_brief(), WeightingLogic.TCPP)
        natural_again = self.optimizer.optimize(select_all(snapshot), make_brief(), WeightingLogic.NATURAL)

        assert shares(natural) == pytest.approx([2 / 3, 1 / 3])
        assert shares(tcpp) != pytest.approx(shares(natural))
        assert shares(natural_again) == shares(natural)

    def test_records_sorted_by_share(self):
        snapshot = BaseSnapshot([
            make_channel(0, 'A', tvr_ta=1.0),
            make_channel(1, 'B', tvr_ta=3.0),
        ], ['Москва'])
        variant = self.optimizer.optimize(select_all(snapshot), make_brief(), WeightingLogic.NATURAL)

        assert [r.channel for r in variant.to_records()] == ['B', 'A']
