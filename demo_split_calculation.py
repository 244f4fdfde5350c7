#!/usr/bin/env python3
"""
Demonstration of the TV split calculation workflow.

This script builds a small ratings export and price list in memory, runs the
four systematic splits, then recomputes a constructor and a manual split for
one region.
"""

import pandas as pd

from business_logic.split_controller import SplitController
from data.frames import split_to_frame, summary_to_frame
from business_logic.split_generator import ordered_split_names
from models.data_models import BlendWeights, BriefData, RegionBrief, WeightingLogic


def build_demo_tables():
    """Create a ratings export and a price list for two regions."""
    ratings = pd.DataFrame({
        'Регион': ['Москва'] * 6 + ['СПб'] * 4,
        'Телекомпания': ['Первый канал', 'Россия 1', 'НТВ', 'СТС', 'ТНТ', 'ТНТ',
                         'Первый канал', 'СТС', 'Пятница', 'Первый / Россия 1'],
        'Блок распространения': ['Сетевой', 'Сетевой', 'Сетевой', 'Сетевой', 'Сетевой', 'Орбита',
                                 'Сетевой', 'Сетевой', 'Сетевой', 'Сетевой'],
        'GRP баинговая': ['1', '1', '1', '1', '1', 'N/A', '1', '1', '', '1'],
        'PBA Reg Sales TVR': [1.2, 1.5, 1.1, 0.9, 1.0, 0.4, 1.0, 0.8, 0.5, 2.0],
        'W 25-45 BC__AVG TVR': [0.9, 1.1, 0.6, 1.0, 1.3, 0.5, 0.8, 0.9, 0.6, 1.5],
        'W 25-45 BC__TVR': [1.0, 1.2, 0.7, 1.1, 1.4, 0.5, 0.9, 1.0, 0.6, 1.6],
    })
    prices = pd.DataFrame({
        'Регион': ['Москва'] * 6 + ['Санкт-Петербург'] * 3,
        'Канал': ['Первый', 'Россия 1', 'НТВ', 'СТС', 'ТНТ', 'ТНТ - 0', 'Первый', 'СТС', 'Пятница'],
        'CPP': [250000, 230000, 180000, 150000, 160000, 40000, 90000, 60000, 30000],
    })
    return ratings, prices


def main():
    """Demonstrate the split calculation workflow."""

    print("=== TV Split Optimizer Demo ===\n")

    ratings, prices = build_demo_tables()
    brief = BriefData(region_briefs={
        'Москва': RegionBrief(target_audience='W 25-45 BC', min_channel_share=5, max_orbital_share=10),
        'Санкт-Петербург': RegionBrief(target_audience='W 25-45 BC'),
    })

    controller = SplitController()

    print("1. Pre-parsing ratings table...")
    pre_parse = controller.pre_parse_ratings(ratings)
    print(f"   ✓ Regions: {', '.join(pre_parse.value['regions'])}")
    print(f"   ✓ Target audiences: {', '.join(pre_parse.value['target_audiences'])}")

    print("\n2. Calculating systematic splits...")
    outcome = controller.calculate_all(ratings, prices, brief)
    if not outcome.ok:
        print(f"   ✗ {outcome.status.value}: {outcome.error.message}")
        return
    results = outcome.value
    for name in ordered_split_names(results.splits.keys()):
        selected = sum(1 for r in results.splits[name] if r.selected)
        print(f"   ✓ {name}: {selected} channels selected")

    print("\n3. Constructor split for Москва (custom blend)...")
    outcome = controller.calculate_constructor_split(
        results, 'Москва', ['Первый канал', 'СТС', 'ТНТ', 'ТНТ - 0'],
        WeightingLogic.CUSTOM, BlendWeights(affinity=40, tcpp=30, efficiency=30)
    )
    print(f"   ✓ Status: {outcome.status.value}")
    if outcome.ok:
        results = outcome.value

    print("\n4. Manual split for Москва...")
    outcome = controller.calculate_manual_split(results, 'Москва', {'Первый канал': 50, 'СТС': 30, 'ТНТ': 20})
    print(f"   ✓ Status: {outcome.status.value}")
    if outcome.ok:
        results = outcome.value

    print("\n5. Summary for Москва:")
    order = ordered_split_names(results.splits.keys())
    print(summary_to_frame(results.summaries['Москва'], order).round(3).to_string())

    print("\n6. TCPP split records:")
    print(split_to_frame(results.splits[order[0]]).to_string(index=False))

    print("\n=== Demo completed successfully! ===")


if __name__ == "__main__":
    main()
