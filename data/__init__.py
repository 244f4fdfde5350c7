# Data layer for the TV split optimizer

from .parsers import RatingsTableParser, PriceTableParser, pre_parse_ratings
from .normalizer import normalize_region_name, normalize_channel_name

__all__ = ['RatingsTableParser', 'PriceTableParser', 'pre_parse_ratings',
           'normalize_region_name', 'normalize_channel_name']
