"""
Name normalization used as the join key between the ratings and price tables.
"""

import re

ORBITAL_SUFFIX = ' - 0'
ORBITAL_MARKER = 'орбит'

REGION_ALIASES = {
    'сетевое вещание': 'россия',
    'рф': 'россия',
    'спб': 'санкт петербург',
}

CHANNEL_ALIASES = {
    '2x2': '2х2',
    'детский рекламный канал': 'дрк',
    'единый рекламный канал': 'ерк',
    'женский рекламный канал': 'жрк',
    'москва доверие': 'доверие',
    'мужской рекламный канал': 'мрк',
    'муз тв': 'муз-тв',
    'первый канал': 'первый',
    'санкт петербург': 'тк санкт-петербург',
    'тк санкт петербург': 'тк санкт-петербург',
    'тв центр': 'твц',
    'четвертый канал': '4 канал',
}

_WHITESPACE = re.compile(r'\s+')


def _canonical(name) -> str:
    if name is None:
        return ''
    text = str(name).strip().lower()
    text = text.replace('-', ' ').replace('.', '')
    return _WHITESPACE.sub(' ', text).strip()


def normalize_region_name(name) -> str:
    """Canonical region name; unknown names pass through in canonical form."""
    normalized = _canonical(name)
    return REGION_ALIASES.get(normalized, normalized)


def normalize_channel_name(name) -> str:
    """Canonical channel name; unknown names pass through in canonical form."""
    normalized = _canonical(name)
    return CHANNEL_ALIASES.get(normalized, normalized)


def is_orbital(block_type: str, raw_name: str) -> bool:
    """A channel is orbital if its block says so or its name carries the suffix."""
    return ORBITAL_MARKER in (block_type or '').lower() or (raw_name or '').rstrip().endswith(ORBITAL_SUFFIX)


def strip_orbital_suffix(raw_name: str) -> str:
    name = (raw_name or '').rstrip()
    if name.endswith(ORBITAL_SUFFIX):
        name = name[:-len(ORBITAL_SUFFIX)]
    return name.strip()


def price_lookup_key(base_name: str, orbital: bool) -> str:
    """Key used to find a channel's price; orbital instances are priced separately."""
    key = normalize_channel_name(base_name)
    return key + ORBITAL_SUFFIX if orbital else key
