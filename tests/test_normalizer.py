"""
Unit tests for region and channel name normalization.
"""

import unittest

from data.normalizer import (
    normalize_region_name, normalize_channel_name, is_orbital, price_lookup_key, strip_orbital_suffix
)


class TestRegionNames(unittest.TestCase):
    """Test cases for region normalization."""

    def test_aliases(self):
        self.assertEqual(normalize_region_name('  РФ '), 'россия')
        self.assertEqual(normalize_region_name('Сетевое вещание'), 'россия')
        self.assertEqual(normalize_region_name('СПб.'), 'санкт петербург')

    def test_hyphens_and_whitespace(self):
        self.assertEqual(normalize_region_name('Санкт-Петербург'), 'санкт петербург')
        self.assertEqual(normalize_region_name('Нижний   Новгород'), 'нижний новгород')

    def test_unknown_and_empty(self):
        self.assertEqual(normalize_region_name('Казань'), 'казань')
        self.assertEqual(normalize_region_name(''), '')
        self.assertEqual(normalize_region_name(None), '')


class TestChannelNames(unittest.TestCase):
    """Test cases for channel normalization."""

    def test_aliases(self):
        self.assertEqual(normalize_channel_name('Первый канал'), 'первый')
        self.assertEqual(normalize_channel_name('Муз-ТВ'), 'муз-тв')
        self.assertEqual(normalize_channel_name('ТВ Центр'), 'твц')
        self.assertEqual(normalize_channel_name('2x2'), '2х2')
        self.assertEqual(normalize_channel_name('ТК Санкт-Петербург'), 'тк санкт-петербург')

    def test_both_spellings_share_a_key(self):
        self.assertEqual(normalize_channel_name('Муз ТВ'), normalize_channel_name('муз-тв.'))

    def test_unknown_passes_through(self):
        self.assertEqual(normalize_channel_name('  СТС  '), 'стс')

    def test_deterministic(self):
        self.assertEqual(normalize_channel_name('Четвертый канал'), normalize_channel_name('Четвертый канал'))


class TestOrbitalChannels(unittest.TestCase):
    """Test cases for orbital detection and price keys."""

    def test_detection(self):
        self.assertTrue(is_orbital('Орбита', 'ТНТ'))
        self.assertTrue(is_orbital('', 'ТНТ - 0'))
        self.assertFalse(is_orbital('Сетевой', 'ТНТ'))
        self.assertFalse(is_orbital(None, None))

    def test_suffix_handling(self):
        self.assertEqual(strip_orbital_suffix('ТНТ - 0'), 'ТНТ')
        self.assertEqual(price_lookup_key('ТНТ', True), 'тнт - 0')
        self.assertEqual(price_lookup_key('Первый канал', False), 'первый')


if __name__ == '__main__':
    unittest.main()
