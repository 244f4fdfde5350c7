"""
Parsers for the ratings export and the price list tables.
"""

import numbers
import pandas as pd
import logging
import re
from typing import Dict, List, Optional, Any, Tuple, Union
from pathlib import Path

from .normalizer import (
    normalize_region_name, is_orbital, strip_orbital_suffix, price_lookup_key
)

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


REGION_COLUMN = ['Регион']
CHANNEL_COLUMN = ['Телекомпания']
BLOCK_COLUMN = ['Блок распространения', 'Блок распространение', 'Блок']
SALES_TVR_COLUMN = ['PBA Reg Sales TVR', 'PBA Sales TVR', 'Sales TVR']
GRP_BUYING_COLUMN = ['GRP баинговая']

PRICE_REGION_COLUMN = ['Регион']
PRICE_CHANNEL_COLUMN = ['Канал']
PRICE_COLUMN = ['CPP']

AVG_TVR_SUFFIXES = ['__AVG Reg TVR', '__AVG TVR']
TOTAL_TVR_SUFFIXES = ['__PBA Reg TVR', '__TVR']

_AUDIENCE_HEADER = re.compile(r'^(.*?)__(?:AVG Reg TVR|PBA Reg TVR|AVG TVR|TVR)$')
_AVG_HEADER = re.compile(r'^(.*?)__(?:AVG Reg TVR|AVG TVR)$')


class TableFormatError(ValueError):
    """Raised when an input table cannot be used for calculation."""
    pass


class EmptyTableError(TableFormatError):
    """Raised when a table has no header or no rows."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"The {table} table is empty or has an invalid format")


class MissingColumnError(TableFormatError):
    """Raised when a required column is absent."""

    def __init__(self, table: str, column: str):
        self.table = table
        self.column = column
        super().__init__(f"Required column '{column}' is missing in the {table} table")


class UnknownAudienceError(TableFormatError):
    """Raised when a requested target audience has no rating column pair."""

    def __init__(self, audience: str, available: List[str]):
        self.audience = audience
        self.available = list(available)
        super().__init__(
            f"No average and total rating columns found for target audience '{audience}'. "
            f"Available audiences: {', '.join(self.available) or 'none'}"
        )


def find_column(columns, names: Union[str, List[str]]) -> Optional[str]:
    """
    Find a column by one of its accepted names, ignoring case and padding.

    Args:
        columns: Column labels of a table
        names: Accepted name or list of names, in priority order

    Returns:
        The actual column label, or None if not found
    """
    names_to_search = [names] if isinstance(names, str) else names
    labels = [str(col) for col in columns]
    for name in names_to_search:
        for label, col in zip(labels, columns):
            if label.strip().lower() == name.lower():
                return col
    return None


def parse_number(value: Any) -> Optional[float]:
    """Parse a numeric cell, accepting decimal commas. Blank or garbage gives None."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Number):
        return None if pd.isna(value) else float(value)
    text = str(value).strip().replace(',', '.')
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return None if pd.isna(number) else number


def cell_text(value: Any) -> str:
    """String form of a cell, with blanks and NaN mapped to ''."""
    if value is None:
        return ''
    if not isinstance(value, str) and pd.isna(value):
        return ''
    return str(value).strip()


def read_table(file_path: Union[str, Path]) -> pd.DataFrame:
    """
    Read the first sheet of an Excel file, or a CSV file.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Table file not found: {file_path}")
    if path.suffix.lower() == '.csv':
        return pd.read_csv(path)
    return pd.read_excel(path, sheet_name=0)


class RatingsTableParser:
    """
    Parser for the ratings export: one row per channel and region, with a pair
    of rating columns per target audience.
    """

    TABLE_NAME = 'ratings'

    def __init__(self, frame: pd.DataFrame):
        """
        Initialize the parser with a ratings table.

        Args:
            frame: Raw ratings table as read from the export
        """
        self.frame = frame
        self.columns = [str(col) for col in frame.columns]

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> 'RatingsTableParser':
        return cls(read_table(file_path))

    def validate(self):
        """
        Check the presence of every required column.

        Raises:
            EmptyTableError: If the table has no columns
            MissingColumnError: If a required column or audience pair is missing
        """
        if self.frame is None or len(self.frame.columns) == 0:
            raise EmptyTableError(self.TABLE_NAME)

        required = [
            ('Регион', REGION_COLUMN),
            ('Телекомпания', CHANNEL_COLUMN),
            ('Блок распространения', BLOCK_COLUMN),
            ('Sales TVR', SALES_TVR_COLUMN),
            ('GRP баинговая', GRP_BUYING_COLUMN),
        ]
        for display_name, aliases in required:
            if find_column(self.frame.columns, aliases) is None:
                raise MissingColumnError(self.TABLE_NAME, display_name)

        if not self._complete_audiences():
            raise MissingColumnError(self.TABLE_NAME, '<audience>__AVG TVR / <audience>__TVR')

        logger.info(f"Ratings table validation passed: {len(self.frame)} rows, "
                    f"{len(self._complete_audiences())} audiences")

    def _complete_audiences(self) -> List[str]:
        audiences = []
        for header in self.columns:
            match = _AVG_HEADER.match(header)
            if match and match[1]:
                base = match[1]
                if any(f"{base}{suffix}" in self.columns for suffix in TOTAL_TVR_SUFFIXES):
                    audiences.append(base)
        return audiences

    def available_audiences(self) -> List[str]:
        """Sorted target audiences that have rating columns in the table."""
        audiences = set()
        for header in self.columns:
            match = _AUDIENCE_HEADER.match(header)
            if match and match[1]:
                audiences.add(match[1])
        return sorted(audiences)

    def available_regions(self) -> List[str]:
        """Sorted region names as spelled in the table."""
        region_col = find_column(self.frame.columns, REGION_COLUMN)
        if region_col is None:
            raise MissingColumnError(self.TABLE_NAME, 'Регион')
        regions = {cell_text(v) for v in self.frame[region_col]}
        regions.discard('')
        return sorted(regions)

    def resolve_audience_columns(self, audience: str) -> Tuple[str, str]:
        """
        Find the average and total rating columns of a target audience.

        Returns:
            Tuple of (average rating column, total rating column)

        Raises:
            UnknownAudienceError: If either column is missing
        """
        avg_col = find_column(self.frame.columns, [f"{audience}{s}" for s in AVG_TVR_SUFFIXES])
        total_col = find_column(self.frame.columns, [f"{audience}{s}" for s in TOTAL_TVR_SUFFIXES])
        if avg_col is None or total_col is None:
            raise UnknownAudienceError(audience, self.available_audiences())
        return avg_col, total_col

    def column(self, aliases: List[str]) -> Optional[str]:
        return find_column(self.frame.columns, aliases)


class PriceTableParser:
    """
    Parser for the price list: one price (CPP) per channel and region.

    Orbital instances carry the ' - 0' suffix or an orbital block marker.
    """

    TABLE_NAME = 'price'

    def __init__(self, frame: pd.DataFrame):
        self.frame = frame

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> 'PriceTableParser':
        return cls(read_table(file_path))

    def validate(self):
        """
        Raises:
            EmptyTableError: If the table has no columns
            MissingColumnError: If region, channel or price column is missing
        """
        if self.frame is None or len(self.frame.columns) == 0:
            raise EmptyTableError(self.TABLE_NAME)

        for display_name, aliases in [('Регион', PRICE_REGION_COLUMN),
                                      ('Канал', PRICE_CHANNEL_COLUMN),
                                      ('CPP', PRICE_COLUMN)]:
            if find_column(self.frame.columns, aliases) is None:
                raise MissingColumnError(self.TABLE_NAME, display_name)

    def build_price_map(self) -> Dict[str, Dict[str, float]]:
        """
        Build the price lookup.

        Returns:
            Mapping of normalized region -> price lookup key -> price
        """
        self.validate()
        region_col = find_column(self.frame.columns, PRICE_REGION_COLUMN)
        channel_col = find_column(self.frame.columns, PRICE_CHANNEL_COLUMN)
        price_col = find_column(self.frame.columns, PRICE_COLUMN)
        block_col = find_column(self.frame.columns, BLOCK_COLUMN)

        price_map: Dict[str, Dict[str, float]] = {}
        skipped = 0

        for _, row in self.frame.iterrows():
            region = normalize_region_name(cell_text(row[region_col]))
            raw_channel = cell_text(row[channel_col])
            price = parse_number(row[price_col])

            if not region or not raw_channel:
                continue
            if price is None:
                skipped += 1
                logger.warning(f"Invalid price for {raw_channel} in {region}: {row[price_col]}")
                continue

            block_type = cell_text(row[block_col]) if block_col is not None else ''
            orbital = is_orbital(block_type, raw_channel)
            key = price_lookup_key(strip_orbital_suffix(raw_channel) if orbital else raw_channel, orbital)

            price_map.setdefault(region, {})[key] = price

        logger.info(f"Parsed prices for {sum(len(v) for v in price_map.values())} channels "
                    f"in {len(price_map)} regions ({skipped} rows skipped)")
        return price_map


def pre_parse_ratings(frame: pd.DataFrame) -> Dict[str, List[str]]:
    """
    List regions and target audiences found in a ratings table.

    Raises:
        MissingColumnError: If the region column is missing
        TableFormatError: If no region or no audience column is found
    """
    parser = RatingsTableParser(frame)
    regions = parser.available_regions()
    if not regions:
        raise TableFormatError("No regions found in the ratings table")

    audiences = parser.available_audiences()
    if not audiences:
        raise TableFormatError(
            "No target audience columns found in the ratings table (e.g. 'W 25-45 BC__AVG TVR')"
        )

    return {'regions': regions, 'target_audiences': audiences}
