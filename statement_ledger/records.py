"""
Record types shared across the statement pipeline.

A FileRecord is what the loaders hand to the normalizer: either keyed rows
(tabular exports such as CSV and Excel) or raw text lines (PDF statements).
Transactions and balance records are plain dicts collected into DataFrames,
so their column layouts live here as well.
"""

from dataclasses import dataclass, field
from typing import Tuple

TABULAR = 'tabular'
TEXTUAL = 'textual'

# Column order of the normalized ledger
TRANSACTION_COLUMNS = [
    'id',
    'date',
    'description',
    'amount',
    'type',
    'category',
    'source',
    'account_number',
    'balance'
]

# Column order of the per-file balance validation table
BALANCE_COLUMNS = [
    'file_name',
    'opening_balance',
    'closing_balance',
    'validation_status',
    'discrepancy'
]


@dataclass(frozen=True)
class FileRecord:
    """Decoded contents of one statement file.

    Attributes:
        file_name (str): Name of the originating file
        kind (str): 'tabular' or 'textual'
        rows (tuple): Field-name to raw-value mappings (tabular only)
        lines (tuple): Raw text lines (textual only)
        preamble (tuple): Lines found above the header row (tabular only)
    """
    file_name: str
    kind: str
    rows: Tuple[dict, ...] = field(default_factory=tuple)
    lines: Tuple[str, ...] = field(default_factory=tuple)
    preamble: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.kind not in (TABULAR, TEXTUAL):
            raise ValueError(f"Invalid record kind: {self.kind}. Expected one of: {[TABULAR, TEXTUAL]}")
        # Freeze whatever sequence types the caller passed in
        object.__setattr__(self, 'rows', tuple(self.rows))
        object.__setattr__(self, 'lines', tuple(self.lines))
        object.__setattr__(self, 'preamble', tuple(self.preamble))

    @classmethod
    def tabular(cls, file_name, rows, preamble=()):
        return cls(file_name=file_name, kind=TABULAR, rows=rows, preamble=preamble)

    @classmethod
    def textual(cls, file_name, lines):
        return cls(file_name=file_name, kind=TEXTUAL, lines=lines)

    @property
    def is_tabular(self):
        return self.kind == TABULAR
