"""Bank directory - lookup bank metadata and supported APIs from CSV."""

from __future__ import annotations

import csv
import logging
from io import StringIO
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional

from multibank.domain.banking.ports import BankDirectoryPort, BankInfo
from multibank.domain.banking.value_objects import BankApi
from multibank_config import get_settings

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

# CSV column indices (0-based)
COL_BANK_CODE = 0
COL_BIC = 1
COL_NAME = 2
COL_BANK_APIS = 3  # comma separated, in order of preference
COL_FINTS_URL = 4
COL_BANK_API_BANK_CODE = 5


class BankDirectoryError(Exception):
    """Base exception for bank directory errors."""


class CsvFileNotFoundError(BankDirectoryError):
    """Raised when the CSV file cannot be found."""


class CsvParseError(BankDirectoryError):
    """Raised when the CSV file cannot be parsed."""


class InMemoryBankDirectory(BankDirectoryPort):
    """Bank directory over a fixed set of BankInfo entries."""

    def __init__(self, banks: Iterable[BankInfo] = ()):
        self._banks = {bank.bank_code: bank for bank in banks}

    def add(self, bank: BankInfo) -> None:
        self._banks[bank.bank_code] = bank

    def lookup(self, bank_code: str) -> Optional[BankInfo]:
        return self._banks.get(_normalize_bank_code(bank_code))


class CsvBankDirectory(BankDirectoryPort):
    """
    Bank directory loaded from a semicolon-delimited CSV file.

    Columns: bank code; BIC; name; bank APIs (comma separated, preferred
    first, e.g. ``XS2A,FINTS``); FinTS PIN/TAN URL; bank code the XS2A
    gateway expects if it differs. The first row is a header.
    """

    def __init__(
        self,
        csv_path: Optional[Path] = None,
        *,
        encoding: str = "utf-8",
    ):
        self._csv_path = csv_path or get_settings().bank_directory_path
        self._encoding = encoding
        self._index: dict[str, BankInfo] = {}
        self._loaded = False
        self._load_error: Optional[Exception] = None

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def load_error(self) -> Optional[Exception]:
        return self._load_error

    @property
    def bank_count(self) -> int:
        return len(self._index)

    def load(self) -> bool:
        """Load bank data from the CSV file on disk."""
        if self._loaded:
            return True

        try:
            with Path(self._csv_path).open(encoding=self._encoding, newline="") as f:
                self._process_csv_reader(csv.reader(f, delimiter=";"))
        except FileNotFoundError:
            self._load_error = CsvFileNotFoundError(
                f"CSV file not found: {self._csv_path}",
            )
            logger.warning("Bank directory CSV not found: %s", self._csv_path)
            return False
        except (CsvParseError, UnicodeDecodeError, csv.Error) as e:
            self._load_error = e
            logger.warning("Failed to parse bank directory CSV: %s", e)
            return False

        self._loaded = True
        self._load_error = None
        logger.info("Loaded %d banks from %s", len(self._index), self._csv_path)
        return True

    def load_from_bytes(self, csv_content: bytes, encoding: str = "utf-8") -> bool:
        """Load bank data from raw CSV bytes."""
        if self._loaded:
            return True

        try:
            text = csv_content.decode(encoding)
            self._process_csv_reader(csv.reader(StringIO(text), delimiter=";"))
        except (CsvParseError, UnicodeDecodeError, ValueError, csv.Error) as e:
            self._load_error = (
                e if isinstance(e, CsvParseError) else CsvParseError(str(e))
            )
            logger.warning("Failed to parse bank directory CSV bytes: %s", e)
            return False

        self._loaded = True
        self._load_error = None
        logger.info("Loaded %d banks from bytes", len(self._index))
        return True

    def lookup(self, bank_code: str) -> Optional[BankInfo]:
        # Lazy load on first access
        if not self._loaded:
            self.load()
        return self._index.get(_normalize_bank_code(bank_code))

    def __iter__(self) -> Iterator[BankInfo]:
        if not self._loaded:
            self.load()
        return iter(self._index.values())

    def _process_csv_reader(self, reader: Iterator[list[str]]) -> None:
        # Skip header row
        try:
            next(reader)
        except StopIteration:
            msg = "CSV file is empty"
            raise CsvParseError(msg) from None

        index: dict[str, BankInfo] = {}
        for row_num, row in enumerate(reader, start=2):
            bank = self._parse_row(row)
            if bank is None:
                logger.debug("Skipping row %d", row_num)
                continue
            # Only store first occurrence of each bank code
            index.setdefault(bank.bank_code, bank)

        if not index:
            msg = "No valid bank entries found in CSV"
            raise CsvParseError(msg)
        self._index = index

    @staticmethod
    def _parse_row(row: list[str]) -> Optional[BankInfo]:
        if len(row) <= COL_BANK_APIS:
            return None

        bank_code = _normalize_bank_code(row[COL_BANK_CODE])
        if not bank_code.isdigit() or len(bank_code) != 8:
            return None

        bank_apis = []
        for raw in row[COL_BANK_APIS].split(","):
            value = raw.strip().upper()
            if not value:
                continue
            try:
                bank_apis.append(BankApi(value))
            except ValueError:
                logger.debug("Unknown bank API '%s' for bank %s", value, bank_code)

        def column(index: int) -> Optional[str]:
            if len(row) <= index:
                return None
            return row[index].strip() or None

        return BankInfo(
            bank_code=bank_code,
            name=row[COL_NAME].strip(),
            bank_apis=tuple(bank_apis),
            bic=column(COL_BIC),
            fints_url=column(COL_FINTS_URL),
            bank_api_bank_code=column(COL_BANK_API_BANK_CODE),
        )


def _normalize_bank_code(bank_code: str) -> str:
    return bank_code.strip().replace(" ", "")
