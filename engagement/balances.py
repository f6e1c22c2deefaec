#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Trial balance parser for "Inserer BG" workbooks.

The workbook carries two balance sheets, current period ("Inserer BG N") and
prior period ("Inserer BG N-1"). Each sheet has a fixed five-row header; data
starts on row 6 with the ledger account in column A, its label in column B and
the balance in column C. The first blank row ends the table.

Every host (storage trigger, offline import, client-side read) uses this
module; they only differ in the :class:`ParseOptions` preset they pass:

- ``lenient_options``: positional sheet fallback, unreadable amounts become 0,
  rows without an account are skipped
- ``strict_options``: no positional fallback, missing sheets raise
- ``client_options``: no positional fallback, missing sheets are reported in
  ``errors``, unreadable amounts keep their original text
"""

from __future__ import annotations

import io
import logging
import math
import re
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from engagement.config import load_ingestion_config
from engagement.models import BalanceRow
from engagement.utils import EngagementError


logger = logging.getLogger(__name__)

WorkbookSource = Union[bytes, bytearray, str, Path, io.IOBase]

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class ParseOptions:
    sheet_name_n: str = "Inserer BG N"
    sheet_name_n1: str = "Inserer BG N-1"
    first_data_row: int = 6
    positional_fallback: bool = True
    fallback_index_n: int = 1
    fallback_index_n1: int = 2
    raise_on_missing: bool = True
    keep_unparsed_text: bool = False
    zero_balance_ends_table: bool = True
    skip_blank_account: bool = True

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None, **overrides: Any) -> "ParseOptions":
        config = config or load_ingestion_config()
        options = cls(
            sheet_name_n=config["sheet_name_n"],
            sheet_name_n1=config["sheet_name_n1"],
            first_data_row=int(config["first_data_row"]),
            fallback_index_n=int(config["fallback_index_n"]),
            fallback_index_n1=int(config["fallback_index_n1"]),
        )
        for key, value in overrides.items():
            setattr(options, key, value)
        return options


def lenient_options(config: Optional[Dict[str, Any]] = None) -> ParseOptions:
    return ParseOptions.from_config(config)


def strict_options(config: Optional[Dict[str, Any]] = None) -> ParseOptions:
    return ParseOptions.from_config(config, positional_fallback=False)


def client_options(config: Optional[Dict[str, Any]] = None) -> ParseOptions:
    return ParseOptions.from_config(
        config,
        positional_fallback=False,
        raise_on_missing=False,
        keep_unparsed_text=True,
        zero_balance_ends_table=False,
        skip_blank_account=False,
    )


@dataclass
class BalanceParseResult:
    balance_n: List[BalanceRow] = field(default_factory=list)
    balance_n1: List[BalanceRow] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    sheet_names: List[str] = field(default_factory=list)
    resolved_n: str | None = None
    resolved_n1: str | None = None

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "balanceN": [row.to_dict() for row in self.balance_n],
            "balanceN1": [row.to_dict() for row in self.balance_n1],
            "errors": list(self.errors),
            "debug": {
                "sheetNames": list(self.sheet_names),
                "resolvedN": self.resolved_n,
                "resolvedN1": self.resolved_n1,
            },
        }


# ------------------------------------------------------------
# Sheet resolution
# ------------------------------------------------------------

def normalize_sheet_name(name: str) -> str:
    return name.strip().lower()


def find_sheet_name(sheet_names: Sequence[str], expected: str) -> Optional[str]:
    """Exact match first, then a trimmed case-insensitive match."""
    if expected in sheet_names:
        return expected
    target = normalize_sheet_name(expected)
    for name in sheet_names:
        if normalize_sheet_name(name) == target:
            return name
    return None


def _sheet_at(sheet_names: Sequence[str], index: int) -> Optional[str]:
    if 0 <= index < len(sheet_names):
        return sheet_names[index]
    return None


def resolve_sheets(sheet_names: Sequence[str], options: ParseOptions) -> Tuple[Optional[str], Optional[str]]:
    resolved_n = find_sheet_name(sheet_names, options.sheet_name_n)
    resolved_n1 = find_sheet_name(sheet_names, options.sheet_name_n1)
    if options.positional_fallback:
        if resolved_n is None:
            resolved_n = _sheet_at(sheet_names, options.fallback_index_n)
            if resolved_n is not None:
                logger.warning("sheet %r not found, falling back to %r", options.sheet_name_n, resolved_n)
        if resolved_n1 is None:
            resolved_n1 = _sheet_at(sheet_names, options.fallback_index_n1)
            if resolved_n1 is not None:
                logger.warning("sheet %r not found, falling back to %r", options.sheet_name_n1, resolved_n1)
    return resolved_n, resolved_n1


# ------------------------------------------------------------
# Cell values
# ------------------------------------------------------------

def cell_text(value: Any) -> str:
    """Render a cell value the way it reads in the sheet."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _normalize_decimal(text: str) -> str:
    comma = text.rfind(",")
    dot = text.rfind(".")
    if comma != -1 and dot != -1:
        if comma > dot:
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")
    if comma != -1:
        if text.count(",") > 1:
            return text.replace(",", "")
        return text.replace(",", ".")
    if dot != -1 and text.count(".") > 1:
        return text.replace(".", "")
    return text


def amount_from_text(text: str) -> Optional[float]:
    """Read an amount written with European or English separators.

    ``"1 234,56"`` -> 1234.56, ``"2,500.00"`` -> 2500.0, ``"(500,00)"`` -> -500.0.
    Returns None when the text is not a finite number.
    """
    raw = text.strip()
    negative = raw.startswith("(") and raw.endswith(")")
    cleaned = _WHITESPACE_RE.sub("", raw.replace("(", "").replace(")", ""))
    cleaned = _normalize_decimal(cleaned)
    if not _NUMBER_RE.match(cleaned):
        return None
    number = float(cleaned)
    if not math.isfinite(number):
        return None
    return -number if negative else number


def parse_amount(value: Any, keep_unparsed_text: bool = False) -> Union[int, float, str]:
    """Balance cell to number.

    Numeric cells pass through. Empty cells give ``''``. Text that cannot be
    read becomes 0, or stays as the original text with ``keep_unparsed_text``.
    """
    if _is_number(value):
        if math.isfinite(value):
            return value
        return cell_text(value) if keep_unparsed_text else 0
    raw = cell_text(value).strip()
    if not raw:
        return ""
    number = amount_from_text(raw)
    if number is None:
        return raw if keep_unparsed_text else 0
    return number


# ------------------------------------------------------------
# Rows
# ------------------------------------------------------------

def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def parse_balance_rows(rows: Iterable[Sequence[Any]], options: Optional[ParseOptions] = None) -> List[BalanceRow]:
    """Turn data rows (already past the header) into balance rows.

    The first row whose account, label and balance are all blank ends the
    table; nothing after it is read.
    """
    options = options or lenient_options()
    parsed: List[BalanceRow] = []
    for row in rows:
        cells = list(row[:3]) + [None] * (3 - len(row[:3]))
        account_raw, label_raw, balance_raw = cells
        account = cell_text(account_raw).strip()
        label = cell_text(label_raw).strip()

        if options.keep_unparsed_text:
            if _is_blank(account_raw) and _is_blank(label_raw) and _is_blank(balance_raw):
                break
        else:
            balance_text = cell_text(balance_raw).strip()
            number = balance_raw if _is_number(balance_raw) else amount_from_text(balance_text)
            ends_on_zero = options.zero_balance_ends_table and number == 0
            if account == "" and label == "" and (balance_text == "" or ends_on_zero):
                break

        balance = parse_amount(balance_raw, keep_unparsed_text=options.keep_unparsed_text)
        if options.skip_blank_account and account == "":
            continue
        if account == "" and label == "" and balance == "":
            continue
        if balance == "" and not options.keep_unparsed_text:
            balance = 0
        parsed.append(BalanceRow(account=account, label=label, balance=balance))

    logger.debug("rows parsed: %d", len(parsed))
    return parsed


def read_sheet_rows(worksheet, first_data_row: int = 6) -> Iterator[Tuple[Any, ...]]:
    """Rows A-C from the first data row, read lazily."""
    for row in worksheet.iter_rows(min_row=first_data_row, max_col=3, values_only=True):
        yield tuple(row)


# ------------------------------------------------------------
# Workbook
# ------------------------------------------------------------

def load_workbook(source: WorkbookSource):
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(bytes(source))
    elif isinstance(source, Path):
        source = str(source)
    try:
        return openpyxl.load_workbook(source, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise EngagementError("WORKBOOK_INVALID", f"Unable to read workbook: {exc}") from exc


def missing_sheets_error(missing: List[str], resolved: Dict[str, Optional[str]], available: List[str]) -> EngagementError:
    return EngagementError(
        "SHEETS_MISSING",
        f"Missing sheets: {', '.join(missing)}. Available sheets: {', '.join(available)}",
        {"missing": missing, "resolved": resolved, "available": available},
    )


def parse_workbook(source: WorkbookSource, options: Optional[ParseOptions] = None) -> BalanceParseResult:
    """Parse both balance sheets of a workbook."""
    options = options or lenient_options()
    workbook = load_workbook(source)
    try:
        sheet_names = list(workbook.sheetnames)
        logger.info("workbook sheets: %s", sheet_names)
        resolved_n, resolved_n1 = resolve_sheets(sheet_names, options)

        missing: List[str] = []
        if resolved_n is None:
            missing.append(options.sheet_name_n)
        if resolved_n1 is None:
            missing.append(options.sheet_name_n1)
        if missing and options.raise_on_missing:
            raise missing_sheets_error(
                missing,
                {options.sheet_name_n: resolved_n, options.sheet_name_n1: resolved_n1},
                sheet_names,
            )

        result = BalanceParseResult(
            sheet_names=sheet_names,
            resolved_n=resolved_n,
            resolved_n1=resolved_n1,
            errors=[f"Sheet missing: {name}" for name in missing],
        )
        if resolved_n is not None:
            result.balance_n = parse_balance_rows(
                read_sheet_rows(workbook[resolved_n], options.first_data_row), options
            )
        if resolved_n1 is not None:
            result.balance_n1 = parse_balance_rows(
                read_sheet_rows(workbook[resolved_n1], options.first_data_row), options
            )
        if result.errors:
            logger.error(
                "balance sheets missing: %s (available: %s)", result.errors, sheet_names
            )
        logger.info(
            "balance rows parsed: N=%d N-1=%d", len(result.balance_n), len(result.balance_n1)
        )
        return result
    finally:
        workbook.close()
