#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Plan Comptable Mauritanien text export to JSON account list."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from engagement.utils import EngagementError


logger = logging.getLogger(__name__)

MOJIBAKE_MARKERS = ("Ã", "â€™", "â€œ")

_MOJIBAKE_RE = re.compile(r"Ã|â€™|â€œ|â€�|ï¿½")
_STRAY_A_GRAVE_RE = re.compile(r"Ã\s+(?=[A-Za-zÀ-ÿ])")
_SECTION_HEADER_RE = re.compile(r"^(\d{2})\s*[.]?\s+(.+?)\s*$")
_ACCOUNT_RE = re.compile(
    r"(?:(?:\(\s*0\s*\))\s*)?(\d{2,6})\s+([^\d]+?)(?=(?:\(\s*0\s*\))?\s*\d{2,6}\s+|$)"
)
_WHITESPACE_RE = re.compile(r"\s+")

REPLACEMENTS = {
    "â€™": "’",
    "â€œ": "“",
    "â€�": "”",
    "â€“": "–",
    "â€”": "—",
    "â€¦": "…",
    "Ã©": "é",
    "Ã¨": "è",
    "Ãª": "ê",
    "Ã«": "ë",
    "Ã\xa0": "à",
    "Ã¢": "â",
    "Ã¤": "ä",
    "Ã®": "î",
    "Ã¯": "ï",
    "Ã´": "ô",
    "Ã¶": "ö",
    "Ã»": "û",
    "Ã¼": "ü",
    "Ã¹": "ù",
    "Ã§": "ç",
    "Ã‰": "É",
    "Ãˆ": "È",
    "ÃŠ": "Ê",
    "Ã€": "À",
    "Ã‚": "Â",
    "ÃŽ": "Î",
    "Ã”": "Ô",
    "Ã›": "Û",
    "Ãœ": "Ü",
    "Ã‡": "Ç",
}


def _redecode(text: str) -> Optional[str]:
    """Undo one round of UTF-8 bytes read as a single-byte encoding."""
    for encoding in ("cp1252", "latin-1"):
        try:
            return text.encode(encoding).decode("utf-8")
        except UnicodeError:
            continue
    return None


def decode_best(raw: bytes) -> str:
    for encoding in ("utf-8", "cp1252"):
        try:
            text = raw.decode(encoding)
        except UnicodeDecodeError:
            continue
        if any(marker in text for marker in MOJIBAKE_MARKERS):
            return _redecode(text) or text
        return text
    return raw.decode("latin-1")


def fix_mojibake(value: str) -> str:
    fixed = value
    for bad, good in REPLACEMENTS.items():
        fixed = fixed.replace(bad, good)
    fixed = _STRAY_A_GRAVE_RE.sub("à ", fixed)
    if _MOJIBAKE_RE.search(fixed):
        decoded = _redecode(fixed)
        if decoded is not None and not _MOJIBAKE_RE.search(decoded):
            return decoded
    return fixed


def _account_class(code: str) -> int:
    if code.startswith("0") and len(code) >= 2 and code[1] in "678":
        return int(code[1])
    return int(code[0])


def parse_pcm_text(text: str) -> List[Dict[str, Any]]:
    """Accounts of the chart, in reading order.

    Two-digit lines open a section (except "Classe ..." titles). A line may
    hold several accounts; a ``(0)`` before a code sets ``zero_prefix``.
    """
    section_code = ""
    section_label = ""
    items: List[Dict[str, Any]] = []
    seen = set()

    for raw_line in text.splitlines():
        line = _WHITESPACE_RE.sub(" ", raw_line.strip())
        if not line:
            continue
        if line.lower().startswith(("2.1", "2.2")):
            continue

        header = _SECTION_HEADER_RE.match(line)
        if header:
            if not header.group(2).lower().startswith("classe"):
                section_code = header.group(1)
                section_label = fix_mojibake(header.group(2)).strip()
            continue

        for match in _ACCOUNT_RE.finditer(line):
            code = match.group(1)
            label = fix_mojibake(match.group(2)).strip()
            if label.endswith("."):
                label = label[:-1]
            if not label:
                continue
            if len(code) == 2 and code == section_code:
                continue
            if code in seen:
                continue
            seen.add(code)
            items.append(
                {
                    "classe": _account_class(code),
                    "section_code": section_code,
                    "section_label": section_label,
                    "account": code,
                    "label": label,
                    "zero_prefix": "(0)" in match.group(0),
                }
            )
    return items


def convert(input_path: str, output_path: str) -> Dict[str, Any]:
    source = Path(input_path)
    if not source.is_file():
        raise EngagementError("FILE_NOT_FOUND", f"File not found: {input_path}")
    items = parse_pcm_text(decode_best(source.read_bytes()))
    target = Path(output_path)
    if target.parent and not target.parent.exists():
        target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(items, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("%d accounts written to %s", len(items), target)
    return {"accounts": len(items), "output": str(target)}
