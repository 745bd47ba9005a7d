"""
Japanese address parser backed by the address master data.

Splits a free-text address into prefecture, city, town and the unconsumed
remainder. Matching is prefix based and greedy: the longest known city, then
the longest known town, wins. A stage that finds no match leaves its field
empty and stops; what is left becomes ``rest``. Data-source errors are not
caught here.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from jp_address_api.address_data import AddressDataClient, default_client

logger = logging.getLogger(__name__)

PREFECTURES: Tuple[str, ...] = (
    "北海道", "青森県", "岩手県", "宮城県", "秋田県", "山形県", "福島県",
    "茨城県", "栃木県", "群馬県", "埼玉県", "千葉県", "東京都", "神奈川県",
    "新潟県", "富山県", "石川県", "福井県", "山梨県", "長野県", "岐阜県",
    "静岡県", "愛知県", "三重県", "滋賀県", "京都府", "大阪府", "兵庫県",
    "奈良県", "和歌山県", "鳥取県", "島根県", "岡山県", "広島県", "山口県",
    "徳島県", "香川県", "愛媛県", "高知県", "福岡県", "佐賀県", "長崎県",
    "熊本県", "大分県", "宮崎県", "鹿児島県", "沖縄県",
)

KANJI_DIGITS = {"一": 1, "二": 2, "三": 3, "四": 4, "五": 5, "六": 6, "七": 7, "八": 8, "九": 9}
CHOME_REGEX = re.compile(r"^(?P<base>.*?)(?P<number>[一二三四五六七八九十]+)丁目$")
# Dash variants that NFKC leaves alone.
DASHES = str.maketrans({c: "-" for c in "\u2010\u2011\u2012\u2013\u2014\u2015\u2212"})


@dataclass(slots=True)
class ParsedAddress:
    prefecture: Optional[str] = None
    city: Optional[str] = None
    town: Optional[str] = None
    rest: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


def kanji_to_int(value: str) -> Optional[int]:
    """Convert a kanji numeral below 100 (``二十三`` -> 23)."""
    if not value:
        return None
    if "十" not in value:
        if len(value) != 1 or value not in KANJI_DIGITS:
            return None
        return KANJI_DIGITS[value]
    tens_part, _, ones_part = value.partition("十")
    if "十" in ones_part:
        return None
    tens = 1 if not tens_part else KANJI_DIGITS.get(tens_part)
    ones = 0 if not ones_part else KANJI_DIGITS.get(ones_part)
    if tens is None or ones is None:
        return None
    return tens * 10 + ones


def normalize(text: str) -> str:
    normalized = unicodedata.normalize("NFKC", text).translate(DASHES)
    return re.sub(r"\s+", "", normalized)


def _longest_prefix(text: str, candidates: Iterable[str]) -> Optional[str]:
    best: Optional[str] = None
    for candidate in candidates:
        if candidate and text.startswith(candidate) and (best is None or len(candidate) > len(best)):
            best = candidate
    return best


def _town_spellings(town: str) -> List[str]:
    spellings = [town]
    match = CHOME_REGEX.match(town)
    if match:
        number = kanji_to_int(match.group("number"))
        if number is not None:
            base = match.group("base")
            spellings.extend([f"{base}{number}丁目", f"{base}{number}-", f"{base}{number}"])
    return spellings


def _match_town(text: str, towns: Iterable[Dict[str, Any]]) -> Optional[Tuple[str, str]]:
    """Return ``(town_name, matched_text)`` for the longest matching spelling."""
    best: Optional[Tuple[str, str]] = None
    for entry in towns:
        name = str(entry.get("town") or "")
        if not name:
            continue
        for spelling in _town_spellings(name):
            if not text.startswith(spelling):
                continue
            following = text[len(spelling):len(spelling) + 1]
            # "神宮前1" must not swallow the "1" of "神宮前10".
            if spelling[-1:].isdigit() and following.isdigit():
                continue
            if best is None or len(spelling) > len(best[1]):
                best = (name, spelling)
    return best


class AddressParser:
    """Async parser resolving cities and towns through ``AddressDataClient``."""

    def __init__(self, client: AddressDataClient | None = None) -> None:
        self.client = client or default_client

    async def parse(self, text: str) -> ParsedAddress:
        remaining = normalize(text)
        result = ParsedAddress()

        prefecture = _longest_prefix(remaining, PREFECTURES)
        if prefecture is None:
            logger.debug("No prefecture matched")
            result.rest = remaining or None
            return result
        result.prefecture = prefecture
        remaining = remaining[len(prefecture):]

        cities = await self.client.fetch_cities()
        city = _longest_prefix(remaining, cities.get(prefecture, []))
        if city is None:
            logger.debug("No city matched in %s", prefecture)
            result.rest = remaining or None
            return result
        result.city = city
        remaining = remaining[len(city):]

        towns = await self.client.fetch_towns(prefecture, city)
        matched = _match_town(remaining, towns)
        if matched is not None:
            result.town, spelling = matched
            remaining = remaining[len(spelling):]

        result.rest = remaining or None
        return result

    async def aclose(self) -> None:
        await self.client.aclose()
