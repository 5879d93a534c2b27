"""
자연어 기간 표현 파싱

"오늘", "지난달", "3월", "1월부터 3월까지", "2주 전", "사흘", "2025-01-15" 등을
[시작일 00:00:00, 종료일 23:59:59.999999] 범위로 변환한다.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    @classmethod
    def of(cls, start: date, end: date) -> "DateRange":
        return cls(datetime.combine(start, time.min), datetime.combine(end, time.max))

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def end_date(self) -> date:
        return self.end.date()

    def contains(self, value: Optional[datetime]) -> bool:
        return value is not None and self.start <= value <= self.end


_ISO_DATE = re.compile(r"(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})")
_MONTH_RANGE = re.compile(r"(\d{1,2})월.*?(\d{1,2})월")
_MONTH = re.compile(r"(\d{1,2})월")
_RELATIVE = re.compile(r"(\d{1,3})\s*(일|주|달|개월|년)\s*(전|후|남음)")
_ONE_MONTH_AGO = re.compile(r"한\s*달\s*전")
_TWO_MONTHS_AGO = re.compile(r"두\s*달\s*전")
_NEXT_YEAR_HINT = re.compile(r"내년|다음\s*해")
_HEDGE = re.compile(r"쯤|정도")


def shift_months(d: date, months: int) -> date:
    """월 단위 이동 (말일 보정: 3/31 - 1개월 → 2/28)"""
    month_index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _month_span(year: int, month: int) -> DateRange:
    last = calendar.monthrange(year, month)[1]
    return DateRange.of(date(year, month, 1), date(year, month, last))


def _parse_iso(t: str) -> Optional[DateRange]:
    found = []
    for m in _ISO_DATE.finditer(t):
        try:
            found.append(date(int(m.group(1)), int(m.group(2)), int(m.group(3))))
        except ValueError:
            continue
    if not found:
        return None
    if len(found) >= 2:
        return DateRange.of(min(found[:2]), max(found[:2]))
    return DateRange.of(found[0], found[0])


def _parse_month_range(t: str, today: date) -> Optional[DateRange]:
    m = _MONTH_RANGE.search(t)
    if not m:
        return None
    start_month, end_month = int(m.group(1)), int(m.group(2))
    if not (1 <= start_month <= 12 and 1 <= end_month <= 12):
        return None

    year = today.year
    wraps = end_month < start_month
    # A: 올해 시작 (연말을 넘기면 내년 종료), B: 올해 종료 (연말을 넘기면 작년 시작)
    a = DateRange.of(date(year, start_month, 1), _month_span(year + 1 if wraps else year, end_month).end_date)
    b = DateRange.of(date(year - 1 if wraps else year, start_month, 1), _month_span(year, end_month).end_date)

    in_a = a.start_date <= today <= a.end_date
    in_b = b.start_date <= today <= b.end_date
    if in_a and not in_b:
        return a
    if in_b and not in_a:
        return b

    def distance(r: DateRange) -> int:
        return min(abs((today - r.start_date).days), abs((today - r.end_date).days))

    return a if distance(a) <= distance(b) else b


def _parse_month(t: str, today: date) -> Optional[DateRange]:
    m = _MONTH.search(t)
    if not m:
        return None
    month = int(m.group(1))
    if not 1 <= month <= 12:
        return None

    year = today.year
    if _NEXT_YEAR_HINT.search(t):
        year = today.year + 1
    elif "재작년" in t:
        year = today.year - 2
    elif "작년" in t:
        year = today.year - 1
    elif month > today.month:
        # 현재 월보다 뒤의 월은 지난해로 간주 (1월에 "12월" → 작년 12월)
        year = today.year - 1
    return _month_span(year, month)


def _parse_literal(t: str, today: date) -> Optional[DateRange]:
    if "오늘" in t:
        return DateRange.of(today, today)
    if "그제" in t or "그저께" in t:
        d = today - timedelta(days=2)
        return DateRange.of(d, d)
    if "어제" in t:
        d = today - timedelta(days=1)
        return DateRange.of(d, d)

    # 주/달은 달력 기준 (월요일 시작)
    monday = today - timedelta(days=today.weekday())
    if re.search(r"이번\s*주", t):
        return DateRange.of(monday, monday + timedelta(days=6))
    if re.search(r"(지난|저번)\s*주", t):
        start = monday - timedelta(days=7)
        return DateRange.of(start, start + timedelta(days=6))
    if re.search(r"이번\s*달", t):
        return _month_span(today.year, today.month)
    if re.search(r"(지난|저번)\s*달", t):
        prev = shift_months(today.replace(day=1), -1)
        return _month_span(prev.year, prev.month)

    if "올해" in t:
        return DateRange.of(date(today.year, 1, 1), date(today.year, 12, 31))
    if "재작년" in t:
        return DateRange.of(date(today.year - 2, 1, 1), date(today.year - 2, 12, 31))
    if "작년" in t:
        return DateRange.of(date(today.year - 1, 1, 1), date(today.year - 1, 12, 31))
    return None


def _parse_relative(t: str, today: date) -> Optional[DateRange]:
    m = _RELATIVE.search(t)
    if not m:
        return None
    n, unit, direction = int(m.group(1)), m.group(2), m.group(3)

    if unit == "일":
        delta_date = today + timedelta(days=n if direction != "전" else -n)
    elif unit == "주":
        delta_date = today + timedelta(weeks=n if direction != "전" else -n)
    elif unit in ("달", "개월"):
        delta_date = shift_months(today, n if direction != "전" else -n)
    else:
        delta_date = shift_months(today, 12 * (n if direction != "전" else -n))

    if direction == "전":
        return DateRange.of(delta_date, today)
    return DateRange.of(today, delta_date)


def _parse_word_quantity(t: str, today: date) -> Optional[DateRange]:
    if "이주일" in t or "2주일" in t:
        return DateRange.of(today - timedelta(days=13), today)
    if "일주일" in t or "1주일" in t:
        return DateRange.of(today - timedelta(days=6), today)
    if "사흘" in t:
        return DateRange.of(today - timedelta(days=2), today)
    if "나흘" in t:
        return DateRange.of(today - timedelta(days=3), today)
    if _ONE_MONTH_AGO.search(t):
        return DateRange.of(shift_months(today, -1), today)
    if _TWO_MONTHS_AGO.search(t):
        return DateRange.of(shift_months(today, -2), today)
    return None


def parse_date_range(text: Optional[str], today: Optional[date] = None) -> Optional[DateRange]:
    """자연어 기간 표현 → DateRange (인식 실패 시 None)

    우선순위: ISO 날짜 > 월 범위 > 단일 월 > 고정 표현(오늘/지난주/작년 …) > 숫자 상대기간 > 단어 기간
    "쯤", "정도"는 대략의 의미이므로 제거 후 파싱한다.
    """
    if not text or not text.strip():
        return None
    if today is None:
        today = date.today()

    t = _HEDGE.sub("", text.strip())

    for parser in (
        lambda: _parse_iso(t),
        lambda: _parse_month_range(t, today),
        lambda: _parse_month(t, today),
        lambda: _parse_literal(t, today),
        lambda: _parse_relative(t, today),
        lambda: _parse_word_quantity(t, today),
    ):
        result = parser()
        if result is not None:
            return result
    return None


# 기간 표현 제거 순서: 긴 표현 먼저 ("재작년" → "작년", "그저께" → "그제")
_DATE_TOKEN_PATTERNS = [
    _ISO_DATE,
    re.compile(r"(\d{1,3})\s*(일|주|달|개월|년)\s*(전|후|남음)"),
    re.compile(r"\d{1,2}월\s*(중에|중|에서|부터|사이에|사이|까지|에)?"),
    re.compile(r"(한|두)\s*달\s*전"),
    re.compile(r"(이번|지난|저번)\s*(주|달)"),
    re.compile(r"그저께|그제|어제|오늘|올해|재작년|작년|내년|다음\s*해"),
    re.compile(r"이주일|일주일|[12]주일|사흘|나흘"),
    _HEDGE,
]


def strip_date_tokens(text: Optional[str]) -> str:
    """인식 가능한 기간 표현을 모두 제거한 문자열"""
    if not text:
        return ""
    t = text
    for pattern in _DATE_TOKEN_PATTERNS:
        t = pattern.sub(" ", t)
    return re.sub(r"\s+", " ", t).strip()
