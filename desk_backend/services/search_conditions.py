"""검색 조건 집합 (기간/부서/상대방/키워드/보낸·받은)"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional, Tuple

from desk_backend.repositories.models import Department
from desk_backend.services.date_range_parser import DateRange


class Cond(str, enum.Enum):
    DATE = "DATE"
    DEPT = "DEPT"
    COUNTER = "COUNTER"
    KEYWORD = "KEYWORD"
    # 보낸/받은 필터 (DB 조건이 아닌 메모리 필터, 우선순위 최하)
    ROLE = "ROLE"


# 부분 일치 조합 선택 시 조건 가중치 (키워드 > 상대방 > 부서 > 기간 > 역할)
COND_WEIGHTS = {
    Cond.KEYWORD: 1000,
    Cond.COUNTER: 100,
    Cond.DEPT: 10,
    Cond.DATE: 1,
    Cond.ROLE: 0,
}

COND_ORDER: Tuple[Cond, ...] = (Cond.DATE, Cond.DEPT, Cond.COUNTER, Cond.KEYWORD, Cond.ROLE)


def subset_score(conds, count: int) -> int:
    """조건 조합 점수: 1000 × 가중치 합 + min(결과 수, 999)"""
    weight = sum(COND_WEIGHTS[c] for c in conds)
    return weight * 1000 + min(count, 999)


@dataclass(frozen=True)
class SearchParams:
    date_range: Optional[DateRange] = None
    department: Optional[Department] = None
    counter_principal: Optional[str] = None
    tokens: Tuple[str, ...] = field(default_factory=tuple)
    sender_only: bool = False
    receiver_only: bool = False

    @property
    def from_dt(self) -> Optional[datetime]:
        return self.date_range.start if self.date_range else None

    @property
    def to_dt(self) -> Optional[datetime]:
        return self.date_range.end if self.date_range else None

    def present_conditions(self) -> List[Cond]:
        present = []
        if self.date_range is not None:
            present.append(Cond.DATE)
        if self.department is not None:
            present.append(Cond.DEPT)
        if self.counter_principal:
            present.append(Cond.COUNTER)
        if self.tokens:
            present.append(Cond.KEYWORD)
        if self.sender_only or self.receiver_only:
            present.append(Cond.ROLE)
        return present

    def with_tokens(self, tokens: List[str]) -> "SearchParams":
        return replace(self, tokens=tuple(tokens))
