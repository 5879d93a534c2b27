"""
AI 파일 검색 응답 스키마 및 응답 메시지 생성
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from desk_backend.repositories.hits import Hit
from desk_backend.repositories.member_repository import MemberRepository
from desk_backend.services.date_range_parser import DateRange
from desk_backend.services.query_parser import DEPARTMENT_LABELS
from desk_backend.services.search_conditions import COND_ORDER, Cond, SearchParams

RESULT_LIMIT = 10

SEARCH_TIP = "팁: 기간, 부서, 이름, 업무내용을 적어주세요. 예) 1월, 디자인팀, 김철수, 신제품 기획서"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AIFileRequest(CamelModel):
    """AI 파일 검색 요청"""
    conversation_id: Optional[str] = Field(None, description="대화 ID (그대로 돌려줌)")
    user_input: str = Field("", description="자연어 검색 문장", examples=["지난달 디자인팀 배너디자인 파일"])


class AIFileResultItem(CamelModel):
    uuid: str
    file_name: str
    file_size: int = 0
    created_at: Optional[datetime] = None
    tno: Optional[int] = None
    ticket_title: Optional[str] = None
    writer_email: Optional[str] = None
    receiver_email: Optional[str] = None
    source: str = Field("ticket", description="ticket | chat")


class AIFileResponse(CamelModel):
    conversation_id: Optional[str] = None
    results: List[AIFileResultItem] = Field(default_factory=list)
    ai_message: str = ""


def format_date_range(date_range: DateRange) -> str:
    """기간 → 사람이 읽기 쉬운 표현 ("3월 14일", "2025년 2월", "3월 1일 ~ 3월 14일")"""
    f, t = date_range.start_date, date_range.end_date
    if f.year != t.year:
        return f"{f.isoformat()} ~ {t.isoformat()}"
    if f == t:
        return f"{f.month}월 {f.day}일"
    if f.month == t.month and f.day == 1 and _is_last_day(t):
        return f"{f.year}년 {f.month}월"
    return f"{f.month}월 {f.day}일 ~ {t.month}월 {t.day}일"


def _is_last_day(d: date) -> bool:
    return d.day == calendar.monthrange(d.year, d.month)[1]


class ResponseBuilder:
    def __init__(self, member_repo: Optional[MemberRepository] = None, limit: int = RESULT_LIMIT) -> None:
        self.member_repo = member_repo
        self.limit = limit

    @staticmethod
    def to_result_item(hit: Hit) -> AIFileResultItem:
        return AIFileResultItem(
            uuid=hit.uuid,
            file_name=hit.file_name,
            file_size=hit.file_size,
            created_at=hit.created_at,
            tno=getattr(hit, "tno", None),
            ticket_title=getattr(hit, "title", None),
            writer_email=hit.uploader,
            receiver_email=hit.receiver,
            source=hit.kind,
        )

    def merge(self, *hit_lists: Iterable[Hit]) -> List[Hit]:
        """티켓/채팅 결과 병합: id 중복 제거 → 최신순(null 마지막, 동률은 id 오름차순) → 상위 N개"""
        seen = {}
        for hits in hit_lists:
            for hit in hits:
                seen.setdefault(hit.id, hit)

        merged = sorted(seen.values(), key=lambda h: h.id)
        merged.sort(key=lambda h: h.created_at or datetime.min, reverse=True)
        return merged[: self.limit]

    @staticmethod
    def success_message(count: int) -> str:
        return f"검색 결과 {count}건입니다. 우측 목록에서 다운로드할 파일을 선택하세요."

    @staticmethod
    def not_found_message() -> str:
        return f"원하시는 조건에 모두 일치하는 파일을 찾지 못했습니다.\n({SEARCH_TIP})"

    async def condition_phrases(self, conds: Iterable[Cond], params: SearchParams) -> List[str]:
        matched = set(conds)
        parts: List[str] = []
        for cond in COND_ORDER:
            if cond not in matched:
                continue
            if cond is Cond.DATE and params.date_range is not None:
                parts.append(format_date_range(params.date_range))
            elif cond is Cond.DEPT and params.department is not None:
                parts.append(DEPARTMENT_LABELS[params.department])
            elif cond is Cond.COUNTER and params.counter_principal:
                parts.append(await self._counter_display(params.counter_principal))
            elif cond is Cond.KEYWORD and params.tokens:
                quoted = ", ".join(f"'{t}'" for t in params.tokens[:3])
                parts.append(f"내용 {quoted}")
            elif cond is Cond.ROLE:
                if params.sender_only and not params.receiver_only:
                    parts.append("내가 보낸 파일")
                elif params.receiver_only and not params.sender_only:
                    parts.append("내가 받은 파일")
                else:
                    parts.append("내가 보내고 받은 파일")
        return parts

    async def matched_only_message(self, conds: Iterable[Cond], params: SearchParams) -> str:
        """일부 조건만 일치했을 때: 실제로 적용된 조건만 나열"""
        parts = await self.condition_phrases(conds, params)
        joined = ", ".join(parts) if parts else "일부 조건"
        return (
            f"요청하신 조건에 모두 일치하는 파일을 찾지 못해, {joined} 기준으로 검색된 결과를 보여드릴게요.\n"
            f"({SEARCH_TIP})"
        )

    async def _counter_display(self, email: str) -> str:
        if self.member_repo is not None:
            try:
                member = await self.member_repo.find_by_email(email)
            except Exception as e:
                print(f"⚠️ [AI File] 상대방 닉네임 조회 실패: {e}")
                member = None
            if member is not None and member.nickname:
                return f"{member.nickname}님"
        local = email.split("@", 1)[0]
        return f"{local}님" if local else email
