"""
자연어 파일 검색 질의 파서

"지난달 디자인팀 안은지님이랑 주고받은 배너디자인 파일" 같은 문장에서
기간 / 상대방 / 부서 / 보낸·받은 여부 / 키워드를 규칙 기반으로 추출하고,
필요하면 LLM 파싱 결과(JSON)를 병합한다.
"""

from __future__ import annotations

import asyncio
import re
import time
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from desk_backend.repositories.member_repository import MemberRepository
from desk_backend.repositories.models import Department
from desk_backend.services.date_range_parser import DateRange, parse_date_range, strip_date_tokens
from desk_backend.services.keyword_tokenizer import clean_keyword_text

EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

_SENDER_PATTERN = re.compile(r"보낸|전송한|전달한")
_RECEIVER_PATTERN = re.compile(r"받은|수신한")
# "주고받은"은 보낸/받은 어느 쪽도 아님 (전체 조회)
_GIVE_AND_TAKE_PATTERN = re.compile(r"주고\s*받")
_ACTION_VERB_PATTERN = re.compile(r"주고\s*받은|보낸|받은|얘기한|대화한|전송한|전달한|수신한")

DEPARTMENT_LABELS: Dict[Department, str] = {
    Department.DESIGN: "디자인팀",
    Department.DEVELOPMENT: "개발팀",
    Department.SALES: "영업팀",
    Department.HR: "인사팀",
    Department.FINANCE: "재무팀",
    Department.PLANNING: "기획팀",
}
_KOREAN_DEPARTMENTS = {label[:-1]: dept for dept, label in DEPARTMENT_LABELS.items()}

# "배너디자인"을 디자인팀으로 오인하지 않도록 팀/부서 접미어가 있어야 인식
_DEPARTMENT_KO_PATTERN = re.compile(r"(디자인|개발|영업|인사|재무|기획)\s*(팀|부서)(이랑|랑|과|와)?")
_DEPARTMENT_EN_PATTERN = re.compile(r"\b(DESIGN|DEVELOPMENT|SALES|HR|FINANCE|PLANNING)\b", re.IGNORECASE)

NICKNAME_CACHE_TTL_SECONDS = 300


@dataclass(frozen=True)
class ParsedQuery:
    date_range: Optional[DateRange] = None
    counter_principal: Optional[str] = None
    department: Optional[Department] = None
    keyword: str = ""
    sender_only: bool = False
    receiver_only: bool = False

    def has_signal(self) -> bool:
        """기간/상대방/부서/키워드 중 하나라도 추출되었는지"""
        return (
            self.date_range is not None
            or bool(self.counter_principal)
            or self.department is not None
            or bool(self.keyword.strip())
        )

    def canonical_text(self) -> str:
        """다시 파싱하면 같은 ParsedQuery가 나오는 정규화 문장"""
        parts: List[str] = []
        if self.date_range is not None:
            start, end = self.date_range.start_date, self.date_range.end_date
            parts.append(start.isoformat() if start == end else f"{start.isoformat()} ~ {end.isoformat()}")
        if self.counter_principal:
            parts.append(self.counter_principal)
        if self.department is not None:
            parts.append(DEPARTMENT_LABELS[self.department])
        if self.keyword:
            parts.append(self.keyword)
        if self.sender_only:
            parts.append("보낸")
        if self.receiver_only:
            parts.append("받은")
        return " ".join(parts)


class NicknameCache:
    """활성 닉네임 목록 캐시 (프로세스 공유, TTL 5분, 긴 닉네임 우선 정렬)

    읽기는 불변 튜플 스냅샷을 그대로 반환하고, 갱신은 asyncio.Lock 으로 한 번에 하나만 수행한다.
    로드 실패 시 이전 스냅샷을 유지한다.
    """

    def __init__(
        self,
        ttl_seconds: float = NICKNAME_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._snapshot: Tuple[str, ...] = tuple()
        self._loaded_at: Optional[float] = None
        self._lock = asyncio.Lock()

    def _is_fresh(self) -> bool:
        return self._loaded_at is not None and (self._clock() - self._loaded_at) < self.ttl_seconds

    @property
    def snapshot(self) -> Tuple[str, ...]:
        return self._snapshot

    async def get(self, loader: Callable[[], Awaitable[List[str]]]) -> Tuple[str, ...]:
        if self._is_fresh():
            return self._snapshot

        async with self._lock:
            if self._is_fresh():
                return self._snapshot
            try:
                loaded = await loader()
            except Exception as e:
                print(f"⚠️ [Nickname Cache] 닉네임 캐시 로드 실패, 이전 목록 유지: {e}")
                return self._snapshot

            nicknames = {n.strip() for n in loaded if n and n.strip()}
            self._snapshot = tuple(sorted(nicknames, key=lambda n: (-len(n), n)))
            self._loaded_at = self._clock()
            return self._snapshot

    def invalidate(self) -> None:
        self._loaded_at = None


_NICKNAME_CACHE: Optional[NicknameCache] = None


def get_nickname_cache() -> NicknameCache:
    """프로세스 전역 닉네임 캐시 (싱글톤)"""
    global _NICKNAME_CACHE
    if _NICKNAME_CACHE is None:
        _NICKNAME_CACHE = NicknameCache()
    return _NICKNAME_CACHE


def parse_department(text: Optional[str]) -> Optional[Department]:
    if not text:
        return None
    m = _DEPARTMENT_EN_PATTERN.search(text)
    if m:
        return Department(m.group(1).upper())
    m = _DEPARTMENT_KO_PATTERN.search(text)
    if m:
        return _KOREAN_DEPARTMENTS[m.group(1)]
    return None


def strip_department_tokens(text: str) -> str:
    t = _DEPARTMENT_KO_PATTERN.sub(" ", text)
    t = _DEPARTMENT_EN_PATTERN.sub(" ", t)
    return re.sub(r"\s+", " ", t).strip()


def strip_nickname_token(text: str, nickname: str) -> str:
    """닉네임과 뒤따르는 호칭/조사까지 제거 ("안은지님이랑" → "")"""
    pattern = re.escape(nickname) + r"\s*(님|씨)?\s*(이랑|랑|과|와|한테|에게|하고)?"
    return re.sub(r"\s+", " ", re.sub(pattern, " ", text)).strip()


def find_nickname_substring(text: str, nicknames: Tuple[str, ...]) -> Optional[str]:
    """문장 안에 포함된 닉네임 (긴 닉네임 우선, "은지" ⊂ "안은지" 충돌 방지)"""
    if not text:
        return None
    for nickname in nicknames:
        if len(nickname) < 2:
            continue
        if nickname in text:
            return nickname
    return None


def _parse_llm_department(value: Any) -> Optional[Department]:
    if not isinstance(value, str) or not value.strip():
        return None
    v = value.strip()
    try:
        return Department(v.upper())
    except ValueError:
        pass
    korean = re.sub(r"\s*(팀|부서)$", "", v)
    return _KOREAN_DEPARTMENTS.get(korean)


def _parse_llm_date_range(value: Any) -> Optional[DateRange]:
    if not isinstance(value, dict):
        return None
    from_str, to_str = value.get("from"), value.get("to")
    if not isinstance(from_str, str) or not isinstance(to_str, str):
        return None
    try:
        from_date = date.fromisoformat(from_str.strip())
        to_date = date.fromisoformat(to_str.strip())
    except ValueError:
        print(f"⚠️ [AI File Parse] 날짜 파싱 실패: {from_str} ~ {to_str}")
        return None
    if from_date > to_date:
        return None
    return DateRange.of(from_date, to_date)


class QueryParser:
    """규칙 기반 질의 파서 + LLM 결과 병합"""

    def __init__(
        self,
        member_repo: MemberRepository,
        nickname_cache: Optional[NicknameCache] = None,
        today_provider: Callable[[], date] = date.today,
    ) -> None:
        self.member_repo = member_repo
        self.nickname_cache = nickname_cache if nickname_cache is not None else get_nickname_cache()
        self.today_provider = today_provider

    async def parse(self, text: Optional[str]) -> ParsedQuery:
        if text is None or not text.strip():
            return ParsedQuery()
        t = text.strip()

        # 1) 보낸/받은 (제거 전에 먼저 감지)
        role_text = _GIVE_AND_TAKE_PATTERN.sub(" ", t)
        sender_only = _SENDER_PATTERN.search(role_text) is not None
        receiver_only = _RECEIVER_PATTERN.search(role_text) is not None

        # 2) 기간
        date_range = parse_date_range(t, self.today_provider())
        t = strip_date_tokens(t)

        # 3) 상대방 (이메일 > 닉네임 부분문자열)
        counter: Optional[str] = None
        email_match = EMAIL_PATTERN.search(t)
        if email_match:
            counter = email_match.group()
            t = t.replace(counter, " ").strip()
        else:
            nicknames = await self.nickname_cache.get(self.member_repo.find_all_active_nicknames)
            nickname = find_nickname_substring(t, nicknames)
            if nickname:
                member = await self.member_repo.find_by_nickname(nickname)
                if member is not None:
                    counter = member.email
                    t = strip_nickname_token(t, nickname)

        # 4) 부서
        department = parse_department(t)
        if department is not None:
            t = strip_department_tokens(t)

        # 5) 남은 텍스트 → 키워드
        t = _ACTION_VERB_PATTERN.sub(" ", t)
        keyword = clean_keyword_text(t)

        parsed = ParsedQuery(
            date_range=date_range,
            counter_principal=counter,
            department=department,
            keyword=keyword,
            sender_only=sender_only,
            receiver_only=receiver_only,
        )
        print(
            f"🔍 [AI File Parse] input='{text}' range={date_range} counter={counter} "
            f"dept={department.value if department else None} keyword='{keyword}' "
            f"senderOnly={sender_only} receiverOnly={receiver_only}"
        )
        return parsed

    async def merge_llm_payload(self, parsed: ParsedQuery, payload: Optional[Dict[str, Any]]) -> ParsedQuery:
        """LLM 파싱 결과 병합

        - 기간: from/to 모두 유효하면 덮어쓰기
        - 상대방/부서: 비어 있을 때만 채움 (닉네임은 회원 조회로 이메일 변환)
        - 키워드: 비어 있거나 LLM 키워드가 더 길면 교체
        - 보낸/받은: LLM 값이 있고 다르면 채택
        """
        if not payload:
            return parsed

        updates: Dict[str, Any] = {}

        date_range = _parse_llm_date_range(payload.get("dateRange"))
        if date_range is not None:
            updates["date_range"] = date_range
            print(f"🔍 [AI File Parse] AI가 날짜 추출: {date_range.start_date} ~ {date_range.end_date}")

        counter_value = payload.get("counterEmail")
        if not parsed.counter_principal and isinstance(counter_value, str) and counter_value.strip():
            candidate = counter_value.strip()
            if EMAIL_PATTERN.fullmatch(candidate):
                updates["counter_principal"] = candidate
            else:
                member = await self.member_repo.find_by_nickname(candidate)
                if member is not None:
                    updates["counter_principal"] = member.email

        if parsed.department is None:
            department = _parse_llm_department(payload.get("department"))
            if department is not None:
                updates["department"] = department

        keyword_value = payload.get("keyword")
        if isinstance(keyword_value, str) and keyword_value.strip():
            llm_keyword = keyword_value.strip()
            if not parsed.keyword or len(parsed.keyword) < len(llm_keyword):
                updates["keyword"] = llm_keyword

        for field_name, key in (("sender_only", "senderOnly"), ("receiver_only", "receiverOnly")):
            value = payload.get(key)
            if isinstance(value, bool) and value != getattr(parsed, field_name):
                updates[field_name] = value

        if not updates:
            return parsed
        return replace(parsed, **updates)
