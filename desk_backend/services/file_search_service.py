"""
Desk AI File Search Service

자연어 문장으로 티켓/채팅 첨부파일을 찾는 검색 서비스
- 규칙 기반 파싱 (기간/상대방/부서/보낸·받은/키워드) + 필요 시 Bedrock LLM 파싱 병합
- 엄격 검색 (모든 조건 AND) → LLM 재파싱 → AI 키워드 보정 → 조건 부분집합(overlap) 검색 → 안내 메시지
- 결과는 접근 가능한 파일만, 최신순 최대 10건
"""

from __future__ import annotations

import itertools
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from desk_backend.repositories.chat_file_repository import ChatFileRepository
from desk_backend.repositories.hits import ChatHit, Hit, TicketHit
from desk_backend.repositories.member_repository import MemberRepository
from desk_backend.repositories.ticket_file_repository import TicketFileRepository
from desk_backend.services.keyword_tokenizer import (
    KeywordTokenizer,
    clean_keyword_text,
    contains_hangul,
    seed_tokens,
)
from desk_backend.services.llm_client import build_file_search_parse_prompt, parse_llm_json
from desk_backend.services.query_parser import ParsedQuery, QueryParser
from desk_backend.services.response_builder import AIFileRequest, AIFileResponse, ResponseBuilder
from desk_backend.services.search_conditions import Cond, SearchParams, subset_score
from desk_backend.services.text_similarity import score_hit

PAGE_SIZE = 30
SIMILARITY_FETCH_SIZE = 100
SIMILARITY_THRESHOLD = 0.7

# 기간을 애매하게 말한 경우 LLM 파싱을 함께 사용
_HEDGE_PATTERN = re.compile(r"쯤|정도|한\s?달\s?전|두\s?달\s?전")


@dataclass
class SearchResult:
    ticket_hits: List[TicketHit] = field(default_factory=list)
    chat_hits: List[ChatHit] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.ticket_hits and not self.chat_hits

    def count(self) -> int:
        return len(self.ticket_hits) + len(self.chat_hits)


@dataclass(frozen=True)
class SearchAnswer:
    results: List[Hit]
    message: str
    conditions: Tuple[Cond, ...] = tuple()
    partial: bool = False


class _SearchContext:
    """요청 단위 상태: LLM 은 요청당 최대 1회 호출하고 결과를 재사용"""

    def __init__(self, text: str) -> None:
        self.text = text
        self.llm_called = False
        self.llm_payload: Optional[Dict[str, Any]] = None


class FileSearchService:
    def __init__(
        self,
        ticket_repo: TicketFileRepository,
        chat_repo: ChatFileRepository,
        member_repo: MemberRepository,
        parser: Optional[QueryParser] = None,
        tokenizer: Optional[KeywordTokenizer] = None,
        response_builder: Optional[ResponseBuilder] = None,
        llm_client: Optional[Any] = None,
        today_provider: Callable[[], date] = date.today,
    ) -> None:
        self.ticket_repo = ticket_repo
        self.chat_repo = chat_repo
        self.member_repo = member_repo
        self.today_provider = today_provider
        self.parser = parser or QueryParser(member_repo, today_provider=today_provider)
        self.tokenizer = tokenizer or KeywordTokenizer()
        self.response_builder = response_builder or ResponseBuilder(member_repo)
        self.llm_client = llm_client

    async def chat(self, principal: str, request: AIFileRequest) -> AIFileResponse:
        """POST /api/ai/file/chat 처리"""
        answer = await self.search(principal, request.user_input)
        return AIFileResponse(
            conversation_id=request.conversation_id,
            results=[self.response_builder.to_result_item(h) for h in answer.results],
            ai_message=answer.message,
        )

    async def search(self, principal: str, text: Optional[str]) -> SearchAnswer:
        text = (text or "").strip()
        if not text:
            return SearchAnswer(results=[], message=self.response_builder.not_found_message())

        ctx = _SearchContext(text)

        # [1] 규칙 기반 파싱 (+ 신호가 없거나 애매한 기간 표현이면 LLM 병합)
        parsed = await self.parser.parse(text)
        if not parsed.has_signal() or _HEDGE_PATTERN.search(text):
            parsed = await self.parser.merge_llm_payload(parsed, await self._llm_payload(ctx))

        params = self._build_params(parsed)
        strict = params.present_conditions()

        # [2] 엄격 검색
        result = await self._run_search(principal, params, strict)
        if not result.is_empty():
            return self._answer(result, strict)
        print(f"🔍 [AI File] 엄격 검색 0건: conds={[c.value for c in strict]} tokens={list(params.tokens)}")

        # [3] LLM 재파싱 후 재검색
        reparsed = await self.parser.merge_llm_payload(parsed, await self._llm_payload(ctx))
        if reparsed != parsed:
            parsed = reparsed
            params = self._build_params(parsed)
            strict = params.present_conditions()
            result = await self._run_search(principal, params, strict)
            if not result.is_empty():
                return self._answer(result, strict)

        # [4] 붙여 쓴 복합어/짧은 토큰이면 AI 키워드로 보정
        if self.should_refine_keyword(parsed.keyword):
            ai_tokens = await self._ai_keyword_tokens(ctx)
            if ai_tokens and tuple(ai_tokens) != params.tokens:
                ai_params = params.with_tokens(ai_tokens)
                ai_strict = ai_params.present_conditions()
                result = await self._run_search(principal, ai_params, ai_strict)
                if not result.is_empty():
                    return self._answer(result, ai_strict)
                # 이후 overlap 단계에서도 AI 토큰 사용
                params, strict = ai_params, ai_strict

        # [5] overlap: 조건 개수를 줄여가며 가장 점수가 높은 조합 1개만 사용
        best: Optional[SearchResult] = None
        best_conds: Tuple[Cond, ...] = tuple()
        best_score = -1
        for k in range(len(strict) - 1, 0, -1):
            for subset in itertools.combinations(strict, k):
                r = await self._run_search(principal, params, subset)
                if r.is_empty():
                    continue
                score = subset_score(subset, r.count())
                if score > best_score:
                    best, best_conds, best_score = r, subset, score
            if best is not None:
                break

        if best is not None:
            print(f"🔍 [AI File] 부분 일치: conds={[c.value for c in best_conds]} count={best.count()}")
            merged = self.response_builder.merge(best.ticket_hits, best.chat_hits)
            message = await self.response_builder.matched_only_message(best_conds, params)
            return SearchAnswer(results=merged, message=message, conditions=best_conds, partial=True)

        # [6] 결과 없음
        return SearchAnswer(results=[], message=self.response_builder.not_found_message())

    def _build_params(self, parsed: ParsedQuery) -> SearchParams:
        return SearchParams(
            date_range=parsed.date_range,
            department=parsed.department,
            counter_principal=parsed.counter_principal,
            tokens=tuple(self.tokenizer.tokenize(parsed.keyword)),
            sender_only=parsed.sender_only,
            receiver_only=parsed.receiver_only,
        )

    def _answer(self, result: SearchResult, conds: Sequence[Cond]) -> SearchAnswer:
        merged = self.response_builder.merge(result.ticket_hits, result.chat_hits)
        return SearchAnswer(
            results=merged,
            message=self.response_builder.success_message(len(merged)),
            conditions=tuple(conds),
        )

    async def _run_search(self, principal: str, params: SearchParams, conds: Sequence[Cond]) -> SearchResult:
        """주어진 조건 조합으로 티켓/채팅 첨부파일 검색"""
        active = set(conds)
        from_dt = params.from_dt if Cond.DATE in active else None
        to_dt = params.to_dt if Cond.DATE in active else None
        dept = params.department if Cond.DEPT in active else None
        counter = params.counter_principal if Cond.COUNTER in active else None
        tokens = list(params.tokens) if Cond.KEYWORD in active else []

        # 키워드 + 다른 조건: SQL 은 키워드 없이 후보만 가져오고 유사도로 거른다
        if tokens and active & {Cond.DATE, Cond.DEPT, Cond.COUNTER}:
            tickets = await self.ticket_repo.search_accessible_files_for_ai(
                principal, "", from_dt, to_dt, counter, dept, 0, SIMILARITY_FETCH_SIZE
            )
            chats = await self.chat_repo.search_accessible_files_for_ai(
                principal, "", from_dt, to_dt, counter, dept, 0, SIMILARITY_FETCH_SIZE
            )
            query = " ".join(tokens)
            return SearchResult(
                ticket_hits=self._by_similarity(self._apply_role(principal, tickets, params, active), query, tokens),
                chat_hits=self._by_similarity(self._apply_role(principal, chats, params, active), query, tokens),
            )

        tickets_by_id: Dict[str, TicketHit] = {}
        chats_by_id: Dict[str, ChatHit] = {}
        for seed in seed_tokens(tokens):
            for hit in await self.ticket_repo.search_accessible_files_for_ai(
                principal, seed, from_dt, to_dt, counter, dept, 0, PAGE_SIZE
            ):
                tickets_by_id.setdefault(hit.id, hit)
            for hit in await self.chat_repo.search_accessible_files_for_ai(
                principal, seed, from_dt, to_dt, counter, dept, 0, PAGE_SIZE
            ):
                chats_by_id.setdefault(hit.id, hit)

        tickets = [h for h in tickets_by_id.values() if matches_all_tokens(h, tokens)]
        chats = [h for h in chats_by_id.values() if matches_all_tokens(h, tokens)]
        return SearchResult(
            ticket_hits=self._apply_role(principal, tickets, params, active),
            chat_hits=self._apply_role(principal, chats, params, active),
        )

    @staticmethod
    def _by_similarity(hits: List[Any], query: str, tokens: List[str]) -> List[Any]:
        """유사도 0.7 이상 또는 모든 토큰 포함 후보만 유지, 점수 내림차순"""
        scored = [(score_hit(h, query), h) for h in hits]
        # 임계값 미만이어도 모든 토큰을 포함하면 유지
        kept = [(s, h) for s, h in scored if s >= SIMILARITY_THRESHOLD or matches_all_tokens(h, tokens)]
        kept.sort(key=lambda pair: pair[0], reverse=True)
        return [h for _, h in kept]

    @staticmethod
    def _apply_role(principal: str, hits: List[Any], params: SearchParams, active) -> List[Any]:
        """보낸/받은 필터 (티켓: 업로더/수신자, 채팅: 업로더 기준)"""
        if Cond.ROLE not in active or not (params.sender_only or params.receiver_only):
            return hits
        me = principal.lower()
        kept = []
        for h in hits:
            sent = h.uploader is not None and h.uploader.lower() == me
            if isinstance(h, TicketHit):
                received = me in (r.lower() for r in h.receiver_list())
            else:
                received = not sent
            if (params.sender_only and sent) or (params.receiver_only and received):
                kept.append(h)
        return kept

    def should_refine_keyword(self, keyword: Optional[str]) -> bool:
        """AI 키워드 보정 여부

        - 토큰이 없거나 모두 2글자 이하이면 보정
        - 공백 없는 4글자 이상 한글 복합어("신제품기획서", "배너디자인")만 보정
        """
        kw = (keyword or "").strip()
        if not kw:
            return False
        cleaned = clean_keyword_text(kw)
        tokens = self.tokenizer.tokenize(cleaned)
        if not tokens or all(len(t) <= 2 for t in tokens):
            return True
        if len(cleaned) < 4 or " " in cleaned:
            return False
        return contains_hangul(cleaned)

    async def _ai_keyword_tokens(self, ctx: _SearchContext) -> List[str]:
        payload = await self._llm_payload(ctx)
        if not payload:
            return []
        keyword = payload.get("keyword")
        if not isinstance(keyword, str) or not keyword.strip():
            return []
        return self.tokenizer.tokenize(keyword)

    async def _llm_payload(self, ctx: _SearchContext) -> Optional[Dict[str, Any]]:
        if ctx.llm_called:
            return ctx.llm_payload
        ctx.llm_called = True
        if self.llm_client is None:
            return None

        try:
            prompt = build_file_search_parse_prompt(ctx.text, self.today_provider())
            raw = await self.llm_client.generate_json(prompt)
            payload = parse_llm_json(raw)
            if payload is None:
                print(f"⚠️ [AI File] LLM 응답이 JSON이 아님, 규칙 파싱 결과 사용: {raw!r:.200}")
            ctx.llm_payload = payload
        except Exception as e:
            print(f"⚠️ [AI File] LLM 파싱 실패, 규칙 파싱 결과 사용: {e}")
            ctx.llm_payload = None
        return ctx.llm_payload


def matches_all_tokens(hit: Hit, tokens: List[str]) -> bool:
    """haystack 에 모든 토큰이 포함되는지 (대소문자 무시, AND)"""
    if not tokens:
        return True
    haystack = hit.haystack()
    return all(t.lower() in haystack for t in tokens)
