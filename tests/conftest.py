"""Pytest configuration and fixtures for the AI file search.

DB-dependent fixtures use an in-memory SQLite database (aiosqlite) built from
the ORM metadata, seeded with a small fixed world around TODAY.
"""

from datetime import date, datetime
from typing import Any, List, Optional

import pytest
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from desk_backend.repositories.chat_file_repository import ChatFileRepository
from desk_backend.repositories.member_repository import MemberRepository
from desk_backend.repositories.models import (
    Base,
    ChatFile,
    ChatParticipant,
    ChatRoom,
    ChatRoomType,
    Department,
    Member,
    ParticipantStatus,
    Ticket,
    TicketFile,
    TicketPersonal,
)
from desk_backend.repositories.ticket_file_repository import TicketFileRepository
from desk_backend.services.file_search_service import FileSearchService
from desk_backend.services.keyword_tokenizer import KeywordTokenizer
from desk_backend.services.query_parser import NicknameCache, QueryParser
from desk_backend.services.response_builder import ResponseBuilder

# Friday
TODAY = date(2025, 3, 14)

ME = "me@desk.com"
USER2 = "user2@desk.com"
KIM = "kim@desk.com"
HR = "hr@desk.com"
OUTSIDER = "outsider@desk.com"


def at(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute)


class StubLLMClient:
    """generate_json 만 흉내내는 LLM 대역. response 또는 error 를 돌려준다."""

    def __init__(self, response: Optional[str] = None, error: Optional[Exception] = None) -> None:
        self.response = response
        self.error = error
        self.prompts: List[str] = []

    async def generate_json(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response or ""


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def session(engine) -> AsyncSession:
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as s:
        yield s


async def seed_world(session: AsyncSession) -> None:
    session.add_all([
        Member(email=ME, nickname="나대리", department=Department.PLANNING, is_active=True),
        Member(email=USER2, nickname="안은지", department=Department.DESIGN, is_active=True),
        Member(email="user3@desk.com", nickname="은지", department=Department.DEVELOPMENT, is_active=True),
        Member(email=KIM, nickname="김철수", department=Department.SALES, is_active=True),
        Member(email=HR, nickname="한인사", department=Department.HR, is_active=True),
        Member(email=OUTSIDER, nickname="외부인", department=Department.FINANCE, is_active=True),
        Member(email="sleep@desk.com", nickname="휴면회원", department=None, is_active=False),
    ])
    await session.flush()

    session.add_all([
        Ticket(tno=1, title="신제품 기획서 초안", content="신제품 런칭 기획서 초안 공유", purpose="기획 검토",
               requirement="금주 피드백", writer_email=ME, created_at=at(2025, 3, 14, 9)),
        Ticket(tno=2, title="배너디자인 시안 공유", content="메인 배너 시안입니다", purpose="디자인 확인",
               requirement=None, writer_email=USER2, created_at=at(2025, 2, 10, 9)),
        Ticket(tno=3, title="신제품 기획서 최종본", content="최종 검토 부탁드립니다", purpose=None,
               requirement=None, writer_email=KIM, created_at=at(2025, 3, 1, 13)),
        Ticket(tno=4, title="인사 평가 양식", content="상반기 평가 양식", purpose=None,
               requirement=None, writer_email=ME, created_at=at(2025, 3, 13, 10)),
        Ticket(tno=5, title="분기 재무 보고서", content="대외비", purpose=None,
               requirement=None, writer_email=OUTSIDER, created_at=at(2025, 3, 10, 10)),
        ChatRoom(id=1, room_type=ChatRoomType.GROUP, name="신제품 TF"),
        ChatRoom(id=2, room_type=ChatRoomType.DIRECT, name=None),
        ChatRoom(id=3, room_type=ChatRoomType.GROUP, name="영업 실적방"),
    ])
    await session.flush()

    session.add_all([
        TicketPersonal(ticket_tno=1, receiver_email=USER2),
        TicketPersonal(ticket_tno=2, receiver_email=ME),
        TicketPersonal(ticket_tno=3, receiver_email=ME),
        TicketPersonal(ticket_tno=4, receiver_email=HR),
        TicketPersonal(ticket_tno=5, receiver_email=KIM),
        TicketFile(uuid="tf-1", file_name="신제품기획서_v1.pdf", file_size=2048, ord=0,
                   created_at=at(2025, 3, 14, 10), writer=ME, receiver=USER2, ticket_tno=1),
        TicketFile(uuid="tf-2", file_name="배너디자인_시안.png", file_size=4096, ord=0,
                   created_at=at(2025, 2, 10, 10), writer=USER2, receiver=ME, ticket_tno=2),
        TicketFile(uuid="tf-3", file_name="신제품기획서_최종.pdf", file_size=1024, ord=0,
                   created_at=at(2025, 3, 1, 14), writer=KIM, receiver=ME, ticket_tno=3),
        TicketFile(uuid="tf-4", file_name="인사평가_양식.xlsx", file_size=512, ord=0,
                   created_at=at(2025, 3, 13, 11), writer=ME, receiver=HR, ticket_tno=4),
        TicketFile(uuid="tf-5", file_name="재무보고서.pdf", file_size=512, ord=0,
                   created_at=at(2025, 3, 10, 11), writer=OUTSIDER, receiver=KIM, ticket_tno=5),
        ChatParticipant(chat_room_id=1, user_id=ME, joined_at=at(2025, 1, 1)),
        ChatParticipant(chat_room_id=1, user_id=USER2, joined_at=at(2025, 1, 1)),
        ChatParticipant(chat_room_id=1, user_id=KIM, joined_at=at(2025, 1, 1), left_at=at(2025, 3, 1),
                        status=ParticipantStatus.LEFT),
        ChatParticipant(chat_room_id=1, user_id=HR, joined_at=at(2025, 3, 1)),
        ChatParticipant(chat_room_id=2, user_id=ME, joined_at=at(2025, 1, 1)),
        ChatParticipant(chat_room_id=2, user_id=USER2, joined_at=at(2025, 1, 1)),
        ChatParticipant(chat_room_id=3, user_id=KIM, joined_at=at(2025, 1, 1)),
        ChatParticipant(chat_room_id=3, user_id=OUTSIDER, joined_at=at(2025, 1, 1)),
        ChatFile(uuid="cf-0", file_name="브랜드_가이드.pdf", file_size=300, ord=0,
                 created_at=at(2025, 1, 20, 10), writer=USER2, receiver=None, chat_room_id=1, message_seq=1),
        ChatFile(uuid="cf-1", file_name="회의록_0313.docx", file_size=300, ord=0,
                 created_at=at(2025, 3, 13, 15), writer=USER2, receiver=None, chat_room_id=1, message_seq=7),
        ChatFile(uuid="cf-2", file_name="귀여운짤.gif", file_size=300, ord=0,
                 created_at=at(2025, 3, 14, 11, 30), writer=USER2, receiver=ME, chat_room_id=2, message_seq=3),
        ChatFile(uuid="cf-3", file_name="UI_가이드.pdf", file_size=300, ord=0,
                 created_at=at(2025, 3, 14, 9), writer=ME, receiver=None, chat_room_id=1, message_seq=9),
        ChatFile(uuid="cf-4", file_name="영업실적.xlsx", file_size=300, ord=0,
                 created_at=at(2025, 3, 14, 8), writer=KIM, receiver=None, chat_room_id=3, message_seq=2),
    ])
    await session.commit()


@pytest.fixture
async def world(session: AsyncSession) -> AsyncSession:
    await seed_world(session)
    return session


@pytest.fixture
def stub_llm() -> StubLLMClient:
    return StubLLMClient(error=RuntimeError("LLM disabled in tests"))


def build_service(session: AsyncSession, llm_client: Any = None, use_morphology: bool = False) -> FileSearchService:
    member_repo = MemberRepository(session)
    return FileSearchService(
        ticket_repo=TicketFileRepository(session),
        chat_repo=ChatFileRepository(session),
        member_repo=member_repo,
        parser=QueryParser(member_repo, nickname_cache=NicknameCache(), today_provider=lambda: TODAY),
        tokenizer=KeywordTokenizer(use_morphology=use_morphology),
        response_builder=ResponseBuilder(member_repo),
        llm_client=llm_client,
        today_provider=lambda: TODAY,
    )


@pytest.fixture
def service(world: AsyncSession) -> FileSearchService:
    return build_service(world)


def result_ids(answer) -> List[str]:
    return [h.id for h in answer.results]


def fail_first_execute(monkeypatch, session: AsyncSession) -> List[str]:
    """세션의 첫 execute 를 DB 오류(문장 타임아웃)로 실패시키고, rollback 호출을 기록한다."""
    events: List[str] = []
    original_execute = session.execute
    original_rollback = session.rollback

    async def execute(statement, *args, **kwargs):
        if "failed" not in events:
            events.append("failed")
            raise DBAPIError("SELECT", {}, Exception("canceling statement due to statement timeout"))
        return await original_execute(statement, *args, **kwargs)

    async def rollback():
        events.append("rollback")
        await original_rollback()

    monkeypatch.setattr(session, "execute", execute)
    monkeypatch.setattr(session, "rollback", rollback)
    return events
