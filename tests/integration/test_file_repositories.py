"""Integration tests for access-scoped ticket/chat file repositories (SQLite)."""

from datetime import datetime

import pytest
from sqlalchemy.exc import DBAPIError

from desk_backend.repositories.chat_file_repository import ChatFileRepository
from desk_backend.repositories.member_repository import MemberRepository
from desk_backend.repositories.models import Department
from desk_backend.repositories.ticket_file_repository import TicketFileRepository, like_pattern
from tests.conftest import HR, KIM, ME, USER2, fail_first_execute


def ids(hits):
    return [h.id for h in hits]


def test_like_pattern_escapes_wildcards():
    assert like_pattern("50%_A") == "%50\\%\\_a%"


class TestTicketFileRepository:
    async def test_only_writer_or_personal_receiver_sees_files(self, world):
        repo = TicketFileRepository(world)
        assert ids(await repo.search_accessible_files_for_ai(ME)) == ["tf-1", "tf-4", "tf-3", "tf-2"]
        assert ids(await repo.search_accessible_files_for_ai(HR)) == ["tf-4"]

    async def test_keyword_matches_writer_nickname(self, world):
        repo = TicketFileRepository(world)
        assert ids(await repo.search_accessible_files_for_ai(ME, "김철수")) == ["tf-3"]

    async def test_keyword_matches_personal_receiver_nickname(self, world):
        repo = TicketFileRepository(world)
        assert ids(await repo.search_accessible_files_for_ai(ME, "한인사")) == ["tf-4"]

    async def test_keyword_is_case_insensitive_and_escaped(self, world):
        repo = TicketFileRepository(world)
        assert ids(await repo.search_accessible_files_for_ai(ME, "V1")) == ["tf-1"]
        assert await repo.search_accessible_files_for_ai(ME, "%") == []

    async def test_keyword_matches_ticket_body(self, world):
        repo = TicketFileRepository(world)
        assert ids(await repo.search_accessible_files_for_ai(ME, "최종 검토")) == ["tf-3"]

    async def test_counter_department_and_date_filters(self, world):
        repo = TicketFileRepository(world)
        assert ids(await repo.search_accessible_files_for_ai(ME, counter=KIM)) == ["tf-3"]
        assert ids(await repo.search_accessible_files_for_ai(ME, dept=Department.DESIGN)) == ["tf-2"]
        assert ids(await repo.search_accessible_files_for_ai(ME, dept=Department.PLANNING)) == ["tf-1", "tf-4"]
        hits = await repo.search_accessible_files_for_ai(
            ME, from_dt=datetime(2025, 3, 1), to_dt=datetime(2025, 3, 13, 23, 59)
        )
        assert ids(hits) == ["tf-4", "tf-3"]

    async def test_paging(self, world):
        repo = TicketFileRepository(world)
        assert ids(await repo.search_accessible_files_for_ai(ME, page=1, size=2)) == ["tf-3", "tf-2"]

    async def test_hit_carries_related_texts(self, world):
        repo = TicketFileRepository(world)
        [hit] = await repo.search_accessible_files_for_ai(ME, "신제품기획서_v1")
        assert hit.tno == 1
        assert hit.uploader_nickname == "나대리"
        assert hit.uploader_department == "PLANNING"
        assert hit.ticket_writer_nickname == "나대리"
        assert hit.receiver_emails == (USER2,)
        assert hit.receiver_nicknames == ("안은지",)

    async def test_exists_accessible_file(self, world):
        repo = TicketFileRepository(world)
        assert await repo.exists_accessible_file("tf-1", ME)
        assert not await repo.exists_accessible_file("tf-5", ME)
        assert await repo.exists_accessible_file("tf-5", KIM)
        assert await repo.find_by_uuid("nope") is None


class TestChatFileRepository:
    async def test_access_respects_participation_window(self, world):
        repo = ChatFileRepository(world)
        assert set(ids(await repo.search_accessible_files_for_ai(KIM))) == {"cf-0", "cf-4"}
        assert set(ids(await repo.search_accessible_files_for_ai(HR))) == {"cf-1", "cf-3"}
        assert ids(await repo.search_accessible_files_for_ai(ME)) == ["cf-2", "cf-3", "cf-1", "cf-0"]

    async def test_keyword_matches_room_name_and_uploader_nickname(self, world):
        repo = ChatFileRepository(world)
        assert ids(await repo.search_accessible_files_for_ai(ME, "tf")) == ["cf-3", "cf-1", "cf-0"]
        assert ids(await repo.search_accessible_files_for_ai(ME, "안은지")) == ["cf-2", "cf-1", "cf-0"]

    async def test_counter_is_room_participant(self, world):
        repo = ChatFileRepository(world)
        assert ids(await repo.search_accessible_files_for_ai(ME, counter=KIM)) == ["cf-3", "cf-1", "cf-0"]
        assert ids(await repo.search_accessible_files_for_ai(ME, counter=USER2)) == ["cf-2", "cf-3", "cf-1", "cf-0"]

    async def test_department_matches_uploader_or_other_participant(self, world):
        repo = ChatFileRepository(world)
        assert set(ids(await repo.search_accessible_files_for_ai(ME, dept=Department.HR))) == {"cf-0", "cf-1", "cf-3"}
        # 나 자신(기획팀)은 부서 조건 판정에서 제외, 업로더 본인이면 포함
        planning = ids(await repo.search_accessible_files_for_ai(ME, dept=Department.PLANNING))
        assert planning == ["cf-3"]

    async def test_hit_carries_room_info(self, world):
        repo = ChatFileRepository(world)
        [hit] = await repo.search_accessible_files_for_ai(ME, "귀여운짤")
        assert hit.room_type == "DIRECT"
        assert hit.room_name is None
        assert hit.uploader_nickname == "안은지"
        assert hit.message_seq == 3

    async def test_exists_accessible_file(self, world):
        repo = ChatFileRepository(world)
        assert await repo.exists_accessible_file("cf-1", HR)
        assert not await repo.exists_accessible_file("cf-0", HR)
        assert not await repo.exists_accessible_file("cf-1", KIM)
        assert not await repo.exists_accessible_file("cf-4", ME)


class TestMemberRepository:
    async def test_active_nicknames_only(self, world):
        nicknames = await MemberRepository(world).find_all_active_nicknames()
        assert set(nicknames) == {"나대리", "안은지", "은지", "김철수", "한인사", "외부인"}

    async def test_find_by_nickname_is_exact_and_active(self, world):
        repo = MemberRepository(world)
        assert (await repo.find_by_nickname("은지")).email == "user3@desk.com"
        assert await repo.find_by_nickname("휴면회원") is None
        assert (await repo.find_by_email(KIM)).nickname == "김철수"

    async def test_failed_nickname_query_rolls_back_session(self, world, monkeypatch):
        events = fail_first_execute(monkeypatch, world)
        repo = MemberRepository(world)
        with pytest.raises(DBAPIError):
            await repo.find_all_active_nicknames()
        assert events == ["failed", "rollback"]
        assert (await repo.find_by_email(KIM)).nickname == "김철수"
