from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from desk_backend.repositories.models import Member


class MemberRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_all_active_nicknames(self) -> List[str]:
        """활성 회원 닉네임 목록 (빈 닉네임 제외, 중복 제거)

        닉네임 캐시 갱신용 조회라 실패해도 검색은 계속되어야 하므로,
        DB 오류 시 요청 세션의 트랜잭션을 롤백한 뒤 예외를 다시 던진다.
        """
        stmt = (
            select(Member.nickname)
            .where(Member.is_active.is_(True), Member.nickname.is_not(None), func.length(Member.nickname) > 0)
            .distinct()
        )
        try:
            result = await self.session.execute(stmt)
        except DBAPIError:
            # 실패한 문장 뒤의 트랜잭션은 중단 상태 (PostgreSQL)
            await self.session.rollback()
            raise
        return [n for n in result.scalars().all() if n and n.strip()]

    async def find_by_nickname(self, nickname: str) -> Optional[Member]:
        stmt = (
            select(Member)
            .where(Member.nickname == nickname, Member.is_active.is_(True))
            .order_by(Member.email)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Optional[Member]:
        return await self.session.get(Member, email)
