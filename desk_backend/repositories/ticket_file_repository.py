from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from desk_backend.repositories.hits import TicketHit
from desk_backend.repositories.models import Department, Member, Ticket, TicketFile, TicketPersonal


def like_pattern(kw: str) -> str:
    """LIKE 검색용 패턴 (%, _ 이스케이프, 소문자)"""
    escaped = kw.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def ilike(column, pattern: str):
    return func.lower(column, type_=String()).like(pattern, escape="\\")


class TicketFileRepository:
    """티켓 첨부파일 조회 (접근 권한: 티켓 작성자 또는 개인 수신자)"""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _access_clause(principal: str):
        return or_(
            Ticket.writer_email == principal,
            Ticket.personal_list.any(TicketPersonal.receiver_email == principal),
        )

    @staticmethod
    def _keyword_clause(kw: str):
        pattern = like_pattern(kw)
        return or_(
            ilike(TicketFile.file_name, pattern),
            ilike(Ticket.title, pattern),
            ilike(Ticket.content, pattern),
            ilike(Ticket.purpose, pattern),
            ilike(Ticket.requirement, pattern),
            ilike(TicketFile.writer, pattern),
            ilike(TicketFile.receiver, pattern),
            ilike(Ticket.writer_email, pattern),
            select(Member.email)
            .where(Member.email == Ticket.writer_email, ilike(Member.nickname, pattern))
            .exists(),
            Ticket.personal_list.any(
                or_(
                    ilike(TicketPersonal.receiver_email, pattern),
                    TicketPersonal.receiver.has(ilike(Member.nickname, pattern)),
                )
            ),
        )

    async def search_accessible_files_for_ai(
        self,
        principal: str,
        kw: str = "",
        from_dt: Optional[datetime] = None,
        to_dt: Optional[datetime] = None,
        counter: Optional[str] = None,
        dept: Optional[Department] = None,
        page: int = 0,
        size: int = 30,
    ) -> List[TicketHit]:
        """AI 검색용 티켓 첨부파일 조회

        모든 조건은 AND 로 결합되며, kw 가 빈 문자열이면 키워드 조건을 생략한다.
        정렬: created_at DESC, uuid ASC
        """
        conditions = [self._access_clause(principal)]

        if kw:
            conditions.append(self._keyword_clause(kw))
        if from_dt is not None:
            conditions.append(TicketFile.created_at >= from_dt)
        if to_dt is not None:
            conditions.append(TicketFile.created_at <= to_dt)
        if counter:
            conditions.append(or_(
                Ticket.writer_email == counter,
                Ticket.personal_list.any(TicketPersonal.receiver_email == counter),
            ))
        if dept is not None:
            conditions.append(
                select(Member.email)
                .where(Member.email == TicketFile.writer, Member.department == dept)
                .exists()
            )

        stmt = (
            select(TicketFile)
            .join(TicketFile.ticket)
            .where(and_(*conditions))
            .options(
                selectinload(TicketFile.uploader),
                selectinload(TicketFile.ticket).selectinload(Ticket.writer),
                selectinload(TicketFile.ticket)
                .selectinload(Ticket.personal_list)
                .selectinload(TicketPersonal.receiver),
            )
            .order_by(TicketFile.created_at.desc().nulls_last(), TicketFile.uuid.asc())
            .offset(page * size)
            .limit(size)
        )

        result = await self.session.execute(stmt)
        return [self._to_hit(f) for f in result.scalars().all()]

    async def exists_accessible_file(self, uuid: str, principal: str) -> bool:
        stmt = (
            select(TicketFile.uuid)
            .join(TicketFile.ticket)
            .where(TicketFile.uuid == uuid, self._access_clause(principal))
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def find_by_uuid(self, uuid: str) -> Optional[TicketFile]:
        return await self.session.get(TicketFile, uuid)

    @staticmethod
    def _to_hit(f: TicketFile) -> TicketHit:
        ticket = f.ticket
        uploader = f.uploader
        receivers = [p.receiver for p in ticket.personal_list if p.receiver is not None]
        return TicketHit(
            uuid=f.uuid,
            file_name=f.file_name,
            file_size=f.file_size or 0,
            created_at=f.created_at,
            uploader=f.writer,
            receiver=f.receiver,
            uploader_nickname=uploader.nickname if uploader else None,
            uploader_department=uploader.department.value if uploader and uploader.department else None,
            tno=ticket.tno,
            title=ticket.title,
            content=ticket.content,
            purpose=ticket.purpose,
            requirement=ticket.requirement,
            ticket_writer=ticket.writer_email,
            ticket_writer_nickname=ticket.writer.nickname if ticket.writer else None,
            receiver_emails=tuple(m.email for m in receivers),
            receiver_nicknames=tuple(m.nickname for m in receivers if m.nickname),
        )
