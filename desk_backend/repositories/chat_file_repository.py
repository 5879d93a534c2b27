from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from desk_backend.repositories.hits import ChatHit
from desk_backend.repositories.models import ChatFile, ChatParticipant, ChatRoom, Department, Member
from desk_backend.repositories.ticket_file_repository import ilike, like_pattern


class ChatFileRepository:
    """채팅 첨부파일 조회

    접근 권한: 파일이 올라온 시점에 해당 채팅방 참여자였어야 한다
    (joined_at <= created_at <= left_at, left_at 이 없으면 현재까지 참여 중).
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _access_clause(principal: str):
        return (
            select(ChatParticipant.id)
            .where(
                ChatParticipant.chat_room_id == ChatFile.chat_room_id,
                ChatParticipant.user_id == principal,
                or_(ChatParticipant.joined_at.is_(None), ChatParticipant.joined_at <= ChatFile.created_at),
                or_(ChatParticipant.left_at.is_(None), ChatFile.created_at <= ChatParticipant.left_at),
            )
            .exists()
        )

    @staticmethod
    def _keyword_clause(kw: str):
        pattern = like_pattern(kw)
        return or_(
            ilike(ChatFile.file_name, pattern),
            ilike(ChatRoom.name, pattern),
            ilike(ChatFile.writer, pattern),
            ilike(ChatFile.receiver, pattern),
            select(Member.email)
            .where(Member.email == ChatFile.writer, ilike(Member.nickname, pattern))
            .exists(),
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
    ) -> List[ChatHit]:
        """AI 검색용 채팅 첨부파일 조회 (조건 AND, 정렬: created_at DESC, uuid ASC)"""
        conditions = [self._access_clause(principal)]

        if kw:
            conditions.append(self._keyword_clause(kw))
        if from_dt is not None:
            conditions.append(ChatFile.created_at >= from_dt)
        if to_dt is not None:
            conditions.append(ChatFile.created_at <= to_dt)
        if counter:
            conditions.append(
                select(ChatParticipant.id)
                .where(ChatParticipant.chat_room_id == ChatFile.chat_room_id, ChatParticipant.user_id == counter)
                .exists()
            )
        if dept is not None:
            # 업로더의 부서 또는 (나를 제외한) 방 참여자 중 해당 부서원이 있는 경우
            conditions.append(or_(
                select(Member.email)
                .where(Member.email == ChatFile.writer, Member.department == dept)
                .exists(),
                select(ChatParticipant.id)
                .join(Member, Member.email == ChatParticipant.user_id)
                .where(
                    ChatParticipant.chat_room_id == ChatFile.chat_room_id,
                    ChatParticipant.user_id != principal,
                    Member.department == dept,
                )
                .exists(),
            ))

        stmt = (
            select(ChatFile)
            .join(ChatFile.chat_room)
            .where(and_(*conditions))
            .options(
                selectinload(ChatFile.uploader),
                selectinload(ChatFile.chat_room),
            )
            .order_by(ChatFile.created_at.desc().nulls_last(), ChatFile.uuid.asc())
            .offset(page * size)
            .limit(size)
        )

        result = await self.session.execute(stmt)
        return [self._to_hit(f) for f in result.scalars().all()]

    async def exists_accessible_file(self, uuid: str, principal: str) -> bool:
        stmt = (
            select(ChatFile.uuid)
            .where(ChatFile.uuid == uuid, self._access_clause(principal))
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def find_by_uuid(self, uuid: str) -> Optional[ChatFile]:
        return await self.session.get(ChatFile, uuid)

    @staticmethod
    def _to_hit(f: ChatFile) -> ChatHit:
        room = f.chat_room
        uploader = f.uploader
        return ChatHit(
            uuid=f.uuid,
            file_name=f.file_name,
            file_size=f.file_size or 0,
            created_at=f.created_at,
            uploader=f.writer,
            receiver=f.receiver,
            uploader_nickname=uploader.nickname if uploader else None,
            uploader_department=uploader.department.value if uploader and uploader.department else None,
            chat_room_id=f.chat_room_id,
            room_name=room.name if room else None,
            room_type=room.room_type.value if room and room.room_type else None,
            message_seq=f.message_seq,
        )
