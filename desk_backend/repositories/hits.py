"""
검색 후보(Hit) 값 객체

리포지토리가 조회 시점에 필요한 텍스트를 모두 펼쳐 담아 반환하므로,
이후 단계(유사도 계산/응답 변환)는 ORM 관계를 다시 참조하지 않는다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class TicketHit:
    uuid: str
    file_name: str
    file_size: int
    created_at: Optional[datetime]
    uploader: str
    receiver: Optional[str]
    uploader_nickname: Optional[str]
    uploader_department: Optional[str]
    tno: int
    title: str
    content: Optional[str] = None
    purpose: Optional[str] = None
    requirement: Optional[str] = None
    ticket_writer: Optional[str] = None
    ticket_writer_nickname: Optional[str] = None
    receiver_emails: Tuple[str, ...] = field(default_factory=tuple)
    receiver_nicknames: Tuple[str, ...] = field(default_factory=tuple)
    kind: str = "ticket"

    @property
    def id(self) -> str:
        return self.uuid

    def score_facets(self) -> Tuple[Optional[str], ...]:
        """유사도 점수 계산 대상: 파일명, 제목, 본문, 목적, 요구사항"""
        return (self.file_name, self.title, self.content, self.purpose, self.requirement)

    def haystack(self) -> str:
        parts = [
            self.file_name, self.title, self.content, self.purpose, self.requirement,
            self.uploader, self.uploader_nickname, self.receiver,
            self.ticket_writer, self.ticket_writer_nickname,
            *self.receiver_emails, *self.receiver_nicknames,
        ]
        return " ".join(p for p in parts if p).lower()

    def receiver_list(self) -> Tuple[str, ...]:
        if not self.receiver:
            return tuple()
        return tuple(r.strip() for r in self.receiver.split(",") if r.strip())


@dataclass(frozen=True)
class ChatHit:
    uuid: str
    file_name: str
    file_size: int
    created_at: Optional[datetime]
    uploader: str
    receiver: Optional[str]
    uploader_nickname: Optional[str]
    uploader_department: Optional[str]
    chat_room_id: int
    room_name: Optional[str] = None
    room_type: Optional[str] = None
    message_seq: Optional[int] = None
    kind: str = "chat"

    @property
    def id(self) -> str:
        return self.uuid

    def score_facets(self) -> Tuple[Optional[str], ...]:
        """유사도 점수 계산 대상: 파일명, 채팅방 이름, 업로더 닉네임"""
        return (self.file_name, self.room_name, self.uploader_nickname)

    def haystack(self) -> str:
        parts = [
            self.file_name, self.room_name, self.uploader,
            self.uploader_nickname, self.receiver,
        ]
        return " ".join(p for p in parts if p).lower()


Hit = Union[TicketHit, ChatHit]
