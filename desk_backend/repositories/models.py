"""
업무 협업 데이터 ORM 모델 (검색 코어는 읽기 전용으로 사용)

- Member: 회원 (이메일, 닉네임, 부서)
- Ticket / TicketPersonal / TicketFile: 티켓, 개인 수신자, 티켓 첨부파일
- ChatRoom / ChatParticipant / ChatFile: 채팅방, 참여자, 채팅 첨부파일
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, BigInteger, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Department(str, enum.Enum):
    DESIGN = "DESIGN"
    DEVELOPMENT = "DEVELOPMENT"
    SALES = "SALES"
    HR = "HR"
    FINANCE = "FINANCE"
    PLANNING = "PLANNING"


class ChatRoomType(str, enum.Enum):
    DIRECT = "DIRECT"
    GROUP = "GROUP"


class ParticipantStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    LEFT = "LEFT"


class Member(Base):
    __tablename__ = "member"

    email: Mapped[str] = mapped_column(String(255), primary_key=True)
    nickname: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    department: Mapped[Optional[Department]] = mapped_column(
        Enum(Department, native_enum=False, length=20), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Ticket(Base):
    __tablename__ = "ticket"

    tno: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    purpose: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    requirement: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    writer_email: Mapped[str] = mapped_column(ForeignKey("member.email"), nullable=False, index=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    writer: Mapped[Member] = relationship(lazy="raise")
    personal_list: Mapped[List["TicketPersonal"]] = relationship(back_populates="ticket", lazy="raise")
    files: Mapped[List["TicketFile"]] = relationship(back_populates="ticket", lazy="raise")


class TicketPersonal(Base):
    """티켓 개인 수신자 (티켓 1 : N 수신자)"""

    __tablename__ = "ticket_personal"

    pno: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_tno: Mapped[int] = mapped_column(ForeignKey("ticket.tno"), nullable=False, index=True)
    receiver_email: Mapped[str] = mapped_column(ForeignKey("member.email"), nullable=False, index=True)

    ticket: Mapped[Ticket] = relationship(back_populates="personal_list", lazy="raise")
    receiver: Mapped[Member] = relationship(lazy="raise")


class TicketFile(Base):
    __tablename__ = "ticket_file"

    uuid: Mapped[str] = mapped_column(String(64), primary_key=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    ord: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)
    writer: Mapped[str] = mapped_column(String(255), nullable=False)
    # 수신자 이메일 (여러 명이면 쉼표로 구분)
    receiver: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    ticket_tno: Mapped[int] = mapped_column(ForeignKey("ticket.tno"), nullable=False, index=True)

    ticket: Mapped[Ticket] = relationship(back_populates="files", lazy="raise")
    uploader: Mapped[Optional[Member]] = relationship(
        primaryjoin="foreign(TicketFile.writer) == Member.email",
        viewonly=True,
        lazy="raise",
    )


class ChatRoom(Base):
    __tablename__ = "chat_room"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    room_type: Mapped[ChatRoomType] = mapped_column(
        Enum(ChatRoomType, native_enum=False, length=10), nullable=False, default=ChatRoomType.GROUP
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    participants: Mapped[List["ChatParticipant"]] = relationship(back_populates="chat_room", lazy="raise")
    files: Mapped[List["ChatFile"]] = relationship(back_populates="chat_room", lazy="raise")


class ChatParticipant(Base):
    __tablename__ = "chat_participant"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chat_room_id: Mapped[int] = mapped_column(ForeignKey("chat_room.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("member.email"), nullable=False, index=True)
    joined_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    left_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    status: Mapped[ParticipantStatus] = mapped_column(
        Enum(ParticipantStatus, native_enum=False, length=10), nullable=False, default=ParticipantStatus.ACTIVE
    )
    last_read_seq: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    chat_room: Mapped[ChatRoom] = relationship(back_populates="participants", lazy="raise")
    member: Mapped[Member] = relationship(lazy="raise")


class ChatFile(Base):
    __tablename__ = "chat_file"

    uuid: Mapped[str] = mapped_column(String(64), primary_key=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    ord: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)
    writer: Mapped[str] = mapped_column(String(255), nullable=False)
    # 1:1 채팅방일 때만 설정
    receiver: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    chat_room_id: Mapped[int] = mapped_column(ForeignKey("chat_room.id"), nullable=False, index=True)
    message_seq: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    chat_room: Mapped[ChatRoom] = relationship(back_populates="files", lazy="raise")
    uploader: Mapped[Optional[Member]] = relationship(
        primaryjoin="foreign(ChatFile.writer) == Member.email",
        viewonly=True,
        lazy="raise",
    )
