"""
Desk 데모 데이터 적재 스크립트

AI 파일 검색을 수동으로 확인할 수 있도록 회원/티켓/채팅방/첨부파일을 생성한다.
테이블이 없으면 생성하고, --reset 이면 모두 삭제 후 다시 만든다.

사용 예시:
    python desk_backend/scripts/seed_demo_data.py --reset --write-files
"""

import argparse
import asyncio
import os
import sys
import uuid as uuid_module
from datetime import date, datetime, time, timedelta
from pathlib import Path

from dotenv import load_dotenv

# 프로젝트 루트 경로 추가
PROJECT_ROOT = str(Path(__file__).resolve().parents[2])
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

load_dotenv(Path(PROJECT_ROOT) / ".env")

from desk_backend.repositories.database import AsyncSessionLocal, engine  # noqa: E402
from desk_backend.repositories.models import (  # noqa: E402
    Base,
    ChatFile,
    ChatParticipant,
    ChatRoom,
    ChatRoomType,
    Department,
    Member,
    Ticket,
    TicketFile,
    TicketPersonal,
)

DEMO_MEMBERS = [
    ("user1@desk.com", "김철수", Department.PLANNING),
    ("user2@desk.com", "안은지", Department.DESIGN),
    ("user3@desk.com", "은지", Department.DEVELOPMENT),
    ("user4@desk.com", "박영희", Department.SALES),
    ("user5@desk.com", "이민수", Department.DESIGN),
]


def _at(day: date, hour: int) -> datetime:
    return datetime.combine(day, time(hour, 0))


def build_demo_rows(today: date):
    """데모 행 목록 생성 (today 기준 상대 날짜)"""
    rows = [Member(email=e, nickname=n, department=d, is_active=True) for e, n, d in DEMO_MEMBERS]

    last_month = (today.replace(day=1) - timedelta(days=1)).replace(day=10)

    t1 = Ticket(tno=1, title="신제품 기획서 검토 요청", content="신제품 런칭 일정과 기획서 초안입니다.",
                purpose="기획 검토", requirement="이번 주 내 피드백", writer_email="user1@desk.com",
                created_at=_at(today - timedelta(days=20), 9))
    t2 = Ticket(tno=2, title="배너디자인 시안", content="메인 페이지 배너 시안 공유드립니다.",
                purpose="디자인 확인", requirement="수정 사항 회신", writer_email="user2@desk.com",
                created_at=_at(last_month, 10))
    rows += [t1, t2]
    rows += [
        TicketPersonal(ticket_tno=1, receiver_email="user2@desk.com"),
        TicketPersonal(ticket_tno=1, receiver_email="user4@desk.com"),
        TicketPersonal(ticket_tno=2, receiver_email="user1@desk.com"),
    ]
    rows += [
        TicketFile(uuid=str(uuid_module.uuid4()), file_name="신제품기획서_v1.pdf", file_size=204800, ord=0,
                   created_at=_at(today - timedelta(days=20), 9), writer="user1@desk.com",
                   receiver="user2@desk.com,user4@desk.com", ticket_tno=1),
        TicketFile(uuid=str(uuid_module.uuid4()), file_name="배너디자인_시안.png", file_size=512000, ord=0,
                   created_at=_at(last_month, 10), writer="user2@desk.com",
                   receiver="user1@desk.com", ticket_tno=2),
    ]

    room = ChatRoom(id=1, room_type=ChatRoomType.GROUP, name="신제품 TF")
    direct = ChatRoom(id=2, room_type=ChatRoomType.DIRECT, name=None)
    rows += [room, direct]
    rows += [
        ChatParticipant(chat_room_id=1, user_id="user1@desk.com", joined_at=_at(today - timedelta(days=60), 0)),
        ChatParticipant(chat_room_id=1, user_id="user2@desk.com", joined_at=_at(today - timedelta(days=60), 0)),
        ChatParticipant(chat_room_id=1, user_id="user5@desk.com", joined_at=_at(today - timedelta(days=60), 0)),
        ChatParticipant(chat_room_id=2, user_id="user1@desk.com", joined_at=_at(today - timedelta(days=30), 0)),
        ChatParticipant(chat_room_id=2, user_id="user2@desk.com", joined_at=_at(today - timedelta(days=30), 0)),
    ]
    rows += [
        ChatFile(uuid=str(uuid_module.uuid4()), file_name="회의록_0301.docx", file_size=10240, ord=0,
                 created_at=_at(today - timedelta(days=1), 15), writer="user2@desk.com", receiver=None,
                 chat_room_id=1, message_seq=10),
        ChatFile(uuid=str(uuid_module.uuid4()), file_name="귀여운짤.gif", file_size=30720, ord=0,
                 created_at=_at(today, 11), writer="user1@desk.com", receiver="user2@desk.com",
                 chat_room_id=2, message_seq=3),
    ]
    return rows


async def seed(reset: bool, write_files: bool, today: date) -> None:
    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
            print("✅ 기존 테이블 삭제 완료")
        await conn.run_sync(Base.metadata.create_all)
    print("✅ 테이블 준비 완료")

    rows = build_demo_rows(today)
    async with AsyncSessionLocal() as session:
        session.add_all(rows)
        await session.commit()
    print(f"✅ 데모 데이터 {len(rows)}건 적재 완료")

    if write_files:
        upload_dir = Path(os.getenv("FILE_UPLOAD_DIR", "upload"))
        upload_dir.mkdir(parents=True, exist_ok=True)
        count = 0
        for row in rows:
            if isinstance(row, (TicketFile, ChatFile)):
                (upload_dir / row.uuid).write_bytes(f"demo file: {row.file_name}\n".encode("utf-8"))
                count += 1
        print(f"✅ 첨부파일 {count}개 생성: {upload_dir}")

    await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Desk AI 파일 검색 데모 데이터 적재")
    parser.add_argument("--reset", action="store_true", help="기존 테이블 삭제 후 재생성")
    parser.add_argument("--write-files", action="store_true", help="FILE_UPLOAD_DIR에 첨부파일 생성")
    parser.add_argument("--today", type=str, default=None, help="기준 날짜 (YYYY-MM-DD, 기본: 오늘)")
    args = parser.parse_args()

    today = date.fromisoformat(args.today) if args.today else date.today()
    try:
        asyncio.run(seed(args.reset, args.write_files, today))
    except Exception as e:
        print(f"❌ 데모 데이터 적재 실패: {e}")
        raise


if __name__ == "__main__":
    main()
