"""공통 라우터 의존성"""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from desk_backend.repositories.chat_file_repository import ChatFileRepository
from desk_backend.repositories.database import get_db
from desk_backend.repositories.member_repository import MemberRepository
from desk_backend.repositories.ticket_file_repository import TicketFileRepository
from desk_backend.services.file_search_service import FileSearchService
from desk_backend.services.llm_client import get_llm_client


async def get_current_principal(
    x_auth_email: Optional[str] = Header(None, alias="X-Auth-Email"),
) -> str:
    """인증 게이트웨이가 전달한 사용자 이메일 (없으면 401)"""
    if not x_auth_email or not x_auth_email.strip():
        raise HTTPException(status_code=401, detail="로그인이 필요합니다.")
    return x_auth_email.strip()


async def get_file_search_service(db: AsyncSession = Depends(get_db)) -> FileSearchService:
    member_repo = MemberRepository(db)
    llm_client = get_llm_client()
    return FileSearchService(
        ticket_repo=TicketFileRepository(db),
        chat_repo=ChatFileRepository(db),
        member_repo=member_repo,
        llm_client=llm_client if llm_client.available else None,
    )
