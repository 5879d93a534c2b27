"""AI File Router - 자연어 파일 검색 / 첨부파일 보기·다운로드"""

import mimetypes
import os
from pathlib import Path
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from desk_backend.repositories.chat_file_repository import ChatFileRepository
from desk_backend.repositories.database import get_db
from desk_backend.repositories.ticket_file_repository import TicketFileRepository
from desk_backend.routers.dependencies import get_current_principal, get_file_search_service
from desk_backend.services.file_search_service import FileSearchService
from desk_backend.services.response_builder import AIFileRequest, AIFileResponse


router = APIRouter(prefix="/ai/file", tags=["ai-file"])


def get_upload_dir() -> Path:
    return Path(os.getenv("FILE_UPLOAD_DIR", "upload"))


@router.post("/chat", response_model=AIFileResponse)
async def chat(
    payload: AIFileRequest,
    principal: str = Depends(get_current_principal),
    service: FileSearchService = Depends(get_file_search_service),
) -> AIFileResponse:
    """자연어 문장으로 접근 가능한 첨부파일 검색 (최대 10건)"""
    print(f"🔍 [AI File] Chat | email={principal} | convId={payload.conversation_id}")
    try:
        return await service.chat(principal, payload)
    except HTTPException as he:
        raise he
    except Exception as e:
        print(f"❌ AI 파일 검색 오류 발생: {e}")
        import traceback
        traceback.print_exc()
        raise HTTPException(
            status_code=500,
            detail=f"파일 검색 처리 중 오류가 발생했습니다: {str(e)}"
        )


async def _resolve_accessible_file(uuid: str, principal: str, db: AsyncSession) -> Tuple[Path, str]:
    """uuid → (저장 경로, 원본 파일명). 400/403/404 는 HTTPException 으로 전달"""
    if not uuid or not uuid.strip() or "/" in uuid or "\\" in uuid or uuid in (".", ".."):
        raise HTTPException(status_code=400, detail="잘못된 파일 식별자입니다.")

    ticket_repo = TicketFileRepository(db)
    chat_repo = ChatFileRepository(db)

    original_name: Optional[str] = None
    ticket_file = await ticket_repo.find_by_uuid(uuid)
    if ticket_file is not None:
        original_name = ticket_file.file_name
    else:
        chat_file = await chat_repo.find_by_uuid(uuid)
        if chat_file is not None:
            original_name = chat_file.file_name
    if original_name is None:
        raise HTTPException(status_code=404, detail="파일을 찾을 수 없습니다.")

    allowed = (
        await ticket_repo.exists_accessible_file(uuid, principal)
        or await chat_repo.exists_accessible_file(uuid, principal)
    )
    if not allowed:
        raise HTTPException(status_code=403, detail="파일에 접근할 권한이 없습니다.")

    path = get_upload_dir() / uuid
    if not path.is_file():
        print(f"⚠️ [AI File] 저장 파일 없음: {path}")
        raise HTTPException(status_code=404, detail="저장된 파일을 찾을 수 없습니다.")
    return path, original_name


@router.get("/view/{uuid}")
async def view(
    uuid: str,
    principal: str = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> FileResponse:
    path, original_name = await _resolve_accessible_file(uuid, principal, db)
    media_type = mimetypes.guess_type(original_name)[0] or "application/octet-stream"
    return FileResponse(path, media_type=media_type, filename=original_name, content_disposition_type="inline")


@router.get("/download/{uuid}")
async def download(
    uuid: str,
    principal: str = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> FileResponse:
    path, original_name = await _resolve_accessible_file(uuid, principal, db)
    # 다운로드 파일명은 원본 파일명 그대로 사용
    return FileResponse(path, media_type="application/octet-stream", filename=original_name)
