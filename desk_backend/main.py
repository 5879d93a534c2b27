from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# 라우터 임포트 (형제 모듈에서)
from desk_backend.routers.ai_file_router import router as ai_file_router


def create_app() -> FastAPI:
    """FastAPI 애플리케이션 팩토리

    - 라우터 등록
    """
    app = FastAPI(title="Desk AI File Search API", version="0.1.0")

    # CORS (프론트 개발 서버 허용)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 라우터 등록
    app.include_router(ai_file_router, prefix="/api")

    return app


app = create_app()
