from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from risk_link.api.routes import router as api_router
from risk_link.core.config import get_settings
from risk_link.core.errors import ConfigurationError
from risk_link.core.logging import configure_logging


async def _configuration_error_handler(
    request: Request, exc: ConfigurationError
) -> JSONResponse:
    """설정 누락을 네트워크 호출 전 500 응답으로 변환"""
    return JSONResponse(
        status_code=500,
        content={
            "error": exc.message,
            "details": {
                "hasApiKey": exc.has_api_key,
                "hasBaseUrl": exc.has_base_url,
            },
        },
    )


def create_app() -> FastAPI:
    """애플리케이션을 생성하고 FastAPI를 설정"""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Risk Link", version=settings.version)
    app.add_exception_handler(ConfigurationError, _configuration_error_handler)
    app.include_router(api_router)
    return app


app = create_app()
