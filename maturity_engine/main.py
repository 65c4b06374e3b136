"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from maturity_engine.api import router as api_router

app = FastAPI(
    title="Finance Maturity Diagnostic",
    description="Area lifecycle engine: MCQ answers, clarifiers, scoring and recommendations",
    version="0.1.0",
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


# Include v1 API router
app.include_router(api_router, prefix="/v1", tags=["v1"])


if __name__ == "__main__":
    import uvicorn

    from maturity_engine.core.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "maturity_engine.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DIAGNOSTIC_ENV == "dev",
    )
