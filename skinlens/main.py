from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .skin_analysis import SkinAnalysisService
from .skin_errors import ErrorCategory, SkinAnalysisError
from .skin_settings import SkinAnalysisSettings

settings = SkinAnalysisSettings.from_env()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

skin_service = SkinAnalysisService(settings=settings)

ERROR_STATUS_CODES = {
    ErrorCategory.INVALID_CREDENTIAL: 401,
    ErrorCategory.INVALID_IMAGE: 400,
    ErrorCategory.QUOTA_EXCEEDED: 402,
    ErrorCategory.RATE_LIMITED: 429,
    ErrorCategory.PARSE_FAILURE: 502,
    ErrorCategory.SERVICE_UNAVAILABLE: 503,
    ErrorCategory.UNKNOWN: 500,
}

app = FastAPI(title="SkinLens Analysis Service", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)


class AnalyzeSkinBody(BaseModel):
    image: str = Field(..., description="Data URL or bare base64 image payload")
    api_key: str | None = Field(
        None,
        description=(
            "Upstream API key. When omitted or blank, the server's SKIN_OPENAI_API_KEY is used "
            "for the request; restrict SKIN_CORS_ORIGINS when a server key is configured."
        ),
    )


class SkinAnalysisResponse(BaseModel):
    condition: str
    concerns: list[str]
    recommendations: list[str]
    confidence: float


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/skin/config")
async def get_skin_config():
    return skin_service.describe()


@app.post("/api/skin/analyze", response_model=SkinAnalysisResponse)
async def analyze_skin(body: AnalyzeSkinBody):
    try:
        result = await skin_service.analyze(body.image, body.api_key)
    except SkinAnalysisError as exc:
        status_code = ERROR_STATUS_CODES.get(exc.category, 500)
        raise HTTPException(status_code=status_code, detail=exc.normalized.to_dict())
    return result.to_dict()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("skinlens.main:app", host="0.0.0.0", port=8000, reload=True)
