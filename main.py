from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError
from typing import Any, Dict, List
import logging
from datetime import datetime

from config.settings import Settings, get_settings
from models.request_models import AnalyzeSentenceRequest, StoryRequest, comprehension_request_adapter
from models.response_models import AnalysisResponse, StoryResponse
from providers.llm_provider import ConfigurationError, LLMProvider, LLMProviderFactory
from services.analysis_service import AnalysisService
from services.comprehension_service import ComprehensionService
from services.model_fallback import ModelsExhaustedError
from services.story_service import StoryService

logging.basicConfig(level=getattr(logging, Settings().LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}

# Error bodies on these paths keep the success shape's fields, empty
ERROR_FIELDS = {
    "/generate-story": {"hanzi": "", "pinyin": ""},
}

ENDPOINTS = ["generate-story", "analyze-sentence", "comprehension-questions", "health", "config"]

app = FastAPI(
    title="HSK Story AI Server",
    description="Chinese story generation, sentence analysis and comprehension review over an LLM gateway",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(path: str, message: str, status_code: int = 500) -> JSONResponse:
    content = {"error": message}
    content.update(ERROR_FIELDS.get(path, {}))
    return JSONResponse(status_code=status_code, content=content, headers=CORS_HEADERS)


def validation_message(errors: List[Dict[str, Any]]) -> str:
    parts = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "Invalid request: " + "; ".join(parts)


def get_provider(settings: Settings = Depends(get_settings)) -> LLMProvider:
    return LLMProviderFactory.get_provider(settings)


def get_story_service(provider: LLMProvider = Depends(get_provider),
                      settings: Settings = Depends(get_settings)) -> StoryService:
    return StoryService(provider, settings)


def get_analysis_service(provider: LLMProvider = Depends(get_provider),
                         settings: Settings = Depends(get_settings)) -> AnalysisService:
    return AnalysisService(provider, settings)


def get_comprehension_service(provider: LLMProvider = Depends(get_provider),
                              settings: Settings = Depends(get_settings)) -> ComprehensionService:
    return ComprehensionService(provider, settings)


# Registered after CORSMiddleware, so it runs outermost
@app.middleware("http")
async def answer_preflight(request: Request, call_next):
    """OPTIONS is answered here, ahead of routing, validation and configuration.

    Every other response leaves with the CORS headers too, Origin or not.
    """
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    response = await call_next(request)
    for name, value in CORS_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


@app.get("/")
async def root(settings: Settings = Depends(get_settings)):
    return {
        "message": "HSK Story AI Server",
        "status": "healthy",
        "provider": settings.get_current_provider_info()["provider"],
        "timestamp": datetime.now().isoformat(),
        "version": app.version,
        "endpoints": ENDPOINTS
    }


@app.get("/health")
async def health_check(settings: Settings = Depends(get_settings)):
    return {
        "status": "healthy",
        "current_provider": settings.get_current_provider_info(),
        "available_providers": LLMProviderFactory.get_available_providers(settings),
        "timestamp": datetime.now().isoformat()
    }


@app.get("/config")
async def get_config(settings: Settings = Depends(get_settings)):
    """Non-secret configuration"""
    return {
        "openrouter_configured": bool(settings.OPENROUTER_API_KEY),
        "base_url": settings.OPENROUTER_BASE_URL,
        "models": {
            "story": settings.STORY_MODELS,
            "analysis": settings.ANALYSIS_MODELS,
            "questions": settings.QUESTION_MODELS
        },
        "request_timeout": settings.request_timeout,
        "story_min_length": settings.STORY_MIN_LENGTH,
        "warnings": settings.validate_settings(),
        "active_endpoints": ["/" + name for name in ENDPOINTS]
    }


@app.post("/generate-story", response_model=StoryResponse)
async def generate_story(request: StoryRequest, service: StoryService = Depends(get_story_service)):
    logger.info("Generating story for %s (topic=%r)", request.hsk_level.value, request.topic)
    try:
        return await service.generate_story(request)
    except ModelsExhaustedError as e:
        logger.error("generate-story failed after %s: %s", e.attempted, e)
        return error_response("/generate-story", f"Failed to generate story: {e}")


@app.post("/analyze-sentence", response_model=AnalysisResponse)
async def analyze_sentence(request: AnalyzeSentenceRequest,
                           service: AnalysisService = Depends(get_analysis_service)):
    logger.info("Analyzing sentence (%s, history=%d)", request.hsk_level.value, len(request.conversation_history))
    try:
        return await service.analyze(request)
    except ModelsExhaustedError as e:
        logger.error("analyze-sentence failed after %s: %s", e.attempted, e)
        return error_response("/analyze-sentence", f"Failed to analyze sentence: {e}")


@app.post("/comprehension-questions")
async def comprehension_questions(payload: Dict[str, Any] = Body(...),
                                  service: ComprehensionService = Depends(get_comprehension_service)):
    try:
        request = comprehension_request_adapter.validate_python(payload)
    except ValidationError as e:
        logger.warning("Invalid comprehension request: %s", e.errors())
        return error_response("/comprehension-questions", validation_message(e.errors()), status_code=400)

    try:
        result = await service.handle(request)
    except ModelsExhaustedError as e:
        logger.error("comprehension-questions (%s) failed after %s: %s", request.action, e.attempted, e)
        return error_response("/comprehension-questions", f"Failed to process request: {e}")

    return result.model_dump()


@app.exception_handler(ConfigurationError)
async def configuration_exception_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error on %s: %s", request.url.path, exc)
    return error_response(request.url.path, str(exc))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(request.url.path, validation_message(exc.errors()), status_code=400)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=True)
    return error_response(request.url.path, str(exc) or "Unknown error")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
