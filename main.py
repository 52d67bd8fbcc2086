# ===========================
# E-Consultation Comment Analysis API (V1.0.0)
# ===========================
#
# To run this server:
# 1. Install the project:
#    pip install -e .
#
# 2. Run the server:
#    uvicorn main:app --reload
#
# 3. Access the interactive API docs (Swagger):
#    http://127.0.0.1:8000/docs
#
# The analysis is heuristic: sentiment comes from keyword matching and
# several aggregate figures are simulated. The response lists those fields
# in "simulatedFields".
#
# ===========================

## --- 1. Imports ---

# --- Standard Library ---
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

# --- Third-Party Libraries ---
from fastapi import FastAPI, File, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from starlette.requests import Request
from starlette.responses import Response, StreamingResponse

# --- Local Modules ---
import settings
from analysis_core import AnalysisError, MissingFileError, decode_upload, run_analysis
from reports import ReportFormatError, ReportRequest, ReportRequestError, comments_to_csv, render_report

ANALYZE_FAILURE_MESSAGE = "Failed to process file. Please check the format and try again."
EXPORT_FAILURE_MESSAGE = "Failed to generate report. Please try again."

## --- 2. Logging ---

def setup_logging(log_level: str = settings.LOG_LEVEL) -> None:
    """Configure logging for the entire application."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=settings.LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


setup_logging()
logger = logging.getLogger(__name__)

## --- 3. API Setup ---

app = FastAPI(
    title=settings.API_TITLE,
    description="Upload citizen comments as CSV, get heuristic sentiment analysis and export stakeholder reports.",
    version=settings.API_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

## --- 4. Pydantic Models (API Data Structure) ---

class CamelModel(BaseModel):
    """Python attributes in snake_case, JSON keys in camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    error: str


class ClassifiedCommentPayload(CamelModel):
    id: str
    text: str
    timestamp: str
    language: str
    user_id: Optional[str] = None
    sentiment: str = Field(..., examples=["supportive"])
    emotion: str = Field(..., examples=["optimism"])
    summary: str
    evidence_spans: List[str]
    priority_score: int = Field(..., ge=0, le=100)
    confidence: float = Field(..., ge=0.7, lt=1.0)


class TrendPoint(CamelModel):
    date: str
    supportive: int; critical: int; suggestion: int; irrelevant: int


class SummaryPayload(CamelModel):
    total_comments: int
    sentiment_distribution: Dict[str, int]
    emotion_distribution: Dict[str, int]
    language_distribution: Dict[str, int]
    trends_over_time: List[TrendPoint] = Field(..., description="Simulated daily counts for the last 7 days.")


class KeywordTrend(CamelModel):
    keyword: str; frequency: int
    sentiment: float = Field(..., description="Simulated, -1 to 1.")
    growth: float = Field(..., description="Simulated percentage, -20 to 20.")


class LanguageBreakdown(CamelModel):
    language: str
    count: int
    sentiments: Dict[str, int]
    avg_sentiment: float
    supportive: int; critical: int; suggestion: int; irrelevant: int


class HourlyPattern(CamelModel):
    hour: int; comments: int; avg_sentiment: float


class TopicCorrelation(CamelModel):
    topic: str; sentiment: float; volume: int


class EmotionAxis(CamelModel):
    emotion: str; value: int; full_mark: int


class AnalyticsPayload(CamelModel):
    keyword_trends: List[KeywordTrend]
    language_analysis: List[LanguageBreakdown]
    temporal_patterns: List[HourlyPattern]
    sentiment_correlation: List[TopicCorrelation]
    emotion_radar: List[EmotionAxis]


class PrioritySuggestion(CamelModel):
    id: int; text: str; priority: int; frequency: int; sentiment: str
    evidence: List[str]


class ControversialTopic(CamelModel):
    topic: str; supportive: int; critical: int; total_mentions: int


class AnalysisResponse(CamelModel):
    success: bool
    total_comments: int
    processed_at: str
    summary: SummaryPayload
    comments: List[ClassifiedCommentPayload]
    analytics: AnalyticsPayload
    priority_suggestions: List[PrioritySuggestion]
    controversial_topics: List[ControversialTopic]
    simulated_fields: List[str] = Field(..., description="Response paths whose values are simulated placeholders.")


class ExportRequest(CamelModel):
    type: Optional[str] = Field(None, examples=["summary"], description="summary, detailed, trends or language")
    format: Optional[str] = Field(None, examples=["pdf"], description="json, csv, xlsx or pdf")
    date_range: Optional[str] = Field(None, examples=["30d"])
    include_charts: bool = False
    include_raw_data: bool = False

## --- 5. Helpers ---

def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(AnalysisError)
async def analysis_error_handler(request: Request, exc: AnalysisError) -> JSONResponse:
    return error_response(exc.message, exc.status_code)


async def read_upload(file: Optional[UploadFile]) -> str:
    """Reads and decodes the uploaded file (UTF-8 with CP1252 fallback)."""
    if file is None:
        raise MissingFileError()
    contents = await file.read()
    return decode_upload(contents)


def create_csv_response(csv_text: str, filename: str) -> StreamingResponse:
    """Utility to wrap CSV text in a downloadable StreamingResponse."""
    response = StreamingResponse(iter([csv_text]), media_type="text/csv")
    response.headers["Content-Disposition"] = f"attachment; filename={filename}"
    return response

## --- 6. API Endpoints ---

@app.get("/health", summary="Liveness check")
async def health():
    return {"status": "ok", "version": settings.API_VERSION}


@app.post(
    "/api/analyze",
    response_model=AnalysisResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Analyze comments from an uploaded CSV file",
)
async def analyze_csv_upload(
    file: Optional[UploadFile] = File(None, description="CSV with comment_id, comment_text, timestamp, language columns.")
):
    """
    Parses the CSV, classifies every comment and returns summary, analytics,
    priority suggestions and controversial topics in one response.
    """
    try:
        text = await read_upload(file)
        result = run_analysis(text)
        return AnalysisResponse(**result)
    except AnalysisError as e: raise e
    except Exception:
        logger.exception("Analysis error")
        return error_response(ANALYZE_FAILURE_MESSAGE, 500)


@app.post(
    "/api/analyze/download",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Download the classified comments of an uploaded CSV as CSV",
)
async def download_analysis_csv(
    file: Optional[UploadFile] = File(None, description="The same CSV file originally uploaded.")
):
    """Re-runs the analysis and returns one row per classified comment."""
    try:
        text = await read_upload(file)
        result = run_analysis(text)
    except AnalysisError as e: raise e
    except Exception:
        logger.exception("Analysis download error")
        return error_response(ANALYZE_FAILURE_MESSAGE, 500)
    stem = Path(file.filename or "comments").stem.replace(" ", "_")
    return create_csv_response(comments_to_csv(result["comments"]), f"analysis_{stem}.csv")


@app.post(
    "/api/export",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Export a stakeholder report",
)
async def export_report(request: ExportRequest):
    """
    Renders a canned report as JSON, CSV, Excel-friendly CSV or print-ready
    HTML. The report content does not depend on any uploaded file.
    """
    try:
        rendered = render_report(ReportRequest(
            type=request.type,
            format=request.format,
            date_range=request.date_range,
            include_charts=request.include_charts,
            include_raw_data=request.include_raw_data,
        ))
    except (ReportRequestError, ReportFormatError) as e:
        return error_response(str(e), 400)
    except Exception:
        logger.exception("Export error")
        return error_response(EXPORT_FAILURE_MESSAGE, 500)
    logger.info(f"Exported {request.type} report as {request.format}")
    return Response(content=rendered.body, media_type=rendered.media_type, headers=rendered.headers)

## --- 7. Server Entry Point ---

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=settings.API_HOST, port=settings.API_PORT, reload=True)
