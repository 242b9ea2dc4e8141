"""
FastAPI Application for the Math Tutor
"""

import base64
import logging
import math
import uuid
from typing import Callable, Optional
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from langchain_core.language_models.chat_models import BaseChatModel
from pydantic import BaseModel, Field, ValidationError
from starlette.datastructures import UploadFile

from config import settings
from expression import ExpressionError
from graph import Solution, get_graph
from llm import build_chat_model, is_rate_limit_error
from plotting import figure_payload
from sampler import sample_expression
from state import SolveState

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


RATE_LIMIT_MESSAGE = "The AI is busy or out of quota right now. Please try again in a minute."
AI_ERROR_MESSAGE = "AI error. Please try again later."
GRAPH_ERROR_MESSAGE = "Could not graph this expression."

# ============================================================================
# PYDANTIC MODELS
# ============================================================================

class SolveRequest(BaseModel):
    """JSON body for /solve (photos require multipart/form-data)."""
    question: str = ""
    level: str = "middle"

class SolveResponse(BaseModel):
    solution: Optional[Solution] = None
    html: Optional[str] = None  # Rendered answer panel for `solution`
    answer: Optional[str] = None  # Plain-text reply

class GraphResponse(BaseModel):
    expr: str
    points: int
    figure: dict = Field(..., description="Plotly figure: {data, layout, config}")

class HealthResponse(BaseModel):
    status: str
    version: str = "0.1.0"
    environment: str

# ============================================================================
# LIFECYCLE & APP
# ============================================================================

app_graph = None

@asynccontextmanager
async def lifespan(app: FastAPI):
    global app_graph
    logger.info("Starting up Math Tutor...")

    try:
        app_graph = get_graph()
        logger.info(f"Solve workflow initialized (provider={settings.llm_provider}, model={settings.solve_model})")
    except Exception as e:
        logger.error(f"Failed to initialize solve workflow: {e}")
        raise

    yield

    logger.info("Shutting down...")

app = FastAPI(
    title="Math Tutor API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")


def get_model_factory() -> Callable[[], BaseChatModel]:
    """Dependency returning the chat model factory (overridden in tests)."""
    return build_chat_model


async def upload_to_data_url(photo: UploadFile) -> str:
    """
    Write the upload to a uniquely named temp file, read it back and encode it
    as a data URL. The temp file is always removed; failure to remove it is
    only logged.
    """
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    path = settings.upload_dir / uuid.uuid4().hex
    try:
        path.write_bytes(await photo.read())
        encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    finally:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"[Solve] Could not delete upload {path}: {e}")

    mime = photo.content_type or ""
    if not mime.startswith("image/"):
        logger.warning(f"[Solve] Upload has content type {mime!r}, sending as image/png")
        mime = "image/png"
    return f"data:{mime};base64,{encoded}"


async def read_solve_input(request: Request) -> tuple[str, str, Optional[UploadFile]]:
    """Accept multipart/form-data (with optional photo) or a JSON body."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            payload = SolveRequest.model_validate(await request.json())
        except (ValueError, ValidationError):
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid JSON body")
        return payload.question, payload.level, None

    form = await request.form()
    question = form.get("question")
    level = form.get("level")
    photo = form.get("photo")
    return (
        question if isinstance(question, str) else "",
        level if isinstance(level, str) else "",
        photo if isinstance(photo, UploadFile) and photo.filename else None,
    )

# ============================================================================
# ENDPOINTS
# ============================================================================

@app.get("/", include_in_schema=False)
async def index():
    return FileResponse(settings.static_dir / "index.html")

@app.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(status="healthy", environment=settings.environment)

@app.post("/solve", response_model=SolveResponse, response_model_exclude_none=True)
async def solve(
    request: Request,
    model_factory: Callable[[], BaseChatModel] = Depends(get_model_factory),
):
    if app_graph is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Solver not initialized")

    question, level, photo = await read_solve_input(request)
    question = question.strip()
    level = level.strip() or "middle"
    logger.info(f"[Solve] Level: {level}, Photo: {photo is not None}, Question: {question[:50]!r}")

    try:
        image_data_url = await upload_to_data_url(photo) if photo else None

        initial_state: SolveState = {
            "question": question,
            "level": level,
            "image_data_url": image_data_url,
            "raw_text": None,
            "solution": None,
            "answer": None,
            "html": None
        }

        config = {"configurable": {"model_factory": model_factory}}
        result = await app_graph.ainvoke(initial_state, config)
    except Exception as e:
        if is_rate_limit_error(e):
            logger.warning(f"[Solve] Upstream rate limit: {e}")
            return JSONResponse(status_code=status.HTTP_429_TOO_MANY_REQUESTS, content={"answer": RATE_LIMIT_MESSAGE})
        logger.error(f"[Solve] Error: {e!r}", exc_info=True)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"answer": AI_ERROR_MESSAGE})

    if result.get("solution") is not None:
        return SolveResponse(solution=Solution.model_validate(result["solution"]), html=result.get("html"))
    return SolveResponse(answer=result.get("answer") or "")

@app.get("/graph", response_model=GraphResponse)
def graph_expression(
    expr: str = Query(..., min_length=1),
    x_min: float = Query(default=settings.graph_x_min),
    x_max: float = Query(default=settings.graph_x_max),
):
    """Sample an expression and return a Plotly figure for the graph panel."""
    if x_min >= x_max or not math.isfinite(x_max - x_min):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": GRAPH_ERROR_MESSAGE, "detail": "x_min must be less than x_max and the range must be finite"}
        )

    try:
        samples = sample_expression(
            expr,
            x_min=x_min,
            x_max=x_max,
            intervals=settings.graph_samples,
            max_length=settings.graph_max_expression_length,
        )
    except ExpressionError as e:
        logger.info(f"[Graph] Rejected {expr[:80]!r}: {e}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": GRAPH_ERROR_MESSAGE, "detail": str(e)}
        )

    return GraphResponse(expr=expr, points=len(samples.xs), figure=figure_payload(samples))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=settings.port, reload=True)
