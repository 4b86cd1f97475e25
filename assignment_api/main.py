"""
FastAPI backend that answers assignment questions, optionally using an
uploaded CSV (or ZIP containing a CSV) as context.
"""
import uuid
from typing import Optional

from fastapi import FastAPI, File, Form, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .cleanup import CleanupScheduler
from .config import Settings
from .errors import ValidationError
from .llm import AnswerSynthesizer, GeminiGenerator, TextGenerator
from .logger import setup_logger, log_api_request, logger
from .utils import FileIntakeResult, save_uploaded_file, dispatch_file


def is_json_request(request: Request) -> bool:
    content_type = request.headers.get("content-type", "")
    return content_type.split(";")[0].strip().lower() == "application/json"


async def read_json_question(request: Request) -> Optional[str]:
    """
    Read the ``question`` field from a JSON request body.

    Raises:
        ValidationError: If the body is not valid JSON
    """
    try:
        payload = await request.json()
    except ValueError as e:
        raise ValidationError(f"Malformed JSON body: {str(e)}") from e

    if not isinstance(payload, dict):
        return None

    question = payload.get("question")
    if not question:
        return None
    return question if isinstance(question, str) else str(question)


def create_app(
    settings: Optional[Settings] = None,
    generator: Optional[TextGenerator] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Runtime settings; read from the environment when omitted
        generator: Text generator used for synthesized answers; a Gemini
            generator built from ``settings`` when omitted

    Returns:
        Configured FastAPI app
    """
    settings = settings or Settings.from_env()
    setup_logger(level=settings.log_level, log_file=settings.log_file)

    if generator is None:
        generator = GeminiGenerator(
            api_key=settings.gemini_api_key,
            model_name=settings.model_name,
            timeout=settings.llm_timeout_seconds
        )

    app = FastAPI(
        title="Assignment Answer API",
        description="Ask a question, optionally attach a CSV or ZIP, get a literal answer",
        version=__version__
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    synthesizer = AnswerSynthesizer(generator)
    cleanup = CleanupScheduler(delay_seconds=settings.cleanup_delay_seconds)

    app.state.settings = settings
    app.state.synthesizer = synthesizer
    app.state.cleanup = cleanup

    @app.on_event("startup")
    async def startup_event():
        """Initialize the application on startup."""
        settings.upload_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Starting Assignment Answer API server")
        logger.info(f"Upload directory: {settings.upload_dir.resolve()}")
        if not settings.gemini_api_key:
            logger.warning("GEMINI_API_KEY is not set; synthesized answers will fail")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Remove any scratch files still waiting for their cleanup delay."""
        logger.info(f"Shutting down; flushing {cleanup.pending_count} pending cleanups")
        await cleanup.shutdown()

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {"message": "Assignment Answer API is running", "status": "healthy"}

    @app.get("/health")
    async def health_check():
        """Detailed health check."""
        return {
            "status": "healthy",
            "model": getattr(generator, "model_name", "unknown"),
            "api_key_configured": bool(settings.gemini_api_key),
            "directories": {
                "uploads": settings.upload_dir.exists()
            }
        }

    @app.post("/api")
    async def answer_question(
        request: Request,
        question: Optional[str] = Form(None),
        file: Optional[UploadFile] = File(None)
    ):
        """
        Answer a question, using the attached file when there is one.

        Args:
            request: Incoming request, read for a JSON body when no form
                question was sent
            question: Natural language question (required)
            file: Optional CSV file or ZIP archive containing a CSV

        Returns:
            ``{"answer": ...}`` on success, ``{"error": ...}`` with 400 when
            the question is missing, ``{"error": ..., "details": ...}`` with
            500 on any processing failure
        """
        request_id = str(uuid.uuid4())
        request_dir = settings.upload_dir / request_id
        has_file = file is not None and bool(file.filename)

        try:
            if question is None and is_json_request(request):
                question = await read_json_question(request)

            if not question:
                raise ValidationError("Question is required")

            log_api_request(
                logger=logger,
                request_id=request_id,
                endpoint="/api",
                method="POST",
                files_count=1 if has_file else 0,
                question_preview=question[:100] + "..." if len(question) > 100 else question
            )

            result = FileIntakeResult()
            if has_file:
                file_path = await save_uploaded_file(file, request_dir)
                logger.info(f"Request {request_id}: Saved upload {file.filename} to {file_path}")
                result = await dispatch_file(file_path, question, request_id)

            if result.direct_answer:
                logger.info(f"Request {request_id}: Answered directly from file data")
                answer = result.direct_answer
            else:
                answer = await synthesizer.synthesize(question, result.sample_rows, request_id)

            logger.info(f"Request {request_id}: Answer resolved")
            return JSONResponse(content={"answer": answer})

        except ValidationError as e:
            logger.warning(f"Request {request_id}: Validation failed - {str(e)}")
            return JSONResponse(
                content={"error": str(e)},
                status_code=status.HTTP_400_BAD_REQUEST
            )
        except Exception as e:
            logger.error(f"Request {request_id}: Error processing request - {type(e).__name__}: {str(e)}")
            return JSONResponse(
                content={"error": "Internal server error", "details": str(e)},
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
            )
        finally:
            if request_dir.exists():
                await cleanup.schedule(request_dir)

    return app


app = create_app()
