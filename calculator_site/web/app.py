"""
Calculator web service.

Serves the static calculator page verbatim and evaluates the expressions it posts.

Run with:
    uvicorn calculator_site.web.app:app --host 0.0.0.0 --port 8000
"""
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse

from calculator_site.common.config import VERSION
from calculator_site.common.exceptions import ExpressionError
from calculator_site.common.logger import logger
from calculator_site.common.operations import OperationError, OperationRequest, OperationResult
from calculator_site.common.parser import ExpressionParser

STATIC_DIR: Path = Path(__file__).parent / "static"
INDEX_FILE: Path = STATIC_DIR / "index.html"


def create_app(index_file: Path = INDEX_FILE) -> FastAPI:
    """
    Build the FastAPI application.

    :param Path index_file: Static page returned for the root path

    :return: Configured application
    :rtype: FastAPI
    """
    application = FastAPI(
        title="Calculator",
        version=VERSION,
        description="Static calculator page with a safe arithmetic evaluation endpoint",
        docs_url=None,
        redoc_url=None,
    )

    @application.exception_handler(ExpressionError)
    async def expression_error_handler(request: Request, exc: ExpressionError) -> JSONResponse:
        """Turn evaluation failures into the error indicator instead of a server error."""
        logger.warning(f"🧮❌ Rejected expression {exc.expression!r}: {exc}")
        payload = OperationError(expression=exc.expression or "", error=str(exc))
        return JSONResponse(status_code=400, content=payload.model_dump())

    @application.api_route("/", methods=["GET", "HEAD"], include_in_schema=False)
    @application.api_route("/index.html", methods=["GET", "HEAD"], include_in_schema=False)
    async def index() -> FileResponse:
        """Return the calculator page unchanged."""
        return FileResponse(index_file, media_type="text/html")

    @application.post(
        "/api/evaluate",
        response_model=OperationResult,
        responses={400: {"model": OperationError}},
    )
    async def evaluate(request: OperationRequest) -> OperationResult:
        """Evaluate one expression typed on the calculator."""
        result = ExpressionParser.evaluate(request.expression)
        logger.debug(f"🧮✅ {request.expression} = {result}")
        return OperationResult(
            expression=request.expression,
            result=result,
            display=ExpressionParser.format_result(result),
        )

    @application.get("/api/health")
    async def health() -> dict:
        """Simple health/status endpoint."""
        return {"status": "ok", "version": VERSION}

    return application


app = create_app()
