"""
Pastebin Lite - Main FastAPI application.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from pastebin.config import settings
from pastebin.database import get_store, using_fallback
from pastebin.routes import health, pastes

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Pastebin Lite",
    description="A lightweight Pastebin-like application for sharing text",
    version="1.0.0",
    debug=settings.DEBUG,
)

# Add CORS middleware (optional, for cross-origin requests)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include route modules
app.include_router(health.router)
app.include_router(pastes.router)


def _describe_validation_error(exc: RequestValidationError) -> str:
    """Turn the first pydantic error into a short constraint description."""
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    error = errors[0]
    loc = [str(part) for part in error.get("loc", ())]
    field = next((part for part in loc if part in ("content", "ttl_seconds", "max_views")), None)
    if field == "content":
        return "content is required and must be a non-empty string"
    if field in ("ttl_seconds", "max_views"):
        return f"{field} must be an integer >= 1"
    if error.get("type") == "json_invalid":
        return "Invalid JSON in request body"
    return "Invalid request body"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reject malformed create requests with 400 instead of 422."""
    detail = _describe_validation_error(exc)
    logger.info(f"Rejected request to {request.url.path}: {detail}")
    return JSONResponse(status_code=400, content={"detail": detail})


@app.on_event("startup")
async def startup_event():
    """Startup event handler."""
    logger.info("Pastebin Lite application starting...")
    get_store()

    if using_fallback():
        logger.warning("DATABASE: Using IN-MEMORY storage")
        logger.warning("   Data will NOT persist across server restarts!")
    else:
        logger.info("DATABASE: Connected to Redis")
    if settings.TEST_MODE:
        logger.warning("TEST_MODE enabled: x-test-now-ms header overrides the clock")


@app.on_event("shutdown")
async def shutdown_event():
    """Shutdown event handler."""
    logger.info("Pastebin Lite application shutting down...")


@app.get("/", response_class=HTMLResponse)
async def root() -> HTMLResponse:
    """Serve the create paste HTML page."""
    return HTMLResponse(CREATE_PAGE)


CREATE_PAGE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Pastebin Lite</title>
    <style>""" + pastes.STYLE + """</style>
</head>
<body>
    <div class="container">
        <h1>Pastebin Lite</h1>
        <form id="paste-form">
            <textarea id="content" rows="12" placeholder="Paste your text here..." required></textarea>
            <input id="ttl_seconds" type="number" min="1" placeholder="Expire after (seconds, optional)">
            <input id="max_views" type="number" min="1" placeholder="Maximum views (optional)">
            <button type="submit">Create paste</button>
        </form>
        <div class="footer" id="result"></div>
    </div>
    <script>
        document.getElementById("paste-form").addEventListener("submit", async (event) => {
            event.preventDefault();
            const body = { content: document.getElementById("content").value };
            for (const field of ["ttl_seconds", "max_views"]) {
                const value = document.getElementById(field).value;
                if (value !== "") body[field] = parseInt(value, 10);
            }
            const result = document.getElementById("result");
            const response = await fetch("/api/pastes", {
                method: "POST",
                headers: { "Content-Type": "application/json" },
                body: JSON.stringify(body),
            });
            const data = await response.json();
            result.textContent = "";
            if (response.ok) {
                const link = document.createElement("a");
                link.href = data.url;
                link.textContent = data.url;
                result.appendChild(link);
            } else {
                result.textContent = data.detail;
            }
        });
    </script>
</body>
</html>"""


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pastebin.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
