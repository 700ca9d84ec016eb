"""
Paste routes.
Handles create, fetch (API), and view (HTML) operations.
"""
import html
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import HTMLResponse

from pastebin.config import settings
from pastebin.errors import InvalidInput, NotFound, StoreUnavailable
from pastebin.lifecycle import PasteService, get_paste_service, resolve_now_ms
from pastebin.models import PasteCreate, PasteResponse, PasteView

router = APIRouter()
logger = logging.getLogger(__name__)

NOT_FOUND_DETAIL = "Paste not found"
UNAVAILABLE_DETAIL = "Storage temporarily unavailable"


def _base_url(request: Request) -> str:
    if settings.APP_DOMAIN:
        return settings.APP_DOMAIN.rstrip("/")
    return str(request.base_url).rstrip("/")


@router.post("/api/pastes", response_model=PasteResponse, status_code=201)
def create_paste(
    paste: PasteCreate,
    request: Request,
    x_test_now_ms: Optional[str] = Header(None),
    service: PasteService = Depends(get_paste_service),
) -> PasteResponse:
    """
    Create a new paste.

    Args:
        paste: Paste data (content, optional ttl_seconds, optional max_views)
        request: HTTP request context
        x_test_now_ms: Optional test timestamp (TEST_MODE only)

    Returns:
        Paste ID and shareable URL

    Raises:
        HTTPException: 400 if input is invalid, 503 if storage fails
    """
    try:
        record = service.create_paste(
            content=paste.content,
            ttl_seconds=paste.ttl_seconds,
            max_views=paste.max_views,
            now=resolve_now_ms(settings.TEST_MODE, x_test_now_ms),
        )
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail=UNAVAILABLE_DETAIL)

    url = f"{_base_url(request)}/p/{record.id}"
    return PasteResponse(id=record.id, url=url)


@router.get("/api/pastes/{paste_id}", response_model=PasteView)
def fetch_paste(
    paste_id: str,
    x_test_now_ms: Optional[str] = Header(None),
    service: PasteService = Depends(get_paste_service),
) -> PasteView:
    """
    Fetch a paste (API endpoint).
    Each successful fetch counts as a view.

    Raises:
        HTTPException: 404 if paste not found, expired, or view limit
            exceeded; 503 if storage fails
    """
    try:
        record = service.read_paste(
            paste_id, now=resolve_now_ms(settings.TEST_MODE, x_test_now_ms)
        )
    except NotFound:
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail=UNAVAILABLE_DETAIL)

    return PasteView.from_record(record)


@router.get("/p/{paste_id}", response_class=HTMLResponse)
def view_paste(
    paste_id: str,
    x_test_now_ms: Optional[str] = Header(None),
    service: PasteService = Depends(get_paste_service),
) -> HTMLResponse:
    """
    View a paste as HTML.
    Each view counts the same way as an API fetch.
    """
    try:
        record = service.read_paste(
            paste_id, now=resolve_now_ms(settings.TEST_MODE, x_test_now_ms)
        )
    except NotFound:
        return HTMLResponse(_render_message_page("404", NOT_FOUND_MESSAGE), status_code=404)
    except StoreUnavailable:
        return HTMLResponse(_render_message_page("503", UNAVAILABLE_MESSAGE), status_code=503)

    meta = []
    if record.remaining_views is not None:
        meta.append(f"Views remaining: {record.remaining_views}")
    if record.expires_at_iso is not None:
        meta.append(f"Expires: {record.expires_at_iso}")

    return HTMLResponse(
        PASTE_PAGE.format(
            paste_id=html.escape(record.id),
            content=html.escape(record.content),
            meta=html.escape(" | ".join(meta)),
        )
    )


NOT_FOUND_MESSAGE = "This paste was not found, has expired, or its view limit has been exceeded."
UNAVAILABLE_MESSAGE = "Pastes are temporarily unavailable. Please try again shortly."

STYLE = """
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body {
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial, sans-serif;
            background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
            min-height: 100vh;
            display: flex;
            align-items: center;
            justify-content: center;
            padding: 20px;
        }
        .container {
            background: white;
            border-radius: 10px;
            box-shadow: 0 10px 40px rgba(0, 0, 0, 0.3);
            max-width: 900px;
            width: 100%;
            padding: 40px;
        }
        h1 { color: #333; margin-bottom: 10px; font-size: 24px; }
        .meta { color: #666; font-size: 12px; margin-bottom: 30px; font-family: monospace; }
        .content {
            background: #f5f5f5;
            border: 1px solid #ddd;
            border-radius: 5px;
            padding: 20px;
            font-family: "Courier New", monospace;
            font-size: 14px;
            line-height: 1.6;
            max-height: 500px;
            overflow-y: auto;
            white-space: pre-wrap;
            word-wrap: break-word;
            color: #333;
        }
        textarea, input { width: 100%; padding: 10px; margin-bottom: 15px; font-size: 14px; }
        button, .button {
            display: inline-block;
            background: #667eea;
            color: white;
            padding: 12px 30px;
            border: none;
            border-radius: 5px;
            text-decoration: none;
            font-weight: 600;
            cursor: pointer;
        }
        .footer { margin-top: 20px; text-align: center; color: #999; font-size: 12px; }
        .footer a { color: #667eea; text-decoration: none; }
"""

# Placeholders filled with str.format, so literal braces are doubled
PASTE_PAGE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Paste - Pastebin Lite</title>
    <style>""" + STYLE.replace("{", "{{").replace("}", "}}") + """</style>
</head>
<body>
    <div class="container">
        <h1>Pastebin Lite</h1>
        <div class="meta">ID: {paste_id}</div>
        <div class="meta">{meta}</div>
        <div class="content">{content}</div>
        <div class="footer">
            <p><a href="/">Create a new paste</a></p>
        </div>
    </div>
</body>
</html>"""


def _render_message_page(title: str, message: str) -> str:
    """Render an error page (404 or 503)."""
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title} - Pastebin Lite</title>
    <style>{STYLE}</style>
</head>
<body>
    <div class="container" style="text-align: center;">
        <h1>{title}</h1>
        <p class="meta">{message}</p>
        <a class="button" href="/">Create a new paste</a>
    </div>
</body>
</html>"""
