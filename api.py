"""
FastAPI Application

JSON endpoints for the intake integrations, document generation, template
preview and the AI template assistant.
"""
import logging
import os

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from database import Database, get_db
from docmosis_client import DocmosisError
from documents import DocumentGenerationError, DocumentGenerator
from live_preview import replace_preview_placeholders
from orders import ValidationError, create_bankkonto, create_order
from print_layout import process_html_with_footers
from template_assistant import TemplateAssistant, TemplateAssistantError
from template_data import replace_template_data

logger = logging.getLogger(__name__)

APP_NAME = "Insolvenzpanel Admin API"
APP_VERSION = "1.0.0"

router = APIRouter()

PREVIEW_ID_FIELDS = (
    "kanzlei_id", "insolventes_unternehmen_id", "kunde_id", "auto_id", "bankkonto_id", "spedition_id",
)


# ============================================================================
# Helpers
# ============================================================================

def is_authorized(request: Request) -> bool:
    """Check the bearer token when INSOLVENZPANEL_API_KEY is configured."""
    api_key = os.getenv("INSOLVENZPANEL_API_KEY")
    if not api_key:
        return True
    return request.headers.get("Authorization", "") == f"Bearer {api_key}"


def _unauthorized() -> JSONResponse:
    return JSONResponse({"error": "Unauthorized"}, status_code=401)


def _db(request: Request) -> Database:
    if request.app.state.db is None:
        request.app.state.db = get_db()
    return request.app.state.db


def _assistant(request: Request) -> TemplateAssistant:
    if request.app.state.assistant is None:
        request.app.state.assistant = TemplateAssistant()
    return request.app.state.assistant


def _generator(request: Request) -> DocumentGenerator:
    if request.app.state.generator is None:
        request.app.state.generator = DocumentGenerator(_db(request), assistant=request.app.state.assistant)
    return request.app.state.generator


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Invalid JSON in request body")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _validation_response(error: ValidationError) -> JSONResponse:
    return JSONResponse({"success": False, "error": error.to_dict()}, status_code=400)


def _error_response(error: ValidationError) -> JSONResponse:
    body = {"error": error.message}
    if error.field:
        body["field"] = error.field
    return JSONResponse(body, status_code=400)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_record_ids(body: dict, keys) -> None:
    """Record ids must be integers; auto_ids a list of integers; rabatt_prozent a number."""
    for key in keys:
        value = body.get(key)
        if value is None:
            continue
        if key == "auto_ids":
            if not isinstance(value, list) or not all(_is_int(item) for item in value):
                raise ValidationError("auto_ids muss eine Liste von IDs sein", field=key)
        elif key == "rabatt_prozent":
            if not _is_number(value):
                raise ValidationError("rabatt_prozent muss eine Zahl sein", field=key)
        elif key.endswith("_id") and not _is_int(value):
            raise ValidationError(f"Ungültige ID für {key}", field=key)


def _document_response(doc) -> dict:
    result = {"base64": doc.base64, "filename": doc.filename}
    if doc.invoice_number:
        result["rechnungsnummer"] = doc.invoice_number
    return result


# ============================================================================
# Intake API
# ============================================================================

@router.post("/api/bestellungen")
async def api_create_bestellung(request: Request):
    """Create a customer and an order from an external intake request."""
    if not is_authorized(request):
        return _unauthorized()

    try:
        body = await _json_body(request)
        result = create_order(_db(request), body, origin=request.headers.get("origin"))
    except ValidationError as e:
        logger.info("Order intake rejected: %s (%s)", e.message, e.field)
        return _validation_response(e)

    return {
        "success": True,
        "data": {
            "bestellung_id": result.bestellung_id,
            "kunde_id": result.kunde_id,
            "kunde_typ": result.kunde_typ,
            "generator_url": result.generator_url,
        },
        "message": "Bestellung erfolgreich erstellt",
    }


@router.post("/api/bankkonten")
async def api_create_bankkonto(request: Request):
    """Create a bank account from an external intake request."""
    if not is_authorized(request):
        return _unauthorized()

    try:
        body = await _json_body(request)
        row = create_bankkonto(_db(request), body)
    except ValidationError as e:
        logger.info("Bank account intake rejected: %s (%s)", e.message, e.field)
        return _validation_response(e)

    return {"success": True, "data": row, "message": "Bankkonto erfolgreich erstellt"}


# ============================================================================
# Document Generation API
# ============================================================================

async def _generate(request: Request, method_name: str, required: list, optional: list = ()):
    if not is_authorized(request):
        return _unauthorized()

    try:
        body = await _json_body(request)
    except ValidationError as e:
        return _error_response(e)

    missing = [key for key in required if not body.get(key)]
    if missing:
        return JSONResponse(
            {"error": "Bitte wählen Sie alle erforderlichen Daten aus", "missing": missing},
            status_code=400,
        )

    try:
        _check_record_ids(body, [*required, *optional])
    except ValidationError as e:
        return _error_response(e)

    kwargs = {key: body[key] for key in required}
    kwargs.update({key: body[key] for key in optional if body.get(key) is not None})

    generator = _generator(request)
    try:
        doc = getattr(generator, method_name)(**kwargs)
    except (DocumentGenerationError, ValueError) as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    except DocmosisError as e:
        return JSONResponse(
            {"error": "Fehler bei der DOCX-Generierung", "details": e.response or str(e)},
            status_code=502,
        )

    return _document_response(doc)


@router.post("/api/documents/rechnung")
async def api_generate_rechnung(request: Request):
    """Generate an invoice DOCX."""
    return await _generate(request, "generate_rechnung", [
        "kanzlei_id", "kunde_id", "bankkonto_id", "insolventes_unternehmen_id", "auto_ids",
    ], optional=["rabatt_prozent"])


@router.post("/api/documents/kaufvertrag")
async def api_generate_kaufvertrag(request: Request):
    """Generate a purchase contract DOCX."""
    return await _generate(request, "generate_kaufvertrag", [
        "kanzlei_id", "kunde_id", "bankkonto_id", "insolventes_unternehmen_id",
        "spedition_id", "auto_id",
    ])


@router.post("/api/documents/treuhandvertrag")
async def api_generate_treuhandvertrag(request: Request):
    """Generate a trust agreement DOCX."""
    return await _generate(request, "generate_treuhandvertrag", [
        "kanzlei_id", "kunde_id", "bankkonto_id", "insolventes_unternehmen_id", "gender",
    ])


# ============================================================================
# Templates API
# ============================================================================

@router.post("/api/templates/preview")
async def api_template_preview(request: Request):
    """Fill posted template HTML with the selected records and lay it out for print."""
    if not is_authorized(request):
        return _unauthorized()

    try:
        body = await _json_body(request)
        _check_record_ids(body, PREVIEW_ID_FIELDS)
    except ValidationError as e:
        return _error_response(e)

    for key in ("html_content", "footer_html"):
        if body.get(key) is not None and not isinstance(body[key], str):
            return JSONResponse({"error": f"{key} muss ein String sein", "field": key}, status_code=400)

    html_content = body.get("html_content") or ""
    data = _db(request).load_template_data(
        kanzlei_id=body.get("kanzlei_id"),
        insolventes_unternehmen_id=body.get("insolventes_unternehmen_id"),
        kunde_id=body.get("kunde_id"),
        auto_id=body.get("auto_id"),
        bankkonto_id=body.get("bankkonto_id"),
        spedition_id=body.get("spedition_id"),
    )

    html = replace_preview_placeholders(replace_template_data(html_content, data), data)
    footer = body.get("footer_html")
    if footer:
        footer = replace_preview_placeholders(replace_template_data(footer, data), data)
    processed = process_html_with_footers(html, footer_content=footer)

    return {"html": processed.processed_content, "page_count": processed.page_count}


@router.post("/api/template-assistant")
async def api_template_assistant(request: Request):
    """Ask the AI assistant about the current template."""
    if not is_authorized(request):
        return _unauthorized()

    try:
        body = await _json_body(request)
    except ValidationError as e:
        return _error_response(e)

    prompt = body.get("prompt")
    prompt = prompt.strip() if isinstance(prompt, str) else ""
    if not prompt:
        return JSONResponse({"error": "prompt is required"}, status_code=400)

    try:
        response = _assistant(request).ask(
            prompt, html_content=body.get("htmlContent"), context=body.get("context"),
        )
    except TemplateAssistantError as e:
        return JSONResponse({"error": str(e)}, status_code=500)

    return {"response": response}


@router.post("/api/amount-to-words")
async def api_amount_to_words(request: Request):
    """Convert an amount to German words."""
    if not is_authorized(request):
        return _unauthorized()

    try:
        body = await _json_body(request)
    except ValidationError as e:
        return _error_response(e)

    amount = body.get("amount")
    if amount is None:
        return JSONResponse({"error": "Amount is required"}, status_code=400)
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        return JSONResponse({"error": "Amount must be a number", "field": "amount"}, status_code=400)

    try:
        words = _assistant(request).amount_to_words(amount)
    except TemplateAssistantError as e:
        return JSONResponse({"error": str(e)}, status_code=500)

    return {"words": words}


# ============================================================================
# Dashboard API
# ============================================================================

@router.get("/api/stats")
async def api_stats(request: Request):
    """Record counts for the dashboard."""
    if not is_authorized(request):
        return _unauthorized()
    return _db(request).get_stats()


# ============================================================================
# App Factory
# ============================================================================

def create_app(
    db: Database = None,
    generator: DocumentGenerator = None,
    assistant: TemplateAssistant = None,
) -> FastAPI:
    """Create the API app. Services default to the configured instances."""
    app = FastAPI(title=APP_NAME, version=APP_VERSION)
    app.state.db = db
    app.state.generator = generator
    app.state.assistant = assistant
    app.include_router(router)
    return app


app = create_app()


def run_server(host: str = "127.0.0.1", port: int = 8000, reload: bool = False):
    """Run the API server."""
    import uvicorn
    uvicorn.run(
        "api:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    run_server(reload=True)
