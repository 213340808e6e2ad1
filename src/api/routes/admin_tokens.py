"""
Admin Tokens API Routes.

Admin endpoints for managing custom tokens (shortcodes): add, remove,
bulk import from JSON/CSV and export.

Status codes:
- 400: invalid token name/label, or unreadable import payload
- 404: value update for a token name that does not exist
- 409: token name already exists (case-insensitive)
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, Field

from src.api.deps import get_rules, get_token_service, get_token_store, require_admin
from src.components.tokens import (
    CachedTokenStore,
    DuplicateError,
    ExportTokensInput,
    ReconcileResult,
    Token,
    TokenService,
    get_user_message,
    render_tokens,
    run_export,
)
from src.rules.models import Rules

router = APIRouter(dependencies=[Depends(require_admin)])


# --- Request/Response Models ---


class AddTokenRequest(BaseModel):
    """Request to add a token."""

    name: str = Field(..., description="Token name / shortcode (letters, digits, _)")
    label: str = Field(..., description="Display label")
    value: str = Field("", description="Substituted text")


class UpdateValueRequest(BaseModel):
    """New value for one token."""

    value: str = Field("", description="Substituted text")


class UpdateValuesRequest(BaseModel):
    """New values keyed by exact token name. Unknown names are ignored."""

    values: dict[str, str]


class ImportTokensRequest(BaseModel):
    """Import document, same shape as the JSON export."""

    tokens: list[Any]
    replace_existing: bool = False


class RenderRequest(BaseModel):
    """Content to render through the token shortcodes."""

    content: str


class TokenResponse(BaseModel):
    """Token response."""

    name: str
    label: str
    value: str
    shortcode: str


class TokenListResponse(BaseModel):
    """List of tokens response."""

    tokens: list[TokenResponse]
    count: int


class ActionResponse(BaseModel):
    """Outcome of a token action."""

    success: bool
    message_key: str
    message: str
    count: int | None = None


class ImportResponse(ActionResponse):
    """Outcome of an import, with per-entry counts."""

    added: int = 0
    replaced: int = 0
    skipped: int = 0
    invalid: int = 0


class RenderResponse(BaseModel):
    content: str


# --- Helper Functions ---


def _token_to_response(token: Token) -> TokenResponse:
    return TokenResponse(
        name=token.name,
        label=token.label,
        value=token.value,
        shortcode=f"[{token.name}]",
    )


def _action_response(result: ReconcileResult) -> ActionResponse:
    return ActionResponse(
        success=result.success,
        message_key=result.outcome,
        message=result.message,
        count=len(result.tokens) if result.tokens is not None else None,
    )


def _import_response(result: ReconcileResult) -> ImportResponse:
    stats = result.stats
    return ImportResponse(
        success=result.success,
        message_key=result.outcome,
        message=result.message,
        count=len(result.tokens) if result.tokens is not None else None,
        added=stats.added if stats else 0,
        replaced=stats.replaced if stats else 0,
        skipped=stats.skipped if stats else 0,
        invalid=stats.invalid if stats else 0,
    )


def _raise_for_error(result: ReconcileResult) -> None:
    """Map a rejected result to an HTTP error."""
    if result.error is None:
        return
    status_code = 409 if isinstance(result.error, DuplicateError) else 400
    raise HTTPException(
        status_code=status_code,
        detail={
            "message_key": result.outcome,
            "message": result.message,
            "errors": [
                {
                    "code": result.error.code,
                    "message": result.error.message,
                    "field": result.error.field,
                }
            ],
        },
    )


def _download(content: str, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# --- Routes ---


@router.get("", response_model=TokenListResponse)
def list_tokens(
    service: TokenService = Depends(get_token_service),
) -> TokenListResponse:
    """List all tokens in store order."""
    tokens = service.list_tokens()
    return TokenListResponse(
        tokens=[_token_to_response(t) for t in tokens],
        count=len(tokens),
    )


@router.post(
    "",
    response_model=ActionResponse,
    responses={400: {"description": "Invalid token"}, 409: {"description": "Duplicate"}},
)
def add_token(
    request: AddTokenRequest,
    service: TokenService = Depends(get_token_service),
) -> ActionResponse:
    """Add a token. Names are unique ignoring case."""
    result = service.add(request.name, request.label, request.value)
    _raise_for_error(result)
    return _action_response(result)


@router.put("", response_model=ActionResponse)
def update_token_values(
    request: UpdateValuesRequest,
    service: TokenService = Depends(get_token_service),
) -> ActionResponse:
    """Save new values for existing tokens in one write. Labels are kept."""
    result = service.update_values(request.values)
    _raise_for_error(result)
    return _action_response(result)


@router.put(
    "/{name}",
    response_model=ActionResponse,
    responses={404: {"description": "Token not found"}},
)
def update_token_value(
    name: str,
    request: UpdateValueRequest,
    service: TokenService = Depends(get_token_service),
) -> ActionResponse:
    """Save a new value for one token, matched by exact name."""
    result = service.set_value(name, request.value)
    if result is None:
        raise HTTPException(status_code=404, detail="Token not found")
    _raise_for_error(result)
    return _action_response(result)


@router.delete("/{name}", response_model=ActionResponse)
def remove_token(
    name: str,
    service: TokenService = Depends(get_token_service),
) -> ActionResponse:
    """
    Remove a token by exact name.

    Matching is case-sensitive; an unknown name is not an error.
    """
    return _action_response(service.remove(name))


@router.post("/actions", response_model=ActionResponse)
def handle_form_action(
    token_action: Literal["add_token", "remove_token", "import_tokens"] = Form(...),
    name: str = Form(""),
    label: str = Form(""),
    value: str = Form(""),
    remove_token_name: str = Form(""),
    import_tokens_data: str = Form(""),
    service: TokenService = Depends(get_token_service),
) -> ActionResponse:
    """
    Form-style action dispatcher.

    Always answers 200 with the outcome key and message so the admin page can
    show a notice, matching the post-redirect-get flow of the admin forms.
    """
    if token_action == "add_token":
        result = service.add(name, label, value)
    elif token_action == "remove_token":
        result = service.remove(remove_token_name)
    else:
        result = service.import_payload(import_tokens_data)
    return _action_response(result)


@router.post("/import", response_model=ImportResponse)
def import_tokens(
    request: ImportTokensRequest,
    service: TokenService = Depends(get_token_service),
) -> ImportResponse:
    """Merge a JSON batch of tokens. Invalid entries are dropped."""
    result = service.import_tokens(request.tokens, request.replace_existing)
    _raise_for_error(result)
    return _import_response(result)


@router.post(
    "/import/file",
    response_model=ImportResponse,
    responses={400: {"description": "Unreadable import file"}},
)
def import_tokens_file(
    file: UploadFile = File(...),
    replace_existing: bool = Form(False),
    service: TokenService = Depends(get_token_service),
    rules: Rules = Depends(get_rules),
) -> ImportResponse:
    """Import tokens from an uploaded JSON or CSV file."""
    filename = file.filename or ""
    extension = "." + filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if extension and extension not in rules.imports.allowlist_extensions:
        raise HTTPException(status_code=400, detail=f"Unsupported file type: {extension}")

    raw = file.file.read(rules.imports.max_upload_bytes + 1)
    if len(raw) > rules.imports.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Import file too large")

    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise HTTPException(
            status_code=400,
            detail={"message_key": "import_error_parse", "message": str(e)},
        ) from e

    result = service.import_file(content, filename or None, replace_existing)
    _raise_for_error(result)
    return _import_response(result)


@router.get("/export.json")
def export_tokens_json(
    store: CachedTokenStore = Depends(get_token_store),
) -> Response:
    """Download all tokens as JSON."""
    output = run_export(ExportTokensInput(format="json"), store=store)
    return _download(output.content, output.media_type, output.filename)


@router.get("/export.csv")
def export_tokens_csv(
    store: CachedTokenStore = Depends(get_token_store),
) -> Response:
    """Download all tokens as CSV."""
    output = run_export(ExportTokensInput(format="csv"), store=store)
    return _download(output.content, output.media_type, output.filename)


@router.post("/render", response_model=RenderResponse)
def render_content(
    request: RenderRequest,
    service: TokenService = Depends(get_token_service),
) -> RenderResponse:
    """Preview content with token shortcodes substituted."""
    return RenderResponse(content=render_tokens(request.content, service.get_all()))


@router.get("/messages/{key}")
def get_message(key: str) -> dict[str, str]:
    """Resolve an outcome key to its admin-facing message."""
    return {"message_key": key, "message": get_user_message(key)}
