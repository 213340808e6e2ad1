"""
Tokens component - Custom token (shortcode) management.

Handles token creation, removal, bulk import and export.

Invariants:
- I1: Token names are unique ignoring case
- I2: Removal matches the exact stored name (case-sensitive)
- I3: Import never fails on bad entries; they are dropped
- I4: A rejected operation leaves the store untouched
- I5: Value updates never rename, relabel or reorder tokens
"""

from __future__ import annotations

from datetime import UTC, datetime

from ._impl import TokenService
from .models import (
    AddTokenInput,
    ExportOutput,
    ExportTokensInput,
    ImportTokensInput,
    ListTokensInput,
    ReconcileResult,
    RemoveTokenInput,
    TokenConfig,
    TokenListOutput,
    UpdateValuesInput,
)
from .ports import TokenStorePort


def _export_filename(extension: str) -> str:
    return f"tokens_export_{datetime.now(UTC).date().isoformat()}.{extension}"


# --- Component Entry Points ---


def run_list(
    inp: ListTokensInput,
    *,
    store: TokenStorePort,
    config: TokenConfig | None = None,
) -> TokenListOutput:
    """
    List all tokens.

    Args:
        inp: Input (empty).
        store: Token store port.
        config: Optional validation settings.

    Returns:
        TokenListOutput with tokens in store order.
    """
    service = TokenService(store, config)
    return TokenListOutput(tokens=tuple(service.list_tokens()))


def run_add(
    inp: AddTokenInput,
    *,
    store: TokenStorePort,
    config: TokenConfig | None = None,
) -> ReconcileResult:
    """
    Add a single token.

    Args:
        inp: Input containing name, label and value.
        store: Token store port.
        config: Optional validation settings.

    Returns:
        ReconcileResult with the new mapping, or the validation/duplicate error.
    """
    service = TokenService(store, config)
    return service.add(inp.name, inp.label, inp.value)


def run_remove(
    inp: RemoveTokenInput,
    *,
    store: TokenStorePort,
    config: TokenConfig | None = None,
) -> ReconcileResult:
    """
    Remove a token by exact name. Always succeeds.

    Args:
        inp: Input containing the token name.
        store: Token store port.
        config: Optional validation settings.

    Returns:
        ReconcileResult with the resulting mapping.
    """
    service = TokenService(store, config)
    return service.remove(inp.name)


def run_import(
    inp: ImportTokensInput,
    *,
    store: TokenStorePort,
    config: TokenConfig | None = None,
) -> ReconcileResult:
    """
    Merge a batch of tokens into the store.

    Args:
        inp: Input containing token entries and the replace flag.
        store: Token store port.
        config: Optional validation settings.

    Returns:
        ReconcileResult with the merged mapping and import counts.
    """
    service = TokenService(store, config)
    return service.import_tokens(inp.tokens, inp.replace_existing)


def run_update(
    inp: UpdateValuesInput,
    *,
    store: TokenStorePort,
    config: TokenConfig | None = None,
) -> ReconcileResult:
    """
    Save new values for existing tokens.

    Args:
        inp: Input mapping exact token names to new values.
        store: Token store port.
        config: Optional validation settings.

    Returns:
        ReconcileResult with the updated mapping.
    """
    service = TokenService(store, config)
    return service.update_values(inp.values)


def run_export(
    inp: ExportTokensInput,
    *,
    store: TokenStorePort,
    config: TokenConfig | None = None,
) -> ExportOutput:
    """
    Export all tokens as JSON or CSV.

    Args:
        inp: Input selecting the format.
        store: Token store port.
        config: Optional validation settings.

    Returns:
        ExportOutput with serialized content and a download filename.
    """
    service = TokenService(store, config)
    if inp.format == "csv":
        return ExportOutput(
            content=service.export_csv(),
            media_type="text/csv",
            filename=_export_filename("csv"),
        )
    return ExportOutput(
        content=service.export_json(),
        media_type="application/json",
        filename=_export_filename("json"),
    )


def run(
    inp: (
        ListTokensInput
        | AddTokenInput
        | RemoveTokenInput
        | ImportTokensInput
        | UpdateValuesInput
        | ExportTokensInput
    ),
    *,
    store: TokenStorePort,
    config: TokenConfig | None = None,
) -> TokenListOutput | ReconcileResult | ExportOutput:
    """
    Main entry point for the tokens component.

    Dispatches to appropriate handler based on input type.

    Args:
        inp: Input object determining the operation.
        store: Token store port.
        config: Optional validation settings.

    Returns:
        Appropriate output object based on input type.
    """
    if isinstance(inp, ListTokensInput):
        return run_list(inp, store=store, config=config)
    elif isinstance(inp, AddTokenInput):
        return run_add(inp, store=store, config=config)
    elif isinstance(inp, RemoveTokenInput):
        return run_remove(inp, store=store, config=config)
    elif isinstance(inp, ImportTokensInput):
        return run_import(inp, store=store, config=config)
    elif isinstance(inp, UpdateValuesInput):
        return run_update(inp, store=store, config=config)
    elif isinstance(inp, ExportTokensInput):
        return run_export(inp, store=store, config=config)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
