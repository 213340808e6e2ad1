"""
TokenService - Custom token management.

Functional core: add/remove/import reconciliation runs on plain token
mappings and returns the next mapping. The service loads one snapshot from
the store, reconciles, and saves the full result in a single write.

Invariants:
- I1: No two stored names are equal ignoring case
- I2: Names match the configured pattern (letters, digits, underscore)
- I3: Labels are non-empty after sanitizing
- I4: Every mutation replaces the whole mapping in one save
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

from src.domain.sanitize import sanitize_text_field

from .formats import export_csv, export_json, parse_import_file, parse_json_payload
from .models import (
    ADD_ERROR_INVALID_LABEL,
    ADD_ERROR_INVALID_NAME,
    ADD_SUCCESS,
    IMPORT_ERROR_PARSE,
    IMPORT_SUCCESS,
    REMOVE_SUCCESS,
    UPDATE_SUCCESS,
    DuplicateError,
    ImportParseError,
    ImportStats,
    MissingTokenError,
    ReconcileResult,
    Token,
    TokenConfig,
    TokenData,
    TokenMap,
    UpdatePayloadError,
    ValidationError,
)
from .ports import KeyValueStorePort, TokenStorePort

logger = logging.getLogger(__name__)

OPTION_KEY = "custom_tokens_data"

DEFAULT_CONFIG = TokenConfig()


# --- Validation Functions ---


def _coerce_text(raw: Any) -> str | None:
    """Accept strings and plain numbers as field text; anything else is invalid."""
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return str(raw)
    return None


def validate_token(
    name: Any,
    label: Any,
    value: Any = "",
    config: TokenConfig | None = None,
) -> Token:
    """
    Sanitize and validate token fields.

    Returns:
        The cleaned Token.

    Raises:
        ValidationError: if the name is empty or malformed, or the label is
            empty after sanitizing.
    """
    config = config or DEFAULT_CONFIG

    name_text = _coerce_text(name)
    clean_name = sanitize_text_field(name_text) if name_text is not None else ""
    if not clean_name or not re.match(config.name_pattern, clean_name):
        raise ValidationError(
            "Token name may only contain letters, numbers, and underscores",
            field="name",
            code=ADD_ERROR_INVALID_NAME,
        )

    label_text = _coerce_text(label)
    clean_label = sanitize_text_field(label_text) if label_text is not None else ""
    if not clean_label:
        raise ValidationError(
            "Token label is required",
            field="label",
            code=ADD_ERROR_INVALID_LABEL,
        )
    if config.max_label_length is not None and len(clean_label) > config.max_label_length:
        raise ValidationError(
            f"Token label must be {config.max_label_length} characters or less",
            field="label",
            code=ADD_ERROR_INVALID_LABEL,
        )

    value_text = _coerce_text(value)
    clean_value = sanitize_text_field(value_text) if value_text is not None else ""

    return Token(name=clean_name, label=clean_label, value=clean_value)


def find_existing_name(tokens: Mapping[str, TokenData], name: str) -> str | None:
    """Return the stored casing of name if present, ignoring case."""
    lowered = name.lower()
    for existing in tokens:
        if existing.lower() == lowered:
            return existing
    return None


# --- Reconciliation ---


def add_token(
    current: Mapping[str, TokenData],
    name: Any,
    label: Any,
    value: Any = "",
    config: TokenConfig | None = None,
) -> ReconcileResult:
    """
    Add a single token.

    Fails with MissingTokenError when no field was supplied at all, with
    ValidationError on a bad name or empty label, and with DuplicateError
    when the name exists ignoring case.
    """
    if all(field in (None, "") for field in (name, label, value)):
        error = MissingTokenError("No token details were provided")
        return ReconcileResult(outcome=error.code, tokens=None, error=error)

    try:
        token = validate_token(name, label, value, config)
    except ValidationError as e:
        return ReconcileResult(outcome=e.code, tokens=None, error=e)

    existing = find_existing_name(current, token.name)
    if existing is not None:
        error = DuplicateError(f"Token '{existing}' already exists", field="name")
        return ReconcileResult(outcome=error.code, tokens=None, error=error)

    updated = dict(current)
    updated[token.name] = TokenData(label=token.label, value=token.value)
    return ReconcileResult(outcome=ADD_SUCCESS, tokens=updated)


def remove_token(current: Mapping[str, TokenData], name: str | None) -> ReconcileResult:
    """
    Remove a token by its exact stored name.

    The lookup is case-sensitive, unlike the duplicate check in add_token.
    An empty or unknown name leaves the mapping unchanged.
    """
    updated = dict(current)
    if name:
        updated.pop(sanitize_text_field(name), None)
    return ReconcileResult(outcome=REMOVE_SUCCESS, tokens=updated)


def import_tokens(
    current: Mapping[str, TokenData],
    tokens: Any,
    replace_existing: bool = False,
    config: TokenConfig | None = None,
) -> ReconcileResult:
    """
    Merge a batch of tokens into the mapping.

    Entries are taken in list order. A name that matches an existing or
    earlier-imported name ignoring case either replaces it under the new
    casing (replace_existing) or is dropped. Entries that fail validation
    are dropped.
    """
    if not isinstance(tokens, list):
        error = ImportParseError('Import payload must contain a "tokens" list', field="tokens")
        return ReconcileResult(outcome=IMPORT_ERROR_PARSE, tokens=None, error=error)

    updated = dict(current)
    lowercase_map = {name.lower(): name for name in updated}
    added = replaced = skipped = invalid = 0

    for entry in tokens:
        if not isinstance(entry, Mapping):
            invalid += 1
            continue
        try:
            token = validate_token(
                entry.get("name"), entry.get("label"), entry.get("value"), config
            )
        except ValidationError:
            invalid += 1
            continue

        data = TokenData(label=token.label, value=token.value)
        name_lower = token.name.lower()
        original = lowercase_map.get(name_lower)

        if original is None:
            updated[token.name] = data
            lowercase_map[name_lower] = token.name
            added += 1
        elif replace_existing:
            del updated[original]
            updated[token.name] = data
            lowercase_map[name_lower] = token.name
            replaced += 1
        else:
            skipped += 1

    stats = ImportStats(added=added, replaced=replaced, skipped=skipped, invalid=invalid)
    return ReconcileResult(outcome=IMPORT_SUCCESS, tokens=updated, stats=stats)


def update_values(current: Mapping[str, TokenData], values: Any) -> ReconcileResult:
    """
    Save new values for existing tokens.

    values maps exact stored names to their new value. Labels and store
    order are kept. Unknown names and values that are not text are ignored.
    """
    if not isinstance(values, Mapping):
        error = UpdatePayloadError("Token values must be a mapping", field="values")
        return ReconcileResult(outcome=error.code, tokens=None, error=error)

    updated = dict(current)
    for name, raw in values.items():
        data = updated.get(name)
        text = _coerce_text(raw)
        if data is None or text is None:
            continue
        updated[name] = TokenData(label=data.label, value=sanitize_text_field(text))

    return ReconcileResult(outcome=UPDATE_SUCCESS, tokens=updated)


# --- Store ---


def decode_token_blob(blob: str | None) -> TokenMap:
    """
    Decode the persisted blob into a token mapping.

    Undecodable blobs load as empty; malformed entries are skipped.
    """
    if not blob:
        return {}
    try:
        data = json.loads(blob)
    except json.JSONDecodeError:
        logger.warning("Stored token data is not valid JSON; treating as empty")
        return {}
    if not isinstance(data, dict):
        logger.warning("Stored token data is not a mapping; treating as empty")
        return {}

    tokens: TokenMap = {}
    for name, entry in data.items():
        if not isinstance(entry, dict) or not isinstance(entry.get("label"), str):
            logger.warning("Skipping malformed stored token %r", name)
            continue
        value = entry.get("value")
        tokens[name] = TokenData(
            label=entry["label"],
            value=value if isinstance(value, str) else "",
        )
    return tokens


def encode_token_blob(tokens: Mapping[str, TokenData]) -> str:
    """Encode a token mapping for storage, preserving order."""
    return json.dumps(
        {name: {"label": data.label, "value": data.value} for name, data in tokens.items()},
        ensure_ascii=False,
    )


class CachedTokenStore:
    """
    Read-through cache over a key-value backend.

    The whole mapping lives under one key. ``save`` writes through and
    refreshes the cache, so ``load`` always reflects the latest save.
    """

    def __init__(self, backend: KeyValueStorePort, option_key: str = OPTION_KEY) -> None:
        self._backend = backend
        self._option_key = option_key
        self._cache: TokenMap | None = None

    def load(self) -> TokenMap:
        if self._cache is None:
            logger.debug("Token cache miss; reading %s", self._option_key)
            self._cache = decode_token_blob(self._backend.get(self._option_key, None))
        return dict(self._cache)

    def save(self, tokens: TokenMap) -> None:
        snapshot = dict(tokens)
        self._backend.set(self._option_key, encode_token_blob(snapshot))
        self._cache = snapshot

    def invalidate(self) -> None:
        self._cache = None


# --- Token Service ---


def _same_order(a: Mapping[str, TokenData], b: Mapping[str, TokenData]) -> bool:
    return list(a.items()) == list(b.items())


class TokenService:
    """
    Custom token service.

    Provides:
    - Add/remove/import and value updates with single-write persistence
    - JSON and CSV export
    - Raw payload and file imports
    """

    def __init__(self, store: TokenStorePort, config: TokenConfig | None = None) -> None:
        """
        Initialize token service.

        Args:
            store: Token store (usually a CachedTokenStore)
            config: Optional validation settings
        """
        self._store = store
        self._config = config or DEFAULT_CONFIG

    def get_all(self) -> TokenMap:
        """Get the current token mapping."""
        return self._store.load()

    def list_tokens(self) -> list[Token]:
        """Get all tokens in store order."""
        return [
            Token(name=name, label=data.label, value=data.value)
            for name, data in self._store.load().items()
        ]

    def get(self, name: str) -> Token | None:
        """Get a token by exact name."""
        data = self._store.load().get(name)
        if data is None:
            return None
        return Token(name=name, label=data.label, value=data.value)

    def _commit(self, current: TokenMap, result: ReconcileResult) -> ReconcileResult:
        if result.tokens is not None and not _same_order(current, result.tokens):
            self._store.save(result.tokens)
        return result

    def add(self, name: Any, label: Any, value: Any = "") -> ReconcileResult:
        """Add a token; nothing is saved on failure."""
        current = self._store.load()
        result = add_token(current, name, label, value, self._config)
        if result.success:
            logger.info("Added token %s", name)
        else:
            logger.info("Rejected token %r: %s", name, result.outcome)
        return self._commit(current, result)

    def remove(self, name: str | None) -> ReconcileResult:
        """Remove a token by exact name."""
        current = self._store.load()
        result = remove_token(current, name)
        if result.tokens is not None and len(result.tokens) < len(current):
            logger.info("Removed token %s", name)
        return self._commit(current, result)

    def import_tokens(self, tokens: Any, replace_existing: bool = False) -> ReconcileResult:
        """Merge a batch of token entries."""
        current = self._store.load()
        result = import_tokens(current, tokens, replace_existing, self._config)
        if result.stats is not None:
            stats = result.stats
            logger.info(
                "Imported tokens: %d added, %d replaced, %d skipped, %d invalid",
                stats.added,
                stats.replaced,
                stats.skipped,
                stats.invalid,
            )
            if stats.invalid:
                logger.warning("Dropped %d invalid token entries during import", stats.invalid)
        return self._commit(current, result)

    def update_values(self, values: Any) -> ReconcileResult:
        """Save new values for existing tokens, keyed by exact name."""
        current = self._store.load()
        result = update_values(current, values)
        if result.tokens is not None:
            changed = [n for n, d in result.tokens.items() if current[n] != d]
            logger.info("Updated values for %d tokens", len(changed))
        return self._commit(current, result)

    def set_value(self, name: str, value: Any) -> ReconcileResult | None:
        """Save one token's value. Returns None if no token has that exact name."""
        if self.get(name) is None:
            return None
        return self.update_values({name: value})

    def import_payload(self, raw: str | None) -> ReconcileResult:
        """Import from a JSON document carrying ``tokens`` and ``replace_existing``."""
        try:
            tokens, replace = parse_json_payload(raw or "")
        except ImportParseError as e:
            logger.warning("Rejected import payload: %s", e.message)
            return ReconcileResult(outcome=e.code, tokens=None, error=e)
        return self.import_tokens(tokens, replace)

    def import_file(
        self,
        content: str,
        filename: str | None = None,
        replace_existing: bool = False,
    ) -> ReconcileResult:
        """Import from uploaded JSON or CSV file content."""
        try:
            tokens, replace = parse_import_file(content, filename, replace_existing)
        except ImportParseError as e:
            logger.warning("Rejected import file %s: %s", filename or "<upload>", e.message)
            return ReconcileResult(outcome=e.code, tokens=None, error=e)
        return self.import_tokens(tokens, replace)

    def export_json(self) -> str:
        """Export all tokens as a JSON document."""
        return export_json(self._store.load())

    def export_csv(self) -> str:
        """Export all tokens as CSV."""
        return export_csv(self._store.load())


# --- Factory ---


def create_token_service(
    backend: KeyValueStorePort,
    option_key: str = OPTION_KEY,
    config: TokenConfig | None = None,
) -> TokenService:
    """
    Create a token service backed by a cached store.

    Args:
        backend: Key-value backend holding the token blob
        option_key: Key the token blob is stored under
        config: Optional validation settings

    Returns:
        Configured TokenService
    """
    return TokenService(CachedTokenStore(backend, option_key), config)
