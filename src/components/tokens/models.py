"""
Tokens component input/output models.

A token is a named text substitution rendered wherever its shortcode
placeholder appears in site content.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

# --- Outcome Keys ---

ADD_SUCCESS = "add_success"
REMOVE_SUCCESS = "remove_success"
IMPORT_SUCCESS = "import_success"
UPDATE_SUCCESS = "update_success"
ADD_ERROR_GENERAL = "add_error_general"
ADD_ERROR_DUPLICATE = "add_error_duplicate"
ADD_ERROR_INVALID_NAME = "add_error_invalid_name"
ADD_ERROR_INVALID_LABEL = "add_error_invalid_label"
IMPORT_ERROR_PARSE = "import_error_parse"
UPDATE_ERROR_INVALID = "update_error_invalid"

USER_MESSAGES: dict[str, str] = {
    ADD_SUCCESS: "Token added successfully.",
    REMOVE_SUCCESS: "Token removed successfully.",
    IMPORT_SUCCESS: "Tokens imported successfully.",
    UPDATE_SUCCESS: "Token values saved.",
    ADD_ERROR_GENERAL: "Error: Could not add token. Please provide token details.",
    ADD_ERROR_DUPLICATE: (
        "Error: A token with that name already exists. Token names must be unique."
    ),
    ADD_ERROR_INVALID_NAME: (
        "Error: Invalid token name format. "
        "Please use only letters, numbers, and underscores."
    ),
    ADD_ERROR_INVALID_LABEL: "Error: A token label is required.",
    IMPORT_ERROR_PARSE: (
        "Error: The import file could not be read. "
        'It must contain a "tokens" list.'
    ),
    UPDATE_ERROR_INVALID: "Error: Token values must be sent as a name to value mapping.",
}

UNKNOWN_MESSAGE = "An unknown action occurred."


def get_user_message(key: str) -> str:
    """Translate an outcome key into the message shown to the admin."""
    return USER_MESSAGES.get(key, UNKNOWN_MESSAGE)


# --- Errors ---


class TokenError(Exception):
    """Base class for token reconciliation failures."""

    code = "token_error"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(TokenError):
    """Token name or label failed validation."""

    code = ADD_ERROR_INVALID_NAME

    def __init__(self, message: str, field: str | None = None, code: str | None = None) -> None:
        super().__init__(message, field)
        if code is not None:
            self.code = code


class DuplicateError(TokenError):
    """A token with the same name (ignoring case) already exists."""

    code = ADD_ERROR_DUPLICATE


class MissingTokenError(TokenError):
    """Add request carried no token fields at all."""

    code = ADD_ERROR_GENERAL


class ImportParseError(TokenError):
    """Import payload is structurally invalid; nothing is imported."""

    code = IMPORT_ERROR_PARSE


class UpdatePayloadError(TokenError):
    """Value update payload is not a name to value mapping."""

    code = UPDATE_ERROR_INVALID


# --- Token Models ---


@dataclass(frozen=True)
class TokenData:
    """Stored data for one token, keyed by name in the token mapping."""

    label: str
    value: str = ""


@dataclass(frozen=True)
class Token:
    """A token with its name, as exchanged in import/export files."""

    name: str
    label: str
    value: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "label": self.label, "value": self.value}


TokenMap = dict[str, TokenData]


@dataclass(frozen=True)
class TokenConfig:
    """Validation settings for token fields."""

    name_pattern: str = r"^[A-Za-z0-9_]+$"
    max_label_length: int | None = None


# --- Input Models ---


@dataclass(frozen=True)
class ListTokensInput:
    """Input for listing all tokens."""

    pass


@dataclass(frozen=True)
class AddTokenInput:
    """Input for adding a single token."""

    name: str
    label: str
    value: str = ""


@dataclass(frozen=True)
class RemoveTokenInput:
    """Input for removing a token by its exact name."""

    name: str


@dataclass(frozen=True)
class ImportTokensInput:
    """Input for merging a batch of tokens into the store."""

    tokens: Any
    replace_existing: bool = False


@dataclass(frozen=True)
class UpdateValuesInput:
    """Input for saving new values for existing tokens, keyed by exact name."""

    values: Any


@dataclass(frozen=True)
class ExportTokensInput:
    """Input for exporting the token set."""

    format: Literal["json", "csv"] = "json"


# --- Output Models ---


@dataclass(frozen=True)
class ImportStats:
    """Per-entry counts for an import batch."""

    added: int = 0
    replaced: int = 0
    skipped: int = 0
    invalid: int = 0


@dataclass(frozen=True)
class ReconcileResult:
    """
    Outcome of a reconciliation operation.

    ``tokens`` holds the next mapping on success and is None when the
    operation was rejected.
    """

    outcome: str
    tokens: TokenMap | None
    error: TokenError | None = None
    stats: ImportStats | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        return get_user_message(self.outcome)


@dataclass(frozen=True)
class TokenListOutput:
    """Output containing every token in store order."""

    tokens: tuple[Token, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ExportOutput:
    """Serialized token set ready for download."""

    content: str
    media_type: str
    filename: str
