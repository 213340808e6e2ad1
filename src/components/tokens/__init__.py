"""
Tokens component - Custom token (shortcode) management.
"""

from ._impl import (
    OPTION_KEY,
    CachedTokenStore,
    TokenService,
    add_token,
    create_token_service,
    decode_token_blob,
    encode_token_blob,
    find_existing_name,
    import_tokens,
    remove_token,
    update_values,
    validate_token,
)
from .component import (
    run,
    run_add,
    run_export,
    run_import,
    run_list,
    run_remove,
    run_update,
)
from .formats import (
    CSV_HEADER,
    detect_format,
    export_csv,
    export_json,
    export_rows,
    parse_csv,
    parse_csv_line,
    parse_import_file,
    parse_json_payload,
)
from .models import (
    AddTokenInput,
    DuplicateError,
    ExportOutput,
    ExportTokensInput,
    ImportParseError,
    ImportStats,
    ImportTokensInput,
    ListTokensInput,
    MissingTokenError,
    ReconcileResult,
    RemoveTokenInput,
    Token,
    TokenConfig,
    TokenData,
    TokenError,
    TokenListOutput,
    TokenMap,
    UpdatePayloadError,
    UpdateValuesInput,
    ValidationError,
    get_user_message,
)
from .ports import KeyValueStorePort, TokenStorePort
from .shortcodes import ShortcodeRegistry, register_token_shortcodes, render_tokens

__all__ = [
    # Entry points
    "run",
    "run_add",
    "run_export",
    "run_import",
    "run_list",
    "run_remove",
    "run_update",
    # Input models
    "AddTokenInput",
    "ExportTokensInput",
    "ImportTokensInput",
    "ListTokensInput",
    "RemoveTokenInput",
    "UpdateValuesInput",
    # Output models
    "ExportOutput",
    "ImportStats",
    "ReconcileResult",
    "Token",
    "TokenData",
    "TokenListOutput",
    "TokenMap",
    "TokenConfig",
    # Errors
    "DuplicateError",
    "ImportParseError",
    "MissingTokenError",
    "TokenError",
    "UpdatePayloadError",
    "ValidationError",
    "get_user_message",
    # Ports
    "KeyValueStorePort",
    "TokenStorePort",
    # Reconciliation
    "add_token",
    "find_existing_name",
    "import_tokens",
    "remove_token",
    "update_values",
    "validate_token",
    # Store and service
    "OPTION_KEY",
    "CachedTokenStore",
    "TokenService",
    "create_token_service",
    "decode_token_blob",
    "encode_token_blob",
    # Formats
    "CSV_HEADER",
    "detect_format",
    "export_csv",
    "export_json",
    "export_rows",
    "parse_csv",
    "parse_csv_line",
    "parse_import_file",
    "parse_json_payload",
    # Shortcodes
    "ShortcodeRegistry",
    "register_token_shortcodes",
    "render_tokens",
]
