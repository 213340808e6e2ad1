import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from src.adapters.memory_store import InMemoryOptionStore
from src.adapters.sqlite.options_store import SQLiteOptionStore
from src.api.auth_utils import decode_access_token, has_capability
from src.components.tokens import (
    CachedTokenStore,
    KeyValueStorePort,
    TokenService,
)
from src.rules.loader import load_rules
from src.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("TOKENS_DATA_DIR", "./data"))
        self.rules_path = Path(
            os.environ.get("TOKENS_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


def get_db_path(settings: Settings, rules: Rules) -> str:
    return str(settings.data_dir / rules.storage.db_filename)


# --- Storage ---

# In-memory backend singleton, used when rules select the memory backend
_memory_store_instance: InMemoryOptionStore | None = None


def get_memory_store() -> InMemoryOptionStore:
    """Get in-memory option store singleton."""
    global _memory_store_instance
    if _memory_store_instance is None:
        _memory_store_instance = InMemoryOptionStore()
    return _memory_store_instance


def get_option_backend(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> KeyValueStorePort:
    if rules.storage.backend == "memory":
        return get_memory_store()
    return SQLiteOptionStore(get_db_path(settings, rules))


# --- Token Component ---
def get_token_store(
    backend: KeyValueStorePort = Depends(get_option_backend),
    rules: Rules = Depends(get_rules),
) -> CachedTokenStore:
    """Token store scoped to one request; reads are cached until the next save."""
    return CachedTokenStore(backend, option_key=rules.tokens.option_key)


def get_token_service(
    store: CachedTokenStore = Depends(get_token_store),
    rules: Rules = Depends(get_rules),
) -> TokenService:
    """Get token component service."""
    return TokenService(store, config=rules.tokens.to_config())


# --- Auth ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


async def require_admin(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    rules: Rules = Depends(get_rules),
) -> dict[str, Any]:
    # 1. Try Cookie first (HttpOnly)
    cookie_token = request.cookies.get("access_token")
    if cookie_token and cookie_token.startswith("Bearer "):
        token = cookie_token.split(" ")[1]

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 2. Decode
    payload = decode_access_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 3. Single capability check
    if not has_capability(payload, rules.admin.capability):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )

    return payload
