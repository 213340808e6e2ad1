from pathlib import Path

import pytest

from src.adapters.memory_store import InMemoryOptionStore
from src.components.tokens import CachedTokenStore, TokenData, TokenService
from src.rules.loader import load_rules
from src.rules.models import Rules

PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture
def rules() -> Rules:
    """Load REAL rules from project root."""
    return load_rules(PROJECT_ROOT / "rules.yaml")


@pytest.fixture
def option_store() -> InMemoryOptionStore:
    return InMemoryOptionStore()


@pytest.fixture
def token_store(option_store: InMemoryOptionStore) -> CachedTokenStore:
    return CachedTokenStore(option_store)


@pytest.fixture
def service(token_store: CachedTokenStore) -> TokenService:
    return TokenService(token_store)


@pytest.fixture
def promo_tokens() -> dict[str, TokenData]:
    return {
        "PROMO": TokenData(label="Promo Code", value="SAVE10"),
        "Price_Annual": TokenData(label="Annual Price", value="$199/year"),
    }
