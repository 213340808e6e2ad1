from typing import Literal

from pydantic import BaseModel, Field

from src.components.tokens import TokenConfig


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class TokensRules(BaseModel):
    option_key: str = "custom_tokens_data"
    name_pattern: str = r"^[A-Za-z0-9_]+$"
    max_label_length: int | None = Field(default=None, gt=0)

    def to_config(self) -> TokenConfig:
        return TokenConfig(
            name_pattern=self.name_pattern,
            max_label_length=self.max_label_length,
        )


class StorageRules(BaseModel):
    backend: Literal["sqlite", "memory"] = "sqlite"
    db_filename: str = "tokens.db"


class AdminRules(BaseModel):
    capability: str = "manage_options"
    token_ttl_minutes: int = Field(default=60, gt=0)


class ImportRules(BaseModel):
    max_upload_bytes: int = Field(default=1_048_576, gt=0)
    allowlist_extensions: list[str] = [".json", ".csv"]


class OpsRules(BaseModel):
    data_dir_required: bool = True
    required_env: list[str] = []


class Rules(BaseModel):
    project: ProjectRules
    tokens: TokensRules = TokensRules()
    storage: StorageRules = StorageRules()
    admin: AdminRules = AdminRules()
    imports: ImportRules = ImportRules()
    ops: OpsRules = OpsRules()
