from typing import Dict, Optional

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./ledger_import.db"
    debug: bool = True
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:5173,http://localhost:3000"

    # Bulk import tuning
    import_batch_size: int = 10
    import_batch_size_overrides: Dict[str, int] = {}  # e.g. {"expense": 25}
    import_transaction_timeout_seconds: float = 30.0
    upload_max_file_size_mb: int = 10

    # In-process import run registry: idle runs expire, the oldest go first past the cap
    import_run_ttl_minutes: int = 60
    import_run_registry_limit: int = 200

    # None keeps each entity's own policy (budget targets auto-create categories)
    auto_create_categories: Optional[bool] = None

    model_config = ConfigDict(env_file=".env", extra="ignore")


def resolve_batch_size(entity_kind: str, requested: Optional[int] = None) -> int:
    """Pick the batch size for an entity: explicit request, then override, then default."""
    if requested is not None and requested > 0:
        return requested
    override = settings.import_batch_size_overrides.get(entity_kind)
    if override and override > 0:
        return override
    return max(1, settings.import_batch_size)


settings = Settings()
