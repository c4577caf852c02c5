from typing import Optional

from baseline_fund.backend.abstract import AbstractBackend
from baseline_fund.backend.json_store import JsonFileBackend, MemoryBackend
from baseline_fund.config import StorageConfig, config
from baseline_fund.lib.logger import configure_logger

logger = configure_logger(__name__)


def get_backend(storage: Optional[StorageConfig] = None) -> AbstractBackend:
    """Build the persistence backend named in the storage configuration."""
    storage = storage or config.storage
    backend_type = storage.backend.lower()

    if backend_type == "json":
        logger.info(
            "Using JSON file backend", extra={"data_dir": storage.data_dir}
        )
        return JsonFileBackend(storage.data_dir)
    if backend_type == "memory":
        logger.info("Using in-memory backend")
        return MemoryBackend()

    raise ValueError(f"Unsupported storage backend: {storage.backend}")
