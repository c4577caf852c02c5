import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

from baseline_fund.lib.logger import configure_logger

logger = configure_logger(__name__)

load_dotenv()


@dataclass
class BaselineConfig:
    """Policy knobs for the baseline test."""

    # Sum of the three category averages (0-30) needed to pass
    pass_threshold: float = float(os.getenv("BASELINE_PASS_THRESHOLD", "20"))


@dataclass
class StorageConfig:
    backend: str = os.getenv("BASELINE_STORAGE_BACKEND", "json")  # json or memory
    data_dir: str = os.getenv("DATA_DIR", "./data")


@dataclass
class AllocationConfig:
    """Defaults used by the dashboard allocation preview."""

    pool_amount: float = float(os.getenv("BASELINE_POOL_AMOUNT", "0.3"))  # SOL
    top_n: int = int(os.getenv("BASELINE_DASHBOARD_TOP_N", "3"))
    min_votes: int = int(os.getenv("BASELINE_MIN_VOTES", "1"))


@dataclass
class APIConfig:
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3001"))
    cors_origins: List[str] = field(
        default_factory=lambda: [
            origin.strip()
            for origin in os.getenv("BASELINE_CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]
    )


@dataclass
class Config:
    baseline: BaselineConfig = field(default_factory=BaselineConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    allocation: AllocationConfig = field(default_factory=AllocationConfig)
    api: APIConfig = field(default_factory=APIConfig)

    @classmethod
    def load(cls) -> "Config":
        """Load and validate configuration"""
        config = cls()
        logger.info(
            "Configuration loaded successfully",
            extra={
                "storage": config.storage.backend,
                "pass_threshold": config.baseline.pass_threshold,
            },
        )
        return config


# Global configuration instance
config = Config.load()
