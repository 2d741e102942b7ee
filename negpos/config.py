import os
from negpos.core.types import AppConfig
from negpos.domain.models import AdjustmentParameters, ProcessingVersion

# User dir env (holds caches and saved edits)
BASE_USER_DIR = os.path.abspath(os.getenv("NEGPOS_USER_DIR", "user"))
CACHE_DIR = os.path.join(BASE_USER_DIR, "cache")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


def _env_version() -> str:
    raw = os.getenv("NEGPOS_PROCESSING_VERSION", ProcessingVersion.V2.value).lower()
    valid = {v.value for v in ProcessingVersion}
    return raw if raw in valid else ProcessingVersion.V2.value


# Global application constants
APP_CONFIG = AppConfig(
    cache_dir=CACHE_DIR,
    thumbnail_cache_dir=os.path.join(CACHE_DIR, "thumbnails"),
    adjustments_dir=os.path.join(BASE_USER_DIR, "adjustments"),
    thumbnail_width=300,
    thumbnail_concurrency=1,
    thumbnail_memory_items=200,
    thumbnail_memory_bytes=256 * 1024 * 1024,
    disk_cache_enabled=True,
    disk_cache_limit_bytes=_env_int("NEGPOS_THUMBNAIL_CACHE_MB", 500) * 1024 * 1024,
    analysis_width=1024,
    histogram_bins=256,
    histogram_width=512,
    decode_cache_items=4,
    max_workers=max(1, (os.cpu_count() or 1) - 1),
    processing_version=_env_version(),
    perf_log_enabled=os.getenv("NEGPOS_PERF_LOG", "0") == "1",
)

# Neutral starting point for every newly opened file
DEFAULT_ADJUSTMENTS = AdjustmentParameters()
