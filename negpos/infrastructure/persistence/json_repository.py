import hashlib
import json
import os
from typing import Optional
from negpos.domain.models import AdjustmentParameters
from negpos.kernel.system.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1


class JsonAdjustmentRepository:
    """
    Stores the adjustments of each file as a small JSON document.
    """

    def __init__(self, directory: str) -> None:
        self.directory = directory
        try:
            os.makedirs(self.directory, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create adjustments dir {directory}: {e}")

    def _path(self, file_id: str) -> str:
        name = hashlib.sha256(file_id.encode("utf-8")).hexdigest()
        return os.path.join(self.directory, f"{name}.json")

    def load(self, file_id: str) -> Optional[AdjustmentParameters]:
        path = self._path(file_id)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                doc = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable adjustments for {file_id}: {e}")
            return None

        data = doc.get("adjustments") if isinstance(doc, dict) else None
        if not isinstance(data, dict):
            logger.warning(f"Malformed adjustments document for {file_id}")
            return None
        return AdjustmentParameters.from_flat_dict(data)

    def save(self, file_id: str, params: AdjustmentParameters) -> bool:
        doc = {
            "file_id": file_id,
            "version": SCHEMA_VERSION,
            "adjustments": params.to_dict(),
        }
        path = self._path(file_id)
        tmp = path + ".tmp"
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(doc, f, indent=2)
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save adjustments for {file_id}: {e}")
            return False
        return True

    def delete(self, file_id: str) -> None:
        try:
            os.remove(self._path(file_id))
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to delete adjustments for {file_id}: {e}")
