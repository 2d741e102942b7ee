import threading
from dataclasses import replace
from typing import Dict, List, Optional
import numpy as np
from negpos.core.types import AppConfig
from negpos.domain.models import AdjustmentParameters


def make_config(tmp_dir: str = "/tmp/negpos-test", **kwargs) -> AppConfig:
    return AppConfig(
        cache_dir=tmp_dir,
        thumbnail_cache_dir=f"{tmp_dir}/thumbnails",
        adjustments_dir=f"{tmp_dir}/adjustments",
        **kwargs,
    )


def no_levels(params: Optional[AdjustmentParameters] = None) -> AdjustmentParameters:
    params = params or AdjustmentParameters()
    return replace(params, tone=replace(params.tone, auto_levels=False))


class FakeDecoder:
    """
    Returns a flat frame per file. Files passed to `gate` block until released.
    """

    def __init__(self, values: Dict[str, float], size=(24, 32)):
        self.values = values
        self.size = size
        self.calls: List[tuple] = []
        self.gates: Dict[str, threading.Event] = {}
        self.started: Dict[str, threading.Event] = {}

    def gate(self, file_id: str) -> None:
        self.gates[file_id] = threading.Event()
        self.started[file_id] = threading.Event()

    def decode(self, file_id, exposure, temperature, tint, target_width=None):
        self.calls.append((file_id, exposure, temperature, tint, target_width))
        if file_id in self.started:
            self.started[file_id].set()
        if file_id in self.gates:
            self.gates[file_id].wait(5)
        if file_id not in self.values:
            return None
        h, w = self.size
        if target_width:
            h, w = max(1, h * target_width // w), target_width
        return np.full((h, w, 3), self.values[file_id], dtype=np.float32)
