from typing import Protocol, Optional, Any, runtime_checkable
from dataclasses import dataclass, field
from negpos.core.types import ImageBuffer, Dimensions


@dataclass
class PipelineContext:
    """
    Shared state passed through the pipeline.
    """

    original_size: Dimensions

    # Ratio of the working buffer to the analysis width, used to scale kernels
    scale_factor: float = 1.0

    processing_version: str = "v2"
    analysis_width: int = 1024
    histogram_bins: int = 256

    # Metrics gathered by analysis steps (e.g., levels bounds, film base)
    metrics: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class IProcessor(Protocol):
    """
    Interface for any image processing step. Implementations never raise on
    degenerate input, they hand the image back unchanged.
    """

    def process(self, image: ImageBuffer, context: PipelineContext) -> ImageBuffer: ...


@runtime_checkable
class IRawDecoder(Protocol):
    """
    Produces a demosaiced, linear float RGB buffer, or None on failure.
    """

    def decode(
        self,
        file_id: str,
        exposure: float,
        temperature: float,
        tint: float,
        target_width: Optional[int] = None,
    ) -> Optional[ImageBuffer]: ...


class IAdjustmentRepository(Protocol):
    """
    Persists the adjustments of each source file.
    """

    def load(self, file_id: str) -> Optional[Any]: ...

    def save(self, file_id: str, params: Any) -> bool: ...

    def delete(self, file_id: str) -> None: ...
