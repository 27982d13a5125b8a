"""Base class for each step in the PLR pipeline."""
from __future__ import annotations

from abc import ABC, abstractmethod

from ..config import PipelineConfig
from ..domain import OccasionWorkItem


class IPipelineStage(ABC):
    """Abstract processing stage.

    Each concrete implementation fills one slot of the occasion work item.
    Trial-scoped problems are raised as ``PLRProcessingError`` and turned into
    report entries by the engine.
    """

    name: str = "stage"

    @abstractmethod
    def process(self, item: OccasionWorkItem, config: PipelineConfig) -> None:
        """Mutate the work item in-place according to the stage's behaviour."""
        raise NotImplementedError
