# src/issim_core/simulation/context.py
"""
Defines the `SweepContext`, the immutable description of one sweep run.
"""
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..collaborators import DeviceToolkit
from ..data_structures import IlluminationCondition
from .config import SweepSettings


@dataclass(frozen=True)
class SweepContext:
    """
    All inputs of a sweep: the normalised illumination conditions, the frozen
    frequency grid, the settings and the collaborator toolkit. The engine reads it
    and never changes it.
    """
    conditions: Tuple[IlluminationCondition, ...]
    frequencies_hz: np.ndarray
    settings: SweepSettings
    toolkit: DeviceToolkit
    solution_name: str = ""

    @property
    def shape(self) -> Tuple[int, int]:
        return (len(self.conditions), len(self.frequencies_hz))
