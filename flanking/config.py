"""
Run configuration for the flanking extension engine.

Usage:
    config = ExtensionConfig(left_flank=200, right_flank=50, gap_tolerance=10)
    config = ExtensionConfig.symmetric(100)
"""

from dataclasses import dataclass
from enum import Enum


class OrientationPolicy(Enum):
    """How the identifier suffix and the strand column combine into one orientation"""
    EITHER = "either"       # reverse if either signal says reverse
    STRAND = "strand"       # the strand column decides
    RELATIVE = "relative"   # reverse iff exactly one signal says reverse


@dataclass
class ExtensionConfig:
    """Configuration for one extension run"""
    left_flank: int = 100
    right_flank: int = 100
    gap_tolerance: int = 0
    orientation_policy: OrientationPolicy = OrientationPolicy.EITHER

    def __post_init__(self):
        if isinstance(self.orientation_policy, str):
            self.orientation_policy = OrientationPolicy(self.orientation_policy)
        self.validate()

    @classmethod
    def symmetric(cls, flank: int, **kwargs) -> "ExtensionConfig":
        """Same flank on both sides"""
        return cls(left_flank=flank, right_flank=flank, **kwargs)

    def validate(self) -> None:
        """Raise ValueError on negative sizes"""
        for name in ("left_flank", "right_flank", "gap_tolerance"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
