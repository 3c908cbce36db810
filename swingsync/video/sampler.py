"""
Frame Sampler
=============
Picks a bounded, adaptive set of timestamps to sample from a finite video.

rate = clamp(frame_cap / duration, rate_floor, native_ceiling)
count = floor(duration * rate)

Short clips are sampled at the native ceiling, long clips are capped at
`frame_cap` samples, and no clip is ever sampled below `rate_floor`.
"""

import math
from dataclasses import dataclass
from typing import Tuple

# Absorbs float error in duration * rate (e.g. 11 * (600 / 11))
_COUNT_EPSILON = 1e-9


def sampling_rate(duration: float, frame_cap: int = 600,
                  rate_floor: float = 30.0, native_ceiling: float = 60.0) -> float:
    """Adaptive samples-per-second for a clip of `duration` seconds."""
    if duration <= 0:
        raise ValueError(f"duration must be positive, got {duration}")
    return max(rate_floor, min(native_ceiling, frame_cap / duration))


def sample_count(duration: float, rate: float) -> int:
    return int(math.floor(duration * rate + _COUNT_EPSILON))


@dataclass(frozen=True)
class SamplePlan:
    duration: float
    rate: float
    timestamps: Tuple[float, ...]

    @property
    def count(self) -> int:
        return len(self.timestamps)


class FrameSampler:
    def __init__(self, frame_cap=600, rate_floor=30.0, native_ceiling=60.0):
        if rate_floor <= 0 or native_ceiling < rate_floor:
            raise ValueError(
                f"Need 0 < rate_floor <= native_ceiling, got {rate_floor}, {native_ceiling}")
        self.frame_cap = frame_cap
        self.rate_floor = rate_floor
        self.native_ceiling = native_ceiling

    @classmethod
    def from_options(cls, options) -> 'FrameSampler':
        return cls(options.frame_cap, options.rate_floor, options.native_ceiling)

    def plan(self, duration: float) -> SamplePlan:
        """
        Build the sample plan for a clip.

        Args:
            duration: Clip length in seconds

        Returns:
            SamplePlan whose i-th timestamp is i / rate
        """
        rate = sampling_rate(duration, self.frame_cap, self.rate_floor, self.native_ceiling)
        count = sample_count(duration, rate)
        return SamplePlan(duration=duration, rate=rate,
                          timestamps=tuple(i / rate for i in range(count)))
