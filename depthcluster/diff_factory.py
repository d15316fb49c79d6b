"""Choice of a pixel difference measure by name."""

from __future__ import annotations

import enum

import numpy as np

from depthcluster.angle_diff import AngleDiff, AngleDiffPrecomputed
from depthcluster.diff_base import AbstractDiff, SimpleDiff
from depthcluster.line_dist_diff import LineDistDiff, LineDistDiffPrecomputed
from depthcluster.projection_params import ProjectionParams


class DiffType(enum.Enum):
    """Available difference measures."""

    SIMPLE = "simple"
    ANGLES = "angles"
    ANGLES_PRECOMPUTED = "angles_precomputed"
    LINE_DIST = "line_dist"
    LINE_DIST_PRECOMPUTED = "line_dist_precomputed"
    NONE = "none"


_NEEDS_PARAMS = {
    DiffType.ANGLES: AngleDiff,
    DiffType.ANGLES_PRECOMPUTED: AngleDiffPrecomputed,
    DiffType.LINE_DIST: LineDistDiff,
    DiffType.LINE_DIST_PRECOMPUTED: LineDistDiffPrecomputed,
}


def build_diff(
    diff_type: DiffType,
    source_image: np.ndarray,
    params: ProjectionParams | None = None,
) -> AbstractDiff:
    """Create the difference measure of the given type over ``source_image``."""
    if diff_type is DiffType.SIMPLE:
        return SimpleDiff(source_image)
    if diff_type is DiffType.NONE:
        raise ValueError("DiffType is NONE. Please set it.")
    try:
        diff_class = _NEEDS_PARAMS[diff_type]
    except KeyError:
        raise ValueError(f"unknown diff type: {diff_type!r}") from None
    if params is None:
        raise ValueError(f"{diff_type.name} difference needs projection params")
    return diff_class(source_image, params)