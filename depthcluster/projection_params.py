"""Angular layout of a range image: which beam angle belongs to which row and column."""

from __future__ import annotations

import bisect
import enum
import logging
import math
from collections.abc import Iterable, Sequence
from pathlib import Path

logger = logging.getLogger(__name__)


class Direction(enum.Enum):
    """Direction in which a span of beams is laid out."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class SpanParams:
    """An evenly spaced fan of beams between two angles (in radians)."""

    def __init__(self, start_angle: float = 0.0, end_angle: float = 0.0, num_beams: int = 0):
        self.start_angle = float(start_angle)
        self.end_angle = float(end_angle)
        self.num_beams = int(num_beams)
        delta = self.end_angle - self.start_angle
        self.step = delta / self.num_beams if self.num_beams else 0.0
        self.span = abs(delta)

    @classmethod
    def from_step(cls, start_angle: float, end_angle: float, step: float) -> "SpanParams":
        """Build a span from a fixed angular step; the beam count is rounded down."""
        span = cls(start_angle, end_angle, 0)
        span.step = float(step)
        span.num_beams = math.floor((span.end_angle - span.start_angle) / span.step)
        return span

    def valid(self) -> bool:
        return self.num_beams > 0 and self.span > 0.0

    def angles(self) -> list[float]:
        """The angle of every beam in this span."""
        return [self.start_angle + i * self.step for i in range(self.num_beams)]

    def __repr__(self) -> str:
        return (
            f"SpanParams(start_angle={self.start_angle!r}, end_angle={self.end_angle!r}, "
            f"num_beams={self.num_beams!r}, step={self.step!r})"
        )


def _as_span_list(span_params: SpanParams | Iterable[SpanParams]) -> list[SpanParams]:
    if isinstance(span_params, SpanParams):
        return [span_params]
    spans = list(span_params)
    if not spans:
        raise ValueError("at least one span is required")
    return spans


class ProjectionParams:
    """Row and column angles of a projection, with cached sines and cosines."""

    def __init__(self):
        self._v_span = SpanParams()
        self._h_span = SpanParams()
        self._col_angles: list[float] = []
        self._row_angles: list[float] = []
        self._col_sines: tuple[float, ...] = ()
        self._col_cosines: tuple[float, ...] = ()
        self._row_sines: tuple[float, ...] = ()
        self._row_cosines: tuple[float, ...] = ()

    # -- spans -------------------------------------------------------------

    def set_span(self, span_params: SpanParams | Iterable[SpanParams], direction: Direction) -> None:
        """Set one span or a sequence of consecutive spans in the given direction."""
        spans = _as_span_list(span_params)
        num_beams = sum(span.num_beams for span in spans)
        combined = SpanParams(spans[0].start_angle, spans[-1].end_angle, num_beams)
        angles = [angle for span in spans for angle in span.angles()]
        if direction is Direction.HORIZONTAL:
            self._h_span = combined
            self._col_angles = angles
        elif direction is Direction.VERTICAL:
            self._v_span = combined
            self._row_angles = angles
        else:
            raise ValueError(f"unknown direction: {direction!r}")
        self._fill_cos_sin()

    def _fill_cos_sin(self) -> None:
        self._row_sines = tuple(math.sin(a) for a in self._row_angles)
        self._row_cosines = tuple(math.cos(a) for a in self._row_angles)
        self._col_sines = tuple(math.sin(a) for a in self._col_angles)
        self._col_cosines = tuple(math.cos(a) for a in self._col_angles)

    # -- read-only views ---------------------------------------------------

    @property
    def v_start_angle(self) -> float:
        return self._v_span.start_angle

    @property
    def v_end_angle(self) -> float:
        return self._v_span.end_angle

    @property
    def v_span(self) -> float:
        return self._v_span.span

    @property
    def h_start_angle(self) -> float:
        return self._h_span.start_angle

    @property
    def h_end_angle(self) -> float:
        return self._h_span.end_angle

    @property
    def h_span(self) -> float:
        return self._h_span.span

    @property
    def rows(self) -> int:
        return len(self._row_angles)

    @property
    def cols(self) -> int:
        return len(self._col_angles)

    @property
    def size(self) -> int:
        return self.rows * self.cols

    @property
    def row_angles(self) -> tuple[float, ...]:
        return tuple(self._row_angles)

    @property
    def col_angles(self) -> tuple[float, ...]:
        return tuple(self._col_angles)

    @property
    def row_angle_sines(self) -> tuple[float, ...]:
        return self._row_sines

    @property
    def row_angle_cosines(self) -> tuple[float, ...]:
        return self._row_cosines

    @property
    def col_angle_sines(self) -> tuple[float, ...]:
        return self._col_sines

    @property
    def col_angle_cosines(self) -> tuple[float, ...]:
        return self._col_cosines

    # -- lookups -----------------------------------------------------------

    def angle_from_row(self, row: int) -> float:
        if 0 <= row < len(self._row_angles):
            return self._row_angles[row]
        raise IndexError(f"row {row} is wrong")

    def angle_from_col(self, col: int) -> float:
        """Column angle; a column one full turn off either side wraps around."""
        count = len(self._col_angles)
        actual = col
        if col < 0:
            actual = col + count
        elif col >= count:
            actual = col - count
        if not 0 <= actual < count:
            raise IndexError(f"col {col} is wrong")
        return self._col_angles[actual]

    def row_from_angle(self, angle: float) -> int:
        return self._find_closest(self._row_angles, angle)

    def col_from_angle(self, angle: float) -> int:
        return self._find_closest(self._col_angles, angle)

    @staticmethod
    def _find_closest(angles: Sequence[float], value: float) -> int:
        if not angles:
            raise ValueError("no angles to search")
        count = len(angles)
        if angles[0] < angles[-1]:
            found = bisect.bisect_right(angles, value)
        else:
            found = count - bisect.bisect_right(angles[::-1], value)
        if found == 0:
            return 0
        if found == count:
            return count - 1
        diff_next = abs(angles[found] - value)
        diff_prev = abs(value - angles[found - 1])
        return found if diff_next < diff_prev else found - 1

    def valid(self) -> bool:
        """Return True, or raise ValueError describing what is missing."""
        if not (self._v_span.valid() and self._h_span.valid()):
            raise ValueError("Projection parameters invalid.")
        if not self._row_angles and not self._col_angles:
            raise ValueError("Projection parameters arrays not filled.")
        if not (self._row_sines or self._row_cosines or self._col_sines or self._col_cosines):
            raise ValueError("Projection parameters sin and cos arrays not filled.")
        return True

    # -- presets -----------------------------------------------------------

    @classmethod
    def _preset(cls, vertical: SpanParams | Iterable[SpanParams], horizontal: SpanParams) -> "ProjectionParams":
        params = cls()
        params.set_span(horizontal, Direction.HORIZONTAL)
        params.set_span(vertical, Direction.VERTICAL)
        params.valid()
        return params

    @staticmethod
    def _full_circle(num_beams: int = 870) -> SpanParams:
        return SpanParams(math.radians(-180.0), math.radians(180.0), num_beams)

    @classmethod
    def vlp_16(cls) -> "ProjectionParams":
        """Parameters of a 16 beam sensor."""
        return cls._preset(SpanParams(math.radians(15.0), math.radians(-15.0), 16), cls._full_circle())

    @classmethod
    def hdl_32(cls) -> "ProjectionParams":
        """Parameters of a 32 beam sensor."""
        return cls._preset(SpanParams(math.radians(10.0), math.radians(-30.0), 32), cls._full_circle())

    @classmethod
    def hdl_64(cls) -> "ProjectionParams":
        """Parameters of a 64 beam sensor with two laser blocks."""
        top = SpanParams(math.radians(2.0), math.radians(-8.5), 32)
        bottom = SpanParams(math.radians(-8.87), math.radians(-24.87), 32)
        return cls._preset([top, bottom], cls._full_circle())

    @classmethod
    def hdl_64_equal(cls) -> "ProjectionParams":
        """Parameters of a 64 beam sensor assuming equal spacing between lasers."""
        return cls._preset(SpanParams(math.radians(2.0), math.radians(-24.0), 64), cls._full_circle())

    @classmethod
    def full_sphere(cls, discretization: float = math.radians(5.0)) -> "ProjectionParams":
        """Parameters covering the whole sphere with the given angular step."""
        horizontal = SpanParams.from_step(math.radians(-180.0), math.radians(180.0), discretization)
        vertical = SpanParams.from_step(math.radians(-90.0), math.radians(90.0), discretization)
        return cls._preset(vertical, horizontal)

    @classmethod
    def from_config_file(cls, path: str | Path) -> "ProjectionParams":
        """Read parameters from a ``cols;rows;h_start;h_end;row_angle;...`` file (degrees)."""
        params = cls()
        with open(path, encoding="utf-8") as stream:
            for raw_line in stream:
                line = raw_line.rstrip("\n")
                if line.startswith("#"):
                    logger.info("Skipping commentary: %s", line)
                    continue
                fields = line.split(";")
                if len(fields) < 5:
                    raise ValueError("format of line is wrong")
                cols = int(float(fields[0]))
                rows = int(float(fields[1]))
                params._h_span = SpanParams(
                    math.radians(float(fields[2])), math.radians(float(fields[3])), cols
                )
                params._col_angles.extend(
                    params._h_span.start_angle + params._h_span.step * c for c in range(cols)
                )
                params._v_span = SpanParams(
                    math.radians(float(fields[4])), math.radians(float(fields[-1])), rows
                )
                params._row_angles.extend(math.radians(float(field)) for field in fields[4:])
                if len(params._row_angles) != rows:
                    raise ValueError("wrong config: number of row angles does not match rows")
        params._fill_cos_sin()
        params.valid()
        logger.info("Params read. Rows: %d, Cols: %d", params.rows, params.cols)
        return params