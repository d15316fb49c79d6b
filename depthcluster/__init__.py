"""Range-image projection, ground removal and connected-component labelling of 3D laser scans."""

__version__ = "0.1.0"

__all__ = [
    "projection_params",
    "pixel",
    "cloud_projection",
    "diff_base",
    "angle_diff",
    "line_dist_diff",
    "diff_factory",
    "labelers",
    "ground_remover",
]