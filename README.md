# depthcluster

Segmentation of 3D laser scans through their range images. A scan is
projected into a 2D depth image. The ground is removed from that image, and
what is left is labelled into connected components. Two neighbouring pixels
end up in the same component when the measure chosen to compare them
(for example the angle spanned by the two beam endpoints) satisfies a
threshold.

The package depends on `numpy` and `scipy`. All angles are in radians.

## Projection parameters

`depthcluster.projection_params.ProjectionParams` maps beam angles to image
rows and columns. Presets cover common 16, 32 and 64 beam sensors:

```python
import math
from depthcluster.projection_params import ProjectionParams, SpanParams, Direction

params = ProjectionParams.hdl_64()           # also vlp_16(), hdl_32(), hdl_64_equal()
sphere = ProjectionParams.full_sphere(0.1)   # angular step in radians
custom = ProjectionParams.from_config_file("img.cfg")

row = params.row_from_angle(-0.1)            # closest row to an elevation angle
angle = params.angle_from_col(10)

manual = ProjectionParams()
manual.set_span(SpanParams(-math.pi, math.pi, 870), Direction.HORIZONTAL)
manual.set_span(SpanParams(math.radians(15), math.radians(-15), 16), Direction.VERTICAL)
```

A config file holds lines of the form
`cols;rows;h_start;h_end;row_angle_0;row_angle_1;...` with angles in degrees.
Lines starting with `#` are skipped. A malformed file, or one whose number of
row angles does not match `rows`, raises `ValueError`.

## Projecting a cloud

```python
from depthcluster.cloud_projection import RichPoint, SphericalProjection

points = [RichPoint(10.0, 0.5, -1.2), RichPoint(8.0, -2.0, 0.3)]
projection = SphericalProjection(params)
projection.init_from_points(points)
depth = projection.depth_image      # float32 array, rows x cols
indices = projection.at(row, 0)     # indices of the points that fell on a pixel
```

`RingProjection` takes each point's row from its `ring` field instead of its
elevation. `unproject_point(image, row, col)` turns a depth pixel back into a
`RichPoint`. `set_corrections` sets per-row depth corrections, which
`SphericalProjection` applies after projecting.

## Removing the ground

```python
from depthcluster.ground_remover import DepthGroundRemover

remover = DepthGroundRemover(params, ground_remove_angle=0.0873, window_size=5)
no_ground = remover.remove_ground(depth)
```

`window_size` selects the Savitsky-Golay smoothing window and must be 5, 7,
9 or 11. `repair_depth` and `repair_depth_filtered` fill missing depth
readings from their neighbours in the same column.

The remover can also act as a stage in a chain. Any object with an
`on_new_object_received(projection, sender_id)` method can be registered with
`remover.add_client(client)`. Calling
`remover.on_new_object_received(projection, sender_id)` repairs the depth
image and removes the ground on a copy of the projection, then passes that
copy to every client.

## Labelling objects

```python
from depthcluster.diff_factory import DiffType
from depthcluster.labelers import LinearImageLabeler, labels_to_color

labeler = LinearImageLabeler(no_ground, params, angle_threshold=0.1745)
labeler.compute_labels(DiffType.ANGLES)
labels = labeler.label_image        # uint16 array, 0 means unlabelled
colors = labels_to_color(labels)    # rows x cols x 3 uint8 image
```

The difference measures are `SIMPLE`, `ANGLES`, `ANGLES_PRECOMPUTED`,
`LINE_DIST` and `LINE_DIST_PRECOMPUTED`. They can also be built directly with
`depthcluster.diff_factory.build_diff(diff_type, image, params)`.
`DiffType.NONE` raises `ValueError`. The precomputed measures offer
`visualize()`, which returns a colour image of their values.

## What the package does not do

It is a library only. It has no command-line program and no viewer or GUI.
It has no readers for scan files: points and depth images have to be loaded
by the caller. It labels pixels but does not gather the labelled components
into separate per-object clouds or size-filtered clusters.