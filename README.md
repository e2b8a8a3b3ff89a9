# mvsimage

Building blocks for multi-view stereo work on calibrated photographs:
camera models, image pyramids with masks and edge maps, and texture
sampling with photo-consistency scores. Everything works on NumPy arrays;
Pillow is used for reading and writing image files.

## Modules

- **`mvsimage.camera`**: `Camera.load(path, max_level)` reads a camera text
  file in the `CONTOUR`, `CONTOUR2` or `CONTOUR3` layout (see `TxtType`)
  and builds a 3x4 projection matrix for each pyramid level, each level
  halving the image coordinates of the one before. A camera can:
  - `project`, `mult` and `unproject` points;
  - give `compute_depth`, `compute_depth_dif` and `compute_distance`;
  - `intersect` and `intersect_ray` viewing rays with a plane;
  - give the world size of a pixel (`get_scale`) and sampling axes on a
    surface patch (`get_paxes`);
  - `write` its parameters back in the layout it was read from.

  For `CONTOUR2` cameras `k_matrix`, `rt_matrix` and `rotation` return the
  intrinsic and extrinsic matrices. The static methods `set_projection`,
  `set_projection_sub`, `q2proj` and `proj2q` convert between compact
  parameters and matrices. The functions `fundamental_matrix` and
  `compute_epd` (distance of a point from an epipolar line) relate two
  cameras. Problems are reported as `CameraError`.
- **`mvsimage.imageio`**: readers and writers for binary PBM (`P4`), PGM
  (`P5`) and PPM (`P6`) files, a JPEG writer (quality 100, optional
  vertical flip), and `read_any_image` for any colour image Pillow can
  open. Readers return `(data, width, height)` with `data` a flat `uint8`
  array; with `fast=True` only the size is read. `complete_name` adds the
  extension of an existing file to a base name. Unreadable files raise
  `ImageFormatError`.
- **`mvsimage.processing`**: colour conversions (`rgb2hs`, `rgb2hsv`,
  `gray2rgb`, `hsdis`), Gaussian kernels (`create_filter`), separable
  smoothing renormalised at the borders (`filter_g`, `filter_g_flat`) and
  non-maximum suppression (`nms`). These return new arrays.
- **`mvsimage.sampling`**: bilinear and integer pixel access on flat
  row-major buffers (`bilinear_color`, `pixel_color`, `store_color`,
  `binary_value`, `round_coord`, `is_safe`).
- **`mvsimage.pyramid`**: `level_sizes`, `downsample_image` (average, max
  or min reduction, see `PyramidFilter`), `downsample_binary`, `binarize`
  and gradient-based `detect_edges`.
- **`mvsimage.image`**: `Image` holds a colour image and optional mask and
  edge maps as pyramids. `set_files` names the files, `alloc` loads them
  (with `fast=True` only the size is kept), `free` releases them and
  `set_edge` computes an edge map from the image itself. It offers colour,
  mask and edge lookup and SIFT-like 128-value descriptors (`sift`,
  `sift_at_level`). Asking for data before it is loaded raises
  `ImageNotAllocatedError`.
- **`mvsimage.photo`**: `Photo` is an `Image` with a `Camera` (its
  `camera` attribute). It samples texture patches in image space
  (`grab_tex_2d`) or around a 3D point (`grab_tex`, which also returns a
  viewing weight), and looks up colour, mask and edge where a 3D point
  projects. The module also provides the texture scores `idot`, `idot_c`
  and `ssd`, and `normalize`.
- **`mvsimage.photoset`**: `PhotoSet` loads numbered photos from a
  directory, gives access to each of them by position (`image2index` maps
  image numbers to positions), checks viewing angles (`check_angles`,
  `min_max_angles`) and computes pairwise camera distances
  (`set_distances`, stored in `distances`). `incc` is the weighted mean of
  pairwise `idot` scores over non-empty textures, or 2.0 when there are
  none.

## Installation

```
pip install .
```

## Directory layout expected by `PhotoSet`

```
<prefix>visualize/00000000.jpg   (or .ppm, .png, .tiff; 4-digit names are used
                                  when no 8-digit image exists)
<prefix>masks/00000000.pgm       optional, .pgm or .pbm
<prefix>edges/00000000.pgm       optional, .pgm or .pbm
<prefix>txt/00000000.txt         camera parameters
```

The prefix is joined to the directory names as given, so it normally ends
with a slash.

## Example

```python
import numpy as np
from mvsimage.photoset import PhotoSet, incc

photos = PhotoSet()
photos.load([0, 1, 2], "data/", max_level=3, size=7, alloc=True)

point = np.array([0.1, 0.2, 1.5, 1.0])
normal = np.array([0.0, 0.0, -1.0, 0.0])
pxaxis, pyaxis = photos.get_paxes(0, point, normal)

texs, weights = [], []
for index in range(3):
    tex, weight = photos.grab_tex(index, 0, point, pxaxis, pyaxis, normal, True)
    texs.append(tex)
    weights.append(weight)

print("score:", incc(texs, weights))
```

## What the package does not do

It is a library only. There is no command-line program, and it does not
itself reconstruct surfaces or write point clouds; it supplies the cameras,
images and scores that such a program works with.

## Running the tests

```
pip install .[test]
pytest
```