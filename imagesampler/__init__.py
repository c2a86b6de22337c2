"""imagesampler: separable resampling of float images using classic filter kernels.

.. include:: ../README.md
"""

from __future__ import annotations

__docformat__ = 'google'
__version__ = '0.1.0'
__version_info__ = tuple(int(num) for num in __version__.split('.'))

from collections.abc import Callable, Mapping
import dataclasses
import math
import types
import typing
from typing import Any

import numpy as np
import numpy.typing as npt
import scipy.sparse

if typing.TYPE_CHECKING:
  _DType = np.dtype[Any]  # (Requires Python 3.9 or TYPE_CHECKING.)
  _NDArray = npt.NDArray[Any]
  _DTypeLike = npt.DTypeLike
  _ArrayLike = npt.ArrayLike
else:
  _DType = Any
  _NDArray = Any
  _DTypeLike = Any  # Else `pdoc` uses a long type expression for documentation.
  _ArrayLike = Any  # Same.


def _check_eq(a: Any, b: Any) -> None:
  """If the two values or arrays are not equal, raise an exception with a useful message."""
  are_equal = np.all(a == b) if isinstance(a, np.ndarray) else a == b
  if not are_equal:
    raise AssertionError(f'{a!r} == {b!r}')


def _get_precision(dtype: _DTypeLike) -> _DType:
  """Return the floating type used for computations on samples of type `dtype`.

  >>> _get_precision(np.uint8)
  dtype('float32')

  >>> _get_precision(np.float64)
  dtype('float64')
  """
  dtype = np.dtype(dtype)
  if not np.issubdtype(dtype, np.number) or np.issubdtype(dtype, np.complexfloating):
    raise ValueError(f'Type {dtype} is not a real numeric type.')
  return np.dtype(np.float64 if dtype == np.float64 else np.float32)


def _sinc(x: _ArrayLike) -> _NDArray:
  """Return the value `np.sinc(x)` but improved to:
  (1) ignore underflow that occurs at 0.0 for np.float32, and
  (2) output exact zero for integer input values.

  >>> _sinc(np.array([-3, -2, -1, 0], dtype=np.float32))
  array([0., 0., 0., 1.], dtype=float32)

  >>> _sinc(0)
  1.0
  """
  x = np.asarray(x)
  x_is_scalar = x.ndim == 0
  with np.errstate(under='ignore'):
    result = np.sinc(np.atleast_1d(x))
    result[np.atleast_1d(x == np.floor(x))] = 0.0
    result[np.atleast_1d(x == 0)] = 1.0
    return result.item() if x_is_scalar else result


# Kernel shapes, each evaluated on non-negative distances t.


_BOX_EDGE_TOLERANCE = 1e-9  # Distances computed with rounding error still reach the edge.


def _box(t: _NDArray) -> _NDArray:
  return np.where(t <= 0.5 + _BOX_EDGE_TOLERANCE, 1.0, 0.0)


def _gaussian(t: _NDArray) -> _NDArray:
  scale = 1.0 / math.sqrt(0.5 * math.pi)
  with np.errstate(under='ignore'):
    return np.where(t < 2.0, np.exp(-2.0 * t * t) * scale, 0.0)


def _hermite(t: _NDArray) -> _NDArray:
  return np.where(t < 1.0, (2.0 * t - 3.0) * t * t + 1.0, 0.0)


def _mitchell(t: _NDArray) -> _NDArray:
  """Mitchell-Netravali cubic with b = c = 1/3."""
  b = c = 1 / 3
  p3, p2, p0 = (12 - 9*b - 6*c) / 6, (-18 + 12*b + 6*c) / 6, (6 - 2*b) / 6
  q3, q2, q1, q0 = (-b - 6*c) / 6, (6*b + 30*c) / 6, (-12*b - 48*c) / 6, (8*b + 24*c) / 6
  v01 = ((p3 * t + p2) * t) * t + p0
  v12 = ((q3 * t + q2) * t + q1) * t + q0
  return np.where(t < 1.0, v01, np.where(t < 2.0, v12, 0.0))


def _lanczos(t: _NDArray) -> _NDArray:
  # Evaluated exactly; a program is generated once per pass, not once per pixel.
  return np.where(t < 1.0, np.square(_sinc(t)), 0.0)


@dataclasses.dataclass(frozen=True)
class Kernel:
  """Continuous filter kernel.

  The kernel is symmetric, so it is defined by its `function` on non-negative distances `t`,
  measured in units of the kernel's natural half-width.
  """

  name: str
  """Name of the kernel shape."""

  function: Callable[[_NDArray], _NDArray]
  """Vectorized weight of the kernel at non-negative distances."""

  radius: float
  """Half-width (in units of `t`) of the window of candidate source samples; except for the
  degenerate nearest kernel, `function(t)` is zero for all `t > radius`."""

  reject_external_samples: bool = True
  """If True, source samples outside the image or outside the source region are discarded
  (and the remaining weights renormalized) rather than being read."""

  def __call__(self, t: _ArrayLike) -> _NDArray:
    """Return the kernel weights at the (signed) distances `t`."""
    return self.function(np.abs(np.asarray(t, np.float64)))


_BOX = Kernel('box', _box, radius=1.0)
_NEAREST = Kernel('nearest', _box, radius=0.0)  # A zero radius degenerates to point sampling.
_GAUSSIAN = Kernel('gaussian', _gaussian, radius=2.0)
_HERMITE = Kernel('hermite', _hermite, radius=1.0)
_MITCHELL = Kernel('mitchell', _mitchell, radius=2.0)
_LANCZOS = Kernel('lanczos', _lanczos, radius=1.0)

_DICT_KERNELS: Mapping[str, Kernel] = types.MappingProxyType({
    'box': _BOX,
    'nearest': _NEAREST,
    'hermite': _HERMITE,
    'mitchell': _MITCHELL,
    'lanczos': _LANCZOS,
    'gaussian_normals': _GAUSSIAN,
    'gaussian_scalars': _GAUSSIAN,
    'minimum': _BOX,  # Only used to size the support window; see `_resample_1d`.
})

FILTERS = ['default', *_DICT_KERNELS]
"""Names of the filter types accepted by `resize`, `resample`, and `sample_point`:

| name                 | kernel | comments |
|----------------------|--------|----------|
| `'default'`          | --     | `'mitchell'` when magnifying, `'lanczos'` when minifying |
| `'box'`              | box    | radius 1, value 1 for t <= 0.5 |
| `'nearest'`          | box    | radius 0, i.e. point sampling |
| `'hermite'`          | cubic  | 2t^3 - 3t^2 + 1 on [0, 1) |
| `'mitchell'`         | cubic  | Mitchell-Netravali with b = c = 1/3, radius 2 |
| `'lanczos'`          | sinc^2 | radius 1 |
| `'gaussian_normals'` | gaussian | renormalizes each 3-channel pixel to unit length after filtering |
| `'gaussian_scalars'` | gaussian | radius 2 |
| `'minimum'`          | box    | each target value is the minimum over its box window |
"""

_FILTER_ALIASES = {'gaussian': 'gaussian_scalars', 'normals': 'gaussian_normals'}


def filter_from_string(name: str) -> str:
  """Return the filter name in `FILTERS` designated by a (case-insensitive) word.

  Besides the names in `FILTERS`, the words `'GAUSSIAN'` and `'NORMALS'` designate
  `'gaussian_scalars'` and `'gaussian_normals'`.  Unrecognized words resolve to `'default'`.

  >>> filter_from_string('LANCZOS')
  'lanczos'

  >>> filter_from_string('normals')
  'gaussian_normals'
  """
  name = name.strip().lower()
  name = _FILTER_ALIASES.get(name, name)
  return name if name in FILTERS else 'default'


def _get_kernel(filter: str) -> Kernel:  # pylint: disable=redefined-builtin
  """Return the `Kernel` for a filter name in `FILTERS`, other than `'default'`."""
  if filter == 'default':
    raise ValueError('Unresolved filter type: the default filter depends on the scaling.')
  if filter not in _DICT_KERNELS:
    raise ValueError(f'Filter {filter!r} is not one of {FILTERS}.')
  return _DICT_KERNELS[filter]


BOUNDARIES = ['exclude', 'region', 'clamp', 'repeat', 'mirror', 'color', 'nearest']
"""Names of the boundary modes of a `BoundaryRule`.

Only `'exclude'` is implemented: source samples outside the image or outside the source region
contribute nothing, and the weights of the remaining samples are renormalized.  The other modes
are recognized but `resample` raises `NotImplementedError` for them.
"""


@dataclasses.dataclass(frozen=True)
class BoundaryRule:
  """Treatment of source samples beyond one edge of the image."""

  mode: str = 'exclude'
  """Boundary mode, a name in `BOUNDARIES`."""

  region_width: float = 0.0
  """Width of the border region, reserved for the (unimplemented) `'region'` mode."""

  color: tuple[float, ...] = (0.0, 0.0, 0.0, 0.0)
  """Constant sample value, reserved for the (unimplemented) `'color'` mode."""

  def __post_init__(self) -> None:
    if self.mode not in BOUNDARIES:
      raise ValueError(f'Boundary mode {self.mode!r} is not one of {BOUNDARIES}.')


@dataclasses.dataclass(frozen=True)
class SourceRegion:
  """Subrectangle of the source image, in normalized coordinates.

  The coordinates 0 and 1 denote the outer edges of the first and last pixel.  They may lie
  outside [0, 1] to sample beyond the image.
  """

  left: float = 0.0
  top: float = 0.0
  right: float = 1.0
  bottom: float = 1.0


@dataclasses.dataclass(frozen=True)
class ImageSampler:
  """Configuration of a `resample` operation."""

  horizontal_filter: str = 'default'
  """Filter name (in `FILTERS`) used along the image width."""

  vertical_filter: str = 'default'
  """Filter name (in `FILTERS`) used along the image height."""

  source_region: SourceRegion = SourceRegion()
  """Part of the source image that is mapped onto the whole target image."""

  filter_radius_multiplier: float = 1.0
  """Scales the support of the kernels without changing their shape."""

  east: BoundaryRule = BoundaryRule()
  north: BoundaryRule = BoundaryRule()
  west: BoundaryRule = BoundaryRule()
  south: BoundaryRule = BoundaryRule()

  def __post_init__(self) -> None:
    for filter in (self.horizontal_filter, self.vertical_filter):
      if filter not in FILTERS:
        raise ValueError(f'Filter {filter!r} is not one of {FILTERS}.')
    if not self.filter_radius_multiplier > 0.0:
      raise ValueError(f'Radius multiplier {self.filter_radius_multiplier} is not positive.')


@dataclasses.dataclass(frozen=True, eq=False)
class _MadProgram:
  """Flat list of multiply-add instructions
  `target[target_index] += source[source_index] * weight` for one row of samples.

  The instructions contributing to a target sample are contiguous and ordered by increasing
  target index, so the same program applies to every row of an image.
  """

  target_index: _NDArray
  source_index: _NDArray
  weight: _NDArray

  def __len__(self) -> int:
    return len(self.weight)


def _generate_mad_program(ntarget: int, nsource: int, left: float, right: float,
                          kernel: Kernel, radius_multiplier: float = 1.0) -> _MadProgram:
  """Return the program that resamples a row of `nsource` samples into `ntarget` samples.

  The range [`left`, `right`] of the source row, in normalized coordinates where 0 and 1 are the
  outer edges of the first and last source samples, is mapped onto the whole target row.

  Args:
    ntarget: Number of samples in the target row.
    nsource: Number of samples in the source row.
    left: Normalized source coordinate mapped onto the left edge of the target row.
    right: Normalized source coordinate mapped onto the right edge of the target row.
    kernel: The reconstruction or antialiasing kernel.
    radius_multiplier: Scales the support of the kernel.

  Returns:
    A program whose weights sum to one for each target sample.  Target samples without any
    nonzero contribution (e.g. because all candidates were rejected) have no instructions.
  """
  if ntarget < 1 or nsource < 1:
    raise ValueError(f'Sizes {ntarget} and {nsource} must be positive.')
  if right == left:
    raise ValueError(f'Source range [{left}, {right}] is empty.')
  if not radius_multiplier > 0.0:
    raise ValueError(f'Radius multiplier {radius_multiplier} is not positive.')
  # Prefixes: n=number of samples, d=normalized sample width, x=normalized coordinate,
  # i=integer sample index.
  dtarget = 1.0 / ntarget
  extent = right - left
  fnsource = nsource * extent
  minifying = ntarget < fnsource
  domain_scale = (ntarget if minifying else fnsource) / radius_multiplier

  # Half-width of the kernel support in the normalized target domain, mapped onto the source
  # row to bound the candidate source samples.
  filter_bounds = abs(kernel.radius) / abs(domain_scale)
  xtarget = (np.arange(ntarget) + 0.5) * dtarget
  bound0 = left + (xtarget - filter_bounds) * extent
  bound1 = left + (xtarget + filter_bounds) * extent
  isource_lower = np.floor(np.minimum(bound0, bound1) * nsource).astype(np.int64)
  isource_upper = np.ceil(np.maximum(bound0, bound1) * nsource).astype(np.int64)
  if kernel.reject_external_samples:
    isource_lower = np.maximum(isource_lower, 0)
    isource_upper = np.minimum(isource_upper, nsource - 1)

  num_candidates = max(int(np.max(isource_upper - isource_lower)) + 1, 0)
  isource = isource_lower[:, None] + np.arange(num_candidates)  # (ntarget, num_candidates)
  valid = isource <= isource_upper[:, None]
  xsource = ((isource + 0.5) / nsource - left) / extent
  if kernel.reject_external_samples:
    valid &= (xsource >= 0.0) & (xsource < 1.0)

  t = np.abs(domain_scale * (xsource - xtarget[:, None]))
  weight = np.where(valid, kernel.function(t), 0.0)
  total = weight.sum(axis=-1, keepdims=True)
  weight = np.divide(weight, total, out=np.zeros_like(weight), where=total != 0.0)

  itarget, icandidate = np.nonzero(weight)  # Row-major, hence grouped by target index.
  return _MadProgram(
      target_index=itarget.astype(np.int64),
      source_index=isource[itarget, icandidate],
      weight=weight[itarget, icandidate])


def _expand_mad_program(num_channels: int, program: _MadProgram) -> _MadProgram:
  """Return the program for rows of `num_channels`-interleaved samples.

  Each instruction is replicated so that channel `c` of a target pixel receives channel `c` of
  the source pixel with the same weight.
  """
  if num_channels == 1:
    return program
  channel = np.arange(num_channels)

  def expand(index: _NDArray) -> _NDArray:
    return (index[:, None] * num_channels + channel).reshape(-1)

  return _MadProgram(
      target_index=expand(program.target_index),
      source_index=expand(program.source_index),
      weight=np.repeat(program.weight, num_channels))


def _make_sparse_matrix(program: _MadProgram, shape: tuple[int, int],
                        dtype: _DTypeLike) -> scipy.sparse.csr_matrix:
  """Return the (target, source) matrix that evaluates `program` as a matrix product."""
  num_targets, num_sources = shape
  source_index = program.source_index
  if len(source_index) and not (0 <= source_index.min() and source_index.max() < num_sources):
    raise ValueError('The program reads samples outside the source row.')
  data = program.weight.astype(dtype, copy=False)
  return scipy.sparse.csr_matrix((data, (program.target_index, source_index)),
                                 shape=(num_targets, num_sources))


def _normalize_vectors(image: _NDArray) -> _NDArray:
  """Return a copy of the 3-channel `image` with each pixel scaled to unit length.

  Zero-length vectors are left unchanged.
  """
  if image.ndim != 3 or image.shape[-1] != 3:
    raise ValueError(f'Image of shape {image.shape} must have 3 channels.')
  norm = np.linalg.norm(image, axis=-1, keepdims=True)
  return np.divide(image, norm, out=np.zeros_like(image), where=norm != 0.0)


def _resample_1d(array: _NDArray, width: int, filter: str,  # pylint: disable=redefined-builtin
                 left: float, right: float, radius_multiplier: float) -> _NDArray:
  """Resample each row of the (height, width, channels) `array` to `width` samples."""
  _check_eq(array.ndim, 3)
  height, src_width, num_channels = array.shape
  if filter == 'default':
    filter = 'mitchell' if width > src_width else 'lanczos'
  kernel = _get_kernel(filter)

  program = _generate_mad_program(width, src_width, left, right, kernel, radius_multiplier)
  program = _expand_mad_program(num_channels, program)
  array_flat = array.reshape(height, src_width * num_channels)
  shape = width * num_channels, src_width * num_channels

  # The minimum filter ignores the weights; the kernel only delimits the windows.
  if filter == 'minimum':
    result = np.full((height, shape[0]), np.inf, array.dtype)
    np.minimum.at(result, (slice(None), program.target_index),
                  array_flat[:, program.source_index])
    return result.reshape(height, width, num_channels)

  resize_matrix = _make_sparse_matrix(program, shape, array.dtype)
  result = np.asarray(resize_matrix @ array_flat.T).T.astype(array.dtype, copy=False)
  result = result.reshape(height, width, num_channels)

  if filter == 'gaussian_normals':
    result = _normalize_vectors(result)
  return result


def _as_image(image: _ArrayLike) -> _NDArray:
  """Return `image` as a float array of shape (height, width, channels)."""
  array = np.asarray(image)
  if array.ndim not in (2, 3):
    raise ValueError(f'Image shape {array.shape} is not (height, width[, channels]).')
  if 0 in array.shape:
    raise ValueError(f'Image shape {array.shape} is empty.')
  array = array.astype(_get_precision(array.dtype), copy=False)
  return array if array.ndim == 3 else array[..., None]


def transpose(image: _ArrayLike) -> _NDArray:
  """Return a contiguous copy of `image` with its width and height swapped.

  The channels (the optional third dimension) are unchanged.
  """
  return np.ascontiguousarray(np.swapaxes(np.asarray(image), 0, 1))


def resample(image: _ArrayLike, width: int, height: int,
             sampler: ImageSampler = ImageSampler()) -> _NDArray:
  """Resample `image` into a new image of resolution `width` x `height`.

  The image is resized separably: the rows are first resampled to `width` samples using
  `sampler.horizontal_filter`, then the columns are resampled to `height` samples using
  `sampler.vertical_filter`.

  Args:
    image: Grid of float sample values with shape (height, width) or (height, width, channels).
    width: Number of samples in each output row.
    height: Number of samples in each output column.
    sampler: Filters, source region, radius multiplier and boundary rules.  All four boundary
      rules must use the mode `'exclude'`.

  Returns:
    A float array with shape (height, width) or (height, width, channels), matching the
      dimensionality of `image`.

  >>> result = resample(np.ones((3, 5)), 4, 2)
  >>> assert result.shape == (2, 4) and np.allclose(result, 1.0)
  """
  rules = sampler.east, sampler.north, sampler.west, sampler.south
  if any(rule.mode != 'exclude' for rule in rules):
    raise NotImplementedError(
        f'Boundary modes {[rule.mode for rule in rules]} are not all "exclude".')
  if width < 1 or height < 1:
    raise ValueError(f'Resolution {width}x{height} must be positive.')
  array = _as_image(image)
  region = sampler.source_region
  radius = sampler.filter_radius_multiplier

  # The same row resampler handles the columns, using the transposed image.
  array = _resample_1d(array, width, sampler.horizontal_filter, region.left, region.right, radius)
  array = transpose(array)
  array = _resample_1d(array, height, sampler.vertical_filter, region.top, region.bottom, radius)
  array = transpose(array)
  return array if np.ndim(image) == 3 else array[..., 0]


def resize(image: _ArrayLike, width: int, height: int,
           filter: str = 'default') -> _NDArray:  # pylint: disable=redefined-builtin
  """Resize the whole `image` to `width` x `height` using the same `filter` on both axes.

  >>> result = resize(np.array([[10.0, 20.0, 30.0, 40.0]]), 2, 1, filter='box')
  >>> assert np.allclose(result, [[15.0, 35.0]])
  """
  return resample(image, width, height,
                  ImageSampler(horizontal_filter=filter, vertical_filter=filter))


def sample_point(image: _ArrayLike, x: float, y: float,
                 filter: str = 'box',  # pylint: disable=redefined-builtin
                 *, out: _NDArray | None = None) -> _NDArray:
  """Evaluate `image` at the normalized source coordinates (`x`, `y`).

  The image is resampled to a single pixel from a window extending one source pixel on each
  side of the point.

  Args:
    image: Grid of float sample values with shape (height, width) or (height, width, channels).
    x: Horizontal coordinate, where 0 and 1 are the outer edges of the first and last columns.
    y: Vertical coordinate, where 0 and 1 are the outer edges of the first and last rows.
    filter: Filter name in `FILTERS`.
    out: Optional array of length `channels` that receives the result.  If `None`, a new array is
      allocated; passing it back in later calls avoids further allocations.

  Returns:
    The array `out` (or the newly allocated one) holding the sampled channel values.
  """
  array = _as_image(image)
  height, width, num_channels = array.shape
  radius = 1.0
  left, right = x - radius / width, x + radius / width
  top, bottom = y - radius / height, y + radius / height

  column = transpose(_resample_1d(array, 1, filter, left, right, radius))
  pixel = _resample_1d(column, 1, filter, top, bottom, radius)
  if out is None:
    out = np.empty(num_channels, array.dtype)
  elif out.shape != (num_channels,):
    raise ValueError(f'Output shape {out.shape} is not ({num_channels},).')
  out[:] = pixel.reshape(num_channels)
  return out
