# %% [markdown]
# # imagesampler: Example usage

# %%
# !pip install -q mediapy imagesampler

# %%
"""Simple examples of `imagesampler` usage."""

import mediapy as media
import numpy as np

import imagesampler

# %% [markdown]
# ### Upsample (magnify) an image

# %%
array = np.random.default_rng(1).random((4, 6, 3))  # 4x6 RGB image.
upsampled = imagesampler.resize(array, 192, 128)  # 'default' uses 'mitchell' when magnifying.
media.show_images({'original 4x6': array, 'upsampled 128x192': upsampled}, height=128)

# %% [markdown]
# ### Downsample (minify) an image

# %%
yx = (np.moveaxis(np.indices((96, 192)), 0, -1) + (0.5, 0.5)) / 96
radius = np.linalg.norm(yx - (0.75, 0.5), axis=-1)
array = np.cos((radius + 0.1) ** 0.5 * 70.0) * 0.5 + 0.5
images = {'original 96x192': array}
for filter in ['nearest', 'box', 'lanczos', 'minimum']:
  images[f"filter='{filter}'"] = imagesampler.resize(array, 48, 24, filter=filter)
media.show_images(images, height=96, vmin=0, vmax=1)

# %% [markdown]
# ### Magnify a subregion with different filters on each axis

# %%
sampler = imagesampler.ImageSampler(
    horizontal_filter='hermite',
    vertical_filter='gaussian_scalars',
    source_region=imagesampler.SourceRegion(left=0.25, top=0.4, right=0.5, bottom=0.6),
    filter_radius_multiplier=1.5,
)
zoomed = imagesampler.resample(array, 192, 96, sampler)
media.show_images({'original': array, 'zoomed region': zoomed}, height=96, vmin=0, vmax=1)

# %% [markdown]
# ### Downsample a normal map

# %%
height_field = np.sin(yx[..., 0] * 20.0) * np.cos(yx[..., 1] * 13.0) * 0.1
dy, dx = np.gradient(height_field)
normals = np.dstack((-dx * 96, -dy * 96, np.ones_like(dx)))
normals /= np.linalg.norm(normals, axis=-1, keepdims=True)
small = imagesampler.resize(normals, 48, 24, filter='gaussian_normals')
assert np.allclose(np.linalg.norm(small, axis=-1), 1.0, atol=1e-5)
media.show_images({'normals': normals * 0.5 + 0.5, 'downsampled': small * 0.5 + 0.5}, height=96)

# %% [markdown]
# ### Sample single points

# %%
pixel = None
for x in np.linspace(0.0, 1.0, 5):
  pixel = imagesampler.sample_point(array, x, 0.5, 'lanczos', out=pixel)
  print(f'x={x:.2f}: {pixel}')
