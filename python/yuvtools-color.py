#!/usr/bin/env python3

"""yuvtools-color.py module description.

Converts between (chunky) R'G'B'A and (chunky) Y'CbCr using an affine
transform derived from Kr/Kb luma coefficients (BT.601 by default) and a
pixel range.

Forward transform (R'G'B' in [0, 255]):
```
Y' = Kr * R' + Kg * G' + Kb * B'
Y  = yp_bias + (yp_range_max - yp_bias) / 255 * Y'
Cb = cbcr_bias + (cbcr_range_max - cbcr_bias) / 127.5 * (B' - Y') / (2 * (1 - Kb))
Cr = cbcr_bias + (cbcr_range_max - cbcr_bias) / 127.5 * (R' - Y') / (2 * (1 - Kr))
```
The inverse transform is the exact inverse of the forward one.
"""


import enum
import importlib
import numpy as np

yuvtools_common = importlib.import_module("yuvtools-common")
yuvtools_layout = importlib.import_module("yuvtools-layout")


class ConversionDirection(enum.Enum):
    rgb2yuv = 0
    yuv2rgb = 1

    @classmethod
    def parse(cls, val):
        if isinstance(val, cls):
            return val
        for data in cls:
            if val == data.name:
                return data
        raise ValueError(f"error: invalid conversion direction: {val}")


# H.273 MatrixCoefficients (subset with Kr/Kb definitions)
MATRIX_COEFFICIENTS = {
    1: {"name": "bt709", "Kr": 0.2126, "Kb": 0.0722},
    5: {"name": "bt470bg", "Kr": 0.299, "Kb": 0.114},
    6: {"name": "bt601", "Kr": 0.299, "Kb": 0.114},
}

DEFAULT_MATRIX_COEFFICIENTS = 6


class PixelRange:
    def __init__(
        self,
        yp_bias,
        cbcr_bias,
        yp_range_max,
        cbcr_range_max,
        yp_max,
        yp_min,
        cbcr_max,
        cbcr_min,
    ):
        self.yp_bias = yp_bias
        self.cbcr_bias = cbcr_bias
        self.yp_range_max = yp_range_max
        self.cbcr_range_max = cbcr_range_max
        self.yp_max = yp_max
        self.yp_min = yp_min
        self.cbcr_max = cbcr_max
        self.cbcr_min = cbcr_min

    def __str__(self):
        return (
            f"yp_bias: {self.yp_bias} cbcr_bias: {self.cbcr_bias} "
            f"yp_range_max: {self.yp_range_max} cbcr_range_max: {self.cbcr_range_max} "
            f"yp: [{self.yp_min}, {self.yp_max}] cbcr: [{self.cbcr_min}, {self.cbcr_max}]"
        )

    @classmethod
    def Get(cls, color_range):
        if isinstance(color_range, cls):
            return color_range
        color_range = yuvtools_common.ColorRange.parse(color_range)
        return PIXEL_RANGES[color_range]


PIXEL_RANGES = {
    # video range, clamped as [0, 255] (Y) and [1, 255] (CbCr)
    yuvtools_common.ColorRange.limited: PixelRange(
        yp_bias=16,
        cbcr_bias=128,
        yp_range_max=235,
        cbcr_range_max=240,
        yp_max=255,
        yp_min=0,
        cbcr_max=255,
        cbcr_min=1,
    ),
    yuvtools_common.ColorRange.limited_clamped: PixelRange(
        yp_bias=16,
        cbcr_bias=128,
        yp_range_max=235,
        cbcr_range_max=240,
        yp_max=235,
        yp_min=16,
        cbcr_max=240,
        cbcr_min=16,
    ),
    yuvtools_common.ColorRange.full: PixelRange(
        yp_bias=0,
        cbcr_bias=128,
        yp_range_max=255,
        cbcr_range_max=255,
        yp_max=255,
        yp_min=0,
        cbcr_max=255,
        cbcr_min=0,
    ),
}


class ConversionMatrix:
    """Affine transform `out = matrix @ in + offset`.

    All the arrays are read-only: a ConversionMatrix is generated once
    and reused for every pixel of a conversion.
    """

    def __init__(
        self, matrix, offset, direction, pixel_range, min_values=None, max_values=None
    ):
        self.direction = ConversionDirection.parse(direction)
        self.pixel_range = pixel_range
        if min_values is None or max_values is None:
            min_values, max_values = get_clamp_values(pixel_range, self.direction)
        self.matrix = self._freeze(matrix, (3, 3))
        self.offset = self._freeze(offset, (3,))
        self.min_values = self._freeze(min_values, (3,))
        self.max_values = self._freeze(max_values, (3,))

    @staticmethod
    def _freeze(arr, shape):
        arr = np.array(arr, dtype=np.float64).reshape(shape)
        arr.setflags(write=False)
        return arr

    def __str__(self):
        return (
            f"direction: {self.direction.name}\n"
            f"matrix:\n{self.matrix}\noffset: {self.offset}\n"
            f"min: {self.min_values} max: {self.max_values}"
        )

    def apply(self, arr):
        # arr is (..., 3)
        return arr @ self.matrix.T + self.offset


def get_clamp_values(pixel_range, direction):
    if direction == ConversionDirection.yuv2rgb:
        return (0, 0, 0), (255, 255, 255)
    return (
        (pixel_range.yp_min, pixel_range.cbcr_min, pixel_range.cbcr_min),
        (pixel_range.yp_max, pixel_range.cbcr_max, pixel_range.cbcr_max),
    )


def generate_matrix(
    pixel_range, direction, matrix_coefficients=DEFAULT_MATRIX_COEFFICIENTS
):
    pixel_range = PixelRange.Get(pixel_range)
    direction = ConversionDirection.parse(direction)
    if matrix_coefficients not in MATRIX_COEFFICIENTS:
        raise ValueError(
            f"error: unsupported matrix coefficients: {matrix_coefficients} "
            f"(supported: {list(MATRIX_COEFFICIENTS.keys())})"
        )
    Kr = MATRIX_COEFFICIENTS[matrix_coefficients]["Kr"]
    Kb = MATRIX_COEFFICIENTS[matrix_coefficients]["Kb"]
    Kg = 1.0 - Kr - Kb
    yp_scale = (pixel_range.yp_range_max - pixel_range.yp_bias) / 255.0
    cbcr_scale = (pixel_range.cbcr_range_max - pixel_range.cbcr_bias) / 127.5
    if yp_scale <= 0 or cbcr_scale <= 0:
        raise ValueError(f"error: degenerate pixel range: {pixel_range}")
    luma = np.array([Kr, Kg, Kb])
    # [ Y  ]   [ ys * (Kr, Kg, Kb)                   ] [ R' ]   [ yp_bias   ]
    # [ Cb ] = [ cs * ((0, 0, 1) - luma) / (2(1-Kb)) ] [ G' ] + [ cbcr_bias ]
    # [ Cr ]   [ cs * ((1, 0, 0) - luma) / (2(1-Kr)) ] [ B' ]   [ cbcr_bias ]
    matrix = np.array(
        [
            yp_scale * luma,
            cbcr_scale * (np.array([0.0, 0.0, 1.0]) - luma) / (2.0 * (1.0 - Kb)),
            cbcr_scale * (np.array([1.0, 0.0, 0.0]) - luma) / (2.0 * (1.0 - Kr)),
        ]
    )
    offset = np.array(
        [pixel_range.yp_bias, pixel_range.cbcr_bias, pixel_range.cbcr_bias],
        dtype=np.float64,
    )
    if direction == ConversionDirection.yuv2rgb:
        matrix = np.linalg.inv(matrix)
        offset = -(matrix @ offset)
    return ConversionMatrix(matrix, offset, direction, pixel_range)


def clip_and_narrow(arr, min_value, max_value):
    # round to nearest (ties to even)
    arr = np.round(arr)
    # values must fit the 16-bit intermediate before clamping
    int16_info = np.iinfo(np.int16)
    if (
        not np.all(np.isfinite(arr))
        or np.any(arr < int16_info.min)
        or np.any(arr > int16_info.max)
    ):
        raise yuvtools_common.InternalClampViolationException(
            "error: conversion result out of 16-bit range"
        )
    arr = np.clip(arr.astype(np.int16), min_value, max_value)
    return arr.astype(np.uint8)


def check_direction(matrix, direction):
    if matrix.direction != direction:
        raise ValueError(
            f"error: invalid matrix direction: {matrix.direction.name} "
            f"(expected {direction.name})"
        )


def get_ycbcr_descriptor(pix_fmt, order):
    descriptor = yuvtools_common.get_descriptor(pix_fmt)
    if (
        descriptor["layout"] != yuvtools_common.LayoutType.chunky
        or "y" not in descriptor["order"]
    ):
        raise yuvtools_common.UnsupportedPixelFormatException(
            f"error: not a chunky YCbCr pix_fmt: {pix_fmt}"
        )
    chroma_subsample = descriptor["chroma_subsample"]
    if order is None:
        order = descriptor["order"]
    if chroma_subsample == yuvtools_common.ChromaSubsample.chroma_422:
        # raises on invalid orders
        yuvtools_layout.parse_422_order(order)
    elif sorted(order) != sorted("yuv"):
        raise yuvtools_common.UnsupportedPixelFormatException(
            f"error: invalid 4:4:4 order: {order}"
        )
    return chroma_subsample, order


def get_rgb_pixels(rgba, permute_map):
    if rgba.channels not in (3, 4):
        raise yuvtools_common.UnsupportedPixelFormatException(
            f"error: invalid RGB(A) channel count: {rgba.channels}"
        )
    if permute_map is not None:
        # bring the input into rgb(a) order
        rgba = yuvtools_layout.permute_channels(
            rgba, yuvtools_layout.invert_permute_map(permute_map, rgba.channels)
        )
    return rgba.pixels()[:, :, :3].astype(np.float64)


def rgba_to_ycbcr(rgba, matrix, pix_fmt="vyu444", order=None, permute_map=None):
    check_direction(matrix, ConversionDirection.rgb2yuv)
    chroma_subsample, order = get_ycbcr_descriptor(pix_fmt, order)
    # 1. apply the affine transform (alpha is ignored)
    ycbcr = matrix.apply(get_rgb_pixels(rgba, permute_map))
    height = rgba.height

    if chroma_subsample == yuvtools_common.ChromaSubsample.chroma_444:
        # 2. reorder the components
        index = ["yuv".index(c) for c in order]
        out = clip_and_narrow(
            ycbcr[:, :, index],
            matrix.min_values[index],
            matrix.max_values[index],
        )
        return yuvtools_common.Plane.FromArray(out)

    # 2. group pairs of pixels (odd widths repeat the last pixel)
    num_groups = (rgba.width + 1) >> 1
    ycbcr = yuvtools_layout.pad_columns(ycbcr, 2 * num_groups)
    # 3. average the chroma of each pair before rounding
    chroma = (ycbcr[:, 0::2, 1:] + ycbcr[:, 1::2, 1:]) / 2.0
    luma = (ycbcr[:, 0::2, 0], ycbcr[:, 1::2, 0])
    group = np.zeros((height, num_groups, 4), dtype=np.float64)
    min_values = np.zeros(4)
    max_values = np.zeros(4)
    luma_id = 0
    for k, c in enumerate(order):
        if c == "y":
            group[:, :, k] = luma[luma_id]
            luma_id += 1
        else:
            group[:, :, k] = chroma[:, :, "uv".index(c)]
        min_values[k] = matrix.min_values["yuv".index(c)]
        max_values[k] = matrix.max_values["yuv".index(c)]
    out = clip_and_narrow(group, min_values, max_values)
    # 4-byte groups are 2 pixels of 2 samples each
    return yuvtools_common.Plane.FromArray(
        out.reshape(height, 2 * num_groups, 2)
    )


def get_ycbcr_pixels(ycbcr, chroma_subsample, order):
    height = ycbcr.height
    if chroma_subsample == yuvtools_common.ChromaSubsample.chroma_444:
        if ycbcr.channels != 3:
            raise yuvtools_common.UnsupportedPixelFormatException(
                f"error: 4:4:4 chunky plane needs 3 channels ({ycbcr.channels})"
            )
        pixels = ycbcr.pixels()
        return pixels[:, :, [order.index(c) for c in "yuv"]].astype(np.float64)
    if ycbcr.channels != 2 or ycbcr.width % 2 != 0:
        raise yuvtools_common.UnsupportedPixelFormatException(
            f"error: invalid 4:2:2 chunky plane ({ycbcr})"
        )
    num_groups = ycbcr.width >> 1
    group = ycbcr.rows().reshape(height, num_groups, 4).astype(np.float64)
    luma_index = [k for k, c in enumerate(order) if c == "y"]
    # Y0 Y1 Y0 Y1 ...
    luma = group[:, :, luma_index].reshape(height, 2 * num_groups)
    # each chroma pair covers both luma samples
    cb = np.repeat(group[:, :, order.index("u")], 2, axis=1)
    cr = np.repeat(group[:, :, order.index("v")], 2, axis=1)
    return np.stack((luma, cb, cr), axis=-1)


def ycbcr_to_rgba(
    ycbcr, matrix, alpha_fill=255, pix_fmt="vyu444", order=None, permute_map=None
):
    check_direction(matrix, ConversionDirection.yuv2rgb)
    if not 0 <= alpha_fill <= 255:
        raise ValueError(f"error: invalid alpha value: {alpha_fill}")
    chroma_subsample, order = get_ycbcr_descriptor(pix_fmt, order)
    # 1. unpack the components into (height, width, [Y, Cb, Cr])
    pixels = get_ycbcr_pixels(ycbcr, chroma_subsample, order)
    # 2. apply the affine transform
    rgb = clip_and_narrow(
        matrix.apply(pixels), matrix.min_values, matrix.max_values
    )
    # 3. add the alpha channel (YCbCr carries no alpha)
    alpha = np.full(rgb.shape[:2] + (1,), alpha_fill, dtype=np.uint8)
    rgba = yuvtools_common.Plane.FromArray(np.concatenate((rgb, alpha), axis=2))
    if permute_map is not None:
        rgba = yuvtools_layout.permute_channels(rgba, permute_map)
    return rgba


def convert_pixel(a, b, c, matrix):
    out = clip_and_narrow(
        matrix.apply(np.array([a, b, c], dtype=np.float64)),
        matrix.min_values,
        matrix.max_values,
    )
    return tuple(int(v) for v in out)
