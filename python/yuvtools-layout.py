#!/usr/bin/env python3

"""yuvtools-layout.py module description.

Converts between planar (one buffer per component) and chunky
(interleaved) pixel layouts.

4:4:4 chunky is a direct 3-plane interleave (default order: Cr Y Cb).

4:2:2 chunky needs two stages:
* (1) merge the (half-width) Cb and Cr planes into a half-width,
  2-channel CbCr plane.
* (2) reinterpret that plane as a full-width, 1-channel plane, and
  interleave it with the (full-width) luma plane.

The result is a sequence of 4-byte groups covering 2 luma samples:
```
  +-----+-----+-----+-----+
  | Cb0 | Y0  | Cr0 | Y1  |
  +-----+-----+-----+-----+
```
"""


import importlib
import numpy as np

yuvtools_common = importlib.import_module("yuvtools-common")


DEFAULT_444_ORDER = "vyu"
DEFAULT_422_ORDER = "uyvy"


def planar_to_chunky(planar, order, debug=0):
    # 1. check the source planes
    for key in order:
        if key not in planar:
            raise yuvtools_common.UnsupportedPixelFormatException(
                f"error: no plane for component {key!r} (order: {order})"
            )
    first = planar[order[0]]
    width, height = first.width, first.height
    for key in order:
        plane = planar[key]
        if (plane.width, plane.height) != (width, height):
            raise ValueError(
                f"error: plane {key!r} is {plane.width}x{plane.height}, expected {width}x{height}"
            )
        if plane.channels != 1:
            raise yuvtools_common.UnsupportedPixelFormatException(
                f"error: plane {key!r} is not planar ({plane.channels} channels)"
            )
    # 2. interleave (destination is tightly packed)
    num_channels = len(order)
    chunky = yuvtools_common.Plane.Allocate(width, height, channels=num_channels)
    chunky_rows = chunky.rows()
    for k, key in enumerate(order):
        # reads exactly width bytes per row, whatever the source stride
        chunky_rows[:, k::num_channels] = planar[key].rows()
    if debug > 1:
        print(f"debug: planar_to_chunky({order}): {chunky}")
    return chunky


def chunky_to_planar(chunky, order, channel_count=None, debug=0):
    num_channels = len(order)
    if channel_count is not None and channel_count != num_channels:
        raise yuvtools_common.UnsupportedPixelFormatException(
            f"error: channel count ({channel_count}) does not match order {order!r}"
        )
    if chunky.channels != num_channels:
        raise yuvtools_common.UnsupportedPixelFormatException(
            f"error: chunky plane has {chunky.channels} channels, order is {order!r}"
        )
    chunky_rows = chunky.rows()
    planar = {}
    for k, key in enumerate(order):
        planar[key] = yuvtools_common.Plane.FromArray(chunky_rows[:, k::num_channels])
    if debug > 1:
        print(f"debug: chunky_to_planar({order}): {chunky}")
    return planar


def get_permute_map(permute_map, channels=4):
    # accepts index lists ([2, 1, 0, 3]) or byte orders ("bgra")
    if permute_map is None:
        return list(range(channels))
    if isinstance(permute_map, str):
        if sorted(permute_map) != sorted("rgba"[:channels]) or len(
            set(permute_map)
        ) != len(permute_map):
            raise yuvtools_common.UnsupportedPixelFormatException(
                f"error: invalid byte order: {permute_map}"
            )
        return ["rgba".index(c) for c in permute_map]
    permute_map = list(permute_map)
    if sorted(permute_map) != list(range(channels)):
        raise yuvtools_common.UnsupportedPixelFormatException(
            f"error: invalid permute map: {permute_map}"
        )
    return permute_map


def invert_permute_map(permute_map, channels=4):
    # "bgra" maps rgba into bgra: its inverse maps bgra back into rgba
    permute_map = get_permute_map(permute_map, channels)
    return [permute_map.index(k) for k in range(channels)]


def permute_channels(plane, permute_map):
    # output channel k is input channel permute_map[k]. Values are not touched.
    permute_map = get_permute_map(permute_map, plane.channels)
    if permute_map == list(range(plane.channels)):
        return yuvtools_common.Plane.FromArray(plane.pixels())
    return yuvtools_common.Plane.FromArray(plane.pixels()[:, :, permute_map])


def parse_422_order(order):
    # "uyvy" -> ("uv", "cy"), "yuyv" -> ("uv", "yc"), "vyuy" -> ("vu", "cy")
    if (
        len(order) != 4
        or sorted(order) != sorted("uvyy")
        or order[0::2] not in ("yy", "uv", "vu")
        or order[1::2] not in ("yy", "uv", "vu")
    ):
        raise yuvtools_common.UnsupportedPixelFormatException(
            f"error: invalid 4:2:2 order: {order}"
        )
    if order[0] == "y":
        return order[1::2], "yc"
    return order[0::2], "cy"


# 4:2:2 stage 1
def merge_chroma_422(u, v, order="uv", debug=0):
    return planar_to_chunky({"u": u, "v": v}, order, debug=debug)


def split_chroma_422(uv, order="uv", debug=0):
    planar = chunky_to_planar(uv, order, channel_count=2, debug=debug)
    return planar["u"], planar["v"]


def pad_columns(arr, width, fill=128):
    # edge-pad (height, columns[, ...]) to width columns
    num_columns = arr.shape[1]
    if num_columns >= width:
        return arr
    if num_columns == 0:
        shape = (arr.shape[0], width) + arr.shape[2:]
        return np.full(shape, fill, dtype=arr.dtype)
    pad_width = [(0, 0), (0, width - num_columns)] + [(0, 0)] * (arr.ndim - 2)
    return np.pad(arr, pad_width, mode="edge")


# 4:2:2 stage 2
def interleave_422(uv, y, order="cy", debug=0):
    height = y.height
    width = y.width
    # pairs of luma samples (odd widths get an edge-padded last group)
    num_groups = (width + 1) >> 1
    if uv.height != height or uv.width != (width >> 1) or uv.channels != 2:
        raise ValueError(f"error: invalid 4:2:2 chroma plane ({uv}) for luma ({y})")
    if num_groups != uv.width:
        # odd width
        y = yuvtools_common.Plane.FromArray(pad_columns(y.rows(), 2 * num_groups))
        uv = yuvtools_common.Plane.FromArray(
            pad_columns(uv.pixels(), num_groups)
        )
    # a 2-channel, half-width plane is also a 1-channel, full-width one
    c = uv.reinterpret(2 * num_groups, 1)
    return planar_to_chunky({"c": c, "y": y}, order, debug=debug)


def deinterleave_422(chunky, width, order="cy", debug=0):
    planar = chunky_to_planar(chunky, order, channel_count=2, debug=debug)
    y, c = planar["y"], planar["c"]
    num_groups = c.width >> 1
    uv = c.reinterpret(num_groups, 2)
    # drop the odd-width padding
    chroma_width = width >> 1
    if y.width != width:
        y = y.crop(width)
    if uv.width != chroma_width:
        uv = uv.crop(chroma_width)
    return uv, y


# frame-level conversions
def get_chunky_order(chroma_subsample, order=None):
    chroma_subsample = yuvtools_common.ChromaSubsample.parse(chroma_subsample)
    if chroma_subsample == yuvtools_common.ChromaSubsample.chroma_422:
        order = DEFAULT_422_ORDER if order is None else order
        # raises on invalid group orders
        parse_422_order(order)
        return order
    order = DEFAULT_444_ORDER if order is None else order
    if len(order) != 3 or sorted(order) != sorted("yuv"):
        raise yuvtools_common.UnsupportedPixelFormatException(
            f"error: invalid 4:4:4 order: {order}"
        )
    return order


def get_stage_orders(chroma_subsample, order):
    # (order,) for 4:4:4, (chroma_order, group_order) for 4:2:2
    if chroma_subsample == yuvtools_common.ChromaSubsample.chroma_422:
        return parse_422_order(order)
    return (order,)


# layout stages
# Each stage takes a dict of planes and returns a new dict of planes.
def interleave_444_stage(planes, orders, width, debug):
    chunky = planar_to_chunky(planes, orders[0], debug=debug)
    return {"chunky": chunky}


def deinterleave_444_stage(planes, orders, width, debug):
    return chunky_to_planar(planes["chunky"], orders[0], channel_count=3, debug=debug)


def merge_chroma_stage(planes, orders, width, debug):
    # Cb + Cr -> CbCr
    uv = merge_chroma_422(planes["u"], planes["v"], order=orders[0], debug=debug)
    return {"y": planes["y"], "uv": uv}


def split_chroma_stage(planes, orders, width, debug):
    u, v = split_chroma_422(planes["uv"], order=orders[0], debug=debug)
    return {"y": planes["y"], "u": u, "v": v}


def interleave_luma_stage(planes, orders, width, debug):
    # CbCr + Y -> Cb Y0 Cr Y1
    chunky = interleave_422(planes["uv"], planes["y"], order=orders[1], debug=debug)
    return {"chunky": chunky}


def deinterleave_luma_stage(planes, orders, width, debug):
    uv, y = deinterleave_422(planes["chunky"], width, order=orders[1], debug=debug)
    return {"y": y, "uv": uv}


LAYOUT_STAGES = {
    yuvtools_common.ChromaSubsample.chroma_444: {
        "planar_to_chunky": (interleave_444_stage,),
        "chunky_to_planar": (deinterleave_444_stage,),
    },
    yuvtools_common.ChromaSubsample.chroma_422: {
        "planar_to_chunky": (merge_chroma_stage, interleave_luma_stage),
        "chunky_to_planar": (deinterleave_luma_stage, split_chroma_stage),
    },
}


def run_stages(planes, stages, orders, width, debug):
    for stage in stages:
        planes = stage(planes, orders, width, debug)
    return planes


def yuv_planar_to_chunky(frame, order=None, debug=0):
    chroma_subsample = frame.chroma_subsample
    order = get_chunky_order(chroma_subsample, order)
    orders = get_stage_orders(chroma_subsample, order)
    stages = LAYOUT_STAGES[chroma_subsample]["planar_to_chunky"]
    return run_stages(frame.planes, stages, orders, frame.width, debug)["chunky"]


def yuv_chunky_to_planar(chunky, width, chroma_subsample, order=None, debug=0):
    chroma_subsample = yuvtools_common.ChromaSubsample.parse(chroma_subsample)
    order = get_chunky_order(chroma_subsample, order)
    orders = get_stage_orders(chroma_subsample, order)
    stages = LAYOUT_STAGES[chroma_subsample]["chunky_to_planar"]
    planes = run_stages({"chunky": chunky}, stages, orders, width, debug)
    return yuvtools_common.Frame(
        width,
        chunky.height,
        yuvtools_common.get_planar_pix_fmt(chroma_subsample),
        planes,
    )
