#!/usr/bin/env python3

"""yuvtools-planestore.py module description.

Runs raw planar YCbCr I/O (headerless yuv422p/yuv444p files).

File layout (W: width, H: height, Cw: chroma width):
```
bytes[0 .. W*H)                         = Y plane
bytes[W*H .. W*H + Cw*H)                = Cb plane
bytes[W*H+Cw*H .. W*H+2*Cw*H)           = Cr plane
```
where Cw = W for 4:4:4, and Cw = floor(W/2) for 4:2:2.
"""


import importlib
import os.path
import sys

yuvtools_common = importlib.import_module("yuvtools-common")


def get_plane_sizes(width, height, chroma_subsample):
    chroma_width = yuvtools_common.get_chroma_width(width, chroma_subsample)
    luma_size = width * height
    chroma_size = chroma_width * height
    return luma_size, chroma_size


def get_frame_size(width, height, chroma_subsample):
    luma_size, chroma_size = get_plane_sizes(width, height, chroma_subsample)
    return luma_size + 2 * chroma_size


def buffer_to_frame(
    buffer, width, height, chroma_subsample, row_alignment=1, logfd=sys.stdout, debug=0
):
    chroma_subsample = yuvtools_common.ChromaSubsample.parse(chroma_subsample)
    chroma_width = yuvtools_common.get_chroma_width(width, chroma_subsample)
    luma_size, chroma_size = get_plane_sizes(width, height, chroma_subsample)
    frame_size = luma_size + 2 * chroma_size
    if len(buffer) < frame_size:
        raise yuvtools_common.TruncatedInputException(
            f"error: truncated input: {len(buffer)} < {frame_size} bytes "
            f"({width}x{height}, {chroma_subsample.name})"
        )
    if len(buffer) > frame_size and debug > 0:
        print(
            f"warn: ignoring {len(buffer) - frame_size} trailing bytes",
            file=logfd,
        )
    # (key, offset, width) for each plane
    plane_info = (
        ("y", 0, width),
        ("u", luma_size, chroma_width),
        ("v", luma_size + chroma_size, chroma_width),
    )
    planes = {}
    for key, offset, plane_width in plane_info:
        # the file is tightly packed (stride == width)
        src = yuvtools_common.Plane.FromBuffer(
            buffer[offset : offset + plane_width * height], plane_width, height
        )
        # destination stride is our choice
        dst = yuvtools_common.Plane.Allocate(
            plane_width, height, row_alignment=row_alignment
        )
        yuvtools_common.copy_rows(src, dst)
        planes[key] = dst
    pix_fmt = yuvtools_common.get_planar_pix_fmt(chroma_subsample)
    frame = yuvtools_common.Frame(width, height, pix_fmt, planes)
    if debug > 1:
        print(f"debug: read frame: {frame}", file=logfd)
    return frame


def read_planar(
    infile, width, height, chroma_subsample, row_alignment=1, logfd=sys.stdout, debug=0
):
    if not os.path.isfile(infile):
        raise yuvtools_common.FileNotFoundException(f"error: file not found: {infile}")
    frame_size = get_frame_size(width, height, chroma_subsample)
    try:
        with open(infile, "rb") as fin:
            # read one byte more so that trailing data can be reported
            buffer = fin.read(frame_size + 1)
    except FileNotFoundError as e:
        raise yuvtools_common.FileNotFoundException(
            f"error: file not found: {infile}"
        ) from e
    if debug > 0:
        print(
            f"debug: reading {infile} ({width}x{height}, {frame_size} bytes/frame)",
            file=logfd,
        )
    return buffer_to_frame(
        buffer,
        width,
        height,
        chroma_subsample,
        row_alignment=row_alignment,
        logfd=logfd,
        debug=debug,
    )


def write_planar(frame):
    if not yuvtools_common.is_planar(frame.pix_fmt):
        raise yuvtools_common.UnsupportedPixelFormatException(
            f"error: cannot write non-planar frame: {frame.pix_fmt}"
        )
    # copy exactly width bytes per row (stride padding discarded)
    return b"".join(plane.tobytes() for plane in frame.planes_in_order())


def write_planar_file(outfile, frame):
    buffer = write_planar(frame)
    with open(outfile, "wb") as fout:
        fout.write(buffer)
    return len(buffer)
