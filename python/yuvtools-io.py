#!/usr/bin/env python3

"""yuvtools-io.py module description.

Generic RGBA image I/O. Raw `.rgba` files are packed R/G/B/A bytes
(no header). Any other extension goes through OpenCV.
"""


import cv2
import importlib
import numpy as np
import os.path
import sys

yuvtools_common = importlib.import_module("yuvtools-common")


RAW_RGBA_EXTENSIONS = (".rgba",)


def is_raw_rgba(filename):
    return os.path.splitext(filename)[1] in RAW_RGBA_EXTENSIONS


# rgba is packed, R/G/B/A components
def read_rgba(infile, width, height):
    if not width or not height:
        raise yuvtools_common.DecodeException(
            f"error: raw rgba file {infile} needs width and height"
        )
    with open(infile, "rb") as fin:
        data = fin.read()
    size = width * height * 4
    if len(data) < size:
        raise yuvtools_common.TruncatedInputException(
            f"error: truncated rgba input: {len(data)} < {size} bytes ({width}x{height})"
        )
    return yuvtools_common.Plane.FromBuffer(data, width, height, channels=4)


def read_image_file(infile, width=None, height=None, logfd=sys.stdout, debug=0):
    if not os.path.isfile(infile):
        raise yuvtools_common.FileNotFoundException(f"error: file not found: {infile}")
    if is_raw_rgba(infile):
        return read_rgba(infile, width, height)

    try:
        inimg = cv2.imread(infile, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        raise yuvtools_common.DecodeException(
            f"error: cannot decode {infile}: {e}"
        ) from e
    if inimg is None:
        raise yuvtools_common.DecodeException(f"error: cannot decode {infile}")
    # cv2 returns gray, BGR, or BGRA: move everything to RGBA
    if inimg.dtype != np.uint8:
        raise yuvtools_common.UnsupportedPixelFormatException(
            f"error: unsupported image depth in {infile}: {inimg.dtype}"
        )
    if inimg.ndim == 2:
        outrgba = cv2.cvtColor(inimg, cv2.COLOR_GRAY2RGBA)
    elif inimg.shape[2] == 3:
        outrgba = cv2.cvtColor(inimg, cv2.COLOR_BGR2RGBA)
    elif inimg.shape[2] == 4:
        outrgba = cv2.cvtColor(inimg, cv2.COLOR_BGRA2RGBA)
    else:
        raise yuvtools_common.UnsupportedPixelFormatException(
            f"error: unsupported channel count in {infile}: {inimg.shape[2]}"
        )
    if debug > 0:
        print(
            f"debug: read {infile} ({outrgba.shape[1]}x{outrgba.shape[0]})",
            file=logfd,
        )
    return yuvtools_common.Plane.FromArray(outrgba)


def write_image_file(outfile, rgba):
    if is_raw_rgba(outfile):
        with open(outfile, "wb") as fout:
            fout.write(rgba.tobytes())
        return
    # cv2 writer requires BGR(A)
    outbgra = cv2.cvtColor(np.ascontiguousarray(rgba.pixels()), cv2.COLOR_RGBA2BGRA)
    try:
        ok = cv2.imwrite(outfile, outbgra)
    except cv2.error as e:
        raise yuvtools_common.YUVToolsException(
            f"error: cannot write {outfile}: {e}"
        ) from e
    if not ok:
        raise yuvtools_common.YUVToolsException(f"error: cannot write {outfile}")
