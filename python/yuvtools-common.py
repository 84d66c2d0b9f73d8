#!/usr/bin/env python3

"""yuvtools-common.py module description.


Module that contains common code: errors, pixel format tables, the Plane
and Frame buffer containers, and the pipeline configuration.
"""


import enum
import numpy as np


class YUVToolsException(Exception):
    """Generic yuvtools issue."""


class FileNotFoundException(YUVToolsException):
    """Input file does not exist."""


class TruncatedInputException(YUVToolsException):
    """Input has fewer bytes than the frame requires."""


class AllocationFailureException(YUVToolsException):
    """Plane buffer could not be allocated."""


class UnsupportedPixelFormatException(YUVToolsException):
    """Unrecognized pixel format, channel count, or channel order."""


class InternalClampViolationException(YUVToolsException):
    """Value outside the arithmetic headroom (broken conversion matrix)."""


class DecodeException(YUVToolsException):
    """Encoded image could not be decoded."""


class LayoutType(enum.Enum):
    chunky = 0
    planar = 1


class ChromaSubsample(enum.Enum):
    chroma_422 = 0
    chroma_444 = 1

    @property
    def ratio(self):
        # horizontal subsampling ratio
        return 2 if self == ChromaSubsample.chroma_422 else 1

    @classmethod
    def get_choices(cls):
        return list(CHROMA_SUBSAMPLES.keys())

    @classmethod
    def parse(cls, val):
        if isinstance(val, cls):
            return val
        if str(val) in CHROMA_SUBSAMPLES:
            return CHROMA_SUBSAMPLES[str(val)]["chroma_subsample"]
        raise UnsupportedPixelFormatException(
            f"error: unsupported chroma subsample: {val}"
        )


# "chroma subsample"
CHROMA_SUBSAMPLES = {
    "422": {
        "chroma_subsample": ChromaSubsample.chroma_422,
        "planar": "yuv422p",
        "chunky": "uyvy422",
    },
    "444": {
        "chroma_subsample": ChromaSubsample.chroma_444,
        "planar": "yuv444p",
        "chunky": "vyu444",
    },
}


def get_chroma_width(width, chroma_subsample):
    # odd widths are floor-divided (no validation)
    return width // ChromaSubsample.parse(chroma_subsample).ratio


def get_planar_pix_fmt(chroma_subsample):
    chroma_subsample = ChromaSubsample.parse(chroma_subsample)
    for v in CHROMA_SUBSAMPLES.values():
        if v["chroma_subsample"] == chroma_subsample:
            return v["planar"]


def get_chunky_pix_fmt(chroma_subsample):
    chroma_subsample = ChromaSubsample.parse(chroma_subsample)
    for v in CHROMA_SUBSAMPLES.values():
        if v["chroma_subsample"] == chroma_subsample:
            return v["chunky"]


class ColorRange(enum.Enum):
    limited = 0
    full = 1
    limited_clamped = 2

    @classmethod
    def get_choices(cls, name=True):
        return list((c.name if name else c.value) for c in ColorRange)

    @classmethod
    def get_default(cls, name=True):
        default = cls.limited
        return default.name if name else default.value

    @classmethod
    def parse(cls, val):
        if val is None:
            return cls.limited
        if isinstance(val, cls):
            return val
        # map value (int)/name (str) to object
        for data in cls:
            if (type(val) is int and val == data.value) or (
                type(val) is str and val.lower().replace("-", "_") == data.name
            ):
                return data
        raise ValueError(f"error: invalid color range: {val}")


# "pix_fmt"
# * layout: chunky (interleaved) or planar
# * order: component order. Components are "y" (luma), "u" (Cb), "v" (Cr),
#   and "r", "g", "b", "a". For 4:2:2 chunky formats the order describes
#   one 2-pixel group (4 bytes).
# * channels: samples per pixel in the (single) chunky plane, or 1 for
#   each planar plane
# * depth: bits per sample
PIX_FMTS = {
    "rgba": {
        "alias": ("RGBA8", "rgba8"),
        "layout": LayoutType.chunky,
        "order": "rgba",
        "channels": 4,
        "chroma_subsample": ChromaSubsample.chroma_444,
        "depth": 8,
    },
    "bgra": {
        "alias": ("BGRA8", "bgra8"),
        "layout": LayoutType.chunky,
        "order": "bgra",
        "channels": 4,
        "chroma_subsample": ChromaSubsample.chroma_444,
        "depth": 8,
    },
    "yuv422p": {
        "alias": ("YUV422Planar",),
        "layout": LayoutType.planar,
        "order": "yuv",
        "channels": 1,
        "chroma_subsample": ChromaSubsample.chroma_422,
        "depth": 8,
    },
    "yuv444p": {
        "alias": ("YUV444Planar",),
        "layout": LayoutType.planar,
        "order": "yuv",
        "channels": 1,
        "chroma_subsample": ChromaSubsample.chroma_444,
        "depth": 8,
    },
    # Cb0 Y0 Cr0 Y1 (2vuy)
    "uyvy422": {
        "alias": ("YUV422Chunky", "2vuy"),
        "layout": LayoutType.chunky,
        "order": "uyvy",
        "channels": 2,
        "chroma_subsample": ChromaSubsample.chroma_422,
        "depth": 8,
    },
    # Cr Y Cb (v308)
    "vyu444": {
        "alias": ("YUV444Chunky", "v308"),
        "layout": LayoutType.chunky,
        "order": "vyu",
        "channels": 3,
        "chroma_subsample": ChromaSubsample.chroma_444,
        "depth": 8,
    },
}

PIX_FMT_CANONICAL_LIST = list(PIX_FMTS.keys())


def get_canonical_pix_fmt(pix_fmt):
    # convert pixel format to the canonical name
    if pix_fmt in PIX_FMT_CANONICAL_LIST:
        return pix_fmt
    for canonical, v in PIX_FMTS.items():
        if pix_fmt in v["alias"]:
            return canonical
    raise UnsupportedPixelFormatException(f"error: unknown pix_fmt: {pix_fmt}")


def get_descriptor(pix_fmt):
    return PIX_FMTS[get_canonical_pix_fmt(pix_fmt)]


def is_planar(pix_fmt):
    return get_descriptor(pix_fmt)["layout"] == LayoutType.planar


def get_bytes_per_sample(depth):
    if depth != 8:
        raise UnsupportedPixelFormatException(f"error: unsupported depth: {depth}")
    return depth >> 3


class Plane:
    """A single image plane.

    The plane owns a flat np.uint8 buffer of exactly `stride * height`
    bytes. Each row holds `width * channels` samples followed by (optional)
    padding up to `stride` bytes. The padding is never read as sample data.
    """

    def __init__(self, data, width, height, stride=None, channels=1, depth=8):
        self.width = width
        self.height = height
        self.channels = channels
        self.depth = depth
        self.bytes_per_sample = get_bytes_per_sample(depth)
        if stride is None:
            stride = self.row_bytes
        self.stride = stride
        if width < 0 or height < 0 or channels < 1:
            raise ValueError(f"error: invalid plane geometry: {self}")
        if stride < self.row_bytes:
            raise ValueError(
                f"error: stride ({stride}) smaller than row size ({self.row_bytes})"
            )
        data = np.asarray(data, dtype=np.uint8).reshape(-1)
        if len(data) != stride * height:
            raise ValueError(
                f"error: invalid buffer length: {len(data)} != {stride} * {height}"
            )
        self.data = data

    def __str__(self):
        return (
            f"width: {self.width} height: {self.height} stride: {self.stride} "
            f"channels: {self.channels} depth: {self.depth}"
        )

    @property
    def bytes_per_pixel(self):
        return self.channels * self.bytes_per_sample

    @property
    def row_bytes(self):
        return self.width * self.bytes_per_pixel

    def rows(self):
        # (height, row_bytes) view (row padding skipped)
        return self.data.reshape(self.height, self.stride)[:, : self.row_bytes]

    def pixels(self):
        return self.rows().reshape(self.height, self.width, self.channels)

    def tobytes(self):
        return self.rows().tobytes()

    def reinterpret(self, width, channels):
        # same bytes, same stride, different pixel geometry
        return Plane(self.data, width, self.height, self.stride, channels, self.depth)

    def crop(self, width):
        return Plane.FromArray(self.pixels()[:, :width, :])

    @classmethod
    def GetStride(cls, row_bytes, row_alignment=1):
        return ((row_bytes + row_alignment - 1) // row_alignment) * row_alignment

    @classmethod
    def Allocate(
        cls, width, height, channels=1, stride=None, depth=8, fill=0, row_alignment=1
    ):
        if stride is None:
            row_bytes = width * channels * get_bytes_per_sample(depth)
            stride = cls.GetStride(row_bytes, row_alignment)
        try:
            data = np.full(stride * height, fill, dtype=np.uint8)
        except MemoryError as e:
            raise AllocationFailureException(
                f"error: cannot allocate {stride}x{height} plane"
            ) from e
        return Plane(data, width, height, stride, channels, depth)

    @classmethod
    def FromArray(cls, arr, stride=None, row_alignment=1):
        # arr is (height, width) or (height, width, channels)
        arr = np.asarray(arr, dtype=np.uint8)
        if arr.ndim == 2:
            arr = arr[:, :, np.newaxis]
        height, width, channels = arr.shape
        plane = cls.Allocate(
            width, height, channels, stride=stride, row_alignment=row_alignment
        )
        plane.rows()[:, :] = arr.reshape(height, width * channels)
        return plane

    @classmethod
    def FromBuffer(cls, buffer, width, height, channels=1, stride=None):
        # the buffer is copied, the plane never aliases caller memory
        if stride is None:
            stride = width * channels
        size = stride * height
        if len(buffer) < size:
            raise ValueError(f"error: buffer too small: {len(buffer)} < {size}")
        data = np.array(bytearray(buffer[:size]), dtype=np.uint8)
        return Plane(data, width, height, stride, channels)


def copy_rows(src, dst):
    # stride-aware copy: exactly row_bytes per row, padding untouched
    if (src.width, src.height, src.channels) != (dst.width, dst.height, dst.channels):
        raise ValueError(f"error: cannot copy plane ({src}) into plane ({dst})")
    dst.rows()[:, :] = src.rows()


class Frame:
    """An image as an ordered set of planes.

    Planar YCbCr frames use the "y", "u" (Cb), and "v" (Cr) keys. Chunky
    frames use a single plane keyed by the pix_fmt order.
    """

    def __init__(self, width, height, pix_fmt, planes):
        self.width = width
        self.height = height
        self.pix_fmt = get_canonical_pix_fmt(pix_fmt)
        self.planes = dict(planes)
        descriptor = get_descriptor(self.pix_fmt)
        for key, plane in self.planes.items():
            if plane.height != height:
                raise ValueError(
                    f"error: plane {key} height ({plane.height}) != frame height ({height})"
                )
        if descriptor["layout"] == LayoutType.planar:
            if set(self.planes.keys()) != set(descriptor["order"]):
                raise UnsupportedPixelFormatException(
                    f"error: invalid planes for {self.pix_fmt}: {list(self.planes.keys())}"
                )
            chroma_width = get_chroma_width(width, descriptor["chroma_subsample"])
            for key in ("u", "v"):
                if self.planes[key].width != chroma_width:
                    raise ValueError(
                        f"error: chroma plane {key} width ({self.planes[key].width}) != {chroma_width}"
                    )
            if self.planes["y"].width != width:
                raise ValueError(
                    f"error: luma plane width ({self.planes['y'].width}) != {width}"
                )

    def __str__(self):
        planes_str = " ".join(f"{k}: [{v}]" for k, v in self.planes.items())
        return f"width: {self.width} height: {self.height} pix_fmt: {self.pix_fmt} {planes_str}"

    @property
    def chroma_subsample(self):
        return get_descriptor(self.pix_fmt)["chroma_subsample"]

    def planes_in_order(self):
        order = get_descriptor(self.pix_fmt)["order"]
        return [self.planes[key] for key in order]


class Config:
    DEFAULT_VALUES = {
        "debug": 0,
        "func": "yuv2rgba",
        "infile": None,
        "outfile": None,
        "width": 0,
        "height": 0,
        "chroma_subsample": "422",
        "color_range": ColorRange.get_default(),
        "matrix_coefficients": 6,
        "alpha_fill": 255,
        "chunky_order": None,
        "permute_map": "rgba",
        "row_alignment": 1,
        "pixel": None,
        "direction": "yuv2rgb",
    }

    def __init__(self, **kwargs):
        self.config_dict = {}
        for key, val in kwargs.items():
            self.set(key, val)

    def __str__(self):
        return "\n".join(f"{k}: {v}" for (k, v) in self.config_dict.items())

    @classmethod
    def Create(cls, options):
        config = cls()
        for key, val in vars(options).items():
            if key in cls.DEFAULT_VALUES.keys():
                config.set(key, val)
        return config

    @classmethod
    def set_parser_options(cls, parser):
        parser.add_argument(
            "--width",
            action="store",
            type=int,
            dest="width",
            default=cls.DEFAULT_VALUES["width"],
            metavar="WIDTH",
            help="use WIDTH width (default: %i)" % cls.DEFAULT_VALUES["width"],
        )
        parser.add_argument(
            "--height",
            action="store",
            type=int,
            dest="height",
            default=cls.DEFAULT_VALUES["height"],
            metavar="HEIGHT",
            help="use HEIGHT height (default: %i)" % cls.DEFAULT_VALUES["height"],
        )
        parser.add_argument(
            "--chroma-subsample",
            action="store",
            type=str,
            dest="chroma_subsample",
            default=cls.DEFAULT_VALUES["chroma_subsample"],
            choices=ChromaSubsample.get_choices(),
            help="chroma subsample (default: %s)"
            % cls.DEFAULT_VALUES["chroma_subsample"],
        )
        parser.add_argument(
            "--color-range",
            action="store",
            type=str,
            dest="color_range",
            default=cls.DEFAULT_VALUES["color_range"],
            choices=ColorRange.get_choices(),
            help="YCbCr color range (default: %s)" % cls.DEFAULT_VALUES["color_range"],
        )
        parser.add_argument(
            "--matrix-coefficients",
            action="store",
            type=int,
            dest="matrix_coefficients",
            default=cls.DEFAULT_VALUES["matrix_coefficients"],
            help="H.273 matrix coefficients (default: %i, BT.601)"
            % cls.DEFAULT_VALUES["matrix_coefficients"],
        )
        parser.add_argument(
            "--alpha",
            action="store",
            type=int,
            dest="alpha_fill",
            default=cls.DEFAULT_VALUES["alpha_fill"],
            metavar="ALPHA",
            help="alpha value for YCbCr->RGBA (default: %i)"
            % cls.DEFAULT_VALUES["alpha_fill"],
        )
        parser.add_argument(
            "--chunky-order",
            action="store",
            type=str,
            dest="chunky_order",
            default=cls.DEFAULT_VALUES["chunky_order"],
            metavar="ORDER",
            help="chunky YCbCr component order (e.g. vyu, uyvy) [default: pix_fmt order]",
        )
        parser.add_argument(
            "--permute",
            action="store",
            type=str,
            dest="permute_map",
            default=cls.DEFAULT_VALUES["permute_map"],
            metavar="ORDER",
            help="RGBA byte order (e.g. rgba, bgra, argb) (default: %s)"
            % cls.DEFAULT_VALUES["permute_map"],
        )
        parser.add_argument(
            "--row-alignment",
            action="store",
            type=int,
            dest="row_alignment",
            default=cls.DEFAULT_VALUES["row_alignment"],
            metavar="BYTES",
            help="align plane rows to BYTES (default: %i)"
            % cls.DEFAULT_VALUES["row_alignment"],
        )

    def get(self, key):
        return self.config_dict.get(key, self.DEFAULT_VALUES[key])

    def set(self, key, val):
        if key not in self.DEFAULT_VALUES:
            raise KeyError(f"error: unknown config key: {key}")
        self.config_dict[key] = val
