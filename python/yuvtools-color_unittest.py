#!/usr/bin/env python3

"""yuvtools-color_unittest.py: yuvtools color unittest.

# runme
# $ ./yuvtools-color_unittest.py
"""

import importlib
import numpy as np
import sys

yuvtools_common = importlib.import_module("yuvtools-common")
yuvtools_color = importlib.import_module("yuvtools-color")
yuvtools_unittest = importlib.import_module("yuvtools-unittest")


RGB2YUV = yuvtools_color.ConversionDirection.rgb2yuv
YUV2RGB = yuvtools_color.ConversionDirection.yuv2rgb


# BT.601 reference values (full range):
#   Y  = 0.299 R + 0.587 G + 0.114 B
#   Cb = 128 + (127 / 127.5) * (B - Y) / 1.772
#   Cr = 128 + (127 / 127.5) * (R - Y) / 1.402
rgbaToYcbcrTestCases = [
    {
        "name": "full-444-vyu",
        "color_range": "full",
        "pix_fmt": "vyu444",
        "order": None,
        "rgba": np.array(
            [
                [
                    [255, 0, 0, 255],
                    [0, 255, 0, 255],
                    [0, 0, 255, 255],
                    [255, 255, 255, 255],
                ],
                [
                    [0, 0, 0, 255],
                    [128, 128, 128, 255],
                    [255, 255, 0, 255],
                    [0, 255, 255, 255],
                ],
            ],
            dtype=np.uint8,
        ),
        # Cr, Y, Cb
        "ycbcr": np.array(
            [
                [
                    [255, 76, 85],
                    [22, 150, 44],
                    [107, 29, 255],
                    [128, 255, 128],
                ],
                [
                    [128, 0, 128],
                    [128, 128, 128],
                    [149, 226, 1],
                    [1, 179, 171],
                ],
            ],
            dtype=np.uint8,
        ),
    },
    {
        "name": "full-444-yuv",
        "color_range": "full",
        "pix_fmt": "vyu444",
        "order": "yuv",
        "rgba": np.array(
            [[[255, 0, 0, 255], [0, 255, 0, 0]]],
            dtype=np.uint8,
        ),
        "ycbcr": np.array(
            [[[76, 85, 255], [150, 44, 22]]],
            dtype=np.uint8,
        ),
    },
    {
        "name": "limited-444-vyu",
        "color_range": "limited",
        "pix_fmt": "vyu444",
        "order": None,
        "rgba": np.array(
            [[[0, 0, 0, 255], [255, 255, 255, 255], [255, 0, 0, 255]]],
            dtype=np.uint8,
        ),
        # red: Y = 16 + 219/255 * 76.245, Cr = 128 + 112 = 240
        "ycbcr": np.array(
            [[[128, 16, 128], [128, 235, 128], [240, 81, 90]]],
            dtype=np.uint8,
        ),
    },
    {
        # {Cb, Y0, Cr, Y1}
        "name": "full-422-uyvy",
        "color_range": "full",
        "pix_fmt": "uyvy422",
        "order": None,
        "rgba": np.array(
            [
                [
                    [255, 0, 0, 255],
                    [255, 0, 0, 255],
                    [0, 0, 255, 255],
                    [0, 0, 255, 255],
                ],
            ],
            dtype=np.uint8,
        ),
        "ycbcr": np.array(
            [[[85, 76], [255, 76], [255, 29], [107, 29]]],
            dtype=np.uint8,
        ),
    },
    {
        # chroma of a pair is the average of both pixels
        "name": "full-422-average",
        "color_range": "full",
        "pix_fmt": "uyvy422",
        "order": None,
        "rgba": np.array(
            [[[0, 0, 0, 255], [255, 255, 255, 255]]],
            dtype=np.uint8,
        ),
        "ycbcr": np.array(
            [[[128, 0], [128, 255]]],
            dtype=np.uint8,
        ),
    },
    {
        # odd width: the last pixel has its own (padded) group
        "name": "full-422-odd-width",
        "color_range": "full",
        "pix_fmt": "2vuy",
        "order": None,
        "rgba": np.array(
            [[[0, 0, 0, 255], [0, 0, 0, 255], [255, 0, 0, 255]]],
            dtype=np.uint8,
        ),
        "ycbcr": np.array(
            [[[128, 0], [128, 0], [85, 76], [255, 76]]],
            dtype=np.uint8,
        ),
    },
]


class MainTest(yuvtools_unittest.TestCase):
    def testRgbaToYcbcr(self):
        """rgba_to_ycbcr test."""
        function_name = "testRgbaToYcbcr"
        for test_case in self.getTestCases(function_name, rgbaToYcbcrTestCases):
            print(f"...running \"{function_name}.{test_case['name']}\"")
            matrix = yuvtools_color.generate_matrix(test_case["color_range"], RGB2YUV)
            rgba = yuvtools_common.Plane.FromArray(test_case["rgba"], row_alignment=16)
            ycbcr = yuvtools_color.rgba_to_ycbcr(
                rgba, matrix, pix_fmt=test_case["pix_fmt"], order=test_case["order"]
            )
            self.comparePlane(ycbcr, test_case["ycbcr"], 0, test_case["name"])

    def testRoundTrip(self):
        rng = np.random.default_rng(seed=601)
        arr = rng.integers(0, 256, size=(4, 6, 4), dtype=np.uint8)
        # 4:2:2 shares chroma across pixel pairs: use pairs of equal pixels
        arr_422 = np.repeat(arr[:, 0::2, :], 2, axis=1)
        test_list = (
            ("full", "vyu444", arr),
            ("full", "uyvy422", arr_422),
            ("limited", "vyu444", arr),
            ("limited", "uyvy422", arr_422),
            ("limited_clamped", "vyu444", arr),
        )
        for color_range, pix_fmt, rgba_arr in test_list:
            label = f"round-trip {color_range} {pix_fmt}"
            rgba = yuvtools_common.Plane.FromArray(rgba_arr)
            ycbcr = yuvtools_color.rgba_to_ycbcr(
                rgba, yuvtools_color.generate_matrix(color_range, RGB2YUV), pix_fmt
            )
            new_rgba = yuvtools_color.ycbcr_to_rgba(
                ycbcr,
                yuvtools_color.generate_matrix(color_range, YUV2RGB),
                alpha_fill=255,
                pix_fmt=pix_fmt,
            )
            expected_arr = rgba_arr.copy()
            expected_arr[:, :, 3] = 255
            self.comparePlane(new_rgba, expected_arr, 2, label)

    def testAlphaFill(self):
        rgba = yuvtools_common.Plane.FromArray(
            np.array([[[10, 20, 30, 0], [40, 50, 60, 128]]], dtype=np.uint8)
        )
        for pix_fmt in ("vyu444", "uyvy422"):
            ycbcr = yuvtools_color.rgba_to_ycbcr(
                rgba, yuvtools_color.generate_matrix("full", RGB2YUV), pix_fmt
            )
            new_rgba = yuvtools_color.ycbcr_to_rgba(
                ycbcr,
                yuvtools_color.generate_matrix("full", YUV2RGB),
                alpha_fill=77,
                pix_fmt=pix_fmt,
            )
            np.testing.assert_array_equal([[77, 77]], new_rgba.pixels()[:, :, 3])
        with self.assertRaises(ValueError):
            yuvtools_color.ycbcr_to_rgba(
                ycbcr, yuvtools_color.generate_matrix("full", YUV2RGB), alpha_fill=256
            )

    def testPermuteMap(self):
        arr = np.array([[[255, 0, 0, 255], [0, 0, 255, 255]]], dtype=np.uint8)
        matrix = yuvtools_color.generate_matrix("full", RGB2YUV)
        expected = yuvtools_color.rgba_to_ycbcr(
            yuvtools_common.Plane.FromArray(arr), matrix
        )
        # the same pixels in BGRA byte order
        bgra = yuvtools_common.Plane.FromArray(arr[:, :, [2, 1, 0, 3]])
        ycbcr = yuvtools_color.rgba_to_ycbcr(bgra, matrix, permute_map="bgra")
        np.testing.assert_array_equal(expected.rows(), ycbcr.rows())
        # and back into BGRA
        new_bgra = yuvtools_color.ycbcr_to_rgba(
            ycbcr,
            yuvtools_color.generate_matrix("full", YUV2RGB),
            permute_map="bgra",
        )
        self.comparePlane(new_bgra, arr[:, :, [2, 1, 0, 3]], 2, "permute bgra")

    def testClamping(self):
        matrix = yuvtools_color.generate_matrix("limited", YUV2RGB)
        # below black and above white are clamped, never wrapped
        self.assertEqual((0, 0, 0), yuvtools_color.convert_pixel(0, 128, 128, matrix))
        self.assertEqual(
            (255, 255, 255), yuvtools_color.convert_pixel(255, 128, 128, matrix)
        )
        ycbcr = yuvtools_common.Plane.FromArray(
            np.array([[[255, 255, 0], [0, 0, 255]]], dtype=np.uint8)
        )
        rgba = yuvtools_color.ycbcr_to_rgba(ycbcr, matrix, pix_fmt="vyu444")
        # R is ~481 (first pixel) and ~-223 (second pixel)
        self.assertEqual(255, rgba.pixels()[0, 0, 0])
        self.assertEqual(0, rgba.pixels()[0, 1, 0])
        # clamp values per range
        limited = yuvtools_color.generate_matrix("limited", RGB2YUV)
        np.testing.assert_array_equal([0, 1, 1], limited.min_values)
        np.testing.assert_array_equal([255, 255, 255], limited.max_values)
        clamped = yuvtools_color.generate_matrix("limited_clamped", RGB2YUV)
        np.testing.assert_array_equal([16, 16, 16], clamped.min_values)
        np.testing.assert_array_equal([235, 240, 240], clamped.max_values)

    def testClipAndNarrow(self):
        arr = np.array([-1.4, 0.5, 1.5, 127.6, 300.0])
        out = yuvtools_color.clip_and_narrow(arr, 0, 255)
        self.assertEqual(np.uint8, out.dtype)
        np.testing.assert_array_equal([0, 0, 2, 128, 255], out)
        with self.assertRaises(yuvtools_common.InternalClampViolationException):
            yuvtools_color.clip_and_narrow(np.array([40000.0]), 0, 255)
        with self.assertRaises(yuvtools_common.InternalClampViolationException):
            yuvtools_color.clip_and_narrow(np.array([np.nan]), 0, 255)

    def testBrokenMatrix(self):
        matrix = yuvtools_color.ConversionMatrix(
            np.eye(3) * 1000.0,
            np.zeros(3),
            RGB2YUV,
            yuvtools_color.PixelRange.Get("full"),
        )
        rgba = yuvtools_common.Plane.FromArray(
            np.full((1, 2, 4), 255, dtype=np.uint8)
        )
        with self.assertRaises(yuvtools_common.InternalClampViolationException):
            yuvtools_color.rgba_to_ycbcr(rgba, matrix)

    def testMatrix(self):
        matrix = yuvtools_color.generate_matrix("full", RGB2YUV)
        # matrices are read-only
        with self.assertRaises(ValueError):
            matrix.matrix[0, 0] = 1.0
        with self.assertRaises(ValueError):
            matrix.offset[0] = 1.0
        # deterministic
        np.testing.assert_array_equal(
            matrix.matrix, yuvtools_color.generate_matrix("full", "rgb2yuv").matrix
        )
        # inverse
        inverse = yuvtools_color.generate_matrix("full", YUV2RGB)
        np.testing.assert_allclose(
            np.eye(3), inverse.matrix @ matrix.matrix, atol=1e-9
        )
        # direction mismatch
        rgba = yuvtools_common.Plane.Allocate(2, 1, channels=4)
        with self.assertRaises(ValueError):
            yuvtools_color.rgba_to_ycbcr(rgba, inverse)
        with self.assertRaises(ValueError):
            yuvtools_color.ycbcr_to_rgba(
                yuvtools_common.Plane.Allocate(2, 1, channels=3), matrix
            )
        # unsupported matrix coefficients
        with self.assertRaises(ValueError):
            yuvtools_color.generate_matrix("full", RGB2YUV, matrix_coefficients=9)
        # degenerate range
        pixel_range = yuvtools_color.PixelRange(16, 128, 16, 240, 255, 0, 255, 0)
        with self.assertRaises(ValueError):
            yuvtools_color.generate_matrix(pixel_range, RGB2YUV)

    def testConvertPixel(self):
        full = yuvtools_color.generate_matrix("full", RGB2YUV)
        self.assertEqual((76, 85, 255), yuvtools_color.convert_pixel(255, 0, 0, full))
        self.assertEqual(
            (255, 128, 128), yuvtools_color.convert_pixel(255, 255, 255, full)
        )
        bt709 = yuvtools_color.generate_matrix("full", RGB2YUV, matrix_coefficients=1)
        # Y = 0.2126 * 255
        self.assertEqual(54, yuvtools_color.convert_pixel(255, 0, 0, bt709)[0])

    def testUnsupportedPixFmt(self):
        matrix = yuvtools_color.generate_matrix("full", RGB2YUV)
        rgba = yuvtools_common.Plane.Allocate(2, 1, channels=4)
        for pix_fmt in ("yuv422p", "rgba"):
            with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
                yuvtools_color.rgba_to_ycbcr(rgba, matrix, pix_fmt=pix_fmt)
        with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
            yuvtools_color.rgba_to_ycbcr(rgba, matrix, pix_fmt="uyvy422", order="uyyv")
        with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
            yuvtools_color.rgba_to_ycbcr(
                yuvtools_common.Plane.Allocate(2, 1, channels=2), matrix
            )


if __name__ == "__main__":
    yuvtools_unittest.main(sys.argv)
