#!/usr/bin/env python3

"""yuvtools-layout_unittest.py: yuvtools layout unittest.

# runme
# $ ./yuvtools-layout_unittest.py
"""

import importlib
import numpy as np
import sys

yuvtools_common = importlib.import_module("yuvtools-common")
yuvtools_layout = importlib.import_module("yuvtools-layout")
yuvtools_unittest = importlib.import_module("yuvtools-unittest")


def get_frame(width, pix_fmt, planar, row_alignment=1):
    planes = {
        key: yuvtools_common.Plane.FromArray(arr, row_alignment=row_alignment)
        for key, arr in planar.items()
    }
    height = planar["y"].shape[0]
    return yuvtools_common.Frame(width, height, pix_fmt, planes)


yuvPlanarToChunkyTestCases = [
    {
        "name": "422-uyvy-default",
        "width": 4,
        "pix_fmt": "yuv422p",
        "order": None,
        "planar": {
            "y": np.array([[0x10, 0x11, 0x12, 0x13]], dtype=np.uint8),
            "u": np.array([[0x80, 0x81]], dtype=np.uint8),
            "v": np.array([[0x90, 0x91]], dtype=np.uint8),
        },
        # {Cb, Y0, Cr, Y1}
        "chunky": np.array(
            [[0x80, 0x10, 0x90, 0x11, 0x81, 0x12, 0x91, 0x13]], dtype=np.uint8
        ),
    },
    {
        "name": "422-yuyv",
        "width": 4,
        "pix_fmt": "yuv422p",
        "order": "yuyv",
        "planar": {
            "y": np.array([[0x10, 0x11, 0x12, 0x13]], dtype=np.uint8),
            "u": np.array([[0x80, 0x81]], dtype=np.uint8),
            "v": np.array([[0x90, 0x91]], dtype=np.uint8),
        },
        "chunky": np.array(
            [[0x10, 0x80, 0x11, 0x90, 0x12, 0x81, 0x13, 0x91]], dtype=np.uint8
        ),
    },
    {
        "name": "422-vyuy",
        "width": 4,
        "pix_fmt": "yuv422p",
        "order": "vyuy",
        "planar": {
            "y": np.array([[0x10, 0x11, 0x12, 0x13]], dtype=np.uint8),
            "u": np.array([[0x80, 0x81]], dtype=np.uint8),
            "v": np.array([[0x90, 0x91]], dtype=np.uint8),
        },
        "chunky": np.array(
            [[0x90, 0x10, 0x80, 0x11, 0x91, 0x12, 0x81, 0x13]], dtype=np.uint8
        ),
    },
    {
        "name": "422-yvyu-2rows",
        "width": 2,
        "pix_fmt": "yuv422p",
        "order": "yvyu",
        "planar": {
            "y": np.array([[0x10, 0x11], [0x20, 0x21]], dtype=np.uint8),
            "u": np.array([[0x80], [0x82]], dtype=np.uint8),
            "v": np.array([[0x90], [0x92]], dtype=np.uint8),
        },
        "chunky": np.array(
            [[0x10, 0x90, 0x11, 0x80], [0x20, 0x92, 0x21, 0x82]], dtype=np.uint8
        ),
    },
    {
        # last group is edge-padded
        "name": "422-odd-width",
        "width": 3,
        "pix_fmt": "yuv422p",
        "order": None,
        "planar": {
            "y": np.array([[0x01, 0x02, 0x03]], dtype=np.uint8),
            "u": np.array([[0x80]], dtype=np.uint8),
            "v": np.array([[0x90]], dtype=np.uint8),
        },
        "chunky": np.array(
            [[0x80, 0x01, 0x90, 0x02, 0x80, 0x03, 0x90, 0x03]], dtype=np.uint8
        ),
    },
    {
        # no chroma at all: neutral chroma is used for the padding group
        "name": "422-width-1",
        "width": 1,
        "pix_fmt": "yuv422p",
        "order": None,
        "planar": {
            "y": np.array([[0x05]], dtype=np.uint8),
            "u": np.zeros((1, 0), dtype=np.uint8),
            "v": np.zeros((1, 0), dtype=np.uint8),
        },
        "chunky": np.array([[0x80, 0x05, 0x80, 0x05]], dtype=np.uint8),
    },
    {
        # {Cr, Y, Cb}
        "name": "444-vyu-default",
        "width": 2,
        "pix_fmt": "yuv444p",
        "order": None,
        "planar": {
            "y": np.array([[0x01, 0x02]], dtype=np.uint8),
            "u": np.array([[0x03, 0x04]], dtype=np.uint8),
            "v": np.array([[0x05, 0x06]], dtype=np.uint8),
        },
        "chunky": np.array([[0x05, 0x01, 0x03, 0x06, 0x02, 0x04]], dtype=np.uint8),
    },
    {
        "name": "444-yuv",
        "width": 2,
        "pix_fmt": "yuv444p",
        "order": "yuv",
        "planar": {
            "y": np.array([[0x01, 0x02]], dtype=np.uint8),
            "u": np.array([[0x03, 0x04]], dtype=np.uint8),
            "v": np.array([[0x05, 0x06]], dtype=np.uint8),
        },
        "chunky": np.array([[0x01, 0x03, 0x05, 0x02, 0x04, 0x06]], dtype=np.uint8),
    },
]

permuteChannelsTestCases = [
    {
        "name": "identity",
        "permute_map": "rgba",
        "pixel": [1, 2, 3, 4],
        "expected_pixel": [1, 2, 3, 4],
    },
    {
        "name": "bgra",
        "permute_map": "bgra",
        "pixel": [1, 2, 3, 4],
        "expected_pixel": [3, 2, 1, 4],
    },
    {
        "name": "argb",
        "permute_map": "argb",
        "pixel": [1, 2, 3, 4],
        "expected_pixel": [4, 1, 2, 3],
    },
    {
        "name": "index-list",
        "permute_map": [1, 2, 3, 0],
        "pixel": [1, 2, 3, 4],
        "expected_pixel": [2, 3, 4, 1],
    },
]


class MainTest(yuvtools_unittest.TestCase):
    def testYuvPlanarToChunky(self):
        """yuv_planar_to_chunky/yuv_chunky_to_planar test."""
        function_name = "testYuvPlanarToChunky"
        for test_case in self.getTestCases(function_name, yuvPlanarToChunkyTestCases):
            print(f"...running \"{function_name}.{test_case['name']}\"")
            width = test_case["width"]
            order = test_case["order"]
            # row alignment must not change the values
            for row_alignment in (1, 8):
                frame = get_frame(
                    width, test_case["pix_fmt"], test_case["planar"], row_alignment
                )
                # 1. run forward conversion
                chunky = yuvtools_layout.yuv_planar_to_chunky(frame, order=order)
                # chunky destination is tightly packed
                self.assertEqual(chunky.row_bytes, chunky.stride)
                self.comparePlane(
                    chunky,
                    test_case["chunky"],
                    0,
                    f"forward {test_case['name']} {row_alignment=}",
                )
                # 2. run backward conversion
                new_frame = yuvtools_layout.yuv_chunky_to_planar(
                    chunky, width, frame.chroma_subsample, order=order
                )
                self.assertEqual(frame.pix_fmt, new_frame.pix_fmt)
                self.comparePlanar(
                    new_frame.planes,
                    test_case["planar"],
                    0,
                    f"backward {test_case['name']} {row_alignment=}",
                )

    def testLayoutStages(self):
        stages = yuvtools_layout.LAYOUT_STAGES
        ChromaSubsample = yuvtools_common.ChromaSubsample
        self.assertEqual(1, len(stages[ChromaSubsample.chroma_444]["planar_to_chunky"]))
        self.assertEqual(1, len(stages[ChromaSubsample.chroma_444]["chunky_to_planar"]))
        self.assertEqual(2, len(stages[ChromaSubsample.chroma_422]["planar_to_chunky"]))
        self.assertEqual(2, len(stages[ChromaSubsample.chroma_422]["chunky_to_planar"]))
        # 4:2:2 stage 1 output is the stage 2 input
        frame = get_frame(
            4,
            "yuv422p",
            {
                "y": np.array([[0x10, 0x11, 0x12, 0x13]], dtype=np.uint8),
                "u": np.array([[0x80, 0x81]], dtype=np.uint8),
                "v": np.array([[0x90, 0x91]], dtype=np.uint8),
            },
        )
        merge_stage, interleave_stage = stages[ChromaSubsample.chroma_422][
            "planar_to_chunky"
        ]
        planes = merge_stage(frame.planes, ("uv", "cy"), 4, 0)
        self.assertEqual({"y", "uv"}, set(planes.keys()))
        self.assertEqual((2, 2), (planes["uv"].width, planes["uv"].channels))
        planes = interleave_stage(planes, ("uv", "cy"), 4, 0)
        np.testing.assert_array_equal(
            np.array([[0x80, 0x10, 0x90, 0x11, 0x81, 0x12, 0x91, 0x13]], dtype=np.uint8),
            planes["chunky"].rows(),
        )

    def testGetChunkyOrder(self):
        self.assertEqual("vyu", yuvtools_layout.get_chunky_order("444"))
        self.assertEqual("uyvy", yuvtools_layout.get_chunky_order("422"))
        self.assertEqual("yuv", yuvtools_layout.get_chunky_order("444", "yuv"))
        self.assertEqual("yvyu", yuvtools_layout.get_chunky_order("422", "yvyu"))
        for chroma_subsample, order in (
            ("444", "yyv"),
            ("444", "uyvy"),
            ("422", "vyu"),
            ("422", "uuyv"),
        ):
            with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
                yuvtools_layout.get_chunky_order(chroma_subsample, order)

    def testChunkyRoundTrip(self):
        rng = np.random.default_rng(seed=0)
        for order in ("ab", "abc", "rgba", "vyu"):
            num_channels = len(order)
            arr = rng.integers(0, 256, size=(3, 5, num_channels), dtype=np.uint8)
            chunky = yuvtools_common.Plane.FromArray(arr, row_alignment=16)
            # chunky -> planar -> chunky
            planar = yuvtools_layout.chunky_to_planar(chunky, order, num_channels)
            for k, key in enumerate(order):
                np.testing.assert_array_equal(arr[:, :, k], planar[key].rows())
            new_chunky = yuvtools_layout.planar_to_chunky(planar, order)
            np.testing.assert_array_equal(chunky.pixels(), new_chunky.pixels())
            # planar -> chunky -> planar
            new_planar = yuvtools_layout.chunky_to_planar(new_chunky, order)
            self.comparePlanar(
                new_planar,
                {key: arr[:, :, k] for k, key in enumerate(order)},
                0,
                f"round-trip {order}",
            )

    def testTwoStage422(self):
        u = yuvtools_common.Plane.FromArray(np.array([[1, 2], [3, 4]], dtype=np.uint8))
        v = yuvtools_common.Plane.FromArray(np.array([[5, 6], [7, 8]], dtype=np.uint8))
        y = yuvtools_common.Plane.FromArray(
            np.array([[10, 11, 12, 13], [14, 15, 16, 17]], dtype=np.uint8)
        )
        # stage 1: half-width, 2-channel chroma
        uv = yuvtools_layout.merge_chroma_422(u, v)
        self.assertEqual((2, 2), (uv.width, uv.channels))
        np.testing.assert_array_equal(
            np.array([[1, 5, 2, 6], [3, 7, 4, 8]], dtype=np.uint8), uv.rows()
        )
        # stage 2: full-width, 4-byte groups
        chunky = yuvtools_layout.interleave_422(uv, y)
        np.testing.assert_array_equal(
            np.array(
                [[1, 10, 5, 11, 2, 12, 6, 13], [3, 14, 7, 15, 4, 16, 8, 17]],
                dtype=np.uint8,
            ),
            chunky.rows(),
        )
        # inverse stages
        new_uv, new_y = yuvtools_layout.deinterleave_422(chunky, 4)
        np.testing.assert_array_equal(uv.rows(), new_uv.rows())
        np.testing.assert_array_equal(y.rows(), new_y.rows())
        new_u, new_v = yuvtools_layout.split_chroma_422(new_uv)
        np.testing.assert_array_equal(u.rows(), new_u.rows())
        np.testing.assert_array_equal(v.rows(), new_v.rows())
        # full-width chroma is not 4:2:2
        with self.assertRaises(ValueError):
            yuvtools_layout.interleave_422(
                yuvtools_layout.merge_chroma_422(y, y), y
            )

    def testParse422Order(self):
        self.assertEqual(("uv", "cy"), yuvtools_layout.parse_422_order("uyvy"))
        self.assertEqual(("vu", "cy"), yuvtools_layout.parse_422_order("vyuy"))
        self.assertEqual(("uv", "yc"), yuvtools_layout.parse_422_order("yuyv"))
        self.assertEqual(("vu", "yc"), yuvtools_layout.parse_422_order("yvyu"))
        for order in ("yuvy", "uyv", "uuyv", "yyuv"):
            with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
                yuvtools_layout.parse_422_order(order)

    def testPermuteChannels(self):
        """permute_channels test."""
        function_name = "testPermuteChannels"
        for test_case in self.getTestCases(function_name, permuteChannelsTestCases):
            print(f"...running \"{function_name}.{test_case['name']}\"")
            plane = yuvtools_common.Plane.FromArray(
                np.array([[test_case["pixel"]]], dtype=np.uint8)
            )
            permuted = yuvtools_layout.permute_channels(plane, test_case["permute_map"])
            np.testing.assert_array_equal(
                test_case["expected_pixel"], permuted.pixels()[0, 0]
            )
            # the inverse map brings the pixel back
            inverse_map = yuvtools_layout.invert_permute_map(test_case["permute_map"])
            restored = yuvtools_layout.permute_channels(permuted, inverse_map)
            np.testing.assert_array_equal(test_case["pixel"], restored.pixels()[0, 0])

    def testLayoutErrors(self):
        y = yuvtools_common.Plane.Allocate(4, 2)
        u = yuvtools_common.Plane.Allocate(2, 2)
        # missing component
        with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
            yuvtools_layout.planar_to_chunky({"y": y}, "yuv")
        # mismatched sizes
        with self.assertRaises(ValueError):
            yuvtools_layout.planar_to_chunky({"y": y, "u": u}, "yu")
        # channel count
        chunky = yuvtools_common.Plane.Allocate(4, 2, channels=3)
        with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
            yuvtools_layout.chunky_to_planar(chunky, "yuv", channel_count=4)
        with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
            yuvtools_layout.chunky_to_planar(chunky, "rgba")
        # invalid permutations
        rgba = yuvtools_common.Plane.Allocate(4, 2, channels=4)
        for permute_map in ("rgbb", "rgb", [0, 1, 2, 2]):
            with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
                yuvtools_layout.permute_channels(rgba, permute_map)
        # invalid 4:4:4 order
        frame = get_frame(
            2,
            "yuv444p",
            {key: np.zeros((1, 2), dtype=np.uint8) for key in "yuv"},
        )
        with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
            yuvtools_layout.yuv_planar_to_chunky(frame, order="yyv")
        with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
            yuvtools_layout.yuv_chunky_to_planar(chunky, 4, "444", order="yyv")


if __name__ == "__main__":
    yuvtools_unittest.main(sys.argv)
