#!/usr/bin/env python3

"""yuvtools-common_unittest.py: yuvtools common unittest.

# runme
# $ ./yuvtools-common_unittest.py
"""

import importlib
import numpy as np
import sys

yuvtools_common = importlib.import_module("yuvtools-common")
yuvtools_unittest = importlib.import_module("yuvtools-unittest")


planeStrideTestCases = [
    {
        "name": "tight",
        "arr": np.arange(6, dtype=np.uint8).reshape(2, 3),
        "row_alignment": 1,
        "stride": 3,
    },
    {
        "name": "aligned-4",
        "arr": np.arange(6, dtype=np.uint8).reshape(2, 3),
        "row_alignment": 4,
        "stride": 4,
    },
    {
        "name": "aligned-16-2channels",
        "arr": np.arange(12, dtype=np.uint8).reshape(2, 3, 2),
        "row_alignment": 16,
        "stride": 16,
    },
    {
        "name": "aligned-exact",
        "arr": np.arange(16, dtype=np.uint8).reshape(2, 8),
        "row_alignment": 8,
        "stride": 8,
    },
]

pixFmtTestCases = [
    {
        "name": "canonical",
        "pix_fmt": "yuv422p",
        "canonical": "yuv422p",
        "planar": True,
    },
    {
        "name": "alias-2vuy",
        "pix_fmt": "2vuy",
        "canonical": "uyvy422",
        "planar": False,
    },
    {
        "name": "alias-v308",
        "pix_fmt": "v308",
        "canonical": "vyu444",
        "planar": False,
    },
    {
        "name": "alias-rgba8",
        "pix_fmt": "RGBA8",
        "canonical": "rgba",
        "planar": False,
    },
    {
        "name": "alias-planar444",
        "pix_fmt": "YUV444Planar",
        "canonical": "yuv444p",
        "planar": True,
    },
]


class MainTest(yuvtools_unittest.TestCase):
    def testPlaneStride(self):
        """Plane stride/row access test."""
        function_name = "testPlaneStride"
        for test_case in self.getTestCases(function_name, planeStrideTestCases):
            print(f"...running \"{function_name}.{test_case['name']}\"")
            arr = test_case["arr"]
            plane = yuvtools_common.Plane.FromArray(
                arr, row_alignment=test_case["row_alignment"]
            )
            self.assertEqual(test_case["stride"], plane.stride)
            self.assertEqual(plane.stride * plane.height, len(plane.data))
            self.comparePlane(plane, arr, 0, test_case["name"])
            # tobytes() drops the row padding
            self.assertEqual(arr.tobytes(), plane.tobytes())

    def testPlaneInvalid(self):
        data = np.zeros(12, dtype=np.uint8)
        # stride smaller than the row
        with self.assertRaises(ValueError):
            yuvtools_common.Plane(data, 4, 2, stride=3)
        # buffer length != stride * height
        with self.assertRaises(ValueError):
            yuvtools_common.Plane(data, 4, 2, stride=4)
        with self.assertRaises(ValueError):
            yuvtools_common.Plane(data, -1, 2)
        # only 8-bit samples
        with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
            yuvtools_common.Plane(data, 3, 2, stride=6, depth=16)
        # valid
        plane = yuvtools_common.Plane(data, 4, 2, stride=6)
        self.assertEqual((2, 4), plane.rows().shape)

    def testCopyRows(self):
        arr = np.array([[1, 2, 3], [4, 5, 6]], dtype=np.uint8)
        src = yuvtools_common.Plane.FromArray(arr)
        dst = yuvtools_common.Plane.Allocate(3, 2, stride=7, fill=0xAA)
        yuvtools_common.copy_rows(src, dst)
        np.testing.assert_array_equal(arr, dst.rows())
        # padding is untouched
        padding = dst.data.reshape(2, 7)[:, 3:]
        np.testing.assert_array_equal(np.full((2, 4), 0xAA, dtype=np.uint8), padding)
        # geometry mismatch
        with self.assertRaises(ValueError):
            yuvtools_common.copy_rows(src, yuvtools_common.Plane.Allocate(2, 2))

    def testPlaneReinterpret(self):
        # 2 pixels of 2 channels are 4 pixels of 1 channel
        arr = np.array([[[1, 2], [3, 4]], [[5, 6], [7, 8]]], dtype=np.uint8)
        plane = yuvtools_common.Plane.FromArray(arr, row_alignment=8)
        new_plane = plane.reinterpret(4, 1)
        self.assertEqual(plane.stride, new_plane.stride)
        np.testing.assert_array_equal(
            np.array([[1, 2, 3, 4], [5, 6, 7, 8]], dtype=np.uint8), new_plane.rows()
        )
        # crop keeps the first pixels
        cropped = plane.crop(1)
        np.testing.assert_array_equal(
            np.array([[1, 2], [5, 6]], dtype=np.uint8), cropped.rows()
        )

    def testFromBuffer(self):
        buffer = bytes(range(10))
        plane = yuvtools_common.Plane.FromBuffer(buffer, 2, 2, channels=2)
        np.testing.assert_array_equal(
            np.array([[0, 1, 2, 3], [4, 5, 6, 7]], dtype=np.uint8), plane.rows()
        )
        # the plane does not alias the caller buffer
        self.assertTrue(plane.data.flags.writeable)

    def testFrame(self):
        y = yuvtools_common.Plane.Allocate(5, 2)
        u = yuvtools_common.Plane.Allocate(2, 2)
        v = yuvtools_common.Plane.Allocate(2, 2)
        frame = yuvtools_common.Frame(5, 2, "YUV422Planar", {"y": y, "u": u, "v": v})
        self.assertEqual("yuv422p", frame.pix_fmt)
        self.assertEqual(yuvtools_common.ChromaSubsample.chroma_422, frame.chroma_subsample)
        self.assertEqual([y, u, v], frame.planes_in_order())
        # 4:2:2 chroma planes are never full-width
        with self.assertRaises(ValueError):
            yuvtools_common.Frame(5, 2, "yuv422p", {"y": y, "u": y, "v": y})
        # all planes share the frame height
        with self.assertRaises(ValueError):
            yuvtools_common.Frame(
                5,
                2,
                "yuv422p",
                {"y": y, "u": yuvtools_common.Plane.Allocate(2, 1), "v": v},
            )
        # missing plane
        with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
            yuvtools_common.Frame(5, 2, "yuv422p", {"y": y, "u": u})
        # unknown pix_fmt
        with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
            yuvtools_common.Frame(5, 2, "nv12", {"y": y, "u": u, "v": v})

    def testPixFmt(self):
        """pix_fmt descriptor test."""
        function_name = "testPixFmt"
        for test_case in self.getTestCases(function_name, pixFmtTestCases):
            print(f"...running \"{function_name}.{test_case['name']}\"")
            self.assertEqual(
                test_case["canonical"],
                yuvtools_common.get_canonical_pix_fmt(test_case["pix_fmt"]),
            )
            self.assertEqual(
                test_case["planar"], yuvtools_common.is_planar(test_case["pix_fmt"])
            )

    def testChromaSubsample(self):
        self.assertEqual(2, yuvtools_common.get_chroma_width(5, "422"))
        self.assertEqual(5, yuvtools_common.get_chroma_width(5, "444"))
        self.assertEqual(0, yuvtools_common.get_chroma_width(1, "422"))
        self.assertEqual("yuv444p", yuvtools_common.get_planar_pix_fmt("444"))
        self.assertEqual("uyvy422", yuvtools_common.get_chunky_pix_fmt("422"))
        with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
            yuvtools_common.ChromaSubsample.parse("420")

    def testColorRange(self):
        ColorRange = yuvtools_common.ColorRange
        self.assertEqual(ColorRange.limited, ColorRange.parse(None))
        self.assertEqual(ColorRange.full, ColorRange.parse("full"))
        self.assertEqual(ColorRange.full, ColorRange.parse(1))
        self.assertEqual(
            ColorRange.limited_clamped, ColorRange.parse("limited-clamped")
        )
        with self.assertRaises(ValueError):
            ColorRange.parse("studio")

    def testConfig(self):
        config = yuvtools_common.Config(width=4, height=2)
        self.assertEqual(4, config.get("width"))
        self.assertEqual("422", config.get("chroma_subsample"))
        self.assertEqual(255, config.get("alpha_fill"))
        config.set("chroma_subsample", "444")
        self.assertEqual("444", config.get("chroma_subsample"))
        with self.assertRaises(KeyError):
            config.set("colorspace", "420")


if __name__ == "__main__":
    yuvtools_unittest.main(sys.argv)
