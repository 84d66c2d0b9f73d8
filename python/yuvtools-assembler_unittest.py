#!/usr/bin/env python3

"""yuvtools-assembler_unittest.py: yuvtools assembler unittest.

# runme
# $ ./yuvtools-assembler_unittest.py
"""

import contextlib
import importlib
import io
import numpy as np
import os
import sys
import tempfile

yuvtools_common = importlib.import_module("yuvtools-common")
yuvtools_assembler = importlib.import_module("yuvtools-assembler")
yuvtools_io = importlib.import_module("yuvtools-io")
yuvtools_planestore = importlib.import_module("yuvtools-planestore")
yuvtools_unittest = importlib.import_module("yuvtools-unittest")


def get_rgba(width, height, seed, pairs=False):
    rng = np.random.default_rng(seed=seed)
    arr = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    arr[:, :, 3] = 255
    if pairs:
        # 4:2:2 shares chroma across pixel pairs
        arr = np.repeat(arr[:, 0::2, :], 2, axis=1)[:, :width, :]
        if width % 2 == 1:
            # the last odd column has no chroma of its own
            arr[:, -1, :] = arr[:, -2, :]
    return arr


pipelineTestCases = [
    {
        "name": "444-full",
        "width": 6,
        "height": 4,
        "chroma_subsample": "444",
        "color_range": "full",
        "chunky_order": None,
        "permute_map": "rgba",
    },
    {
        "name": "444-limited-yuv-order",
        "width": 6,
        "height": 4,
        "chroma_subsample": "444",
        "color_range": "limited",
        "chunky_order": "yuv",
        "permute_map": "rgba",
    },
    {
        "name": "422-full",
        "width": 8,
        "height": 2,
        "chroma_subsample": "422",
        "color_range": "full",
        "chunky_order": None,
        "permute_map": "rgba",
    },
    {
        "name": "422-limited-yuyv-bgra",
        "width": 8,
        "height": 3,
        "chroma_subsample": "422",
        "color_range": "limited",
        "chunky_order": "yuyv",
        "permute_map": "bgra",
    },
    {
        "name": "422-odd-width",
        "width": 5,
        "height": 2,
        "chroma_subsample": "422",
        "color_range": "full",
        "chunky_order": None,
        "permute_map": "rgba",
    },
]


class MainTest(yuvtools_unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory(prefix="yuvtools.test.")

    def tearDown(self):
        self.tmpdir.cleanup()

    def getPath(self, name):
        return os.path.join(self.tmpdir.name, name)

    def testPipeline(self):
        """rgba_to_planar/planar_to_rgba test."""
        function_name = "testPipeline"
        for test_case in self.getTestCases(function_name, pipelineTestCases):
            print(f"...running \"{function_name}.{test_case['name']}\"")
            width = test_case["width"]
            height = test_case["height"]
            config = yuvtools_common.Config(
                width=width,
                height=height,
                chroma_subsample=test_case["chroma_subsample"],
                color_range=test_case["color_range"],
                chunky_order=test_case["chunky_order"],
                permute_map=test_case["permute_map"],
            )
            arr = get_rgba(
                width, height, seed=width, pairs=test_case["chroma_subsample"] == "422"
            )
            # 1. RGBA -> planar frame
            frame = yuvtools_assembler.rgba_to_planar(
                yuvtools_common.Plane.FromArray(arr), config
            )
            chroma_width = yuvtools_common.get_chroma_width(
                width, test_case["chroma_subsample"]
            )
            self.assertEqual(width, frame.planes["y"].width)
            self.assertEqual(chroma_width, frame.planes["u"].width)
            self.assertEqual(chroma_width, frame.planes["v"].width)
            # 2. planar frame -> file bytes -> planar frame
            buffer = yuvtools_planestore.write_planar(frame)
            self.assertEqual(
                yuvtools_planestore.get_frame_size(
                    width, height, test_case["chroma_subsample"]
                ),
                len(buffer),
            )
            new_frame = yuvtools_planestore.buffer_to_frame(
                buffer, width, height, test_case["chroma_subsample"], row_alignment=16
            )
            # 3. planar frame -> RGBA
            rgba = yuvtools_assembler.planar_to_rgba(new_frame, config)
            self.assertEqual((width, height), (rgba.width, rgba.height))
            self.comparePlane(rgba, arr, 2, test_case["name"])

    def testPlanarToRgbaReference(self):
        # full-range BT.601 values for red, green, blue, and white
        planar = {
            "y": np.array([[76, 150, 29, 255]], dtype=np.uint8),
            "u": np.array([[85, 44, 255, 128]], dtype=np.uint8),
            "v": np.array([[255, 22, 107, 128]], dtype=np.uint8),
        }
        frame = yuvtools_common.Frame(
            4,
            1,
            "yuv444p",
            {k: yuvtools_common.Plane.FromArray(v) for k, v in planar.items()},
        )
        config = yuvtools_common.Config(color_range="full", alpha_fill=200)
        rgba = yuvtools_assembler.planar_to_rgba(frame, config)
        expected = np.array(
            [
                [
                    [255, 0, 0, 200],
                    [0, 255, 0, 200],
                    [0, 0, 255, 200],
                    [255, 255, 255, 200],
                ]
            ],
            dtype=np.uint8,
        )
        self.comparePlane(rgba, expected, 2, "reference")

    def testConvertFile(self):
        width, height = 6, 2
        arr = get_rgba(width, height, seed=0, pairs=True)
        pngfile = self.getPath("in.png")
        yuvfile = self.getPath("out.yuv")
        outfile = self.getPath("out.png")
        yuvtools_io.write_image_file(pngfile, yuvtools_common.Plane.FromArray(arr))
        # 1. rgba2yuv
        config = yuvtools_common.Config(
            func="rgba2yuv", infile=pngfile, outfile=yuvfile, chroma_subsample="422"
        )
        yuvtools_assembler.convert_file(config)
        self.assertEqual(width * height * 2, os.path.getsize(yuvfile))
        # 2. yuv2rgba
        config = yuvtools_common.Config(
            func="yuv2rgba",
            infile=yuvfile,
            outfile=outfile,
            width=width,
            height=height,
            chroma_subsample="422",
        )
        rgba = yuvtools_assembler.convert_file(config)
        self.comparePlane(rgba, arr, 2, "convert_file")
        new_rgba = yuvtools_io.read_image_file(outfile)
        self.comparePlane(new_rgba, rgba.pixels(), 0, "convert_file png")

    def testNoPartialOutput(self):
        arr = get_rgba(4, 2, seed=1)
        rgba = yuvtools_common.Plane.FromArray(arr)
        outfile = self.getPath("out.yuv")
        # invalid chunky order
        config = yuvtools_common.Config(outfile=outfile, chunky_order="uuyv")
        with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
            yuvtools_assembler.convert_rgba_to_planar_file(rgba, config)
        self.assertFalse(os.path.exists(outfile))
        # invalid matrix coefficients
        config = yuvtools_common.Config(outfile=outfile, matrix_coefficients=9)
        with self.assertRaises(ValueError):
            yuvtools_assembler.convert_rgba_to_planar_file(rgba, config)
        self.assertFalse(os.path.exists(outfile))
        # truncated input
        yuvfile = self.getPath("truncated.yuv")
        with open(yuvfile, "wb") as fout:
            fout.write(bytes(10))
        pngfile = self.getPath("out.png")
        config = yuvtools_common.Config(
            func="yuv2rgba", infile=yuvfile, outfile=pngfile, width=4, height=2
        )
        with self.assertRaises(yuvtools_common.TruncatedInputException):
            yuvtools_assembler.convert_file(config)
        self.assertFalse(os.path.exists(pngfile))

    def testPermuteImageFile(self):
        width, height = 4, 2
        arr = get_rgba(width, height, seed=2)
        bgra = np.ascontiguousarray(arr[:, :, [2, 1, 0, 3]])
        pngfile = self.getPath("in.png")
        yuvtools_io.write_image_file(pngfile, yuvtools_common.Plane.FromArray(arr))
        rawfile = self.getPath("in.rgba")
        with open(rawfile, "wb") as fout:
            fout.write(bgra.tobytes())
        # 1. a png is always RGBA: a byte order cannot apply
        yuvfile = self.getPath("png.yuv")
        config = yuvtools_common.Config(
            func="rgba2yuv",
            infile=pngfile,
            outfile=yuvfile,
            chroma_subsample="444",
            color_range="full",
            permute_map="bgra",
        )
        with self.assertRaises(ValueError):
            yuvtools_assembler.convert_file(config)
        self.assertFalse(os.path.exists(yuvfile))
        config.set("permute_map", "rgba")
        yuvtools_assembler.convert_file(config)
        with open(yuvfile, "rb") as fin:
            expected_buffer = fin.read()
        # 2. a raw bgra file gives the same frame
        rawyuvfile = self.getPath("raw.yuv")
        config = yuvtools_common.Config(
            func="rgba2yuv",
            infile=rawfile,
            outfile=rawyuvfile,
            width=width,
            height=height,
            chroma_subsample="444",
            color_range="full",
            permute_map="bgra",
        )
        yuvtools_assembler.convert_file(config)
        with open(rawyuvfile, "rb") as fin:
            self.compareBuffer(fin.read(), expected_buffer, 0, "raw bgra")
        # 3. yuv2rgba: png output rejects a byte order, raw output uses it
        outfile = self.getPath("out.png")
        config = yuvtools_common.Config(
            func="yuv2rgba",
            infile=rawyuvfile,
            outfile=outfile,
            width=width,
            height=height,
            chroma_subsample="444",
            color_range="full",
            permute_map="bgra",
        )
        with self.assertRaises(ValueError):
            yuvtools_assembler.convert_file(config)
        self.assertFalse(os.path.exists(outfile))
        outfile = self.getPath("out.rgba")
        config.set("outfile", outfile)
        yuvtools_assembler.convert_file(config)
        with open(outfile, "rb") as fin:
            self.compareBuffer(fin.read(), bgra.tobytes(), 2, "raw bgra output")

    def testRedImageFile(self):
        arr = np.zeros((2, 4, 4), dtype=np.uint8)
        arr[:, :, 0] = 255
        arr[:, :, 3] = 255
        pngfile = self.getPath("red.png")
        yuvtools_io.write_image_file(pngfile, yuvtools_common.Plane.FromArray(arr))
        yuvfile = self.getPath("red.yuv")
        config = yuvtools_common.Config(
            func="rgba2yuv",
            infile=pngfile,
            outfile=yuvfile,
            chroma_subsample="444",
            color_range="full",
        )
        yuvtools_assembler.convert_file(config)
        with open(yuvfile, "rb") as fin:
            buffer = fin.read()
        # Y, Cb, Cr planes
        expected_buffer = bytes([76] * 8 + [85] * 8 + [255] * 8)
        self.compareBuffer(buffer, expected_buffer, 0, "red")
        # back to a png: still red
        outfile = self.getPath("red.out.png")
        config = yuvtools_common.Config(
            func="yuv2rgba",
            infile=yuvfile,
            outfile=outfile,
            width=4,
            height=2,
            chroma_subsample="444",
            color_range="full",
        )
        yuvtools_assembler.convert_file(config)
        rgba = yuvtools_io.read_image_file(outfile)
        self.comparePlane(rgba, arr, 2, "red png")

    def testInvalidVideoSize(self):
        yuvfile = self.getPath("in.yuv")
        with open(yuvfile, "wb") as fout:
            fout.write(bytes(16))
        outfile = self.getPath("out.rgba")
        for width, height in ((0, 0), (4, 0), (0, 2), (-4, 2)):
            config = yuvtools_common.Config(
                func="yuv2rgba",
                infile=yuvfile,
                outfile=outfile,
                width=width,
                height=height,
            )
            with self.assertRaises(ValueError):
                yuvtools_assembler.convert_file(config)
            self.assertFalse(os.path.exists(outfile))
        # the CLI defaults have no video size
        argv = ["yuvtools-assembler.py", "-i", yuvfile, "-o", outfile]
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            with self.assertRaises(SystemExit) as cm:
                yuvtools_assembler.main(argv)
        self.assertEqual(-1, cm.exception.code)
        self.assertFalse(os.path.exists(outfile))

    def testMainPixel(self):
        argv = [
            "yuvtools-assembler.py",
            "--function",
            "pixel",
            "--direction",
            "rgb2yuv",
            "--color-range",
            "full",
            "--pixel",
            "255,0,0",
        ]
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            yuvtools_assembler.main(argv)
        self.assertEqual("76 85 255", stdout.getvalue().strip())

    def testMainError(self):
        argv = [
            "yuvtools-assembler.py",
            "--function",
            "yuv2rgba",
            "--video-size",
            "4x2",
            "-i",
            self.getPath("nonexistent.yuv"),
            "-o",
            self.getPath("out.png"),
        ]
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            with self.assertRaises(SystemExit) as cm:
                yuvtools_assembler.main(argv)
        self.assertEqual(-1, cm.exception.code)
        self.assertTrue(stderr.getvalue().startswith("error:"))

    def testGetOptions(self):
        options = yuvtools_assembler.get_options(
            [
                "yuvtools-assembler.py",
                "--video-size",
                "1280x720",
                "--chroma-subsample",
                "444",
                "--permute",
                "bgra",
                "-d",
            ]
        )
        config = yuvtools_common.Config.Create(options)
        self.assertEqual(1280, config.get("width"))
        self.assertEqual(720, config.get("height"))
        self.assertEqual("444", config.get("chroma_subsample"))
        self.assertEqual("bgra", config.get("permute_map"))
        self.assertEqual(1, config.get("debug"))


if __name__ == "__main__":
    yuvtools_unittest.main(sys.argv)
