#!/usr/bin/env python3

"""yuvtools-planestore_unittest.py: yuvtools planestore unittest.

# runme
# $ ./yuvtools-planestore_unittest.py
"""

import importlib
import numpy as np
import os
import sys
import tempfile

yuvtools_common = importlib.import_module("yuvtools-common")
yuvtools_planestore = importlib.import_module("yuvtools-planestore")
yuvtools_unittest = importlib.import_module("yuvtools-unittest")


readPlanarTestCases = [
    {
        "name": "422-4x2",
        "width": 4,
        "height": 2,
        "chroma_subsample": "422",
        "buffer": bytes(range(16)),
        "planar": {
            "y": np.array([[0, 1, 2, 3], [4, 5, 6, 7]], dtype=np.uint8),
            "u": np.array([[8, 9], [10, 11]], dtype=np.uint8),
            "v": np.array([[12, 13], [14, 15]], dtype=np.uint8),
        },
    },
    {
        "name": "444-2x2",
        "width": 2,
        "height": 2,
        "chroma_subsample": "444",
        "buffer": bytes(range(12)),
        "planar": {
            "y": np.array([[0, 1], [2, 3]], dtype=np.uint8),
            "u": np.array([[4, 5], [6, 7]], dtype=np.uint8),
            "v": np.array([[8, 9], [10, 11]], dtype=np.uint8),
        },
    },
    {
        # chroma width is floor(5 / 2) = 2
        "name": "422-odd-width",
        "width": 5,
        "height": 1,
        "chroma_subsample": "422",
        "buffer": bytes(range(9)),
        "planar": {
            "y": np.array([[0, 1, 2, 3, 4]], dtype=np.uint8),
            "u": np.array([[5, 6]], dtype=np.uint8),
            "v": np.array([[7, 8]], dtype=np.uint8),
        },
    },
    {
        "name": "422-width-1",
        "width": 1,
        "height": 2,
        "chroma_subsample": "422",
        "buffer": bytes([0x10, 0x20]),
        "planar": {
            "y": np.array([[0x10], [0x20]], dtype=np.uint8),
            "u": np.zeros((2, 0), dtype=np.uint8),
            "v": np.zeros((2, 0), dtype=np.uint8),
        },
    },
]


class MainTest(yuvtools_unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory(prefix="yuvtools.test.")

    def tearDown(self):
        self.tmpdir.cleanup()

    def writeFile(self, name, buffer):
        path = os.path.join(self.tmpdir.name, name)
        with open(path, "wb") as fout:
            fout.write(buffer)
        return path

    def testFrameSize(self):
        self.assertEqual(16, yuvtools_planestore.get_frame_size(4, 2, "422"))
        self.assertEqual(24, yuvtools_planestore.get_frame_size(4, 2, "444"))
        self.assertEqual(18, yuvtools_planestore.get_frame_size(5, 2, "422"))
        self.assertEqual(
            (8, 4), yuvtools_planestore.get_plane_sizes(4, 2, "422")
        )

    def testReadPlanar(self):
        """read_planar test."""
        function_name = "testReadPlanar"
        for test_case in self.getTestCases(function_name, readPlanarTestCases):
            print(f"...running \"{function_name}.{test_case['name']}\"")
            infile = self.writeFile(f"{test_case['name']}.yuv", test_case["buffer"])
            for row_alignment in (1, 4, 16):
                frame = yuvtools_planestore.read_planar(
                    infile,
                    test_case["width"],
                    test_case["height"],
                    test_case["chroma_subsample"],
                    row_alignment=row_alignment,
                )
                # destination stride is aligned, sample values are not changed
                for plane in frame.planes.values():
                    self.assertEqual(0, plane.stride % row_alignment)
                self.comparePlanar(
                    frame.planes,
                    test_case["planar"],
                    0,
                    f"{test_case['name']} {row_alignment=}",
                )
                # write back
                buffer = yuvtools_planestore.write_planar(frame)
                self.assertEqual(test_case["buffer"], buffer)

    def testReadPlanarTruncated(self):
        infile = self.writeFile("truncated.yuv", bytes(15))
        with self.assertRaises(yuvtools_common.TruncatedInputException):
            yuvtools_planestore.read_planar(infile, 4, 2, "422")

    def testReadPlanarNotFound(self):
        infile = os.path.join(self.tmpdir.name, "nonexistent.yuv")
        with self.assertRaises(yuvtools_common.FileNotFoundException):
            yuvtools_planestore.read_planar(infile, 4, 2, "422")

    def testReadPlanarTrailingData(self):
        # a second frame is ignored
        infile = self.writeFile("2frames.yuv", bytes(range(32)))
        frame = yuvtools_planestore.read_planar(infile, 4, 2, "422")
        self.assertEqual(bytes(range(16)), yuvtools_planestore.write_planar(frame))

    def testWritePlanarFile(self):
        buffer = bytes(range(24))
        frame = yuvtools_planestore.buffer_to_frame(buffer, 4, 2, "444", row_alignment=8)
        outfile = os.path.join(self.tmpdir.name, "out.yuv")
        size = yuvtools_planestore.write_planar_file(outfile, frame)
        self.assertEqual(24, size)
        with open(outfile, "rb") as fin:
            self.compareBuffer(fin.read(), buffer, 0, "write_planar_file")

    def testWritePlanarChunky(self):
        plane = yuvtools_common.Plane.Allocate(2, 1, channels=3)
        frame = yuvtools_common.Frame(2, 1, "vyu444", {"vyu": plane})
        with self.assertRaises(yuvtools_common.UnsupportedPixelFormatException):
            yuvtools_planestore.write_planar(frame)


if __name__ == "__main__":
    yuvtools_unittest.main(sys.argv)
