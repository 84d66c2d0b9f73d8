#!/usr/bin/env python3

"""yuvtools-io_unittest.py: yuvtools io unittest.

# runme
# $ ./yuvtools-io_unittest.py
"""

import cv2
import importlib
import numpy as np
import os
import sys
import tempfile

yuvtools_common = importlib.import_module("yuvtools-common")
yuvtools_io = importlib.import_module("yuvtools-io")
yuvtools_unittest = importlib.import_module("yuvtools-unittest")


RGBA = np.array(
    [
        [[255, 0, 0, 255], [0, 255, 0, 128], [0, 0, 255, 0]],
        [[1, 2, 3, 4], [250, 251, 252, 253], [10, 20, 30, 40]],
    ],
    dtype=np.uint8,
)


class MainTest(yuvtools_unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory(prefix="yuvtools.test.")

    def tearDown(self):
        self.tmpdir.cleanup()

    def getPath(self, name):
        return os.path.join(self.tmpdir.name, name)

    def testPngRoundTrip(self):
        path = self.getPath("image.png")
        yuvtools_io.write_image_file(path, yuvtools_common.Plane.FromArray(RGBA))
        # the file is a BGRA png
        bgra = cv2.imread(path, cv2.IMREAD_UNCHANGED)
        np.testing.assert_array_equal(RGBA[:, :, [2, 1, 0, 3]], bgra)
        rgba = yuvtools_io.read_image_file(path)
        self.comparePlane(rgba, RGBA, 0, "png")

    def testRawRoundTrip(self):
        path = self.getPath("image.rgba")
        plane = yuvtools_common.Plane.FromArray(RGBA, row_alignment=32)
        yuvtools_io.write_image_file(path, plane)
        # stride padding is not written
        self.assertEqual(RGBA.size, os.path.getsize(path))
        rgba = yuvtools_io.read_image_file(path, 3, 2)
        self.comparePlane(rgba, RGBA, 0, "raw")
        # raw files need the image size
        with self.assertRaises(yuvtools_common.DecodeException):
            yuvtools_io.read_image_file(path)
        with self.assertRaises(yuvtools_common.TruncatedInputException):
            yuvtools_io.read_image_file(path, 3, 3)

    def testReadBgrAndGray(self):
        path = self.getPath("bgr.png")
        cv2.imwrite(path, np.ascontiguousarray(RGBA[:, :, [2, 1, 0]]))
        rgba = yuvtools_io.read_image_file(path)
        expected = RGBA.copy()
        expected[:, :, 3] = 255
        self.comparePlane(rgba, expected, 0, "bgr")
        path = self.getPath("gray.png")
        gray = np.array([[0, 100], [200, 255]], dtype=np.uint8)
        cv2.imwrite(path, gray)
        rgba = yuvtools_io.read_image_file(path)
        expected = np.stack(
            (gray, gray, gray, np.full_like(gray, 255)), axis=2
        )
        self.comparePlane(rgba, expected, 0, "gray")

    def testReadErrors(self):
        with self.assertRaises(yuvtools_common.FileNotFoundException):
            yuvtools_io.read_image_file(self.getPath("nonexistent.png"))
        path = self.getPath("broken.png")
        with open(path, "wb") as fout:
            fout.write(b"this is not a png file")
        with self.assertRaises(yuvtools_common.DecodeException):
            yuvtools_io.read_image_file(path)


if __name__ == "__main__":
    yuvtools_unittest.main(sys.argv)
