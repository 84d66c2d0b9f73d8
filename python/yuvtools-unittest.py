#!/usr/bin/env python3

"""yuvtools-unittest.py: yuvtools unittest helper.

Operation:
$ ./*_unittest.py  # run all the tests
$ ./*_unittest.py --list_tests  # list all available tests
$ ./*_unittest.py --filter <filter>
where:
  <filter> := <test_filter_item> [":" <test_filter_item>]*
  <test_filter_item> := <test_function>.<test_name>
  <test_function> := <string> | "*"
  <test_name> := <string> | "*"

Examples:
```
$ ./yuvtools-layout_unittest.py --filter testYuvPlanarToChunky.*
$ ./yuvtools-color_unittest.py --filter *.full*:*.limited*
```
"""

import argparse
import fnmatch
import numpy as np
import sys
import unittest


# overridden by main() when running a test file directly
LIST_TESTS = False
FILTER = None


class TestCase(unittest.TestCase):
    def getTestCases(self, function_name, test_case_list):
        if LIST_TESTS:
            print(f" {function_name}.")
            for test_case in test_case_list:
                print(f"  {function_name}.{test_case['name']}")
            self.skipTest("list test")

        return self.filterTestCases(function_name, test_case_list, FILTER)

    def filterTestCases(self, function_name, test_case_list, filter_string):
        if not filter_string:
            return test_case_list

        # each filter item is of the form TestFunction.TestName, supports '*'
        filters = filter_string.split(":")
        matched_test_case_name_list = set()
        for filt in filters:
            try:
                func_pat, case_pat = filt.split(".", 1)
            except ValueError:
                continue  # skip invalid filters
            if fnmatch.fnmatch(function_name, func_pat):
                for test_case in test_case_list:
                    if fnmatch.fnmatch(test_case["name"], case_pat):
                        matched_test_case_name_list.add(test_case["name"])
        return [
            test_case
            for test_case in test_case_list
            if test_case["name"] in matched_test_case_name_list
        ]

    # function to compare a plane against an array (row padding ignored)
    @classmethod
    def comparePlane(cls, plane, expected_arr, absolute_tolerance, label):
        expected_arr = np.asarray(expected_arr)
        if expected_arr.ndim == 2:
            arr = plane.rows()
        else:
            arr = plane.pixels()
        assert arr.shape == expected_arr.shape, (
            f"error on {label} case: shape {arr.shape} != {expected_arr.shape}"
        )
        np.testing.assert_allclose(
            arr.astype(np.int32),
            expected_arr.astype(np.int32),
            atol=absolute_tolerance,
            err_msg=f"error on {label} case",
        )

    # function to compare 2 planar representations (dicts of planes)
    @classmethod
    def comparePlanar(cls, planar, expected_planar, absolute_tolerance, label):
        assert set(expected_planar.keys()) == set(planar.keys()), "Broken planar output"
        for key in expected_planar:
            cls.comparePlane(
                planar[key],
                expected_planar[key],
                absolute_tolerance,
                f"{label} {key=}",
            )

    # function to compare 2 buffer representations
    @classmethod
    def compareBuffer(cls, buffer, expected_buffer, absolute_tolerance, label):
        assert len(buffer) == len(expected_buffer), f"error on {label} case: wrong size"
        arr = np.frombuffer(buffer, dtype=np.uint8).astype(np.int32)
        expected_arr = np.frombuffer(expected_buffer, dtype=np.uint8).astype(np.int32)
        np.testing.assert_allclose(
            arr,
            expected_arr,
            atol=absolute_tolerance,
            err_msg=f"error on {label} case",
        )


def main(argv):
    global FILTER
    global LIST_TESTS

    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--list_tests",
        action="store_true",
        dest="list_tests",
        default=False,
        help="List Tests",
    )
    parser.add_argument(
        "--filter",
        dest="filter",
        default=None,
        metavar="filter",
        help="Filter String",
    )

    options, unknown_options = parser.parse_known_args(argv[1:])
    FILTER = options.filter
    LIST_TESTS = options.list_tests
    # clean sys.argv before passing to unittest
    sys.argv = [argv[0]] + unknown_options
    unittest.main(module="__main__")
