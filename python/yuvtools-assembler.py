#!/usr/bin/env python3

"""yuvtools-assembler.py: raw planar YCbCr <-> RGBA converter.

Forward (yuv2rgba):
  raw planar file -> planes -> chunky YCbCr (1 stage for 4:4:4, 2 for
  4:2:2) -> RGBA image

Reverse (rgba2yuv):
  RGBA image -> chunky YCbCr -> planes (inverse stages) -> raw planar file

# runme
# $ ./yuvtools-assembler.py --function yuv2rgba --video-size 1280x720 \
#     --chroma-subsample 422 -i in.yuv -o out.png
# $ ./yuvtools-assembler.py --function rgba2yuv --chroma-subsample 444 \
#     -i in.png -o out.yuv
# $ ./yuvtools-assembler.py --function pixel --direction rgb2yuv \
#     --color-range full --pixel 255,0,0
"""


import argparse
import importlib
import sys

yuvtools_common = importlib.import_module("yuvtools-common")
yuvtools_color = importlib.import_module("yuvtools-color")
yuvtools_io = importlib.import_module("yuvtools-io")
yuvtools_layout = importlib.import_module("yuvtools-layout")
yuvtools_planestore = importlib.import_module("yuvtools-planestore")


__version__ = "0.1"

FUNC_CHOICES = {
    "help": "show help options",
    "yuv2rgba": "convert a raw planar YCbCr file into an RGBA image",
    "rgba2yuv": "convert an RGBA image into a raw planar YCbCr file",
    "pixel": "convert a single pixel",
}

DIRECTION_CHOICES = list(d.name for d in yuvtools_color.ConversionDirection)


def planar_to_rgba(frame, config):
    debug = config.get("debug")
    chroma_subsample = frame.chroma_subsample
    order = yuvtools_layout.get_chunky_order(
        chroma_subsample, config.get("chunky_order")
    )
    # 1. planar -> chunky
    chunky = yuvtools_layout.yuv_planar_to_chunky(frame, order=order, debug=debug)
    # 2. chunky YCbCr -> RGBA
    matrix = yuvtools_color.generate_matrix(
        config.get("color_range"),
        yuvtools_color.ConversionDirection.yuv2rgb,
        config.get("matrix_coefficients"),
    )
    if debug > 1:
        print(f"debug: matrix: {matrix}")
    rgba = yuvtools_color.ycbcr_to_rgba(
        chunky,
        matrix,
        alpha_fill=config.get("alpha_fill"),
        pix_fmt=yuvtools_common.get_chunky_pix_fmt(chroma_subsample),
        order=order,
        permute_map=config.get("permute_map"),
    )
    # 3. drop the odd-width padding
    if rgba.width != frame.width:
        rgba = rgba.crop(frame.width)
    return rgba


def rgba_to_planar(rgba, config):
    debug = config.get("debug")
    chroma_subsample = yuvtools_common.ChromaSubsample.parse(
        config.get("chroma_subsample")
    )
    order = yuvtools_layout.get_chunky_order(
        chroma_subsample, config.get("chunky_order")
    )
    # 1. RGBA -> chunky YCbCr
    matrix = yuvtools_color.generate_matrix(
        config.get("color_range"),
        yuvtools_color.ConversionDirection.rgb2yuv,
        config.get("matrix_coefficients"),
    )
    if debug > 1:
        print(f"debug: matrix: {matrix}")
    chunky = yuvtools_color.rgba_to_ycbcr(
        rgba,
        matrix,
        pix_fmt=yuvtools_common.get_chunky_pix_fmt(chroma_subsample),
        order=order,
        permute_map=config.get("permute_map"),
    )
    # 2. chunky -> planar
    return yuvtools_layout.yuv_chunky_to_planar(
        chunky, rgba.width, chroma_subsample, order=order, debug=debug
    )


def convert_planar_file_to_rgba(config):
    frame = yuvtools_planestore.read_planar(
        config.get("infile"),
        config.get("width"),
        config.get("height"),
        config.get("chroma_subsample"),
        row_alignment=config.get("row_alignment"),
        debug=config.get("debug"),
    )
    return planar_to_rgba(frame, config)


def convert_rgba_to_planar_file(rgba, config):
    # the output is fully computed before the output file is touched
    frame = rgba_to_planar(rgba, config)
    size = yuvtools_planestore.write_planar_file(config.get("outfile"), frame)
    if config.get("debug") > 0:
        print(f"debug: wrote {config.get('outfile')} ({size} bytes)")
    return frame


def convert_pixel(config):
    pixel = config.get("pixel")
    if pixel is None or len(pixel) != 3:
        raise ValueError(f"error: pixel needs 3 components: {pixel}")
    matrix = yuvtools_color.generate_matrix(
        config.get("color_range"),
        config.get("direction"),
        config.get("matrix_coefficients"),
    )
    return yuvtools_color.convert_pixel(*pixel, matrix)


def check_files(config):
    for key in ("infile", "outfile"):
        if config.get(key) is None:
            raise yuvtools_common.YUVToolsException(f"error: no {key} provided")


def check_video_size(config):
    width, height = config.get("width"), config.get("height")
    if width is None or height is None or width <= 0 or height <= 0:
        raise ValueError(f"error: invalid video size: {width}x{height}")


def check_permute_map(config, image_file):
    # decoded/encoded images are always RGBA: only raw files have a byte order
    if yuvtools_io.is_raw_rgba(image_file):
        return
    permute_map = yuvtools_layout.get_permute_map(config.get("permute_map"))
    if permute_map != list(range(4)):
        raise ValueError(
            f"error: byte order {config.get('permute_map')} needs a raw rgba file: {image_file}"
        )


def convert_file(config):
    func = config.get("func")
    if func == "yuv2rgba":
        check_files(config)
        check_video_size(config)
        check_permute_map(config, config.get("outfile"))
        rgba = convert_planar_file_to_rgba(config)
        yuvtools_io.write_image_file(config.get("outfile"), rgba)
        return rgba
    elif func == "rgba2yuv":
        check_files(config)
        check_permute_map(config, config.get("infile"))
        rgba = yuvtools_io.read_image_file(
            config.get("infile"),
            config.get("width"),
            config.get("height"),
            debug=config.get("debug"),
        )
        return convert_rgba_to_planar_file(rgba, config)
    elif func == "pixel":
        return convert_pixel(config)
    raise ValueError(f"error: invalid function: {func}")


def get_options(argv):
    """Generic option parser.

    Args:
        argv: list containing arguments

    Returns:
        Namespace - An argparse.ArgumentParser-generated option object
    """
    # init parser
    # usage = 'usage: %prog [options] arg1 arg2'
    # parser = argparse.OptionParser(usage=usage)
    # parser.print_help() to get argparse.usage (large help)
    # parser.print_usage() to get argparse.usage (just usage line)
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "-v",
        "--version",
        action="store_true",
        dest="version",
        default=False,
        help="Print version",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="count",
        dest="debug",
        default=yuvtools_common.Config.DEFAULT_VALUES["debug"],
        help="Increase verbosity (use multiple times for more)",
    )
    parser.add_argument(
        "--quiet",
        action="store_const",
        dest="debug",
        const=-1,
        help="Zero verbosity",
    )
    parser.add_argument(
        "--function",
        action="store",
        type=str,
        dest="func",
        default=yuvtools_common.Config.DEFAULT_VALUES["func"],
        choices=FUNC_CHOICES.keys(),
        help="%s"
        % (" | ".join("{}: {}".format(k, v) for k, v in FUNC_CHOICES.items())),
    )
    parser.add_argument(
        "--direction",
        action="store",
        type=str,
        dest="direction",
        default=yuvtools_common.Config.DEFAULT_VALUES["direction"],
        choices=DIRECTION_CHOICES,
        metavar="[%s]" % (" | ".join(DIRECTION_CHOICES)),
        help="conversion direction (pixel function)",
    )

    class PixelAction(argparse.Action):
        def __call__(self, parser, namespace, values, option_string=None):
            namespace.pixel = [int(v) for v in values[0].split(",")]

    parser.add_argument(
        "--pixel",
        dest="pixel",
        action=PixelAction,
        nargs=1,
        help="use <c1>,<c2>,<c3>",
    )

    class VideoSizeAction(argparse.Action):
        def __call__(self, parser, namespace, values, option_string=None):
            namespace.width, namespace.height = [int(v) for v in values[0].split("x")]

    parser.add_argument(
        "--video-size",
        action=VideoSizeAction,
        nargs=1,
        help="use <width>x<height>",
    )
    yuvtools_common.Config.set_parser_options(parser)
    parser.add_argument(
        "-i",
        "--infile",
        dest="infile",
        type=str,
        default=None,
        metavar="input-file",
        help="input file",
    )
    parser.add_argument(
        "-o",
        "--outfile",
        dest="outfile",
        type=str,
        default=None,
        metavar="output-file",
        help="output file",
    )
    # do the parsing
    options = parser.parse_args(argv[1:])
    if options.version:
        return options
    # implement help
    if options.func == "help":
        parser.print_help()
        sys.exit(0)
    return options


def main(argv):
    # parse options
    options = get_options(argv)
    if options.version:
        print("version: %s" % __version__)
        sys.exit(0)
    # create configuration
    config = yuvtools_common.Config.Create(options)
    # print results
    if options.debug > 0:
        print(f"debug: {options}")
    try:
        out = convert_file(config)
    except (yuvtools_common.YUVToolsException, ValueError) as e:
        print(e, file=sys.stderr)
        sys.exit(-1)
    if config.get("func") == "pixel":
        print(" ".join(str(v) for v in out))


if __name__ == "__main__":
    # at least the CLI program name: (CLI) execution
    main(sys.argv)
