#!/usr/bin/env python3
"""Compare two image files and exit with the verdict.

Usage:
    # Exact match (default threshold)
    rendiff actual.png expected.png

    # Allow small color noise, write a diff image for inspection
    rendiff actual.png expected.png --threshold 4 -o diff.png

    # Per-band allowances: many tiny differences, at most 3 medium ones
    rendiff actual.png expected.png --band 4:unlimited --band 64:3

    # Threshold from YAML (`level: N` or `bands: [{magnitude, allowance}]`)
    rendiff actual.png expected.png --threshold-file configs/threshold.yaml

Output (stdout):
    Histogram(Δ3 ×12, Δ40 ×1)
    max difference: 40
    result: PASS under Threshold({4: unlimited, 64: 3})

Exit codes:
    0: Images are within the threshold
    1: Images differ more than the threshold allows
    2: Usage error, or an input/output file could not be read or written
"""

import argparse
import sys
from typing import List, Optional, Tuple

from rendiff import Threshold, UNLIMITED, diff, validators
from rendiff.interop import open_image, save_image
from rendiff.utils import logging_config

logger = logging_config.get_logger(__name__)

EXIT_PASS = 0
EXIT_FAIL = 1
EXIT_ERROR = 2


def parse_band(text: str) -> Tuple[int, int]:
    """Parse "MAGNITUDE:ALLOWANCE" (allowance may be "unlimited")."""
    magnitude, sep, allowance = text.partition(':')
    if not sep:
        raise argparse.ArgumentTypeError(f"expected MAGNITUDE:ALLOWANCE, got '{text}'")
    try:
        level = int(magnitude)
        count = UNLIMITED if allowance.strip().lower() == 'unlimited' else int(allowance)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected integers in '{text}'") from None
    return (level, count)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog='rendiff',
        description="Compare two rendered images, tolerating 1 px displacement",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument('actual', help='One of the image files to compare')
    parser.add_argument('expected', help='The other (reference) image file to compare')

    parser.add_argument(
        '-o', '--diff-output',
        metavar='PATH',
        default=None,
        help='Write an image depicting the differences to PATH (format from extension)'
    )

    threshold_group = parser.add_mutually_exclusive_group()
    threshold_group.add_argument(
        '-t', '--threshold',
        type=int,
        metavar='N',
        default=None,
        help='Accept any number of differences of magnitude <= N (default: 0, exact)'
    )
    threshold_group.add_argument(
        '-b', '--band',
        type=parse_band,
        action='append',
        metavar='MAG:COUNT',
        default=None,
        help='Allow COUNT differences in the band ending at MAG; repeatable'
    )
    threshold_group.add_argument(
        '--threshold-file',
        metavar='YAML',
        default=None,
        help='Load the threshold from a YAML file'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Include equal (Δ0) pixels in the printed histogram'
    )
    parser.add_argument(
        '--log-level',
        default='WARNING',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level, default: WARNING'
    )
    parser.add_argument(
        '--json-log',
        action='store_true',
        help='Emit log records as JSON lines'
    )

    return parser.parse_args(argv)


def build_threshold(args: argparse.Namespace) -> Threshold:
    """Threshold selected by the command line.

    Raises
    ------
    ValueError
        If the bands or level are invalid
    FileNotFoundError
        If --threshold-file doesn't exist
    """
    if args.threshold_file is not None:
        return validators.load_threshold_config(args.threshold_file).to_threshold()
    if args.band is not None:
        return Threshold(args.band)
    if args.threshold is not None:
        return Threshold.no_bigger_than(args.threshold)
    return Threshold.no_bigger_than(0)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    logging_config.setup_logging(
        log_level=args.log_level,
        json=args.json_log,
        context={'app': 'rendiff'}
    )

    try:
        threshold = build_threshold(args)
        actual = open_image(args.actual, description="actual image")
        expected = open_image(args.expected, description="expected image")
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return EXIT_ERROR

    difference = diff(actual, expected)

    if args.diff_output is not None:
        if difference.diff_image is None:
            logger.warning(
                f"Not writing {args.diff_output}: image sizes differ "
                f"({actual.width}x{actual.height} vs {expected.width}x{expected.height})"
            )
        elif difference.diff_image.width == 0 or difference.diff_image.height == 0:
            logger.warning(f"Not writing {args.diff_output}: diff image is empty")
        else:
            try:
                save_image(difference.diff_image, args.diff_output)
            except (RuntimeError, ValueError) as e:
                logger.error(f"Failed to write '{args.diff_output}': {e}")
                return EXIT_ERROR
            logger.info(f"Saved diff image: {args.diff_output}")

    allowed = threshold.allows(difference.histogram)

    print(difference.histogram.format(verbose=args.verbose))
    print(f"max difference: {difference.histogram.max_difference()}")
    print(f"result: {'PASS' if allowed else 'FAIL'} under {threshold!r}")

    return EXIT_PASS if allowed else EXIT_FAIL


if __name__ == '__main__':
    sys.exit(main())
