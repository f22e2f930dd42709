#!/usr/bin/env python3
"""Golden test comparison suite for CI.

Runs every case of a golden_suite.v1 YAML file:
    - Opens the actual and expected images (paths relative to the suite root)
    - Diffs them and checks the case threshold (or the suite default)
    - Saves <output_dir>/<name>-diff.png for inspection
    - Writes <output_dir>/report.yaml with per-case results and a summary

CLI:
    rendiff-golden ci/golden.yaml
    rendiff-golden ci/golden.yaml --case robot --case teapot
    rendiff-golden ci/golden.yaml --output-dir outputs/ci

Suite format (ci/golden.yaml):
    schema: golden_suite.v1
    root: renders
    output_dir: outputs/golden
    threshold: 0                   # default: exact match
    logging: {log_level: INFO}
    cases:
      - name: robot
        actual: robot-actual.png
        expected: robot-exp.png
        threshold:
          bands:
            - {magnitude: 8, allowance: unlimited}
            - {magnitude: 100, allowance: 20}

Report (report.yaml):
    cases:
      robot:
        status: fail
        max_difference: 169
        histogram: {85: 20, 169: 122}
        ...
    summary: {total: 1, passed: 0, failed: 1, errors: 0}

A case whose files are missing or undecodable, or whose diff image cannot
be written, is reported as "error" and the remaining cases still run.

Exit codes:
    0: All cases passed
    1: One or more cases failed or errored
    2: The suite file itself is missing or invalid
"""

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from rendiff import Threshold, diff, validators
from rendiff.interop import open_image, save_image
from rendiff.utils import fs, hashing, logging_config

logger = logging_config.get_logger(__name__)

STATUS_PASS = "pass"
STATUS_FAIL = "fail"
STATUS_ERROR = "error"


@dataclass
class CaseResult:
    """Outcome of one golden case, serialized into report.yaml."""
    name: str
    status: str
    threshold: str
    max_difference: Optional[int] = None
    histogram: Dict[int, int] = field(default_factory=dict)
    compared_pixels: Optional[int] = None
    size_mismatch: bool = False
    diff_image: Optional[str] = None
    inputs: Dict[str, Dict[str, str]] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {
            'status': self.status,
            'threshold': self.threshold,
            'max_difference': self.max_difference,
            'histogram': dict(self.histogram),
            'compared_pixels': self.compared_pixels,
            'size_mismatch': self.size_mismatch,
            'diff_image': self.diff_image,
            'inputs': self.inputs,
        }
        if self.error is not None:
            out['error'] = self.error
        return out


def run_case(
    case: validators.GoldenCaseV1,
    threshold: Threshold,
    root: Path,
    output_dir: Path
) -> CaseResult:
    """Compare one case and save its diff image.

    Never raises for unreadable inputs or an unwritable diff image; those
    become an "error" result.
    """
    result = CaseResult(name=case.name, status=STATUS_ERROR, threshold=repr(threshold))

    actual_path = root / case.actual
    expected_path = root / case.expected
    try:
        actual = open_image(actual_path, description="actual image")
        expected = open_image(expected_path, description="expected image")
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        result.error = str(e)
        return result

    result.inputs = {
        'actual': {
            'path': str(actual_path),
            'file_sha256': hashing.sha256_file(actual_path),
            'pixels_sha256': hashing.sha256_image(actual),
        },
        'expected': {
            'path': str(expected_path),
            'file_sha256': hashing.sha256_file(expected_path),
            'pixels_sha256': hashing.sha256_image(expected),
        },
    }

    difference = diff(actual, expected)
    histogram = difference.histogram

    result.max_difference = histogram.max_difference()
    result.histogram = histogram.to_dict()
    result.compared_pixels = histogram.total()
    result.size_mismatch = difference.diff_image is None

    image = difference.diff_image
    if image is not None and image.width > 0 and image.height > 0:
        diff_path = output_dir / f"{case.name}-diff.png"
        try:
            save_image(image, diff_path)
        except (RuntimeError, ValueError) as e:
            logger.error(f"Failed to write diff image: {e}")
            result.error = str(e)
            return result
        result.diff_image = str(diff_path)

    if threshold.allows(histogram):
        result.status = STATUS_PASS
        logger.info(f"PASS {histogram}")
    else:
        result.status = STATUS_FAIL
        if result.size_mismatch:
            logger.warning(
                f"FAIL size mismatch: actual {actual.width}x{actual.height}, "
                f"expected {expected.width}x{expected.height}"
            )
        else:
            logger.warning(f"FAIL {histogram} exceeds {threshold!r}")

    return result


def run_suite(
    suite: validators.GoldenSuiteV1,
    only: Optional[List[str]] = None,
    output_dir: Optional[Path] = None
) -> List[CaseResult]:
    """Run the suite's cases (optionally a subset) and write report.yaml.

    Raises
    ------
    ValueError
        If `only` names a case the suite doesn't have
    """
    cases = suite.cases
    if only:
        known = {c.name for c in cases}
        unknown = sorted(set(only) - known)
        if unknown:
            raise ValueError(f"Unknown case(s): {unknown}. Suite has: {sorted(known)}")
        cases = [c for c in cases if c.name in set(only)]

    root = Path(suite.root)
    out_dir = fs.ensure_dir(output_dir if output_dir is not None else suite.output_dir)

    results = []
    for case in cases:
        logging_config.push_context(case=case.name)
        try:
            results.append(run_case(case, suite.threshold_for(case), root, out_dir))
        finally:
            logging_config.pop_context(keys=['case'])

    summary = summarize(results)
    report = {
        'suite_root': str(root),
        'cases': {r.name: r.to_dict() for r in results},
        'summary': summary,
    }
    report_path = out_dir / "report.yaml"
    fs.atomic_yaml_dump(report, report_path)
    logger.info(
        f"{summary['passed']}/{summary['total']} passed, {summary['failed']} failed, "
        f"{summary['errors']} errors; report: {report_path}"
    )
    return results


def summarize(results: List[CaseResult]) -> Dict[str, int]:
    return {
        'total': len(results),
        'passed': sum(r.status == STATUS_PASS for r in results),
        'failed': sum(r.status == STATUS_FAIL for r in results),
        'errors': sum(r.status == STATUS_ERROR for r in results),
    }


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog='rendiff-golden',
        description="Run a suite of golden image comparisons",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('suite', help='Path to golden_suite.v1 YAML file')
    parser.add_argument(
        '--case',
        action='append',
        default=None,
        metavar='NAME',
        help='Run only the named case; repeatable'
    )
    parser.add_argument(
        '--output-dir',
        default=None,
        help="Override the suite's output_dir"
    )
    parser.add_argument(
        '--log-level',
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help="Override the suite's logging.log_level"
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    # Console logging until the suite's own settings are known
    logging_config.setup_logging(log_level=args.log_level or "INFO", context={'app': 'golden'})

    try:
        suite = validators.load_golden_suite(args.suite)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 2

    log_kwargs = suite.logging.setup_kwargs()
    if args.log_level:
        log_kwargs['log_level'] = args.log_level
    logging_config.setup_logging(**log_kwargs)

    try:
        results = run_suite(
            suite,
            only=args.case,
            output_dir=Path(args.output_dir) if args.output_dir else None
        )
    except (ValueError, RuntimeError) as e:
        logger.error(str(e))
        return 2

    for r in results:
        detail = r.error if r.status == STATUS_ERROR else f"max difference {r.max_difference}"
        print(f"{r.status.upper():5s} {r.name}: {detail}")

    return 0 if all(r.status == STATUS_PASS for r in results) else 1


if __name__ == '__main__':
    sys.exit(main())
