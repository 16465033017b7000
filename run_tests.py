#!/usr/bin/env python3
"""
Test runner for the Accord notification engine.

Usage:
    python run_tests.py                           # Run all tests
    python run_tests.py -k dedup                  # Run specific test pattern
    python run_tests.py --jobs                    # Run job-level tests only
    python run_tests.py --cov                     # Run with coverage
"""

import sys
import subprocess
from pathlib import Path

JOB_TEST_FILES = [
    "tests/test_push_jobs.py",
    "tests/test_email_jobs.py",
    "tests/test_swipe_refresh.py",
    "tests/test_subscription_expiry_sweeper.py",
]


def run_tests(targets, args=None):
    """Run tests with pytest."""
    if args is None:
        args = []

    # Base pytest command
    cmd = [sys.executable, "-m", "pytest", *targets, "-v", "--tb=short"]

    # Add additional arguments
    cmd.extend(args)

    print(f"Running: {' '.join(cmd)}")
    result = subprocess.run(cmd, cwd=Path(__file__).parent)
    return result.returncode


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Run the notification engine tests")
    parser.add_argument("-k", "--keyword", help="Run tests matching keyword")
    parser.add_argument("--cov", action="store_true", help="Run with coverage")
    parser.add_argument("--jobs", action="store_true", help="Run job tests only")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--pdb", action="store_true", help="Drop into debugger on failure")

    args = parser.parse_args()

    pytest_args = []

    if args.keyword:
        pytest_args.extend(["-k", args.keyword])

    if args.cov:
        pytest_args.extend(
            ["--cov=app", "--cov-report=html", "--cov-report=term-missing"]
        )

    if args.verbose:
        pytest_args.append("-vv")

    if args.pdb:
        pytest_args.append("--pdb")

    targets = JOB_TEST_FILES if args.jobs else ["tests"]
    return run_tests(targets, pytest_args)


if __name__ == "__main__":
    sys.exit(main())
