#!/usr/bin/env python3
"""
Run the template generator against every scenario in a folder.

Usage example:
python3 benchmark_pbit_templates.py --scenarios mock/data --out output/benchmarks
"""
import argparse
import logging
import sys

from pbit_template.benchmark import run_benchmark
from pbit_template.config import GeneratorConfig


def main(argv=None):
    parser = argparse.ArgumentParser(description="Benchmark the Power BI template generator.")
    parser.add_argument("--scenarios", default="mock/data", help="Folder of scenario JSON files")
    parser.add_argument("--out", default="output/benchmarks", help="Folder for .pbit files and the report")
    parser.add_argument("--repackage", action="store_true", help="Include the verification repack in timings")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    log = logging.getLogger("pbit_template.benchmark")
    try:
        report = run_benchmark(args.scenarios, args.out, config=GeneratorConfig(repackage=args.repackage), logger=log)
    except (OSError, ValueError) as exc:
        log.error("%s", exc)
        return 1

    failed = [r["scenario"] for r in report["results"] if "error" in r]
    print(f"Wrote {report['reportPath']}")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
