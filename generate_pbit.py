#!/usr/bin/env python3
"""
Project JSON -> Power BI template (.pbit).

- Maps tasks/resources/assignments/properties into flat tables
- Builds the DataModelSchema with embedded M partitions and DAX measures
- Packages Report/Layout, DiagramLayout, Settings, Metadata into the .pbit
- Repacks the result into <name>.verified.pbit for strict OPC readers

Usage example:
python3 generate_pbit.py \
  --input /path/to/project.json \
  --out /path/to/output/Project.pbit \
  --measures /path/to/measures.json \
  --theme /path/to/CY24SU06.json
"""
import argparse
import logging
import sys

import ijson

from pbit_template.config import GeneratorConfig
from pbit_template.errors import PbitGenerationError, RepackageWarning
from pbit_template.loader import load_project_json, load_project_json_stream
from pbit_template.pipeline import generate_package


def build_parser():
    parser = argparse.ArgumentParser(description="Generate a Power BI template from project JSON.")
    parser.add_argument("--input", required=True, help="Path to project JSON")
    parser.add_argument("--stream", action="store_true", help="Decode the input incrementally (large exports)")
    parser.add_argument("--out", required=True, help="Output .pbit path")
    parser.add_argument("--measures", help="JSON file with DAX measure overrides")
    parser.add_argument("--custom-visuals-dir", help="Folder of custom visual packages, one subfolder per visual id")
    parser.add_argument("--security-bindings", help="Reference SecurityBindings file to embed")
    parser.add_argument("--theme", help="Base theme json to bundle under StaticResources")
    parser.add_argument("--visuals", help="JSON with visualContainers/filters for the report page")
    parser.add_argument("--kpi-cards", action="store_true", help="Add one card per measure when no visuals are given")
    parser.add_argument("--scratch-dir", help="Parent folder for repackage scratch directories")
    parser.add_argument("--no-repackage", action="store_true", help="Skip the verification repack")
    parser.add_argument("--strict-repackage", action="store_true", help="Fail when the verification repack fails")
    parser.add_argument("--allow-no-resources", action="store_true", help="Accept projects without resources")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    log = logging.getLogger("pbit_template")

    try:
        project_data = load_project_json_stream(args.input) if args.stream else load_project_json(args.input)
        config = GeneratorConfig.from_args(args)
        result = generate_package(project_data, args.out, measure_overrides_path=args.measures,
                                  config=config, logger=log)
    except (PbitGenerationError, RepackageWarning, OSError, ValueError, ijson.JSONError) as exc:
        log.error("%s", exc)
        return 1

    print(f"Generated PBIT at: {result.output_path} ({result.size_bytes} bytes)")
    if result.verified_path:
        print(f"Verified copy at: {result.verified_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
