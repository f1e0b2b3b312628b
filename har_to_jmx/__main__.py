"""Command line entry point.

Usage:
    python -m har_to_jmx <har_file> [output_path_or_dir]

Without an output path the plan is written to har_converted_YYYYMMDDHHMMSS.jmx
in the working directory; a directory gets that file name inside it.
"""

import logging
import os
import sys
from datetime import datetime

from .converter import HarToJmxConverter
from .errors import ConversionError

USAGE = "Usage: har-to-jmx <har_file_path> [output_jmx_path_or_dir]"


def resolve_output_path(output_path: str = None) -> str:
    timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
    if not output_path:
        return f"har_converted_{timestamp}.jmx"
    if os.path.isdir(output_path):
        return os.path.join(output_path, f"har_converted_{timestamp}.jmx")
    return output_path


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if not args or len(args) > 2:
        print(USAGE)
        return 1

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    har_path = args[0]
    output_path = resolve_output_path(args[1] if len(args) == 2 else None)

    try:
        result = HarToJmxConverter().convert(har_path, output_path)
    except (ConversionError, OSError) as e:
        print(f"Conversion failed: {e}", file=sys.stderr)
        return 1

    print(f"JMX generated: {result.output_path}")
    print(f"Requests included: {result.samplers}")
    for skipped in result.skipped:
        print(f"Skipped: {skipped.error}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
