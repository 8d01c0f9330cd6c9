"""
Main entry point of the FIS to CFS converter.

This script reads a MATLAB style .fis model, converts it into the compact
fixed point representation (CFS) used by the embedded fuzzy runtime and
writes the result as a binary file. Conversion options come from
config/cfs_config.toml and can be overridden on the command line.
"""

import argparse
import logging
import os
import sys
import tomllib
from typing import Any, Dict, Optional

from utils.logger import setup_logging
from cfs.converter import Converter, to_bytes
from cfs.exceptions import UFuzzyError
from fis.parser import parse_fis

DEFAULT_CONFIG = os.path.join(os.path.dirname(os.path.abspath(__file__)), "config", "cfs_config.toml")

# Inclusive limits of the integer conversion options.
OPTION_LIMITS = {
    "dsteps": (1, 16),
    "tsize": (1, 16),
}


def load_config(path: str = DEFAULT_CONFIG) -> Dict[str, Any]:
    """
    Loads the converter configuration from a TOML file.
    """
    with open(path, "rb") as f:
        return tomllib.load(f)


def options_from_config(
    config: Dict[str, Any], overrides: Optional[Dict[str, Optional[int]]] = None
) -> Dict[str, int]:
    """
    Builds the conversion options from the [options] section.

    Args:
        config (Dict[str, Any]): Parsed configuration file.
        overrides (Optional[Dict[str, Optional[int]]]): Values taking
            precedence over the file; None entries are ignored.

    Returns:
        Dict[str, int]: {"dsteps": int, "tsize": int}

    Raises:
        ValueError: When an option is missing or out of its limits.
    """
    section = dict(config.get("options", {}))
    for key, value in (overrides or {}).items():
        if value is not None:
            section[key] = value

    options = {}
    for key, (low, high) in OPTION_LIMITS.items():
        value = section.get(key)
        if not isinstance(value, int) or isinstance(value, bool) or not low <= value <= high:
            raise ValueError(
                f"Option '{key}' must be an integer in [{low}, {high}], got {value!r}."
            )
        options[key] = value
    return options


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert a FIS fuzzy model into CFS data for the embedded runtime."
    )
    parser.add_argument("fis", help="Path of the .fis model.")
    parser.add_argument(
        "-o", "--output",
        help="Path of the CFS file (default: the model path with a .cfs extension).",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Configuration file.")
    parser.add_argument("--dsteps", type=int, help="log2 of the defuzzification steps.")
    parser.add_argument("--tsize", type=int, help="log2 of the tabulated samples.")
    parser.add_argument("--log-dir", help="Directory of the log files.")
    parser.add_argument(
        "--suggest-ranges",
        action="store_true",
        help="Log the suggested range of every Sugeno output.",
    )
    return parser


def main(argv=None) -> int:
    """
    Runs one conversion. Returns the process exit code.
    """
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    log_cfg = config.get("logging", {})
    setup_logging(
        log_dir=args.log_dir or log_cfg.get("log_dir", "logs"),
        log_level=getattr(logging, str(log_cfg.get("level", "DEBUG")).upper()),
        console_level=getattr(logging, str(log_cfg.get("console_level", "INFO")).upper()),
    )
    main_log = logging.getLogger("main")
    main_log.info("Configuration file '%s' loaded.", args.config)

    try:
        options = options_from_config(config, {"dsteps": args.dsteps, "tsize": args.tsize})
    except ValueError as e:
        main_log.error("%s", e)
        return 2

    output_path = args.output or os.path.splitext(args.fis)[0] + ".cfs"

    try:
        converter = Converter(parse_fis(args.fis))
        if args.suggest_ranges:
            for index, (range_min, range_max) in converter.suggested_ranges().items():
                main_log.info("Output %s: suggested range [%s, %s].", index, range_min, range_max)
        cfs_data = converter.to_cfs(options)
    except UFuzzyError as e:
        main_log.error("%s", e)
        return 1
    except OSError as e:
        main_log.error("Can't read '%s': %s", args.fis, e.strerror)
        return 1

    with open(output_path, "wb") as f:
        f.write(to_bytes(cfs_data))
    main_log.info("Wrote %d bytes to '%s'.", len(cfs_data), output_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
