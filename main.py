"""
Entry point: price a part from an STL file.

Usage:
    python main.py <stl_file> [--material M] [--thickness T] [--quantity Q]

Examples:
    python main.py bracket.stl --material steel --thickness 10 --quantity 5
    python main.py bracket.stl --json --config project.stlquote.json
    python main.py --price-only --material brass --thickness 4 --quantity 20
    python main.py cube.stl --make-box 10 10 10 --binary
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

# Keep non-ASCII file names printable on consoles without UTF-8
if sys.stdout.encoding and sys.stdout.encoding.lower() not in ('utf-8', 'utf8'):
    sys.stdout.reconfigure(encoding='utf-8', errors='replace')
if sys.stderr.encoding and sys.stderr.encoding.lower() not in ('utf-8', 'utf8'):
    sys.stderr.reconfigure(encoding='utf-8', errors='replace')

from stl_quote.errors import QuoteError
from stl_quote.io.sample_parts import write_box_stl
from stl_quote.logging_config import setup_logging
from stl_quote.pipeline import quote_file, quote_inputs
from stl_quote.pricing.estimator import CostInputs
from stl_quote.pricing.quote import Quote
from stl_quote.project_config import ProjectConfig, load_config

logger = logging.getLogger("stl_quote.cli")


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def run_pipeline(
    stl_path: Optional[str],
    material: str,
    thickness: float,
    quantity: int,
    price_only: bool = False,
) -> Quote:
    """Validate inputs, analyze the part (unless price_only) and price it.

    Raises:
        QuoteError: on rejected input, parse failure or invalid parameters
        ValueError: if no STL file is given for a full quote
    """
    inputs = CostInputs(material, thickness, quantity)
    if price_only:
        return quote_inputs(inputs)
    if not stl_path:
        raise ValueError("An STL file is required unless --price-only is given")
    return quote_file(stl_path, inputs)


def _render(quote: Quote, config: ProjectConfig, as_json: bool) -> str:
    if as_json or config.output.format == "json":
        return json.dumps(quote.to_dict(config.output.precision), indent=2, ensure_ascii=False)
    return quote.summary()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Estimate the manufacturing cost of a part from an STL file.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "stl_file",
        nargs="?",
        help="Path to the input STL file (output path with --make-box).",
    )
    parser.add_argument(
        "--material", "-m",
        default="steel",
        help="Material name, e.g. steel, aluminum, brass, copper (default: steel).",
    )
    parser.add_argument(
        "--thickness", "-t",
        default="10",
        help="Part thickness in mm (default: 10).",
    )
    parser.add_argument(
        "--quantity", "-q",
        default="1",
        help="Number of parts (default: 1).",
    )
    parser.add_argument(
        "--price-only",
        action="store_true",
        dest="price_only",
        help="Skip geometry analysis and print the cost breakdown only.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the quote as JSON.",
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to a .stlquote.json configuration file.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--log-json",
        default=None,
        dest="log_json",
        help="Also write JSON-lines logs to this file.",
    )
    parser.add_argument(
        "--make-box",
        nargs=3,
        type=float,
        metavar=("W", "H", "D"),
        dest="make_box",
        help="Write a W x H x D mm box to stl_file and exit.",
    )
    parser.add_argument(
        "--binary",
        action="store_true",
        help="With --make-box, write binary STL instead of ASCII.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)

    config = load_config(
        part_path=args.stl_file,
        explicit_config=args.config,
    )

    try:
        config.validate()
        setup_logging(
            level=logging.DEBUG if args.verbose else config.log_level,
            json_file=args.log_json or config.logging.json_file or None,
        )

        if args.make_box:
            if not args.stl_file:
                raise ValueError("--make-box needs an output STL path")
            width, height, depth = args.make_box
            path = write_box_stl(args.stl_file, width, height, depth, binary=args.binary)
            print(f"Sample part written to {path}")
            return 0

        quote = run_pipeline(
            args.stl_file,
            material=args.material,
            thickness=args.thickness,
            quantity=args.quantity,
            price_only=args.price_only,
        )
        print(_render(quote, config, args.json))
    except QuoteError as exc:
        logger.critical("Quote failed: %s", exc)
        return 1
    except ValueError as exc:
        logger.critical("Invalid arguments or configuration: %s", exc)
        return 1
    except Exception as exc:
        logger.critical("Unexpected error: %s", exc, exc_info=True)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
