"""
Batch quoting for a folder of STL parts.

Provides:
- Folder-based batch quoting (one Quote per STL file)
- Progress tracking and reporting
- Parallel processing support
- Per-file error capture

Usage:
    from stl_quote.batch import batch_quote
    from stl_quote.pricing.estimator import CostInputs

    results = batch_quote(
        input_dir="./parts",
        inputs=CostInputs("steel", 5, 10),
        parallel=True,
    )
    print(results.summary())
"""

import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from stl_quote.errors import QuoteError
from stl_quote.pipeline import quote_file
from stl_quote.pricing.estimator import CostInputs
from stl_quote.pricing.quote import Quote

logger = logging.getLogger(__name__)


@dataclass
class QuoteResult:
    """Result of quoting a single file."""
    input_path: Path
    quote: Optional[Quote] = None
    success: bool = False
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def status(self) -> str:
        return "OK" if self.success else "FAILED"


@dataclass
class BatchResult:
    """Result of a batch run."""
    results: List[QuoteResult] = field(default_factory=list)
    total_duration_seconds: float = 0.0

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def success_rate(self) -> float:
        """Success rate as percentage."""
        if self.total == 0:
            return 0.0
        return 100.0 * self.successful / self.total

    @property
    def total_cost(self) -> float:
        """Sum of totals over successfully quoted parts."""
        return sum(r.quote.total_cost for r in self.results if r.success and r.quote)

    def summary(self) -> str:
        """Generate human-readable summary."""
        lines = [
            "Batch Quote Summary",
            "=" * 40,
            f"Total files:     {self.total}",
            f"Successful:      {self.successful}",
            f"Failed:          {self.failed}",
            f"Success rate:    {self.success_rate:.1f}%",
            f"Total cost:      {self.total_cost:.2f}",
            f"Total time:      {self.total_duration_seconds:.1f}s",
            "",
        ]

        if self.successful > 0:
            lines.append("Quoted files:")
            for r in self.results:
                if r.success and r.quote:
                    lines.append(f"  - {r.input_path.name}: {r.quote.total_cost:.2f}")

        if self.failed > 0:
            lines.append("Failed files:")
            for r in self.results:
                if not r.success:
                    lines.append(f"  - {r.input_path.name}: {r.error}")

        return "\n".join(lines)

    def to_dict(self, precision: int = 2) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'total': self.total,
            'successful': self.successful,
            'failed': self.failed,
            'success_rate': self.success_rate,
            'total_cost': self.total_cost,
            'total_duration_seconds': self.total_duration_seconds,
            'results': [
                {
                    'input': str(r.input_path),
                    'success': r.success,
                    'error': r.error,
                    'duration': r.duration_seconds,
                    'quote': r.quote.to_dict(precision) if r.quote else None,
                }
                for r in self.results
            ],
        }


def find_stl_files(
    input_dir: Union[str, Path],
    pattern: str = "*.stl",
    recursive: bool = False,
) -> List[Path]:
    """Find STL files in directory.

    Args:
        input_dir: Directory to search
        pattern: Glob pattern for STL files
        recursive: Search subdirectories if True

    Returns:
        Sorted list of STL file paths
    """
    input_dir = Path(input_dir)

    if not input_dir.exists():
        raise FileNotFoundError(f"Input directory not found: {input_dir}")

    if not input_dir.is_dir():
        raise NotADirectoryError(f"Not a directory: {input_dir}")

    search = input_dir.rglob if recursive else input_dir.glob
    files = list(search(pattern))

    # Also check for uppercase extension
    pattern_upper = pattern.replace('.stl', '.STL')
    if pattern_upper != pattern:
        files.extend(search(pattern_upper))

    files = sorted(set(files))

    logger.info("Found %d STL files in %s", len(files), input_dir)
    return files


def quote_single_file(input_path: Path, inputs: CostInputs) -> QuoteResult:
    """Analyze and price one STL file.

    Load and validation failures are recorded on the result, never raised.
    """
    start_time = time.perf_counter()
    result = QuoteResult(input_path=input_path)

    try:
        result.quote = quote_file(input_path, inputs)
        result.success = True
    except (QuoteError, OSError) as e:
        result.error = str(e)
        logger.error("Failed to quote %s: %s", input_path.name, e)

    result.duration_seconds = time.perf_counter() - start_time
    return result


def _report(i: int, total: int, result: QuoteResult) -> None:
    logger.info(
        "[%d/%d] %s: %s (%.1fs)",
        i, total, result.input_path.name,
        result.status, result.duration_seconds
    )


def batch_quote(
    input_dir: Union[str, Path],
    inputs: CostInputs,
    pattern: str = "*.stl",
    recursive: bool = False,
    parallel: bool = False,
    max_workers: Optional[int] = None,
    progress_callback: Optional[Callable[[int, int, QuoteResult], None]] = None,
) -> BatchResult:
    """Quote every STL file in a directory with the same pricing inputs.

    Args:
        input_dir: Directory containing STL files
        inputs: Material, thickness and quantity applied to each part
        pattern: Glob pattern for STL files
        recursive: Search subdirectories
        parallel: Quote files on a thread pool
        max_workers: Maximum parallel workers (None = executor default)
        progress_callback: Called after each file: (current, total, result)

    Returns:
        BatchResult; results keep the sorted file order in both modes
    """
    start_time = time.perf_counter()

    stl_files = find_stl_files(input_dir, pattern, recursive)

    if not stl_files:
        logger.warning("No STL files found in %s", input_dir)
        return BatchResult(total_duration_seconds=time.perf_counter() - start_time)

    logger.info(
        "Starting batch quote: %d files, parallel=%s",
        len(stl_files), parallel
    )

    total = len(stl_files)
    by_path: Dict[Path, QuoteResult] = {}

    if parallel:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(quote_single_file, path, inputs): path
                for path in stl_files
            }
            for i, future in enumerate(as_completed(futures), 1):
                result = future.result()
                by_path[futures[future]] = result
                if progress_callback:
                    progress_callback(i, total, result)
                _report(i, total, result)
    else:
        for i, path in enumerate(stl_files, 1):
            result = quote_single_file(path, inputs)
            by_path[path] = result
            if progress_callback:
                progress_callback(i, total, result)
            _report(i, total, result)

    batch_result = BatchResult(
        results=[by_path[path] for path in stl_files],
        total_duration_seconds=time.perf_counter() - start_time,
    )

    logger.info(
        "Batch quote complete: %d/%d successful (%.1f%%) in %.1fs",
        batch_result.successful, batch_result.total,
        batch_result.success_rate, batch_result.total_duration_seconds
    )

    return batch_result


def batch_quote_cli(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for batch quoting."""
    import argparse

    from stl_quote.logging_config import setup_logging

    parser = argparse.ArgumentParser(
        description="Quote every STL file in a directory"
    )
    parser.add_argument("input_dir", help="Directory containing STL files")
    parser.add_argument("-m", "--material", default="steel", help="Material name")
    parser.add_argument("-t", "--thickness", type=float, default=10.0,
                        help="Thickness in mm (default: 10)")
    parser.add_argument("-q", "--quantity", type=int, default=1,
                        help="Quantity per part (default: 1)")
    parser.add_argument("-p", "--pattern", default="*.stl",
                        help="File pattern (default: *.stl)")
    parser.add_argument("-r", "--recursive", action="store_true",
                        help="Search subdirectories")
    parser.add_argument("--parallel", action="store_true",
                        help="Use parallel processing")
    parser.add_argument("-j", "--jobs", type=int, dest="max_workers",
                        help="Maximum parallel jobs")
    parser.add_argument("--json", action="store_true",
                        help="Print results as JSON")

    args = parser.parse_args(argv)

    setup_logging(level=logging.INFO)

    try:
        inputs = CostInputs(args.material, args.thickness, args.quantity)
        result = batch_quote(
            input_dir=args.input_dir,
            inputs=inputs,
            pattern=args.pattern,
            recursive=args.recursive,
            parallel=args.parallel,
            max_workers=args.max_workers,
        )
    except (QuoteError, OSError) as e:
        logger.error("Batch quote failed: %s", e)
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print("\n" + result.summary())

    return 0 if result.failed == 0 else 1


if __name__ == "__main__":
    import sys
    sys.exit(batch_quote_cli())
