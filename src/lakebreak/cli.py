"""
Mutation-point analysis of a wide lake-temperature table.

Usage:
    lakebreak <table.csv> [options]

    Or in Python:
    from lakebreak.cli import analyze_table
    results = analyze_table(text, method='pettitt', min_segment_length=5)
"""

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

from .detect import Method
from .exceptions import SchemaError
from .ingest import Aggregation
from .pipeline import run_pipeline


def analyze_table(table_text: str,
                  id_column: str = 'lake_id',
                  agg: str = 'avg',
                  clip_range=None,
                  smooth_window: int = 1,
                  diff_order: int = 1,
                  method: str = 'pettitt',
                  min_segment_length: int = 5,
                  verbose: bool = True) -> dict:
    """
    Run the full pipeline and optionally print a report.

    Args:
        table_text: Wide CSV text
        id_column: Entity id column header
        agg: Aggregation mode
        clip_range: Inclusive (start_year, end_year)
        smooth_window: Moving-average window (1 = none)
        diff_order: Differencing passes (0 = none)
        method: Detection method
        min_segment_length: Minimum points on each side of the breakpoint
        verbose: Print summary and per-series table

    Returns:
        Output of run_pipeline()
    """
    output = run_pipeline(
        table_text,
        id_column=id_column,
        agg=agg,
        clip_range=clip_range,
        smooth_window=smooth_window,
        diff_order=diff_order,
        method=method,
        min_segment_length=min_segment_length,
    )

    if verbose:
        summary = output['summary']
        print(f"\n{'='*80}")
        print("Lake mutation-point analysis")
        print(f"{'='*80}\n")
        print(f"Aggregation:        {summary['agg']}")
        print(f"Smoothing window:   {summary['smooth_window']}")
        print(f"Differencing order: {summary['diff_order']}")
        print(f"Method:             {summary['method']}")
        print(f"Min segment length: {summary['min_segment_length']}")
        print(f"\nSeries ingested:    {summary['num_series']}")
        print(f"Series processed:   {summary['num_processed']}")
        print(f"Mutation points:    {summary['num_mutations']}")
        print(f"\n{'='*80}\n")

        results_df = output['results']
        if not results_df.empty:
            print("PER-SERIES MUTATION POINTS")
            print(f"{'-'*80}")
            pd.set_option('display.max_rows', None)
            pd.set_option('display.width', 150)
            print(results_df.round(4).to_string(index=False))
            print(f"\n{'='*80}\n")

    return output


def save_results(output: dict, output_dir: str = './results'):
    """
    Save analysis results to files.

    Args:
        output: Dictionary from analyze_table()
        output_dir: Output directory
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    output['results'].to_csv(output_path / 'mutation_points.csv', index=False)
    print(f"Saved mutation points to {output_path / 'mutation_points.csv'}")

    pd.DataFrame([output['summary']]).to_csv(output_path / 'summary.csv', index=False)
    print(f"Saved summary to {output_path / 'summary.csv'}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Detect one mutation point per lake in a wide temperature table',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument('input', type=str, help='Wide CSV table (one column per date)')
    parser.add_argument('--id-column', type=str, default='lake_id',
                        help='Id column header (default: lake_id)')
    parser.add_argument('--agg', type=str, default='avg',
                        choices=[a.value for a in Aggregation],
                        help='Yearly aggregation or season (default: avg)')
    parser.add_argument('--clip', type=int, nargs=2, metavar=('START', 'END'), default=None,
                        help='Inclusive year range to keep')
    parser.add_argument('--smooth', type=int, default=1,
                        help='Moving-average window (default: 1, no smoothing)')
    parser.add_argument('--diff', type=int, default=1,
                        help='Differencing order (default: 1)')
    parser.add_argument('--method', type=str, default='pettitt',
                        choices=[m.value for m in Method],
                        help='Detection method (default: pettitt)')
    parser.add_argument('--min-seg', type=int, default=5,
                        help='Minimum segment length (default: 5)')
    parser.add_argument('--output-dir', type=str, default='./results',
                        help='Output directory for results (default: ./results)')
    parser.add_argument('--quiet', action='store_true',
                        help='Suppress verbose output')
    parser.add_argument('--verbose', action='store_true',
                        help='Log pipeline decisions')
    return parser


def main(argv=None):
    """Command-line interface."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )

    try:
        table_text = Path(args.input).read_text(encoding='utf-8')
    except OSError as e:
        print(f"Error loading table: {e}")
        sys.exit(1)

    try:
        output = analyze_table(
            table_text,
            id_column=args.id_column,
            agg=args.agg,
            clip_range=tuple(args.clip) if args.clip else None,
            smooth_window=args.smooth,
            diff_order=args.diff,
            method=args.method,
            min_segment_length=args.min_seg,
            verbose=not args.quiet
        )
    except (SchemaError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    save_results(output, args.output_dir)

    print("\nAnalysis complete!")


if __name__ == '__main__':
    main()
