"""
Sudoku Backtracking Benchmark
Runs one of the backtracking strategies (naive, pruned, sorted/MRV) either on
a single puzzle (test mode) or on a whole dataset (dataset mode) and reports
solve times.

"""

import argparse
import csv
import os
import shutil
import sys
import time
from datetime import datetime
from multiprocessing import Pool, cpu_count

import numpy as np
from tqdm import tqdm

from sudoku_backtracking import DEFAULT_STRATEGY, STRATEGIES, get_strategy
from sudoku_grid import ParseError, parse_sudoku

# --- CONFIGURATION ---

DEFAULT_CSV = 'sudoku-3m.csv'

RESULTS_DIR = 'results'

# Puzzle solved by test mode when no --puzzle is given
DEFAULT_PUZZLE = ".......1.4.........2...........5.4.7..8...3....1.9....3..4..2...5.1........8.6..."

FIELDNAMES = ['id', 'puzzle', 'solution', 'clues', 'difficulty', 'solve_time', 'computed_solution']

CATEGORIES = ['Easy', 'Medium', 'Hard']

# --- END CONFIGURATION ---


def empty_stats():
    return {
        'total': 0,
        'solved': 0,
        'failed': 0,
        'correct': 0,
        'incorrect': 0,
        'errors': 0,
        'total_time': 0.0,
        'longest_time': 0.0,
    }


def merge_stats(stats, chunk_stats):
    """Add the counters of chunk_stats into stats (in place) and return stats."""
    for key in ('total', 'solved', 'failed', 'correct', 'incorrect', 'errors', 'total_time'):
        stats[key] += chunk_stats.get(key, 0)
    stats['longest_time'] = max(stats['longest_time'], chunk_stats.get('longest_time', 0.0))
    return stats


def read_puzzles(path, max_puzzles=None):
    """
    Read puzzle rows from a CSV dataset or a plain text file.

    CSV files need a 'puzzle' column ('id', 'solution', 'clues' and
    'difficulty' are optional). Any other file is read as one puzzle per line,
    blank lines skipped, and numbered from 1.

    Args:
        path: Path to the input file
        max_puzzles: Maximum number of puzzles to read (None for all)

    Returns:
        List of row dictionaries
    """
    rows = []
    with open(path, 'r', newline='') as input_file:
        if path.endswith('.csv'):
            reader = csv.DictReader(input_file)
            if reader.fieldnames is None or 'puzzle' not in reader.fieldnames:
                raise ValueError(f"CSV must contain a 'puzzle' column: {path}")
            source = reader
        else:
            source = ({'id': str(number), 'puzzle': line.strip()}
                      for number, line in enumerate(input_file, start=1) if line.strip())

        for row in source:
            rows.append(row)
            if max_puzzles and len(rows) >= max_puzzles:
                break
    return rows


def solve_row(row, method):
    """
    Solve a single dataset row.

    Parsing is excluded from the timing; only the strategy call is measured.

    Args:
        row: Dictionary with at least a 'puzzle' entry
        method: Strategy name

    Returns:
        Tuple of (output_row, result) where result is the SolveResult,
        or None if the puzzle could not be parsed
    """
    output_row = {field: row.get(field) or '' for field in FIELDNAMES}
    output_row['solve_time'] = '0.000000'
    output_row['computed_solution'] = ''

    try:
        grid = parse_sudoku(output_row['puzzle'])
    except ParseError as e:
        output_row['computed_solution'] = f'ERROR: {e}'
        return output_row, None

    strategy = get_strategy(method)
    start_time = time.perf_counter()
    result = strategy(grid)
    solve_time = time.perf_counter() - start_time

    output_row['solve_time'] = f"{solve_time:.6f}"
    if result.solved:
        output_row['computed_solution'] = result.grid.to_string()
    return output_row, result


def process_chunk(args):
    """
    Process a chunk of puzzles. Each worker writes to its own temp file.

    Args:
        args: Tuple of (chunk_id, chunk_rows, temp_dir, method)
            chunk_id: Unique identifier for this chunk
            chunk_rows: List of puzzle rows to process
            temp_dir: Directory for temporary output files
            method: Strategy name ('naive', 'pruned' or 'sorted')

    Returns:
        Tuple of (temp_file_path, stats_dict)
    """
    chunk_id, chunk_rows, temp_dir, method = args

    temp_file = os.path.join(temp_dir, f'chunk_{chunk_id}.csv')
    stats = empty_stats()

    with open(temp_file, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        writer.writeheader()

        for row in chunk_rows:
            stats['total'] += 1
            output_row, result = solve_row(row, method)

            if result is None:
                stats['errors'] += 1
            else:
                solve_time = float(output_row['solve_time'])
                stats['total_time'] += solve_time
                stats['longest_time'] = max(stats['longest_time'], solve_time)

                if result.solved:
                    stats['solved'] += 1
                    expected_solution = output_row['solution']
                    if expected_solution:
                        is_correct = output_row['computed_solution'] == expected_solution
                    else:
                        is_correct = result.grid.solved()
                    stats['correct' if is_correct else 'incorrect'] += 1
                else:
                    stats['failed'] += 1

            writer.writerow(output_row)

    return temp_file, stats


def default_output_path(input_path, method):
    """Build results/<input>_<method>_results_<timestamp>.csv"""
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    base_name = os.path.splitext(os.path.basename(input_path))[0]
    return os.path.join(RESULTS_DIR, f'{base_name}_{method}_results_{timestamp}.csv')


def solve_dataset(input_path, output_path=None, max_puzzles=None, num_workers=None,
                  method=DEFAULT_STRATEGY, quiet=False):
    """
    Solve all puzzles from a dataset and record results with timing.
    Chunks are processed in parallel when more than one worker is used.

    Args:
        input_path: Path to the CSV (or one-puzzle-per-line) file
        output_path: Path to output CSV file (default: results/<input>_<method>_results_<timestamp>.csv)
        max_puzzles: Maximum number of puzzles to solve (None for all)
        num_workers: Number of parallel workers (None for auto-detection)
        method: Strategy name
        quiet: Disable the progress bar

    Returns:
        Tuple of (statistics dictionary, output_path)
    """
    get_strategy(method)
    if num_workers is not None and num_workers < 1:
        raise ValueError("Number of workers must be at least 1")
    if max_puzzles is not None and max_puzzles < 1:
        raise ValueError("Maximum number of puzzles must be at least 1")

    if output_path is None:
        output_path = default_output_path(input_path, method)
    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    print(f"Reading puzzles (using {method} strategy)...")
    all_rows = read_puzzles(input_path, max_puzzles)
    total_puzzles = len(all_rows)
    print(f"Loaded {total_puzzles} puzzles")

    if num_workers is None:
        num_workers = cpu_count()
        print(f"Auto-detected {num_workers} CPU cores")

    temp_dir = os.path.join(output_dir or '.',
                            f'temp_{method}_{datetime.now().strftime("%Y%m%d_%H%M%S_%f")}')
    os.makedirs(temp_dir, exist_ok=True)

    # Split rows into chunks
    chunk_size = max(1, total_puzzles // num_workers)
    chunks = []
    for i in range(0, total_puzzles, chunk_size):
        chunks.append((i // chunk_size, all_rows[i:i + chunk_size], temp_dir, method))

    print(f"Processing {len(chunks)} chunks with {num_workers} workers...")

    stats = empty_stats()
    results = []
    try:
        with tqdm(total=total_puzzles, unit='puzzle', disable=quiet) as progress:
            if num_workers == 1:
                for chunk in chunks:
                    results.append(process_chunk(chunk))
                    progress.update(len(chunk[1]))
            else:
                with Pool(processes=num_workers) as pool:
                    for temp_file, chunk_stats in pool.imap_unordered(process_chunk, chunks):
                        results.append((temp_file, chunk_stats))
                        progress.update(chunk_stats['total'])

        temp_files = []
        for temp_file, chunk_stats in results:
            temp_files.append(temp_file)
            merge_stats(stats, chunk_stats)

        # Chunk files are concatenated back in chunk order
        print("Concatenating results...")
        temp_files.sort(key=lambda path: int(os.path.basename(path)[len('chunk_'):-len('.csv')]))
        with open(output_path, 'w', newline='') as output_file:
            writer = csv.DictWriter(output_file, fieldnames=FIELDNAMES)
            writer.writeheader()
            for temp_file in temp_files:
                with open(temp_file, 'r', newline='') as temp_f:
                    writer.writerows(csv.DictReader(temp_f))
    finally:
        print("Cleaning up temporary files...")
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(f"\nResults saved to: {output_path}")
    return stats, output_path


def get_difficulty_category(difficulty_str):
    """
    Map difficulty value to category.
    Easy < 1.0 <= Medium < 3.0 <= Hard

    Args:
        difficulty_str: String representation of difficulty value

    Returns:
        'Easy', 'Medium', 'Hard', or None if invalid
    """
    try:
        diff = float(difficulty_str)
    except (ValueError, TypeError):
        return None
    if 0.0 <= diff < 1.0:
        return 'Easy'
    elif 1.0 <= diff < 3.0:
        return 'Medium'
    elif 3.0 <= diff:
        return 'Hard'
    return None


def summarize_times(times):
    if not times:
        return {'Minimum': 0.0, 'Median': 0.0, 'Mean': 0.0, 'Maximum': 0.0, 'count': 0}
    times_np = np.array(times)
    return {
        'Minimum': float(np.min(times_np)),
        'Median': float(np.median(times_np)),
        'Mean': float(np.mean(times_np)),
        'Maximum': float(np.max(times_np)),
        'count': len(times_np),
    }


def process_metrics(results_csv_path):
    """
    Compute timing statistics by difficulty from a results CSV.
    Only solved puzzles are taken into account.

    Returns:
        Dictionary mapping 'Easy', 'Medium', 'Hard' and 'All' to statistics
    """
    difficulty_times = {category: [] for category in CATEGORIES}
    all_times = []

    with open(results_csv_path, 'r', newline='') as f:
        for row in csv.DictReader(f):
            computed_solution = row.get('computed_solution', '')
            solve_time_str = row.get('solve_time', '')
            if not computed_solution or computed_solution.startswith('ERROR') or not solve_time_str:
                continue

            solve_time = float(solve_time_str)
            all_times.append(solve_time)
            category = get_difficulty_category(row.get('difficulty', ''))
            if category:
                difficulty_times[category].append(solve_time)

    metrics = {category: summarize_times(difficulty_times[category]) for category in CATEGORIES}
    metrics['All'] = summarize_times(all_times)
    return metrics


def print_metrics_table(metrics, method=DEFAULT_STRATEGY):
    """
    Print CPU time statistics in table format.

    Args:
        metrics: Dictionary with timing statistics from process_metrics()
        method: Strategy name shown as the column header
    """
    print("\n" + "=" * 60)
    print("CPU Time (sec)")
    print("=" * 60)
    print(f"{'':<20} {method.capitalize():<15}")
    print("-" * 60)

    sections = [category for category in CATEGORIES if metrics[category]['count']] + ['All']
    for category in sections:
        stats = metrics[category]
        print(f"{category}:")
        print(f"  {'Minimum:':<18} {stats['Minimum']:<15.6f}")
        print(f"  {'Median:':<18} {stats['Median']:<15.6f}")
        print(f"  {'Mean:':<18} {stats['Mean']:<15.6f}")
        print(f"  {'Maximum:':<18} {stats['Maximum']:<15.6f}")
        if category != 'All':
            print("-" * 60)

    print("=" * 60)
    print(f"\nNote: Statistics based on {metrics['All']['count']} successfully solved puzzles")
    for category in CATEGORIES:
        count = metrics[category]['count']
        if count > 0:
            print(f"  {category}: {count} puzzles")


def print_final_statistics(stats):
    print("\n" + "=" * 50)
    print("Final Statistics:")
    print("=" * 50)
    print(f"Total puzzles processed: {stats['total']}")
    print(f"Successfully solved: {stats['solved']}")
    print(f"Failed to solve: {stats['failed']}")
    print(f"Correct solutions: {stats['correct']}")
    print(f"Incorrect solutions: {stats['incorrect']}")
    if stats['errors'] > 0:
        print(f"Errors encountered: {stats['errors']} (see computed_solution column for details)")
    print(f"Total solve time: {stats['total_time']:.6f}s")
    print(f"Longest solve time: {stats['longest_time']:.6f}s")
    if stats['total'] > 0:
        success_rate = (stats['solved'] / stats['total']) * 100
        print(f"Success rate: {success_rate:.2f}%")


def run_test(puzzle, method):
    """
    Solve one puzzle and print it, the time taken and the solution.

    Returns:
        Exit status: 0 when solved, 1 on a malformed puzzle, 2 when no solution exists
    """
    try:
        grid = parse_sudoku(puzzle)
    except ParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if method == 'naive':
        print("[WARN] The naive strategy revalidates the whole grid on every placement, "
              "it can take very long to complete")

    print(f"Testing {method} on:\n{grid}")

    start_time = time.perf_counter()
    result = get_strategy(method)(grid)
    elapsed = time.perf_counter() - start_time

    print(f"Took {elapsed:.6f}s")

    if result.solved:
        print(f"Solution:\n{result.grid}")
        return 0
    print("No solution found for sudoku")
    return 2


def build_parser():
    parser = argparse.ArgumentParser(description='Benchmark backtracking Sudoku solvers')
    parser.add_argument('--method', choices=list(STRATEGIES), default=DEFAULT_STRATEGY,
                        help=f'Solver strategy (default: {DEFAULT_STRATEGY})')

    # SUPPRESS keeps a method given before the subcommand when none follows it
    method_parent = argparse.ArgumentParser(add_help=False)
    method_parent.add_argument('--method', choices=list(STRATEGIES), default=argparse.SUPPRESS,
                               help=f'Solver strategy (default: {DEFAULT_STRATEGY})')
    subparsers = parser.add_subparsers(dest='mode')

    test_parser = subparsers.add_parser('test', parents=[method_parent],
                                        help='Solve a single puzzle')
    test_parser.add_argument('--puzzle', default=DEFAULT_PUZZLE,
                             help='Puzzle string (default: a built-in 9x9 puzzle)')

    dataset_parser = subparsers.add_parser('dataset', parents=[method_parent],
                                           help='Solve every puzzle of a dataset')
    dataset_parser.add_argument('--csv', default=DEFAULT_CSV,
                                help=f'Path to CSV or one-puzzle-per-line file (default: {DEFAULT_CSV})')
    dataset_parser.add_argument('--output', default=None,
                                help='Path to output CSV file (default: results/input_method_results_timestamp.csv)')
    dataset_parser.add_argument('--max', type=int, default=None,
                                help='Maximum number of puzzles to solve (default: all)')
    dataset_parser.add_argument('--workers', type=int, default=None,
                                help='Number of parallel workers (default: auto-detect CPU count)')
    dataset_parser.add_argument('--quiet', action='store_true',
                                help='Do not show the progress bar')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.mode in (None, 'test'):
        puzzle = getattr(args, 'puzzle', DEFAULT_PUZZLE)
        return run_test(puzzle, args.method)

    if not os.path.exists(args.csv):
        print(f"Error: File not found: {args.csv}", file=sys.stderr)
        return 1

    print(f"Solving puzzles from {args.csv}...")
    print(f"Using {args.method} strategy")
    if args.max:
        print(f"Limiting to first {args.max} puzzles")
    if args.workers:
        print(f"Using {args.workers} workers")
    print()

    try:
        stats, results_path = solve_dataset(
            args.csv,
            output_path=args.output,
            max_puzzles=args.max,
            num_workers=args.workers,
            method=args.method,
            quiet=args.quiet,
        )
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_final_statistics(stats)

    print("\nProcessing metrics...")
    metrics = process_metrics(results_path)
    print_metrics_table(metrics, args.method)
    return 0


if __name__ == "__main__":
    sys.exit(main())
