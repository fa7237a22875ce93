"""
Sudoku Backtracking Solvers
Three interchangeable depth-first strategies:

- naive : first empty cell, digits 1..N, revalidates the whole grid on every placement
- pruned: constraint-propagated search, first open cell in row-major order
- sorted: constraint-propagated search, minimum-remaining-values (MRV) cell first,
          forced single-candidate cells are fixed without branching

Every strategy takes a Grid and returns a SolveResult. solved=True carries the
completed grid, solved=False carries the last explored grid. An unsolvable
puzzle is a normal result, never an exception. The caller's grid is not modified.

"""

import sys
from collections import namedtuple

from augmented_grid import AugmentedGrid
from sudoku_grid import parse_sudoku


SolveResult = namedtuple('SolveResult', ['solved', 'grid'])

# Frames needed on top of the search depth for the caller's own stack
RECURSION_HEADROOM = 200


def _ensure_recursion_limit(depth):
    """Raise the interpreter recursion limit if a search may recurse depth levels."""
    needed = depth + RECURSION_HEADROOM
    if sys.getrecursionlimit() < needed:
        sys.setrecursionlimit(needed)


def naive_dfs(grid):
    """
    Solve a Sudoku by plain backtracking.

    Finds the first empty cell in row-major order and tries every digit in
    ascending order, recursing whenever the whole grid is still valid.
    No candidate bookkeeping at all; used as the correctness baseline.

    Args:
        grid: Grid instance to solve

    Returns:
        SolveResult(solved, grid)
    """
    sudoku = grid.copy()
    if not sudoku.valid():
        return SolveResult(False, sudoku)

    _ensure_recursion_limit(sudoku.order * sudoku.order)
    return SolveResult(_naive_backtrack(sudoku), sudoku)


def _naive_backtrack(sudoku):
    cell = sudoku.first_empty()
    if cell is None:
        return sudoku.solved()

    for value in range(1, sudoku.order + 1):
        sudoku[cell] = value
        if sudoku.valid() and _naive_backtrack(sudoku):
            return True

    sudoku[cell] = 0
    return False


def _prepare(grid):
    """Build the propagated augmented grid, or None if the givens already clash."""
    if not grid.valid():
        return None
    _ensure_recursion_limit(grid.order * grid.order)
    return AugmentedGrid.from_grid(grid).propagate_initial()


def pruned_dfs(grid):
    """
    Solve a Sudoku by backtracking over candidate sets.

    The givens are propagated once, then the first open cell (row-major) is
    tried with each of its candidates in ascending order. Every branch works
    on its own copy of the augmented grid, so backtracking is just dropping
    the copy.

    Args:
        grid: Grid instance to solve

    Returns:
        SolveResult(solved, grid)
    """
    augmented = _prepare(grid)
    if augmented is None:
        return SolveResult(False, grid.copy())

    solved, last = _pruned_backtrack(augmented)
    return SolveResult(solved, last.to_grid())


def _pruned_backtrack(augmented):
    cell = augmented.first_unresolved()
    if cell is None:
        return True, augmented

    last = augmented
    for digit in augmented.candidates(cell):
        solved, last = _pruned_backtrack(augmented.fix(cell, digit))
        if solved:
            return True, last

    return False, last


def sorted_dfs(grid):
    """
    Solve a Sudoku with MRV ordering and constraint propagation.

    At each step the open cell with the fewest candidates is chosen (first in
    row-major order on ties). A cell with a single candidate is fixed in place
    without branching. Otherwise each candidate is placed in ascending order
    and reverted through its undo record when the branch fails, so a single
    augmented grid serves the whole search.

    Args:
        grid: Grid instance to solve

    Returns:
        SolveResult(solved, grid)
    """
    augmented = _prepare(grid)
    if augmented is None:
        return SolveResult(False, grid.copy())

    if _sorted_backtrack(augmented):
        return SolveResult(True, augmented.to_grid())
    return SolveResult(False, augmented.to_grid())


def _sorted_backtrack(augmented):
    forced = []
    while True:
        cell = augmented.most_constrained()
        if cell is None:
            return True

        candidates = augmented.candidates(cell)
        if len(candidates) != 1:
            break
        forced.append((cell, augmented.place(cell, candidates[0])))

    for digit in list(candidates):
        record = augmented.place(cell, digit)
        if _sorted_backtrack(augmented):
            return True
        augmented.undo(cell, record)

    # Dead end: revert the forced placements made at this level too
    for forced_cell, record in reversed(forced):
        augmented.undo(forced_cell, record)
    return False


STRATEGIES = {
    'naive': naive_dfs,
    'pruned': pruned_dfs,
    'sorted': sorted_dfs,
}

DEFAULT_STRATEGY = 'sorted'


def get_strategy(name):
    """
    Look up a strategy by name.

    Raises:
        ValueError: if name is not one of STRATEGIES
    """
    try:
        return STRATEGIES[name]
    except KeyError:
        raise ValueError(f"Unknown strategy '{name}'. "
                         f"Choose one of: {', '.join(STRATEGIES)}") from None


def solve_sudoku(puzzle_string, method=DEFAULT_STRATEGY):
    """
    Parse and solve a puzzle string with the given strategy.

    Returns:
        SolveResult(solved, grid)
    """
    return get_strategy(method)(parse_sudoku(puzzle_string))
