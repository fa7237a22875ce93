"""
Augmented Sudoku grid used by the propagating backtracking strategies

Every cell is either fixed (an int digit) or still open (a SortedSet of the
digits that are consistent with its fixed peers). Fixing a digit removes it
from the candidate sets of all peers (same row, same column, same box).

Branches can be explored in two ways:
- fix() returns an independent copy with the cell fixed (copy-on-branch)
- place() fixes the cell in place and returns an undo record for undo()

"""

from functools import lru_cache

from sortedcontainers import SortedSet

from sudoku_grid import Grid


@lru_cache(maxsize=None)
def peers(order):
    """
    Compute the peers of every cell for a grid of the given order.

    Cells in the same row, column, or box are peers. A cell is never its own peer.

    Args:
        order: Side length of the grid (a perfect square)

    Returns:
        Dictionary mapping (row, col) to a tuple of peer (row, col) positions
    """
    cell_size = int(round(order ** 0.5))
    neighbors = {}
    for i in range(order):
        for j in range(order):
            cell_peers = []
            # Row then column
            cell_peers.extend((i, col) for col in range(order) if col != j)
            cell_peers.extend((row, j) for row in range(order) if row != i)
            # Box cells not already covered by the row or column
            box_row_start = (i // cell_size) * cell_size
            box_col_start = (j // cell_size) * cell_size
            for box_row in range(box_row_start, box_row_start + cell_size):
                for box_col in range(box_col_start, box_col_start + cell_size):
                    if box_row != i and box_col != j:
                        cell_peers.append((box_row, box_col))
            neighbors[(i, j)] = tuple(cell_peers)
    return neighbors


class AugmentedGrid:
    """
    Grid where each cell is a fixed digit or the set of its remaining candidates.

    cells    : list of rows; each entry is an int (fixed) or a SortedSet (possible)
    order    : side length of the grid
    cell_size: side length of a box
    """

    def __init__(self, cells, order, cell_size):
        assert len(cells) == order and all(len(row) == order for row in cells), \
            "Cells is not of size order * order"
        assert cell_size * cell_size == order, "cell_size must be sqrt(order)"
        self.cells = cells
        self.order = order
        self.cell_size = cell_size
        self._peers = peers(order)

    @classmethod
    def from_grid(cls, grid):
        """
        Build an augmented grid from a Grid.

        Filled cells become fixed, empty cells start with every digit 1..order
        as a candidate. No propagation is done here, see propagate_initial().
        """
        all_digits = range(1, grid.order + 1)
        cells = []
        for row in grid.values:
            cells.append([int(val) if val else SortedSet(all_digits) for val in row])
        return cls(cells, grid.order, grid.cell_size)

    def copy(self):
        cells = [[cell if isinstance(cell, int) else cell.copy() for cell in row]
                 for row in self.cells]
        return AugmentedGrid(cells, self.order, self.cell_size)

    def __getitem__(self, cell):
        row, col = cell
        return self.cells[row][col]

    def is_fixed(self, cell):
        return isinstance(self[cell], int)

    def candidates(self, cell):
        """Return the candidate set of an open cell (empty SortedSet for a fixed cell)."""
        value = self[cell]
        return SortedSet() if isinstance(value, int) else value

    def _remove_from_peers(self, cell, digit):
        """Remove digit from every open peer of cell. Returns the peers that lost it."""
        removed = []
        for row, col in self._peers[cell]:
            peer = self.cells[row][col]
            if not isinstance(peer, int) and digit in peer:
                peer.remove(digit)
                removed.append((row, col))
        return removed

    def propagate_initial(self):
        """
        Remove the digit of every fixed cell from the candidates of its peers.

        Run once after construction so that the givens prune the search space
        before any branching. Running it again changes nothing.
        """
        for i in range(self.order):
            for j in range(self.order):
                value = self.cells[i][j]
                if isinstance(value, int):
                    self._remove_from_peers((i, j), value)
        return self

    def place(self, cell, digit):
        """
        Fix cell to digit in place and propagate to its peers.

        The digit is not checked against the cell's candidates; callers only
        place digits taken from candidates(cell).

        Args:
            cell: (row, col) position of an open cell
            digit: Digit to fix

        Returns:
            Undo record (previous candidates, peers that lost the digit) for undo()
        """
        row, col = cell
        previous = self.cells[row][col]
        self.cells[row][col] = digit
        return previous, self._remove_from_peers(cell, digit)

    def undo(self, cell, record):
        """Revert a place() call given its undo record."""
        previous, removed = record
        row, col = cell
        digit = self.cells[row][col]
        for peer_row, peer_col in removed:
            self.cells[peer_row][peer_col].add(digit)
        self.cells[row][col] = previous

    def fix(self, cell, digit):
        """
        Return a copy of this grid with cell fixed to digit.

        The receiver is left untouched; digit is removed from the candidates
        of the copy's peers.
        """
        new_grid = self.copy()
        new_grid.place(cell, digit)
        return new_grid

    def unresolved(self):
        """Yield every open cell in row-major order."""
        for i, row in enumerate(self.cells):
            for j, value in enumerate(row):
                if not isinstance(value, int):
                    yield i, j

    def first_unresolved(self):
        return next(self.unresolved(), None)

    def most_constrained(self):
        """
        Minimum-remaining-values selection.

        Returns:
            The open cell with the fewest candidates (first in row-major order
            on ties), or None if every cell is fixed
        """
        best_cell = None
        best_size = None
        for i, row in enumerate(self.cells):
            for j, value in enumerate(row):
                if isinstance(value, int):
                    continue
                size = len(value)
                if best_size is None or size < best_size:
                    best_cell, best_size = (i, j), size
                    if size == 0:
                        # Dead end, nothing can beat it
                        return best_cell
        return best_cell

    def to_grid(self):
        """Convert back to a Grid; open cells become empty."""
        return Grid([[value if isinstance(value, int) else 0 for value in row]
                     for row in self.cells])
