"""
Sudoku Grid: dense N×N board of cell values

Cells hold an integer digit in 1..N, or 0 for an empty cell.
N (the order) must be a perfect square; its square root is the box size.
Supports parsing from / formatting to the single-line puzzle text and the
row/column/box uniqueness check used by the naive backtracking strategy.

"""

import numpy as np


# Smallest and largest supported box sizes (orders 4 through 225)
MIN_CELL_SIZE = 2
MAX_CELL_SIZE = 15

# One character per cell only covers values up to 35 ('Z'), so the
# textual format stops at order 25
MAX_TEXT_CELL_SIZE = 5

EMPTY_CHAR = '.'


class ParseError(ValueError):
    """Raised when a puzzle string cannot be turned into a Grid."""


def _char_to_val(char):
    """
    Convert a puzzle character to its integer value.

    Args:
        char: Character from puzzle string ('.', '1'-'9', 'A'-'Z')

    Returns:
        Integer value (1-35), or 0 for an empty cell

    Raises:
        ParseError: if the character is not a valid cell character
    """
    if char == EMPTY_CHAR:
        return 0
    if '1' <= char <= '9':
        return int(char)
    if 'A' <= char <= 'Z':
        return ord(char) - ord('A') + 10
    if 'a' <= char <= 'z':
        return ord(char) - ord('a') + 10
    raise ParseError(f"Invalid character in puzzle string: '{char}'")


def _val_to_char(val):
    """
    Convert an integer value to its character representation.

    Args:
        val: Integer value (0-35), 0 meaning empty

    Returns:
        Character representation ('.' for 0, '1'-'9' for 1-9, 'A'-'Z' for 10-35)
    """
    if val == 0:
        return EMPTY_CHAR
    if 1 <= val <= 9:
        return str(val)
    if 10 <= val <= 35:
        return chr(ord('A') + val - 10)
    raise ValueError(f"Value {val} has no single-character representation")


def _cell_size_for(order):
    """Return the integer square root of order, or None if order is not a perfect square."""
    cell_size = int(round(order ** 0.5))
    if cell_size * cell_size != order:
        return None
    return cell_size


def parse_sudoku(puzzle_string):
    """
    Parse a Sudoku puzzle string into a Grid.
    Grid size is determined from the puzzle string length.

    Args:
        puzzle_string: String of N×N characters where '.' represents empty cells
                      and digits/letters represent given values (1-9, A-P for 16x16, etc.)

    Returns:
        Grid instance

    Raises:
        ParseError: on a length that is not N×N with N a perfect square, on an
                    invalid character (including '0'), or on a value larger than N
    """
    puzzle_len = len(puzzle_string)
    order = _cell_size_for(puzzle_len)
    cell_size = _cell_size_for(order) if order is not None else None

    if cell_size is None or not MIN_CELL_SIZE <= cell_size <= MAX_TEXT_CELL_SIZE:
        raise ParseError(f"Invalid puzzle length: {puzzle_len}. "
                         f"Length must be N×N where N is a perfect square (e.g., 16, 81, 256).")

    values = []
    for index, char in enumerate(puzzle_string):
        try:
            val = _char_to_val(char)
        except ParseError as e:
            raise ParseError(f"{e} at position {index}") from None
        if val > order:
            raise ParseError(f"Clue value '{char}' (={val}) at position {index} "
                             f"is out of range for grid size {order}")
        values.append(val)

    return Grid(np.array(values).reshape(order, order))


class Grid:
    """
    A square order×order Sudoku board.

    values  : numpy integer array of shape (order, order), 0 for empty cells
    order   : side length of the board
    cell_size: side length of a box (sqrt(order))
    """

    def __init__(self, values):
        values = np.array(values, dtype=np.int16)
        assert values.ndim == 2 and values.shape[0] == values.shape[1], \
            "Values is not of size order * order"

        order = values.shape[0]
        cell_size = _cell_size_for(order)
        assert cell_size is not None and MIN_CELL_SIZE <= cell_size <= MAX_CELL_SIZE, \
            "The maximum supported Sudoku size is 225"
        assert values.min() >= 0 and values.max() <= order, \
            f"Cell values must be in 0..{order}"

        self.values = values
        self.order = order
        self.cell_size = cell_size

    @classmethod
    def empty(cls, order=9):
        """Create an empty Sudoku of size order × order."""
        return cls(np.zeros((order, order), dtype=np.int16))

    def __getitem__(self, cell):
        return int(self.values[cell])

    def __setitem__(self, cell, value):
        self.values[cell] = 0 if value is None else value

    def __eq__(self, other):
        if not isinstance(other, Grid):
            return NotImplemented
        return np.array_equal(self.values, other.values)

    def __repr__(self):
        return f"Grid({self.to_string()!r})" if self.order <= 25 else f"Grid(order={self.order})"

    def __str__(self):
        return self.format()

    def copy(self):
        return Grid(self.values.copy())

    def empty_cells(self):
        """Yield the (row, col) of every empty cell in row-major order."""
        for row, col in zip(*np.nonzero(self.values == 0)):
            yield int(row), int(col)

    def first_empty(self):
        """Return the first empty cell in row-major order, or None if the grid is full."""
        return next(self.empty_cells(), None)

    def filled(self):
        return bool(np.all(self.values != 0))

    def rows(self):
        return self.values

    def columns(self):
        return self.values.T

    def boxes(self):
        """
        Return the boxes of the grid as an order×order array, one box per row.

        Boxes are numbered in row-major box order, and the cells inside each box
        are in row-major order as well.
        """
        cs = self.cell_size
        return self.values.reshape(cs, cs, cs, cs).swapaxes(1, 2).reshape(self.order, self.order)

    @staticmethod
    def _valid_units(units):
        for unit in units:
            given = unit[unit != 0]
            if len(given) != len(np.unique(given)):
                return False
        return True

    def valid(self):
        """
        Check that no row, column or box contains a repeated digit.
        Empty cells are ignored.

        Returns:
            True if the grid breaks no constraint, False otherwise
        """
        return (self._valid_units(self.rows())
                and self._valid_units(self.columns())
                and self._valid_units(self.boxes()))

    def solved(self):
        return self.filled() and self.valid()

    def to_string(self):
        """
        Convert the grid to the single-line puzzle representation.

        Returns:
            String of order×order characters, '.' for empty cells
        """
        return ''.join(_val_to_char(int(val)) for val in self.values.flat)

    def _required_padding(self):
        if self.order < 10:
            return 3
        elif self.order < 100:
            return 4
        return 5

    def format(self):
        """
        Render the grid as a bordered ASCII board with box separators.

        Values are right-aligned in a column whose width depends on the order,
        empty cells are shown as '.'.
        """
        cs = self.cell_size
        width = self._required_padding() - 1
        horizontal_line = ("+" + "-" * (cs * width + 1)) * cs + "+"

        lines = []
        for row_idx, row in enumerate(self.values):
            if row_idx % cs == 0:
                lines.append(horizontal_line)
            line = "|"
            for col_idx, val in enumerate(row):
                line += (str(int(val)) if val else EMPTY_CHAR).rjust(width)
                if col_idx % cs == cs - 1:
                    line += " |"
            lines.append(line)
        lines.append(horizontal_line)
        return "\n".join(lines)
