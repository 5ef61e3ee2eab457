"""
Working tape for a two-symbol Turing machine.

The tape is a contiguous numpy buffer that grows at either end. Cells hold
Symbol values; any index outside the buffer reads as BLANK. `origin` is
the buffer index of the cell the head started on, so offsets relative to
the starting cell stay valid when the buffer grows to the left.
"""

import logging
from enum import IntEnum

import numpy as np

from penrose_errors import InvalidTapeCharacter


logger = logging.getLogger(__name__)

INITIAL_GROWTH = 1024


class Symbol(IntEnum):
    ZERO = 0
    ONE = 1
    BLANK = 2


# Rendering characters indexed by Symbol value
SYMBOL_CHARS = np.array([ord('0'), ord('1'), ord(' ')], dtype=np.uint8)


def parse_tape(text):
    """
    Convert a tape string of '0's and '1's to a Symbol array.

    Raises:
        InvalidTapeCharacter: text contains something other than '0' or '1'
    """
    for index, char in enumerate(text):
        if char not in '01':
            raise InvalidTapeCharacter(index)
    return np.fromiter((int(char) for char in text), dtype=np.int8, count=len(text))


class Tape:
    """
    Bidirectionally growing tape.

    Args:
        cells: Initial Symbol values (any integer sequence)
        origin: Buffer index of the starting cell
        growth: Number of cells added by the next extension; doubles after
                every extension
    """

    def __init__(self, cells, origin=0, growth=INITIAL_GROWTH):
        self.cells = np.array(cells, dtype=np.int8)
        self.origin = origin
        self.growth = growth

    @classmethod
    def from_string(cls, text, growth=INITIAL_GROWTH):
        """Tape holding text, starting at its first character; empty text is one blank cell."""
        cells = parse_tape(text)
        if not len(cells):
            cells = np.array([Symbol.BLANK], dtype=np.int8)
        return cls(cells, origin=0, growth=growth)

    @classmethod
    def blank(cls, length, origin=0):
        """Fixed window of length blank cells."""
        return cls(np.full(length, Symbol.BLANK, dtype=np.int8), origin=origin)

    def __len__(self):
        return len(self.cells)

    def __getitem__(self, index):
        if 0 <= index < len(self.cells):
            return Symbol(int(self.cells[index]))
        return Symbol.BLANK

    def __setitem__(self, index, symbol):
        self.cells[index] = symbol

    def holds(self, index):
        return 0 <= index < len(self.cells)

    def load(self, text):
        """Write text onto the tape starting at the origin cell."""
        cells = parse_tape(text)
        self.cells[self.origin:self.origin + len(cells)] = cells

    def extend_left(self, amount):
        """Prepend amount blank cells; buffer indices shift right by amount."""
        self.cells = np.concatenate((np.full(amount, Symbol.BLANK, dtype=np.int8), self.cells))
        self.origin += amount

    def extend_right(self, amount):
        """Append amount blank cells."""
        self.cells = np.concatenate((self.cells, np.full(amount, Symbol.BLANK, dtype=np.int8)))

    def reach(self, index):
        """
        Grow the tape until it holds index.

        Returns:
            The buffer index of the same cell after any growth
        """
        while index < 0:
            logger.debug("Extending tape left by %d cells (length %d)", self.growth, len(self))
            self.extend_left(self.growth)
            index += self.growth
            self.growth *= 2
        while index >= len(self.cells):
            logger.debug("Extending tape right by %d cells (length %d)", self.growth, len(self))
            self.extend_right(self.growth)
            self.growth *= 2
        return index

    def offset(self, index):
        """Position of a buffer index relative to the starting cell."""
        return index - self.origin

    def to_string(self, start=None, stop=None):
        """Render buffer cells [start, stop) as ' ', '0' and '1'."""
        return SYMBOL_CHARS[self.cells[start:stop]].tobytes().decode('ascii')

    def window(self, first_offset, last_offset):
        """Render cells at offsets first_offset..last_offset inclusive, blanks outside the buffer."""
        symbols = np.array([int(self[self.origin + offset])
                            for offset in range(first_offset, last_offset + 1)], dtype=np.intp)
        return SYMBOL_CHARS[symbols].tobytes().decode('ascii')

    def non_blank_run(self, index):
        """
        Return the maximal run of non-blank cells containing index.

        Leading and trailing blanks are never part of the result; an empty
        string is returned if the cell at index is itself blank.
        """
        if self[index] == Symbol.BLANK:
            return ''
        blanks = np.flatnonzero(self.cells == Symbol.BLANK)
        left = blanks[blanks < index]
        right = blanks[blanks > index]
        start = int(left[-1]) + 1 if len(left) else 0
        stop = int(right[0]) if len(right) else len(self.cells)
        return self.to_string(start, stop)
