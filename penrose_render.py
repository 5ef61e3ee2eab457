"""
Text rendering of transition tables and trace frames.

Listings use Penrose's layout with state numbers in hexadecimal:
    "    0 1 ->     1 1 R"
Trace lines show the step, the state that acted and the tape, with the
head cell bracketed by '|' (or spaces for the initial frame):
    "    3     1: 1 1|1|"
"""

import sys


def format_action(state_number, symbol, action):
    return (f"{state_number:5X} {symbol} -> {action.next_state:5X} "
            f"{action.write} {action.direction.code}")


def format_listing(table):
    """Return one line per (state, symbol) pair, '0' before '1' for each state."""
    return [format_action(number, symbol, action) for number, symbol, action in table.actions()]


def print_listing(table, file=None):
    file = file if file is not None else sys.stdout
    for line in format_listing(table):
        print(line, file=file)


def format_frame(frame):
    """
    Render a Frame as one trace line.

    Cells left of the head are printed as ' c', cells right of it as 'c ',
    so the bracketed head cell lines up across all frames of a trace.
    """
    tape, head = frame.tape, frame.head
    mark = '|' if frame.step > 0 else ' '
    left = ''.join(' ' + c for c in tape[:head])
    right = ''.join(c + ' ' for c in tape[head + 1:])
    return f"{frame.step:5d} {frame.state:5X}:{left}{mark}{tape[head]}{mark}{right}"


def print_trace(frames, file=None):
    file = file if file is not None else sys.stdout
    for frame in frames:
        print(format_frame(frame), file=file)
