"""
Penrose Turing Machine Codec

Decodes the binary machine encoding from Penrose's "The Emperor's New Mind"
into a transition table.

The encoding is a sequence of tokens, each a run of 1s closed by a 0:
    token | encoding
    ----- | --------
     ZERO | 0
      ONE | 10
        R | 110
        L | 1110
     STOP | 11110

Every R, L or STOP token closes one action. The ZERO/ONE tokens before it
give, in order, the binary number of the next state (most significant bit
first) and the bit to write. Both may be left out when they are 0. Actions
pair up into states: the first of each pair is taken after reading '0',
the second after reading '1'.

The encoding drops the leading "110" (state 0 reading 0 always writes 0,
moves right and stays in state 0) and the trailing "110" that every
direction token ends with. Decoding puts both back.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, List, Tuple

from penrose_errors import (
    IncompleteStateDefinition,
    InvalidCharacter,
    InvalidRunLength,
    UndefinedStateReference,
)
from penrose_tape import Symbol


IMPLICIT_PREFIX = '110'
IMPLICIT_SUFFIX = '110'


class Token(IntEnum):
    ZERO = 0
    ONE = 1
    RIGHT = 2
    LEFT = 3
    STOP = 4


class Direction(IntEnum):
    """Head displacement of an action; STOP halts the machine."""
    LEFT = -1
    STOP = 0
    RIGHT = 1

    @property
    def code(self):
        return DIRECTION_CODES[self]


DIRECTION_CODES = {Direction.LEFT: 'L', Direction.RIGHT: 'R', Direction.STOP: 'STOP'}
DIRECTION_TOKENS = {Token.RIGHT: Direction.RIGHT, Token.LEFT: Direction.LEFT, Token.STOP: Direction.STOP}


@dataclass(frozen=True)
class Action:
    """What a state does after reading one symbol."""
    write: int
    direction: Direction
    next_state: int


@dataclass(frozen=True)
class State:
    number: int
    on_zero: Action
    on_one: Action

    def action_for(self, symbol):
        """Select the action for a tape symbol; a blank reads as 0."""
        return self.on_one if symbol == Symbol.ONE else self.on_zero


class TransitionTable(Sequence):
    """Immutable sequence of states, indexed by state number."""

    def __init__(self, states):
        self._states = tuple(states)

    def __getitem__(self, index):
        return self._states[index]

    def __len__(self):
        return len(self._states)

    def __eq__(self, other):
        if not isinstance(other, TransitionTable):
            return NotImplemented
        return self._states == other._states

    def __hash__(self):
        return hash(self._states)

    def __repr__(self):
        return f"TransitionTable({list(self._states)!r})"

    def actions(self) -> Iterator[Tuple[int, str, Action]]:
        """Yield (state_number, read_symbol, action) in listing order."""
        for state in self._states:
            yield state.number, '0', state.on_zero
            yield state.number, '1', state.on_one


def _check_characters(spec):
    for index, char in enumerate(spec):
        if char not in '01':
            raise InvalidCharacter(index)


def tokenize(spec) -> List[Token]:
    """
    Split an encoding into tokens, adding the implicit "110" at both ends.

    Args:
        spec: String of '0's and '1's

    Returns:
        List of Token values, including the two implicit RIGHT tokens

    Raises:
        InvalidCharacter: spec contains something other than '0' or '1'
        InvalidRunLength: spec contains a run of more than four 1s; the
                          index is where that run starts in spec
    """
    _check_characters(spec)
    wrapped = IMPLICIT_PREFIX + spec + IMPLICIT_SUFFIX
    offset = len(IMPLICIT_PREFIX)

    tokens = []
    run_start = 0
    for i, char in enumerate(wrapped):
        if char == '0':
            tokens.append(Token(i - run_start))
            run_start = i + 1
        elif i - run_start >= Token.STOP:
            raise InvalidRunLength(run_start - offset)
    return tokens


def _split_actions(tokens):
    """Group tokens into (body, terminator) pairs, one per action."""
    body = []
    for token in tokens:
        if token < Token.RIGHT:
            body.append(token)
            continue
        yield body, token
        body = []


def _decode_action(body, terminator):
    direction = DIRECTION_TOKENS[terminator]
    if not body:
        return Action(0, direction, 0)
    next_state = 0
    for bit in body[:-1]:
        next_state = next_state * 2 + int(bit)
    return Action(int(body[-1]), direction, next_state)


def decode(spec) -> TransitionTable:
    """
    Decode a Penrose machine encoding into a transition table.

    Args:
        spec: The encoding, without its implicit leading and trailing "110"

    Returns:
        TransitionTable whose state i is built from actions 2i and 2i+1

    Raises:
        InvalidCharacter, InvalidRunLength: the string cannot be tokenized
        IncompleteStateDefinition: the number of actions is odd
        UndefinedStateReference: an action targets a state that does not exist

    Example:
        decode('101011010111101010')  # Penrose's UN+1
        ->  state 0: 0 -> 0 R 0, 1 -> 1 R 1
            state 1: 0 -> 1 STOP 0, 1 -> 1 R 1
    """
    actions = [_decode_action(body, terminator)
               for body, terminator in _split_actions(tokenize(spec))]
    if len(actions) % 2 != 0:
        raise IncompleteStateDefinition(len(actions))

    n_states = len(actions) // 2
    states = []
    for number in range(n_states):
        on_zero, on_one = actions[2 * number], actions[2 * number + 1]
        for action in (on_zero, on_one):
            if action.next_state >= n_states:
                raise UndefinedStateReference(number, action.next_state)
        states.append(State(number, on_zero, on_one))
    return TransitionTable(states)


def _token_code(token):
    return '1' * int(token) + '0'


def _encode_action(action):
    body = []
    if action.next_state:
        body = [Token(int(bit)) for bit in format(action.next_state, 'b')]
    if body or action.write:
        body.append(Token(action.write))
    terminator = next(token for token, direction in DIRECTION_TOKENS.items()
                      if direction == action.direction)
    return ''.join(_token_code(token) for token in body + [terminator])


def encode(table) -> str:
    """
    Build the shortest encoding of a transition table.

    Next-state numbers are written without leading zeros and left out when
    0, and the write bit is left out when it and the next state are both 0.
    decode(encode(table)) == table for every table it accepts.

    Raises:
        ValueError: the table is empty or its first action is not
                    "write 0, move right, stay in state 0", which the
                    encoding leaves implicit
    """
    if not len(table):
        raise ValueError("Cannot encode a machine with no states")
    if table[0].on_zero != Action(0, Direction.RIGHT, 0):
        raise ValueError(
            f"State 0 must write 0, move R and stay in state 0 after reading '0'; "
            f"got {table[0].on_zero}"
        )
    encoded = ''.join(_encode_action(action) for _, _, action in table.actions())
    return encoded[len(IMPLICIT_PREFIX):-len(IMPLICIT_SUFFIX)]


def table_to_program(table):
    """
    Convert a transition table to a list of 5-tuples.

    Returns:
        List of (current_state, read, write, direction, next_state), with
        read as '0' or '1' and direction as 'L', 'R' or 'STOP'
    """
    return [(number, read, action.write, action.direction.code, action.next_state)
            for number, read, action in table.actions()]
