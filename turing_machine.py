"""
Penrose Turing Machine Simulator

Machines come from penrose_codec.decode: a TransitionTable whose state i
says what to write, which way to move and which state to enter after
reading '0' or '1'. Execution always starts in state 0 on the first cell
of the initial tape, and stops only on a STOP action.

A run may need two passes over the machine:
    1. Discovery: run silently on a tape that grows on demand, recording
       the leftmost and rightmost cells the head ever visits.
    2. Trace: re-run on a tape allocated to exactly that extent, emitting
       a Frame per step so every trace line has the same width.

The second pass only happens when a trace is requested (verbosity 1 or 2).
Step and tape limits are enforced during discovery, so a failing run
never produces partial output.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator

import numpy as np

from penrose_codec import Direction, decode
from penrose_errors import StepLimitExceeded, TapeLimitExceeded
from penrose_tape import Tape


logger = logging.getLogger(__name__)

DEFAULT_MAX_TAPE_LEN = 2 ** 20
DEFAULT_MAX_STEPS = 2 ** 20


@dataclass
class ExecutionState:
    """Mutable machine state for one pass."""
    tape: Tape
    state: int = 0
    head: int = 0
    step: int = 0

    @property
    def offset(self):
        """Head position relative to the starting cell."""
        return self.tape.offset(self.head)

    def frame(self):
        return Frame(self.step, self.state, self.tape.to_string(), self.head)


@dataclass(frozen=True)
class Frame:
    """Snapshot of the machine after a step (step 0 is the initial tape)."""
    step: int
    state: int
    tape: str
    head: int


@dataclass
class Discovery:
    """Result of the discovery pass."""
    final: ExecutionState
    min_offset: int
    max_offset: int


@dataclass
class RunResult:
    output: str
    tape: str
    steps: int
    state: int
    head_offset: int
    min_offset: int
    max_offset: int
    frames: Iterator[Frame] = field(default_factory=lambda: iter(()))


def _check_positive(name, value):
    if value < 1:
        raise ValueError(f"{name} must be a positive integer, got {value}")


def discover_extent(table, initial_tape, max_tape_len=DEFAULT_MAX_TAPE_LEN,
                    max_steps=DEFAULT_MAX_STEPS):
    """
    Run a machine to completion on a growing tape.

    Args:
        table: TransitionTable from penrose_codec.decode
        initial_tape: String of '0's and '1's; the head starts on its first cell
        max_tape_len: Stop if the working tape holds more cells than this
        max_steps: Stop if the machine has taken this many steps without halting

    Returns:
        Discovery with the final ExecutionState and the extreme head
        offsets (the initial tape's extent is always included)

    Raises:
        InvalidTapeCharacter: initial_tape is not made of '0's and '1's
        StepLimitExceeded, TapeLimitExceeded: a limit was reached
    """
    _check_positive("max_tape_len", max_tape_len)
    _check_positive("max_steps", max_steps)

    tape = Tape.from_string(initial_tape)
    run = ExecutionState(tape=tape)
    min_offset = 0
    max_offset = max(len(initial_tape) - 1, 0)
    logger.debug("Discovery pass: %d states, tape of %d cells", len(table), len(tape))

    while True:
        if run.step == max_steps:
            raise StepLimitExceeded(max_steps)
        if len(tape) > max_tape_len:
            raise TapeLimitExceeded(max_tape_len)
        run.step += 1

        action = table[run.state].action_for(tape[run.head])
        tape[run.head] = action.write
        if action.direction == Direction.STOP:
            break

        run.head = tape.reach(run.head + action.direction)
        min_offset = min(min_offset, run.offset)
        max_offset = max(max_offset, run.offset)
        run.state = action.next_state

    logger.debug("Machine halted in state %X after %d steps (offsets %d..%d)",
                 run.state, run.step, min_offset, max_offset)
    return Discovery(run, min_offset, max_offset)


def retrace(table, initial_tape, min_offset, max_offset, verbosity=2,
            max_steps=DEFAULT_MAX_STEPS):
    """
    Re-run a machine on a tape of known extent, yielding frames as it goes.

    Args:
        table: TransitionTable from penrose_codec.decode
        initial_tape: Same tape given to discover_extent
        min_offset, max_offset: Extent reported by discover_extent
        verbosity: 2 yields a frame after every step; 1 yields one only
                   when the step changed the tape. The initial frame (step 0)
                   is always yielded.
        max_steps: Stop if the machine has taken this many steps

    Yields:
        Frame snapshots, each carrying the state that performed the step.
        At verbosity 2 the last frame holds the final tape and head.

    Raises:
        RuntimeError: the head left the given extent, i.e. the extent did
                      not come from a discovery pass over the same input
    """
    tape = Tape.blank(max_offset - min_offset + 1, origin=-min_offset)
    tape.load(initial_tape)
    run = ExecutionState(tape=tape, head=tape.origin)
    logger.debug("Trace pass: window of %d cells, origin %d", len(tape), tape.origin)
    yield run.frame()

    while True:
        if run.step == max_steps:
            raise StepLimitExceeded(max_steps)
        run.step += 1

        current = tape[run.head]
        action = table[run.state].action_for(current)
        tape[run.head] = action.write
        if verbosity == 2 or action.write != current:
            yield run.frame()
        if action.direction == Direction.STOP:
            return

        run.head += action.direction
        if not tape.holds(run.head):
            raise RuntimeError(
                f"Head moved to offset {run.offset} outside the traced extent "
                f"{min_offset}..{max_offset} at step {run.step}"
            )
        run.state = action.next_state


def run_turing_machine(table, initial_tape, max_tape_len=DEFAULT_MAX_TAPE_LEN,
                       max_steps=DEFAULT_MAX_STEPS, verbosity=0):
    """
    Run a Penrose Turing machine.

    Args:
        table: TransitionTable from penrose_codec.decode
        initial_tape: String of '0's and '1's; the head starts on its first cell
        max_tape_len: Stop if the working tape holds more cells than this
        max_steps: Stop if the machine has taken this many steps without halting
        verbosity: 0 for the final tape only, 1 for frames on tape changes,
                   2 for a frame after every step

    Returns:
        RunResult whose output is the run of non-blank cells around the
        final head position. Its frames are a one-shot iterator over the
        trace pass, produced as they are consumed (empty at verbosity 0).

    Raises:
        InvalidTapeCharacter, StepLimitExceeded, TapeLimitExceeded: raised
        before any frame is produced
    """
    if verbosity not in (0, 1, 2):
        raise ValueError(f"verbosity must be 0, 1 or 2, got {verbosity}")

    discovery = discover_extent(table, initial_tape, max_tape_len, max_steps)
    final = discovery.final
    result = RunResult(
        output=final.tape.non_blank_run(final.head),
        tape=final.tape.window(discovery.min_offset, discovery.max_offset),
        steps=final.step,
        state=final.state,
        head_offset=final.offset,
        min_offset=discovery.min_offset,
        max_offset=discovery.max_offset,
    )
    if verbosity > 0:
        result.frames = retrace(table, initial_tape, discovery.min_offset, discovery.max_offset,
                                verbosity=verbosity, max_steps=max_steps)
    return result


def run_encoded_machine(spec, initial_tape, max_tape_len=DEFAULT_MAX_TAPE_LEN,
                        max_steps=DEFAULT_MAX_STEPS, verbosity=0):
    """
    Decode and run a machine given in Penrose's encoding.

    Convenience function that combines penrose_codec.decode and
    run_turing_machine; decoding errors are raised before any step runs.
    """
    table = decode(spec)
    return run_turing_machine(table, initial_tape, max_tape_len=max_tape_len,
                              max_steps=max_steps, verbosity=verbosity)


def _frame_row(frame):
    cells = np.frombuffer(frame.tape.encode('ascii'), dtype=np.uint8).astype(np.int64)
    cells = np.where(cells == ord(' '), -1, cells - ord('0'))
    return np.concatenate(([frame.step, frame.state, frame.head], cells))


def frames_to_numpy(frames):
    """
    Convert trace frames to a numpy array of shape (n_frames, 3 + width).

    Args:
        frames: Any iterable of Frame, e.g. the generator from retrace;
                it is consumed one frame at a time

    Columns are [step, state, head, cell_0, ..., cell_{width-1}], where
    cells are 0 or 1 and -1 marks a blank cell. All frames of one trace
    share the same width.
    """
    rows = [_frame_row(frame) for frame in frames]
    if not rows:
        return np.zeros((0, 3), dtype=np.int64)
    return np.stack(rows).astype(np.int64)


def save_trace_to_file(frames, filepath):
    """
    Save trace frames to a .npy file.

    The file is opened before the first frame is consumed, so an
    unwritable path fails before any frame is produced.

    Returns:
        The saved array
    """
    with open(filepath, 'wb') as f:
        arr = frames_to_numpy(frames)
        np.save(f, arr)
    logger.info("Saved %d frames to %s", len(arr), filepath)
    return arr


# Penrose's UN+1: appends a 1 to a block of 1s
UNARY_INCREMENT = '101011010111101010'

# Steps left off a leading 1, walks over any 1s and writes one more 1 before them
UNARY_PREPEND = '10101110101111010101'


if __name__ == "__main__":
    from penrose_render import print_listing, print_trace

    for name, spec, tape in (("UN+1", UNARY_INCREMENT, '0111'),
                             ("PREPEND", UNARY_PREPEND, '111')):
        print("=" * 60)
        print(f"{name}: {spec}")
        print("=" * 60)
        table = decode(spec)
        print_listing(table)
        print()
        result = run_turing_machine(table, tape, verbosity=2)
        print_trace(result.frames)
        print(f"\nFinal tape: {result.output!r} after {result.steps} steps\n")
