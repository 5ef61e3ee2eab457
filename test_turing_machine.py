from itertools import islice

import numpy as np
import pytest

from penrose_codec import Action, Direction, State, TransitionTable, decode
from penrose_errors import (
    InvalidTapeCharacter,
    InvalidRunLength,
    StepLimitExceeded,
    TapeLimitExceeded,
)
from turing_machine import (
    DEFAULT_MAX_STEPS,
    DEFAULT_MAX_TAPE_LEN,
    UNARY_INCREMENT,
    UNARY_PREPEND,
    Frame,
    discover_extent,
    frames_to_numpy,
    retrace,
    run_encoded_machine,
    run_turing_machine,
    save_trace_to_file,
)


# Writes 0 on whatever it reads first and halts
HALT_ON_ZERO = TransitionTable([
    State(0, Action(0, Direction.STOP, 0), Action(1, Direction.RIGHT, 0)),
])


@pytest.fixture
def unary_increment():
    return decode(UNARY_INCREMENT)


@pytest.fixture
def unary_prepend():
    return decode(UNARY_PREPEND)


def test_defaults():
    assert DEFAULT_MAX_TAPE_LEN == 1048576
    assert DEFAULT_MAX_STEPS == 1048576


def test_unary_increment_final_tape(unary_increment):
    result = run_turing_machine(unary_increment, '11')
    assert result.output == '111'
    assert result.steps == 3
    assert result.state == 1
    assert result.head_offset == 2
    assert (result.min_offset, result.max_offset) == (0, 2)
    assert result.tape == '111'
    assert list(result.frames) == []


def test_unary_increment_skips_leading_zeros(unary_increment):
    assert run_turing_machine(unary_increment, '0111').output == '01111'


def test_left_growth(unary_prepend):
    result = run_turing_machine(unary_prepend, '111')
    assert result.output == '1111'
    assert result.head_offset == -1
    assert result.min_offset == -1


def test_right_growth_beyond_first_extension(unary_increment):
    result = run_turing_machine(unary_increment, '1' * 1500)
    assert result.output == '1' * 1501
    assert result.head_offset == 1500


def test_empty_tape_reads_blank():
    result = run_turing_machine(HALT_ON_ZERO, '')
    assert result.output == '0'
    assert result.steps == 1


def test_trace_every_step(unary_increment):
    result = run_turing_machine(unary_increment, '11', verbosity=2)
    assert list(result.frames) == [
        Frame(0, 0, '11 ', 0),
        Frame(1, 0, '11 ', 0),
        Frame(2, 1, '11 ', 1),
        Frame(3, 1, '111', 2),
    ]


def test_trace_changes_only(unary_increment):
    result = run_turing_machine(unary_increment, '11', verbosity=1)
    assert list(result.frames) == [Frame(0, 0, '11 ', 0), Frame(3, 1, '111', 2)]


def test_trace_left_moving(unary_prepend):
    result = run_turing_machine(unary_prepend, '11', verbosity=2)
    assert list(result.frames) == [
        Frame(0, 0, ' 11', 1),
        Frame(1, 0, ' 11', 1),
        Frame(2, 1, '111', 0),
    ]


def test_blank_overwritten_by_zero_is_a_change():
    result = run_turing_machine(HALT_ON_ZERO, '', verbosity=1)
    assert list(result.frames) == [Frame(0, 0, ' ', 0), Frame(1, 0, '0', 0)]


@pytest.mark.parametrize('spec, tape', [
    (UNARY_INCREMENT, '11'),
    (UNARY_INCREMENT, '0111'),
    (UNARY_INCREMENT, '1' * 1500),
    (UNARY_PREPEND, '111'),
    (UNARY_PREPEND, '1'),
])
def test_trace_pass_reproduces_discovery_pass(spec, tape):
    table = decode(spec)
    discovery = discover_extent(table, tape)
    lo, hi = discovery.min_offset, discovery.max_offset
    *_, last = retrace(table, tape, lo, hi)

    assert last.head + lo == discovery.final.offset
    assert last.step == discovery.final.step
    assert last.state == discovery.final.state
    assert last.tape == discovery.final.tape.window(lo, hi)
    assert len(last.tape) == hi - lo + 1


def test_trace_frames_share_width(unary_prepend):
    result = run_turing_machine(unary_prepend, '1111', verbosity=2)
    assert {len(frame.tape) for frame in result.frames} == {result.max_offset - result.min_offset + 1}


def test_trimmed_output_feeds_back(unary_increment):
    first = run_turing_machine(unary_increment, '11').output
    second = run_turing_machine(unary_increment, first).output
    assert ' ' not in first and ' ' not in second
    assert len(second) == len(first) + 1


def test_step_limit_at_first_step():
    table = decode('')  # moves right forever
    with pytest.raises(StepLimitExceeded) as excinfo:
        run_turing_machine(table, '0', max_steps=1)
    assert excinfo.value.limit == 1
    assert "(1)" in str(excinfo.value)


def test_halting_on_last_allowed_step():
    assert run_turing_machine(HALT_ON_ZERO, '0', max_steps=1).steps == 1


def test_tape_limit_after_growth():
    table = decode('')
    with pytest.raises(TapeLimitExceeded) as excinfo:
        run_turing_machine(table, '0', max_tape_len=10)
    assert excinfo.value.limit == 10


def test_tape_limit_on_initial_tape():
    with pytest.raises(TapeLimitExceeded):
        run_turing_machine(HALT_ON_ZERO, '0' * 20, max_tape_len=10)


def test_limits_checked_before_tracing():
    with pytest.raises(StepLimitExceeded):
        run_turing_machine(decode(''), '0', max_steps=5, verbosity=2)


def test_invalid_tape_character(unary_increment):
    with pytest.raises(InvalidTapeCharacter) as excinfo:
        run_turing_machine(unary_increment, '1121')
    assert excinfo.value.index == 2


@pytest.mark.parametrize('kwargs', [
    {'max_tape_len': 0},
    {'max_steps': 0},
    {'verbosity': 3},
])
def test_invalid_parameters(unary_increment, kwargs):
    with pytest.raises(ValueError):
        run_turing_machine(unary_increment, '1', **kwargs)


def test_retrace_outside_extent(unary_increment):
    with pytest.raises(RuntimeError):
        list(retrace(unary_increment, '11', 0, 1))


def test_retrace_yields_frames_before_finishing():
    frames = retrace(decode(''), '0', 0, 5)  # moves right forever
    assert list(islice(frames, 3)) == [
        Frame(0, 0, '0     ', 0),
        Frame(1, 0, '0     ', 0),
        Frame(2, 0, '00    ', 1),
    ]
    with pytest.raises(RuntimeError):
        list(frames)


def test_run_frames_are_lazy(unary_prepend):
    result = run_turing_machine(unary_prepend, '111', verbosity=2)
    assert next(result.frames) == Frame(0, 0, ' 111', 1)
    assert len(list(result.frames)) == result.steps


def test_result_tape_covers_visited_extent(unary_prepend):
    result = run_turing_machine(unary_prepend, '11')
    assert result.tape == '111'
    assert len(result.tape) == result.max_offset - result.min_offset + 1


def test_run_encoded_machine():
    assert run_encoded_machine(UNARY_INCREMENT, '1').output == '11'
    with pytest.raises(InvalidRunLength):
        run_encoded_machine('11111', '1')


def test_frames_to_numpy(unary_increment):
    frames = run_turing_machine(unary_increment, '11', verbosity=1).frames
    arr = frames_to_numpy(frames)
    np.testing.assert_array_equal(arr, [
        [0, 0, 0, 1, 1, -1],
        [3, 1, 2, 1, 1, 1],
    ])
    assert frames_to_numpy([]).shape == (0, 3)
    assert frames_to_numpy(iter(())).shape == (0, 3)


def test_save_trace_to_file(tmp_path, unary_increment):
    frames = run_turing_machine(unary_increment, '11', verbosity=2).frames
    path = tmp_path / 'trace.npy'
    saved = save_trace_to_file(frames, path)
    np.testing.assert_array_equal(np.load(path), saved)
    assert saved.shape == (4, 6)
