"""
Command line interface for the Penrose Turing machine simulator.

Execute a Penrose-style Turing machine as described in "The Emperor's New
Mind". The machine specification and the initial tape can be given inline
or read from a file (the file takes precedence), or collected in a YAML
run file:

    tm_file: machines/un_plus_one.txt
    tape: '0111'
    max_steps: 4096
    verbosity: 2

Options given on the command line override the run file.

Without a tape the decoded machine is printed as a listing; with a tape
the machine is run and the verbosity level selects the output.
"""

import argparse
import logging
import sys
from pathlib import Path

import yaml

from penrose_codec import decode
from penrose_errors import ConfigurationError, PenroseError
from penrose_render import format_frame, print_listing, print_trace
from turing_machine import (
    DEFAULT_MAX_STEPS,
    DEFAULT_MAX_TAPE_LEN,
    run_turing_machine,
    save_trace_to_file,
)


__version__ = "0.1.0"

logger = logging.getLogger(__name__)

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
CONFIG_KEYS = ('tm', 'tm_file', 'tape', 'tape_file', 'max_tape_length',
               'max_steps', 'verbosity', 'save_trace', 'log_level')


class VerbosityAction(argparse.Action):
    """-v increments the level, -v2 or -v 2 sets it."""

    def __init__(self, option_strings, dest, **kwargs):
        super().__init__(option_strings, dest, nargs='?', type=int, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        if values is None:
            values = (getattr(namespace, self.dest) or 0) + 1
        setattr(namespace, self.dest, values)


def build_parser():
    parser = argparse.ArgumentParser(
        prog='penrose-turing',
        description=(
            "Execute a Penrose-style Turing machine. If the tape is not given, "
            "the machine specification is printed in Penrose's format with "
            "state numbers in hexadecimal. If the tape is given, the verbosity "
            "level controls the output: 0 prints the final tape, 1 prints the "
            "tape whenever it changes, 2 prints it after every step."
        ),
    )
    parser.add_argument('-m', '--tm', help="Turing machine specification TM")
    parser.add_argument('--tm-file', metavar='FILE',
                        help="read Turing machine specification from FILE")
    parser.add_argument('-t', '--tape', help="initial tape TAPE")
    parser.add_argument('--tape-file', metavar='FILE', help="read initial tape from FILE")
    parser.add_argument('--max-tape-length', metavar='N', type=int,
                        help="stop if number of cells in working tape exceeds N (default: 2^20)")
    parser.add_argument('--max-steps', metavar='N', type=int,
                        help="stop if number of Turing machine steps exceeds N (default: 2^20)")
    parser.add_argument('-v', '--verbosity', metavar='N', action=VerbosityAction,
                        help="verbosity (0-2), e.g. -v -v or -v2 for level 2")
    parser.add_argument('--config', metavar='FILE', help="read options from YAML run file FILE")
    parser.add_argument('--save-trace', metavar='FILE',
                        help="save the trace frames to FILE as a numpy array (verbosity 1-2)")
    parser.add_argument('--log-level', choices=LOG_LEVELS, help="logging level (default: WARNING)")
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    return parser


def configure_logging(level):
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )
    logging.getLogger().setLevel(level)


def load_config(path):
    """
    Load a YAML run file.

    Returns:
        Dict of options, keyed like the long command line options with
        '_' for '-'

    Raises:
        ConfigurationError: the file is unreadable, not a mapping, or has
                            unknown keys
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Error opening run file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing run file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Run file {path} must contain a mapping of options")
    unknown = sorted(str(key) for key in data if key not in CONFIG_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown option(s) in run file {path}: {', '.join(unknown)}")
    logger.info("Loaded run file %s", path)
    return data


def read_text_file(path):
    """Read a specification or tape file, dropping surrounding whitespace."""
    try:
        return Path(path).read_text(encoding='utf-8').strip()
    except OSError as e:
        raise ConfigurationError(f"Error reading file {path}: {e}") from e


def _positive(value, description):
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = 0
    if number < 1:
        raise ConfigurationError(f"{description} must be a positive integer; was {value}.")
    return number


def resolve_options(args):
    """
    Merge command line arguments over the run file and the defaults.

    Returns:
        Dict with keys tm, tape (None when absent), max_tape_length,
        max_steps, verbosity, save_trace and log_level
    """
    config = load_config(args.config) if args.config else {}

    def pick(name, default=None):
        value = getattr(args, name)
        if value is None:
            value = config.get(name, default)
        return value

    options = {}
    for source, file_source in (('tm', 'tm_file'), ('tape', 'tape_file')):
        # Command line sources replace run file sources; within each, the file wins
        layer = vars(args)
        if layer.get(source) is None and layer.get(file_source) is None:
            layer = config
        path = layer.get(file_source)
        value = read_text_file(path) if path is not None else layer.get(source)
        options[source] = None if value is None else str(value)

    if options['tm'] is None:
        raise ConfigurationError("A Turing machine specification is required (--tm or --tm-file).")

    options['max_tape_length'] = _positive(pick('max_tape_length', DEFAULT_MAX_TAPE_LEN),
                                           "Maximum tape length")
    options['max_steps'] = _positive(pick('max_steps', DEFAULT_MAX_STEPS),
                                     "Maximum number of steps")

    verbosity = pick('verbosity', 0)
    if verbosity not in (0, 1, 2):
        raise ConfigurationError(f"Verbosity must be between 0 and 2; was {verbosity}.")
    options['verbosity'] = verbosity

    log_level = str(pick('log_level', 'WARNING')).upper()
    if log_level not in LOG_LEVELS:
        raise ConfigurationError(f"Unknown log level {log_level}.")
    options['log_level'] = log_level
    options['save_trace'] = pick('save_trace')
    if options['save_trace'] and (options['tape'] is None or verbosity == 0):
        raise ConfigurationError("Saving a trace requires a tape and a verbosity of 1 or 2.")
    return options


def execute(options, out=None):
    """Decode the machine and print its listing, final tape or trace."""
    out = out if out is not None else sys.stdout
    table = decode(options['tm'])
    logger.info("Decoded machine with %d states", len(table))

    if options['tape'] is None:
        print_listing(table, file=out)
        return

    result = run_turing_machine(
        table,
        options['tape'],
        max_tape_len=options['max_tape_length'],
        max_steps=options['max_steps'],
        verbosity=options['verbosity'],
    )
    logger.info("Machine halted after %d steps", result.steps)

    if options['verbosity'] == 0:
        print(result.output, file=out)
        return

    if not options['save_trace']:
        print_trace(result.frames, file=out)
        return

    def echo(frames):
        for frame in frames:
            print(format_frame(frame), file=out)
            yield frame

    try:
        save_trace_to_file(echo(result.frames), options['save_trace'])
    except OSError as e:
        raise ConfigurationError(f"Error writing trace file {options['save_trace']}: {e}") from e


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level or 'WARNING')

    try:
        options = resolve_options(args)
        logging.getLogger().setLevel(options['log_level'])
        execute(options)
    except PenroseError as e:
        logger.debug("Run failed", exc_info=True)
        print(e, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
