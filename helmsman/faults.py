"""
Helmsman faults (errors raised while dispatching) and exit-code translation.

Scope
- FaultCode: canonical, stable numeric identifiers for every fault the dispatcher raises.
- CommandException: base type carrying a message plus read-only options; renders itself
  through rich so the exit coder can print it with the package palette.
- UsageError family: malformed command lines reported by the flag set parser.
- FlagNormalizationError / ConfigurationError: flag declaration problems.
- ExitError: an error that asks for a specific process exit status (an "exit coder").
- MultiError: aggregate of two or more errors (an ExceptionGroup), each individually inspectable.
- handle_exit_coder(): translate an error into a process exit when it carries an exit code.

Integration
- Hooks and actions raise; dispatch levels route what they raise through
  App.handle_exit_coder, which lands here unless the app installs its own handler.
"""
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console
from rich.text import Text

from .utils import Unset, coalesce

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the dispatcher (stable identifiers).

    grouping (by high-level domain)
    - usage (2110x): BAD_FLAG_SYNTAX, UNDEFINED_FLAG, FLAG_VALUE_REQUIRED, INVALID_FLAG_VALUE
    - declarations (2120x): FLAG_NORMALIZATION, FLAG_REDEFINED
    - dispatch (2130x): EXIT_REQUESTED, AGGREGATED
    """
    # --- usage errors (21xxx) ---
    BAD_FLAG_SYNTAX     = 21101
    UNDEFINED_FLAG      = 21102
    FLAG_VALUE_REQUIRED = 21103
    INVALID_FLAG_VALUE  = 21104

    # --- declaration errors (21xxx) ---
    FLAG_NORMALIZATION  = 21201
    FLAG_REDEFINED      = 21202

    # --- dispatch errors (21xxx) ---
    EXIT_REQUESTED      = 21301
    AGGREGATED          = 21302

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _palette():
    return defaultdict(str, {
        "code": "bold #00E5FF",  # neon cyan fault code
        "error-message": "#FF4DA6",  # friendly pinky message
    } | getattr(__import__("__main__"), "__styles__", {}))


class CommandException(Exception):
    """
    base of every fault raised by the dispatcher.

    - message: the one-line, user-facing text (also what str() returns).
    - options: read-only mapping of structured context (token, name, value, ...).
    """
    code = FaultCode.EXIT_REQUESTED

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = coalesce(message, "")
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message

    def __rich__(self):
        styles = _palette()
        return Text.assemble(
            ("[%s] " % self.code.normalize(), styles["code"]),
            (self.message, styles["error-message"]),
        )


class UsageError(CommandException): ...


class BadFlagSyntaxError(UsageError):
    code = FaultCode.BAD_FLAG_SYNTAX


class UndefinedFlagError(UsageError):
    code = FaultCode.UNDEFINED_FLAG


class FlagValueRequiredError(UsageError):
    code = FaultCode.FLAG_VALUE_REQUIRED


class InvalidFlagValueError(UsageError):
    code = FaultCode.INVALID_FLAG_VALUE


class FlagNormalizationError(CommandException):
    code = FaultCode.FLAG_NORMALIZATION


class ConfigurationError(CommandException):
    code = FaultCode.FLAG_REDEFINED


class ExitError(CommandException):
    """
    an error carrying the exit status the process should terminate with.

    anything exposing an integer `exit_code` attribute is treated as an exit coder;
    this class is the stock implementation.
    """

    def __init__(self, message=Unset, /, exit_code=1, **options):
        if not isinstance(exit_code, int) or isinstance(exit_code, bool):
            raise TypeError("exit-error 'exit_code' must be an integer")
        super().__init__(message, **options)
        self.exit_code = exit_code


class MultiError(ExceptionGroup):
    """
    aggregate of errors raised at one dispatch level (typically action + after hook).

    the constituents keep their order and identity; `errors` is the public view.
    """
    code = FaultCode.AGGREGATED

    def __new__(cls, *errors):
        return super().__new__(cls, "multiple errors", errors)

    def __init__(self, *errors):
        super().__init__("multiple errors", errors)

    @property
    def errors(self):
        return self.exceptions

    def __str__(self):
        return "\n".join(map(str, self.exceptions))

    def derive(self, exceptions):
        return type(self)(*exceptions)


def _exit_code(error):
    code = getattr(error, "exit_code", None)
    return code if isinstance(code, int) and not isinstance(code, bool) else None


def _report(writer, error):
    if str(error):
        writer.print(error, markup=False, highlight=False, soft_wrap=True)


def _handle_multi_error(error, writer):
    code = 1
    for member in error.exceptions:
        if isinstance(member, MultiError):
            code = _handle_multi_error(member, writer)
            continue
        _report(writer, member)
        if (found := _exit_code(member)) is not None:
            code = found
    return code


def handle_exit_coder(error, /, *, writer=None, exiter=None):
    """
    translate `error` into a process exit when it specifies an exit status.

    contract
    - None, or an error without an exit code: nothing happens.
    - exit coder (integer `exit_code`): its message is printed to `writer` (when non-empty),
      then `exiter(exit_code)` is called.
    - MultiError: every constituent is printed (recursively), then `exiter` is called with
      the last exit code found among them, or 1 when none carries one.

    parameters
    - writer: rich Console receiving the messages (defaults to the stderr console).
    - exiter: callable receiving the exit status (defaults to sys.exit).
    """
    if error is None:
        return
    writer = console if writer is None else writer
    exiter = exiter or sys.exit

    if (code := _exit_code(error)) is not None:
        _report(writer, error)
        exiter(code)
        return

    if isinstance(error, MultiError):
        exiter(_handle_multi_error(error, writer))


__all__ = (
    "FaultCode",
    "CommandException",
    "UsageError",
    "BadFlagSyntaxError",
    "UndefinedFlagError",
    "FlagValueRequiredError",
    "InvalidFlagValueError",
    "FlagNormalizationError",
    "ConfigurationError",
    "ExitError",
    "MultiError",
    "handle_exit_coder",
)
