"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import signal
import sys
import click
import logging
from functools import wraps
from typing import Any, Dict

from .exit_codes import (
    SUCCESS, INTERRUPTED, USAGE_ERROR,
    get_exit_code_for_exception, CommandError
)

logger = logging.getLogger(__name__)


def _terminate(signum, frame):
    # Raising SystemExit unwinds the stack, so temp dirs and key files are removed.
    raise SystemExit(128 + signum)


def install_signal_handlers() -> None:
    """Turn SIGTERM into SystemExit so cleanup handlers run."""
    signal.signal(signal.SIGTERM, _terminate)


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Logs on stderr, protocol output only on stdout
    - Exit codes from CommandError subclasses
    - SIGTERM and Ctrl+C still clean up before exiting
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        install_signal_handlers()
        try:
            func(*args, **kwargs)
            sys.exit(SUCCESS)
        except KeyboardInterrupt:
            logger.error("Interrupted by user")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except CommandError as e:
            logger.error(str(e))
            sys.exit(e.exit_code)
        except Exception as e:
            logger.error(f"Command failed: {type(e).__name__}: {e}")
            sys.exit(get_exit_code_for_exception(e))

    return wrapper


class ResourceCommand(click.Command):
    """
    Command whose argument errors exit with USAGE_ERROR.

    Exit code 2 belongs to rejected verification keys, not to click.
    """

    def parse_args(self, ctx, args):
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = USAGE_ERROR
            raise


def output_result(result: Dict[str, Any]) -> None:
    """Print a protocol payload as one JSON line on stdout."""
    print(json.dumps(result, ensure_ascii=False), flush=True)


# Standard options that commands share
common_options = {
    'verbose': click.option('-v', '--verbose', is_flag=True,
                            help='Log debug output, including every git command'),
    'quiet': click.option('-q', '--quiet', is_flag=True,
                          help='Do not print the pipeline summary table'),
}


def add_common_options(*option_names):
    """
    Decorator to add common options to a command.

    Example:
        @add_common_options('verbose', 'quiet')
        def my_command(verbose, quiet):
            ...
    """
    def decorator(func):
        for name in reversed(option_names):
            if name in common_options:
                func = common_options[name](func)
        return func
    return decorator
