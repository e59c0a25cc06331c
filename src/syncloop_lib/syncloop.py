# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

import sys
from typing import NoReturn

import click
from click_help_colors import HelpColorsCommand

from syncloop_lib.core.config import CFG
from syncloop_lib.core.error import SyncLoopError, UsageError
from syncloop_lib.core.logger import get_logger
from syncloop_lib.run.context import JobInvocation, RuntimeContext
from syncloop_lib.run.orchestrator import Orchestrator

__version__ = "0.3.0"

logger = get_logger(__name__)

# support both --help and -h
_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.command(
    cls=HelpColorsCommand,
    help_options_color="bright_blue",
    context_settings=_CONTEXT_SETTINGS,
)
@click.option(
    "--version",
    is_flag=True,
    help="Print the current version of syncloop and exit.",
)
@click.argument("paths", nargs=-1, type=str, metavar=click.style("SOURCE"))
def cli(version: bool, paths: tuple[str, ...]) -> NoReturn:
    """
    Back up SOURCE to the lab's rclone remote, every day, as a batch job.

    Run it directly with one argument, the file or directory to back up.
    syncloop checks that everything is set up, then submits itself as a
    batch job. The job mirrors SOURCE to the remote, emails you the result,
    and submits itself to run again tomorrow. If the job runs out of time or
    is preempted, it is requeued and continues where it stopped.

    Directories with the same name cannot be backed up at the same time:
    only one job per name is allowed to run.

    \b
    Exits:
        0: Job submitted, sync completed, or sync rescheduled.
        1: Wrong arguments, or a failure that needs your attention.
    """
    if version:
        print(__version__)
        sys.exit(0)

    try:
        source = _single_source(paths)
        runtime = RuntimeContext.fromEnvironment()
        invocation = JobInvocation.fromSource(source, runtime)
        sys.exit(Orchestrator(invocation, runtime).run())
    except UsageError as e:
        # no job context may exist yet, so this only ever goes to the console
        logger.error(e)
        click.echo(
            "You should be running this program with one argument: "
            "the name of a file or directory to sync.\n"
            f"For example: {CFG.binary_name} some_directory",
            err=True,
        )
        sys.exit(e.exit_code)
    except SyncLoopError as e:
        logger.error(e)
        sys.exit(e.exit_code)
    except Exception as e:
        logger.critical(e, exc_info=True, stack_info=True)
        sys.exit(CFG.exit_codes.unexpected_error)


def _single_source(paths: tuple[str, ...]) -> str:
    """
    Return the only source path.

    Raises:
        UsageError: If there is not exactly one path.
    """
    if len(paths) != 1:
        raise UsageError(f"Expected exactly one argument, got {len(paths)}.")
    return paths[0]
