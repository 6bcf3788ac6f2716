"""CLI entrypoint for parallel-exec."""

import logging
from pathlib import Path

import rich_click as click

from parallel_exec import __version__
from parallel_exec.controllers import (
    INPUT_SEPARATOR,
    ParallelCliController,
    ParallelRunCommand,
    resolve_settings,
)
from parallel_exec.execute import TemplateError

click.rich_click.USE_MARKDOWN = True
PARALLEL_CONTROLLER = ParallelCliController()


@click.group()
@click.version_option(version=__version__, prog_name="parallel-exec")
def parallel_exec() -> None:
    """Run a command template over many inputs in parallel."""


@parallel_exec.command("run", context_settings={"ignore_unknown_options": True})
@click.option(
    "-j",
    "--jobs",
    type=click.IntRange(min=1),
    default=None,
    help="Number of parallel slots. Defaults to PARALLEL_EXEC_JOBS or the CPU count.",
)
@click.option(
    "--timeout",
    "timeout_seconds",
    type=click.FloatRange(min=0),
    default=None,
    help="Kill jobs running longer than this many seconds. 0 disables the timeout.",
)
@click.option("-v", "--verbose", is_flag=True, default=None, help="Print job progress lines.")
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    default=None,
    help="Do not print child output to the terminal.",
)
@click.option(
    "--joblog",
    "joblog_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Write a tab-separated per-job timing log to this file.",
)
@click.option(
    "-a",
    "--arg-file",
    "arg_files",
    multiple=True,
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="Read inputs from this file, one per line. Can be repeated.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Diagnostic log level. Defaults to PARALLEL_EXEC_LOG_LEVEL or WARNING.",
)
@click.argument("arguments", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(  # noqa: PLR0913
    ctx: click.Context,
    jobs: int | None,
    timeout_seconds: float | None,
    verbose: bool | None,
    quiet: bool | None,
    joblog_path: Path | None,
    arg_files: tuple[Path, ...],
    log_level: str | None,
    arguments: tuple[str, ...],
) -> None:
    """Run COMMAND once per input.

    Inputs follow `:::` on the command line, or come from `--arg-file`, or
    from stdin, one per line. The command may use `{}` (input), `{.}`, `{/}`,
    `{//}`, `{/.}`, `{#}` (job number), `{##}` (job total) and `{%}` (slot).
    """

    command = ParallelRunCommand(
        arguments=arguments,
        arg_files=arg_files,
        jobs=jobs,
        timeout_seconds=timeout_seconds,
        verbose=verbose or None,
        quiet=quiet or None,
        joblog_path=joblog_path,
        log_level=log_level,
    )
    try:
        settings = resolve_settings(command)
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    logging.basicConfig(
        level=settings.logging_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    stdin = None
    if INPUT_SEPARATOR not in arguments and not arg_files:
        stdin = click.get_text_stream("stdin")
    try:
        result = PARALLEL_CONTROLLER.run(
            command,
            stdin=stdin,
            settings=settings,
        )
    except TemplateError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(result.lines)
    ctx.exit(result.exit_code)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line, err=True)


if __name__ == "__main__":  # pragma: no cover
    parallel_exec()
