"""CLI entry point for rip."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from graverip.config import (
    BuryOpts,
    ConfigError,
    DecomposeOpts,
    Operation,
    SeanceOpts,
    UnburyOpts,
    load_config,
    resolve_graveyard,
)
from graverip.errors import RipError
from graverip.ops import DecomposeResult, Outcome, SeanceEntry, any_failed, run
from graverip.ops.outcome import DELETED, FAILED, RESTORED, SKIPPED


def confirm(message: str) -> bool:
    """Yes/no prompt, defaulting to no."""
    return click.confirm(message, default=False)


def build_operation(
    targets: tuple[str, ...],
    graveyard: Path,
    cwd: Path,
    config: dict,
    *,
    unbury: bool = False,
    seance: bool = False,
    decompose: bool = False,
    max_depth: int | None = None,
    full_path: bool = False,
    show_all: bool = False,
    local: bool = False,
    plain: bool = False,
    inspect: bool = False,
    verbose: bool = False,
) -> Operation:
    """Map CLI flags onto one operation value. Unbury wins over seance, seance over decompose."""
    if unbury:
        return UnburyOpts(
            graveyard=graveyard,
            cwd=cwd,
            targets=targets,
            local=local,
            seance=seance,
            max_depth=config["max_depth"] if max_depth is None else max_depth,
            full_path=full_path,
            verbose=verbose,
        )
    if seance:
        return SeanceOpts(
            graveyard=graveyard,
            cwd=cwd,
            show_all=show_all,
            full_path=full_path,
            plain=plain,
        )
    if decompose:
        return DecomposeOpts(graveyard=graveyard, verbose=verbose)
    return BuryOpts(
        graveyard=graveyard,
        cwd=cwd,
        targets=targets,
        inspect=inspect,
        verbose=verbose,
        inspect_lines=config["inspect"]["lines"],
        inspect_files=config["inspect"]["files"],
    )


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("targets", nargs=-1)
@click.option(
    "-G", "--graveyard",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory where deleted files go to rest.",
)
@click.option(
    "-u", "--unbury", is_flag=True,
    help="Undo the last removal, or restore some file(s) from the graveyard. "
         "Can be combined with -s and -l.",
)
@click.option(
    "-m", "--max-depth",
    type=click.IntRange(min=0),
    default=None,
    help="Set max depth for glob to search (default: 10).",
)
@click.option("-d", "--decompose", is_flag=True, help="Permanently deletes (unlink) the entire graveyard.")
@click.option("-s", "--seance", is_flag=True, help="Prints files that were sent under the current directory.")
@click.option(
    "-f", "--full-path", is_flag=True,
    help="Prints the full path of files under the current directory (with -s).",
)
@click.option("-a", "--all", "show_all", is_flag=True, help="Prints all files in graveyard (with -s).")
@click.option(
    "-l", "--local", is_flag=True,
    help="Undo files in current directory (local to current directory, with -u).",
)
@click.option("-p", "--plain", is_flag=True, help="Prints only the file-path (i.e. no index and no time).")
@click.option("-i", "--inspect", is_flag=True, help="Prints info about TARGET before prompting for action.")
@click.option("-v", "--verbose", is_flag=True, help="Print what is going on.")
def cli(
    targets: tuple[str, ...],
    graveyard: str | None,
    unbury: bool,
    max_depth: int | None,
    decompose: bool,
    seance: bool,
    full_path: bool,
    show_all: bool,
    local: bool,
    plain: bool,
    inspect: bool,
    verbose: bool,
) -> None:
    """Send files to the graveyard ($XDG_DATA_HOME/graveyard if set, else
    /tmp/graveyard-$USER) instead of unlinking them."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if show_all and not seance:
        raise click.UsageError("--all requires --seance")
    if local and not unbury:
        raise click.UsageError("--local requires --unbury")
    if not (targets or unbury or seance or decompose):
        raise click.UsageError("Missing TARGET.")

    try:
        config = load_config()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    root = resolve_graveyard(graveyard, config)
    operation = build_operation(
        targets,
        root,
        Path.cwd(),
        config,
        unbury=unbury,
        seance=seance,
        decompose=decompose,
        max_depth=max_depth,
        full_path=full_path,
        show_all=show_all,
        local=local,
        plain=plain,
        inspect=inspect,
        verbose=verbose,
    )

    try:
        result = run(operation, confirm)
    except RipError as exc:
        raise click.ClickException(str(exc)) from exc

    if isinstance(operation, SeanceOpts):
        _render_seance(result, operation)
    elif isinstance(operation, DecomposeOpts):
        _render_decompose(result, operation)
    else:
        _render_outcomes(result, root, full_path)
        if any_failed(result):
            raise SystemExit(1)


def _render_outcomes(outcomes: list[Outcome], graveyard: Path, full_path: bool) -> None:
    for o in outcomes:
        if o.action == RESTORED:
            if full_path:
                shown = str(o.source).replace(str(graveyard), "$GRAVEYARD", 1)
                click.echo(f"Returned {shown} to {o.dest}")
            else:
                click.echo(f"Returned {o.dest}")
        elif o.action == DELETED:
            click.echo(f"Unlinked {o.source}")
        elif o.action == SKIPPED:
            click.echo(f"Skipping {o.source}")
        elif o.action == FAILED:
            click.echo(f"Error: {o.error}", err=True)


def _render_seance(entries: list[SeanceEntry], opts: SeanceOpts) -> None:
    for e in entries:
        path = str(e.grave) if opts.full_path else str(e.grave).replace(str(opts.graveyard), "", 1)
        if opts.plain:
            click.echo(path)
        else:
            click.echo(f"{e.index:<4} {e.modified:<19}  {e.kind:<7} {path}")


def _render_decompose(result: DecomposeResult, opts: DecomposeOpts) -> None:
    if not result.purged or not opts.verbose:
        return
    click.echo("File\tType")
    click.echo("----\t----")
    for entry, kind in result.entries:
        click.echo(f"{entry.original}\t{kind}")
