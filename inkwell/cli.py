"""Command-line interface for Inkwell.

This module defines the CLI commands using Click framework.

Commands:
- regen: Regenerate every page of a weblog.
- upgen: Regenerate the pages affected by one entry.
- list: List the entries of a weblog.
- post: Create or edit an entry in $EDITOR.
- watch: Regenerate as entries and templates change.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
import questionary
import yaml

from . import __version__
from .entry import ENTRY_KINDS, Entry
from .errors import EntryNotFoundError, InkwellError
from .mapper import ChangeScope
from .regenerate import RegenerationReport
from .weblog import Weblog

weblog_argument = click.argument(
    "weblog_path",
    metavar="WEBLOG",
    type=click.Path(exists=True, path_type=Path),
)


@click.group()
@click.version_option(version=__version__, prog_name="inkwell")
@click.option("-v", "--verbose", count=True, help="Log progress (repeat for debug output)")
def cli(verbose: int):
    """Inkwell file-system weblog."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@weblog_argument
def regen(weblog_path: Path):
    """Regenerate every page of the weblog."""
    weblog = _load(weblog_path)
    _run(weblog, ChangeScope.full())


@cli.command()
@weblog_argument
@click.argument("entry_id", required=False)
def upgen(weblog_path: Path, entry_id: str | None):
    """Regenerate the pages affected by ENTRY_ID (all pages when omitted)."""
    weblog = _load(weblog_path)
    scope = ChangeScope.update(entry_id) if entry_id else ChangeScope.full()
    _run(weblog, scope)


@cli.command(name="list")
@weblog_argument
@click.argument("prefix", required=False, default="")
@click.option("--flat", is_flag=True, help="Only list entries directly inside PREFIX")
def list_entries(weblog_path: Path, prefix: str, flat: bool):
    """List entries, newest first."""
    weblog = _load(weblog_path)
    try:
        entries = weblog.storage.list(prefix, recursive=not flat)
    except InkwellError as exc:
        raise click.ClickException(str(exc)) from None
    if not entries:
        click.echo("No entries found.")
        return
    width = max(len(entry.id) for entry in entries)
    for entry in entries:
        created = entry.created.strftime("%Y-%m-%d %H:%M")
        click.echo(f"{entry.id.ljust(width)}  {created}  {entry.title}")


@cli.command()
@weblog_argument
@click.argument("entry_id")
@click.option(
    "--type",
    "kind",
    type=click.Choice(ENTRY_KINDS),
    default=None,
    help="Type of a new entry",
)
@click.option("--author", default=None, help="Author of a new entry")
def post(weblog_path: Path, entry_id: str, kind: str | None, author: str | None):
    """Create or edit the entry ENTRY_ID in $EDITOR."""
    weblog = _load(weblog_path)
    store = weblog.storage
    try:
        entry = store.load(entry_id)
        is_new = False
    except EntryNotFoundError:
        if kind is None:
            kind = questionary.select(
                "Entry type:",
                choices=list(ENTRY_KINDS),
                style=_questionary_style(),
            ).ask()
            if kind is None:
                raise click.Abort() from None
        entry = Entry.new(entry_id, author=author or _default_author(weblog), kind=kind)
        is_new = True
    except InkwellError as exc:
        raise click.ClickException(str(exc)) from None

    original = yaml.safe_dump(entry.to_dict(), sort_keys=False, allow_unicode=True)
    edited = click.edit(original, extension=".yaml")
    if edited is None or edited == original:
        click.echo("Edit aborted; entry not saved.")
        return

    try:
        data = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Entry is not valid YAML: {exc}") from None
    if not isinstance(data, dict):
        raise click.ClickException("Entry must be a YAML mapping.")
    try:
        updated = Entry.from_dict(entry_id, data)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from None
    if not is_new:
        updated.modified = weblog.now()

    try:
        store.save(entry_id, updated)
    except InkwellError as exc:
        raise click.ClickException(str(exc)) from None
    click.echo(f"{'Created' if is_new else 'Saved'} {entry_id}")

    if weblog.config.get("post_upgen"):
        _run(weblog, ChangeScope.update(entry_id))


@cli.command()
@weblog_argument
def watch(weblog_path: Path):
    """Regenerate as entries and templates change."""
    weblog = _load(weblog_path)
    from .watcher import Watcher

    def on_error(exc: InkwellError) -> None:
        click.echo(click.style(f"Regeneration failed: {exc}", fg="red"), err=True)

    watcher = Watcher(weblog, on_report=_print_report, on_error=on_error)
    click.echo(f"Watching {weblog.entry_path} and {weblog.skel_path}")
    watcher.start()


def _load(weblog_path: Path) -> Weblog:
    try:
        return Weblog.load(weblog_path)
    except InkwellError as exc:
        raise click.ClickException(str(exc)) from None


def _run(weblog: Weblog, scope: ChangeScope) -> RegenerationReport:
    """Run a pass, print its outcome and exit with status 1 on failures."""
    try:
        report = weblog.regenerate(scope)
    except InkwellError as exc:
        click.echo(click.style("Regeneration failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  Error: {exc}", fg="white"), err=True)
        raise SystemExit(1) from None
    _print_report(report)
    if not report.ok:
        raise SystemExit(1)
    return report


def _print_report(report: RegenerationReport) -> None:
    if report.ok:
        click.echo(report.summary())
        return
    click.echo(report.summary(), err=True)
    click.echo(click.style("Regeneration finished with failures:", fg="red", bold=True), err=True)
    for failure in report.failures:
        click.echo(click.style(f"  Page: {failure.page_id}", fg="yellow"), err=True)
        click.echo(click.style(f"  Template: {failure.template}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {failure.error}", fg="white"), err=True)
    for failure in report.publish_failures:
        click.echo(click.style(f"  Publish: {failure}", fg="yellow"), err=True)


def _default_author(weblog: Weblog) -> str:
    """Return the only configured author, or an empty string."""
    authors = weblog.authors
    return next(iter(authors)) if len(authors) == 1 else ""


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()
