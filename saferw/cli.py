"""
Main entry point for saferw. Accessed by 'saferw' in the command line.
"""
from functools import update_wrapper
import json
from pathlib import Path
import sys
import click

from saferw.core.accessor import safe_read, safe_write
from saferw.core.errors import SafeRWError
from saferw.core.lockfile import check, lock, sentinel_path, unlock
from saferw.core.poller import check_and_wait
from saferw.core.runtime import build_runtime, Runtime
from saferw.core.settings import save_settings


def pass_runtime(f):
    """
    Decorator to pass a Runtime to Click commands that need it.
    Ensures a Runtime is created and passed as the first argument, and turns
    configuration and saferw errors into a clean exit status.
    """
    @click.pass_context
    def new_func(ctx: click.Context, *args, **kwargs):
        ctx.ensure_object(dict)
        rt = ctx.obj.get('rt')
        if rt is None:
            opts = ctx.obj.get('global_opts', {})  # user overrides
            try:
                rt = build_runtime(**opts)
            except ValueError as e:
                raise click.ClickException(f"invalid configuration: {e}") from e
            ctx.obj['rt'] = rt
        try:
            return f(ctx.obj['rt'], *args, **kwargs)
        except SafeRWError as e:
            rt.logger.debug("Command failed", exc_info=True)
            raise click.ClickException(str(e)) from e
    return update_wrapper(new_func, f)

@click.group()
@click.option('--settings-dir', type=click.Path(path_type=Path), default=None,
              help="Directory holding settings.json.")
@click.option('--wait', 'wait_ms', type=click.IntRange(min=0), default=None,
              help="Milliseconds between lock polls.")
@click.option('--retries', type=click.IntRange(min=0), default=None,
              help="Polls after the first one before giving up.")
@click.option('--lock-retries', type=click.IntRange(min=0), default=None,
              help="Extra attempts at creating the sentinel itself.")
@click.option('--encoding', default=None, help="Text encoding for read/write.")
@click.option('--raw', is_flag=True, default=False,
              help="Read and write bytes, no text encoding.")
@click.option('-v', '--verbose', is_flag=True, default=False,
              help="Log every lock, poll and release.")
@click.version_option(package_name="saferw")
@click.pass_context
def main(ctx, settings_dir, wait_ms, retries, lock_retries, encoding, raw, verbose):
    """saferw: advisory sentinel-file locks for shared files."""
    ctx.ensure_object(dict)
    ctx.obj['global_opts'] = {
        'settings_dir': settings_dir,
        'wait_ms': wait_ms,
        'retries': retries,
        'lock_retries': lock_retries,
        'encoding': encoding,
        'raw': raw,
        'verbose': verbose,
    }

@main.command("lock")
@pass_runtime
@click.argument("path", type=click.Path(path_type=Path))
def lock_cmd(rt: Runtime, path: Path):
    """Create the sentinel PATH.lock, failing if it exists."""
    sentinel = sentinel_path(path)
    lock(sentinel, rt.options.acquire)
    click.echo(f"locked {sentinel}")

@main.command("unlock")
@pass_runtime
@click.argument("path", type=click.Path(path_type=Path))
def unlock_cmd(rt: Runtime, path: Path):
    """Remove the sentinel PATH.lock (no-op if absent)."""
    sentinel = sentinel_path(path)
    unlock(sentinel)
    rt.logger.debug("Unlocked %s", sentinel)
    click.echo(f"unlocked {sentinel}")

@main.command("check")
@pass_runtime
@click.argument("path", type=click.Path(path_type=Path))
def check_cmd(rt: Runtime, path: Path):
    """Report whether PATH is locked. Exit status 1 if it is."""
    sentinel = sentinel_path(path)
    held = check(sentinel)
    rt.logger.debug("Sentinel %s present: %s", sentinel, held)
    click.echo("locked" if held else "free")
    sys.exit(1 if held else 0)

@main.command("wait")
@pass_runtime
@click.argument("path", type=click.Path(path_type=Path))
def wait_cmd(rt: Runtime, path: Path):
    """
    Poll until PATH is unlocked or the retries run out.
    Exit status 1 if it is still busy.
    """
    poll = rt.options.poll
    busy = check_and_wait(sentinel_path(path), poll.wait_ms, poll.retries)
    click.echo("busy" if busy else "free")
    sys.exit(1 if busy else 0)

@main.command("write")
@pass_runtime
@click.argument("path", type=click.Path(path_type=Path))
@click.argument("data", required=False, default="-")
def write_cmd(rt: Runtime, path: Path, data: str):
    """
    Write DATA to PATH under its lock. Reads stdin when DATA is '-' or omitted.

    Example: echo hello | saferw write notes.txt
    """
    options = rt.options
    if data == "-":
        stream = click.get_binary_stream("stdin")
        payload = stream.read()
    else:
        payload = data if options.encoding else data.encode(sys.getfilesystemencoding())
    safe_write(path, payload, options)
    rt.logger.info("Wrote %s", path)

@main.command("read")
@pass_runtime
@click.argument("path", type=click.Path(path_type=Path))
def read_cmd(rt: Runtime, path: Path):
    """Print the contents of PATH, read under its lock."""
    try:
        content = safe_read(path, rt.options)
    except FileNotFoundError as e:
        raise click.ClickException(f"no such file: {path}") from e
    if isinstance(content, bytes):
        click.get_binary_stream("stdout").write(content)
    else:
        click.echo(content, nl=False)

@main.group("config")
def config():
    """Inspect or persist the default lock options."""

@config.command("show")
@pass_runtime
def config_show(rt: Runtime):
    """Print the effective settings (file, environment and flags combined)."""
    click.echo(f"# {rt.settings_dir}")
    click.echo(json.dumps(rt.settings.to_dict(), indent=2))

@config.command("save")
@pass_runtime
def config_save(rt: Runtime):
    """
    Save the effective settings to settings.json.

    Example: saferw --wait 100 --retries 10 config save
    """
    path = save_settings(rt.settings_dir, rt.settings)
    click.echo(f"saved {path}")
