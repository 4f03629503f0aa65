"""Command line interface for local-git-hub."""

import logging

import click
import pandas as pd

from localhub.cache import DiskCache
from localhub.config import default_cache_path, resolve_hub_path
from localhub.exceptions import LocalHubError
from localhub.hub import HubDirectory
from localhub.logging import add_file_handler, add_stream_handler, get_logger, remove_all_handlers, set_log_level
from localhub.remote import RemoteManager

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
SIZE_UNITS = ("B", "kB", "MB", "GB", "TB", "PB")


def format_size(num_bytes):
    """Human readable size in decimal units, e.g. ``12.30 kB``."""
    size = float(num_bytes)
    for unit in SIZE_UNITS:
        if size < 1000 or unit == SIZE_UNITS[-1]:
            break
        size /= 1000
    if unit == "B":
        return f"{int(size)} B"
    return f"{size:.2f} {unit}"


def format_commits(commits):
    return "N/A" if commits is None else str(commits)


def print_success(message):
    click.echo(f"{click.style('✓', fg='green')} {message}")


def print_error(message):
    click.echo(f"{click.style('✗', fg='red')} {message}", err=True)


def print_warning(message):
    click.echo(f"{click.style('⚠', fg='yellow')} {message}")


def print_info(message):
    click.echo(f"{click.style('ℹ', fg='blue')} {message}")


def print_header(title):
    click.echo()
    click.secho(title, bold=True, fg="cyan")
    click.secho("=" * len(title), fg="cyan")


class HubCommandGroup(click.Group):
    """Click group that turns core errors into a message and exit status 1."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except LocalHubError as e:
            print_error(str(e))
            ctx.exit(1)


def _configure_logging(ctx, debug, log_file):
    """Attach log handlers for this run and detach them when the command finishes."""
    if not (debug or log_file):
        return

    level = logging.DEBUG if debug else logging.INFO
    previous_level = get_logger().level
    set_log_level(level)
    if debug:
        add_stream_handler(level=level)
    if log_file:
        add_file_handler(log_file, level=level)

    def _reset():
        remove_all_handlers()
        set_log_level(previous_level)

    ctx.call_on_close(_reset)


def _hub(ctx):
    return ctx.obj["hub"]


@click.group(cls=HubCommandGroup)
@click.option(
    "--hub-path",
    type=click.Path(file_okay=False),
    default=None,
    help="Hub root directory (default: $LOCAL_GIT_HUB_PATH or ~/.local-git-hub)",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Append log records to this file")
@click.pass_context
def cli(ctx, hub_path, debug, log_file):
    """Manage local bare git repositories as a local backup hub."""
    _configure_logging(ctx, debug, log_file)

    path = resolve_hub_path(hub_path)
    ctx.ensure_object(dict)
    ctx.obj["hub_path"] = path
    ctx.obj["hub"] = HubDirectory(path, cache_backend=DiskCache(default_cache_path(path)))


@cli.command()
@click.pass_context
def init(ctx):
    """Initialize the hub directory."""
    path = _hub(ctx).init()
    print_success(f"Local Git Hub initialized at: {path}")


@cli.command()
@click.argument("name")
@click.pass_context
def create(ctx, name):
    """Create a new bare repository."""
    repo_path = _hub(ctx).create_repo(name)
    print_success(f"Repository '{name}' created at: {repo_path}")
    print_info(f"Use 'local-git-hub add-remote {name}' to add it to the current project")


@cli.command(name="list")
@click.option("--detailed", "-d", is_flag=True, help="Show size, commits and modification time")
@click.option("--no-commits", is_flag=True, help="Skip counting commits in the detailed view")
@click.pass_context
def list_command(ctx, detailed, no_commits):
    """List all repositories in the hub."""
    hub = _hub(ctx)
    if not detailed:
        repos = hub.list_repos()
        if not repos:
            print_warning("No repositories in hub")
            print_info("Use 'local-git-hub create <name>' to create a new repository")
            return
        print_header("Repositories in Hub")
        for name in repos:
            click.echo(f"  {click.style(name, fg='green')}")
        click.echo(f"\nTotal: {len(repos)} repositories")
        return

    df = hub.repo_table(count_commits=not no_commits)
    if df.empty:
        print_warning("No repositories in hub")
        print_info("Use 'local-git-hub create <name>' to create a new repository")
        return

    print_header("Repositories in Hub")
    view = pd.DataFrame(
        {
            "Name": df["name"],
            "Size": df["size"].map(format_size),
            "Commits": df["commits"].map(lambda c: "N/A" if pd.isna(c) else str(c)),
            "Modified": df["modified"].dt.strftime(DATETIME_FORMAT),
        }
    )
    click.echo(view.to_string(index=False))
    click.echo(f"\nTotal: {len(df)} repositories")


@cli.command()
@click.argument("pattern")
@click.pass_context
def search(ctx, pattern):
    """Search repositories by name."""
    repos = _hub(ctx).search_repos(pattern)
    print_header(f"Search Results for '{pattern}'")
    if not repos:
        print_warning("No repositories found")
        return
    for name in repos:
        click.echo(f"  {click.style(name, fg='green')}")
    click.echo(f"\nFound: {len(repos)} repositories")


@cli.command()
@click.argument("name")
@click.pass_context
def info(ctx, name):
    """Show repository information."""
    record = _hub(ctx).repo_info(name)
    print_header(f"Repository: {record.name}")
    click.echo(f"  Path:     {click.style(record.path, dim=True)}")
    click.echo(f"  Size:     {click.style(format_size(record.size), fg='cyan')}")
    click.echo(f"  Commits:  {click.style(format_commits(record.commits), fg='yellow')}")
    click.echo(f"  Modified: {click.style(record.modified.strftime(DATETIME_FORMAT), dim=True)}")


@cli.command()
@click.argument("name")
@click.option("--force", "-f", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def delete(ctx, name, force):
    """Delete a repository."""
    hub = _hub(ctx)
    if not force:
        record = hub.repo_info(name)
        print_warning(f"You are about to delete repository '{name}'")
        click.echo(f"  Size:    {format_size(record.size)}")
        click.echo(f"  Commits: {format_commits(record.commits)}")
        if not click.confirm("Are you sure you want to delete this repository?", default=False):
            print_info("Deletion cancelled")
            return

    hub.delete_repo(name)
    print_success(f"Repository '{name}' deleted")


@cli.command(name="add-remote")
@click.argument("name")
@click.option("--remote-name", "-r", default="local-hub", show_default=True, help="Name of the remote to add")
@click.option("--path", "-p", type=click.Path(file_okay=False), default=None, help="Working repository (default: current directory)")
@click.pass_context
def add_remote(ctx, name, remote_name, path):
    """Add a hub repository as a remote of the current project."""
    hub_repo_path = _hub(ctx).repo_path(name)
    RemoteManager(path).add_remote(remote_name, hub_repo_path)
    print_success(f"Added remote '{remote_name}' -> {hub_repo_path}")
    print_info(f"Now you can use 'git push {remote_name} <branch>' to push to the local backup")


@cli.command(name="add-push-url")
@click.argument("name")
@click.option("--remote-name", "-r", default="origin", show_default=True, help="Remote to add the push URL to")
@click.option("--path", "-p", type=click.Path(file_okay=False), default=None, help="Working repository (default: current directory)")
@click.pass_context
def add_push_url(ctx, name, remote_name, path):
    """Add a hub repository as push URL of an existing remote."""
    hub_repo_path = _hub(ctx).repo_path(name)
    RemoteManager(path).add_push_url(remote_name, hub_repo_path)
    print_success(f"Added local backup push URL for remote '{remote_name}'")
    print_info(f"Now 'git push {remote_name}' will push to {hub_repo_path}")


@cli.command(name="list-remotes")
@click.option("--path", "-p", type=click.Path(file_okay=False), default=None, help="Working repository (default: current directory)")
def list_remotes(path):
    """List the remotes of the current repository."""
    remotes = RemoteManager(path).list_remotes()
    if not remotes:
        print_warning("No remotes in current repository")
        return
    print_header("Remotes in Current Repository")
    for name, url in remotes:
        click.echo(f"  {click.style(name, fg='cyan')} -> {click.style(url, dim=True)}")


@cli.command(name="remove-remote")
@click.argument("remote_name")
@click.option("--path", "-p", type=click.Path(file_okay=False), default=None, help="Working repository (default: current directory)")
def remove_remote(remote_name, path):
    """Remove a remote from the current repository."""
    RemoteManager(path).remove_remote(remote_name)
    print_success(f"Remote '{remote_name}' removed")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
