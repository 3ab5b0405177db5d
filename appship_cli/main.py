from __future__ import annotations

import sys

import click
import typer

from . import __version__
from .api import AppshipClient, validate_api_key
from .auth_inputs import AuthInputError, resolve_login_api_key
from .cli_shared import (
    APPSHIP_API_KEY,
    DASHBOARD_URL,
    OpError,
    Settings,
    _bootstrap_env,
    _log,
    _print_json,
    _rich_error,
)
from .credentials import Credential, CredentialStore
from .mcp_server import serve_stdio

app = typer.Typer(
    name="appship",
    help="Appship MCP server for Claude and credential management.",
    no_args_is_help=False,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"appship {__version__}")
        raise typer.Exit(code=0)


def _settings(ctx: typer.Context) -> Settings:
    if isinstance(ctx.obj, dict) and isinstance(ctx.obj.get("settings"), Settings):
        return ctx.obj["settings"]
    return Settings.from_env()


@app.callback(invoke_without_command=True)
def app_callback(
    ctx: typer.Context,
    quiet: bool = typer.Option(False, "--quiet", help="Reduce stderr logging"),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True),
) -> None:
    del version
    ctx.obj = {"settings": Settings.from_env(quiet=quiet)}
    if ctx.invoked_subcommand is None:
        _serve(ctx.obj["settings"])


@app.command("login", help="Authenticate with your Appship API key.")
def login(
    ctx: typer.Context,
    api_key: str = typer.Option("", "--api-key", help="API key (prompted when omitted)"),
) -> None:
    settings = _settings(ctx)
    typer.echo(f"Get your API key from: {DASHBOARD_URL}")
    key = resolve_login_api_key(
        api_key=api_key,
        prompt=lambda: typer.prompt("API Key", default="", show_default=False, hide_input=True),
    )

    _log(settings, "validating API key")
    result = validate_api_key(key, settings)
    if not result.valid:
        raise OpError("invalid API key, please check and try again")

    path = CredentialStore(settings).persist(Credential(api_key=key, email=result.email))
    typer.echo(f"Logged in as {result.email or 'user'}")
    typer.echo(f"Credentials saved to {path}")


@app.command("logout", help="Remove stored credentials.")
def logout(ctx: typer.Context) -> None:
    settings = _settings(ctx)
    store = CredentialStore(settings)
    if store.read_stored() is None:
        typer.echo("You are not logged in.")
    elif store.erase():
        typer.echo("Logged out successfully.")
        typer.echo(f"Credentials removed from {store.path}")
    else:
        raise OpError(f"failed to remove credentials at {store.path}")
    if settings.api_key_override:
        typer.echo(f"{APPSHIP_API_KEY} is still set; unset it to stop using that key.")


@app.command("whoami", help="Show the current authenticated user.")
def whoami(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Emit account info as JSON"),
) -> None:
    settings = _settings(ctx)
    store = CredentialStore(settings)
    source = store.active_source()
    if source is None:
        typer.echo("Not logged in.")
        typer.echo("Run 'appship login' to authenticate.")
        return

    stored = store.read_stored()
    try:
        user = AppshipClient(settings, store).get_user_info()
    except OpError as e:
        if stored is None or not stored.email:
            raise OpError(f"could not verify credentials: {e}") from e
        _log(settings, f"could not fetch account details: {e}")
        if json_output:
            _print_json({"email": stored.email, "source": source, "verified": False}, pretty=True)
            return
        typer.echo(f"Logged in as: {stored.email}")
        typer.echo(f"Source:  {source}")
        typer.echo("(Could not fetch account details)")
        return

    if json_output:
        _print_json({**user, "source": source, "verified": True}, pretty=True)
        return
    typer.echo("Appship Account")
    typer.echo(f"Email:   {user.get('email')}")
    typer.echo(f"Credits: {user.get('credits')}")
    typer.echo(f"Apple:   {'Connected' if user.get('hasAppleCredentials') else 'Not connected'}")
    typer.echo(f"Source:  {source}")


def _serve(settings: Settings) -> None:
    if CredentialStore(settings).resolve() is None:
        _rich_error("Not authenticated. Run 'appship login' to authenticate.")
        raise typer.Exit(code=1)
    rc = serve_stdio(settings)
    if rc:
        raise typer.Exit(code=rc)


@app.command("serve", hidden=True, help="Start the MCP server on stdio (default action).")
def serve(ctx: typer.Context) -> None:
    _serve(_settings(ctx))


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        _bootstrap_env()
        result = app(args=argv, prog_name="appship", standalone_mode=False)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except click.ClickException as e:
        _rich_error(e.format_message())
        return int(e.exit_code)
    except click.exceptions.Abort:
        _rich_error("aborted")
        return 1
    except AuthInputError as e:
        _rich_error(str(e))
        return 2
    except OpError as e:
        _rich_error(str(e))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
