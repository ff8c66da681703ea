from __future__ import annotations

import json
import logging
import sys
from typing import List, Optional

import click

from . import __version__
from .api import ForceClient
from .decoding import Record
from .env_loader import load_env_files
from .exceptions import ConfigurationError, ForceError, MissingCredentialsError
from .frame import records_to_frame
from .logging_config import configure_logging
from .session import ForceConfig
from .utils import fieldnames_for, write_csv

_logger = logging.getLogger(__name__)

# Load .env very early, so everything else sees env vars
load_env_files()

OUTPUT_FORMATS = ("json", "csv", "table")


def _supports_unicode_emoji() -> bool:
    enc = getattr(sys.stdout, "encoding", "") or ""
    return "UTF-8" in enc.upper()


def _connect(ctx: click.Context) -> ForceClient:
    try:
        cfg = ForceConfig.from_env()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    opts = ctx.find_root().obj or {}
    if opts.get("debug"):
        cfg.debug = True
    if opts.get("insecure"):
        cfg.verify_ssl = False

    client = ForceClient(cfg)
    try:
        client.connect()
    except MissingCredentialsError as e:
        needed = ", ".join(e.missing)
        msg = (
            f"Missing Salesforce credentials: {needed}\n\n"
            "Set these environment variables (or create a .env file), e.g. for "
            "the OAuth password grant:\n"
            "  SF_USERNAME=you@example.com\n"
            "  SF_PASSWORD=...              # append the security token if required\n"
            "  SF_CLIENT_ID=...             # Connected App Consumer Key\n"
            "  SF_CLIENT_SECRET=...         # Connected App Consumer Secret\n"
            "  SF_LOGIN_URL=https://login.salesforce.com  # or https://test.salesforce.com\n"
            "  SF_API_VERSION=35.0          # optional\n\n"
            "Tip: run `forcequery login --help` for more details."
        )
        raise click.ClickException(msg) from e
    except ForceError as e:
        raise click.ClickException(f"Login failed: {e}") from e
    return client


def _emit(records: List[Record], fmt: str, out: Optional[str]) -> None:
    if fmt == "csv" and out:
        n = write_csv(out, records, fieldnames_for(records))
        arrow = "→" if _supports_unicode_emoji() else "->"
        click.echo(f"Wrote {n} rows {arrow} {out}", err=True)
        return

    if fmt == "json":
        text = json.dumps(records, indent=2, ensure_ascii=False)
    elif fmt == "csv":
        text = records_to_frame(records, flatten_nested=True).to_csv(index=False).rstrip("\n")
    elif records:
        text = records_to_frame(records, flatten_nested=True).to_string(index=False)
    else:
        text = "(no records)"

    if out:
        with open(out, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        click.echo(f"Wrote {len(records)} rows to {out}", err=True)
    else:
        click.echo(text)


def _format_options(func):
    func = click.option(
        "--out",
        type=click.Path(dir_okay=False, writable=True),
        help="Write output to a file instead of stdout.",
    )(func)
    func = click.option(
        "--format",
        "fmt",
        type=click.Choice(OUTPUT_FORMATS),
        default="json",
        show_default=True,
        help="Output format.",
    )(func)
    return func


@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
)
@click.version_option(__version__, "--version", prog_name="forcequery")
@click.option(
    "-v",
    "--verbose",
    "loglevel",
    flag_value=logging.INFO,
    default=None,
    help="Enable INFO logs.",
)
@click.option(
    "-vv",
    "--very-verbose",
    "loglevel",
    flag_value=logging.DEBUG,
    help="Enable DEBUG logs.",
)
@click.option("--debug", is_flag=True, help="Log request URLs and raw response bodies.")
@click.option("--insecure", is_flag=True, help="Skip TLS certificate verification.")
@click.pass_context
def cli(ctx: click.Context, loglevel: Optional[int], debug: bool, insecure: bool) -> None:
    """Salesforce SOQL query client. Use subcommands like 'login' or 'query'."""
    if debug and loglevel is None:
        loglevel = logging.INFO
    configure_logging(loglevel)
    ctx.obj = {"debug": debug, "insecure": insecure}
    _logger.debug("CLI start, version=%s", __version__)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("login")
@click.option("--show-token", is_flag=True, help="Print a preview of the access token.")
@click.pass_context
def cmd_login(ctx: click.Context, show_token: bool) -> None:
    """Authenticate and show the session details."""
    client = _connect(ctx)
    session = client.session
    click.echo("Connected to Salesforce.")
    click.echo(f"Instance URL: {session.base_url}")
    click.echo(f"API Version: {session.api_version}")
    if show_token:
        token = session.credential
        click.echo(f"Token preview: {token[:10]}...{token[-6:]}")


@cli.command("query")
@click.argument("soql")
@click.option(
    "--all-rows",
    is_flag=True,
    help="Include deleted and archived records (queryAll).",
)
@_format_options
@click.pass_context
def cmd_query(
    ctx: click.Context, soql: str, all_rows: bool, fmt: str, out: Optional[str]
) -> None:
    """Run a SOQL query and print every page of results."""
    client = _connect(ctx)
    try:
        records = client.query(soql, include_deleted=all_rows)
    except ForceError as e:
        raise click.ClickException(str(e)) from e
    _emit(records, fmt, out)


@cli.command("more")
@click.argument("next_records_url")
@_format_options
@click.pass_context
def cmd_more(ctx: click.Context, next_records_url: str, fmt: str, out: Optional[str]) -> None:
    """Resume a query from a nextRecordsUrl and fetch the remaining pages."""
    client = _connect(ctx)
    try:
        records = client.query_more(next_records_url)
    except ForceError as e:
        raise click.ClickException(str(e)) from e
    _emit(records, fmt, out)
