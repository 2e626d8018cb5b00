import logging
import pathlib
import subprocess
import typing

import click
import uvicorn

from . import __doc__, __version__
from .config import IndexerConfig, ProxyConfig
from .proxy import create_app
from .site import PassSite
from .utils import PassServerException

log = logging.getLogger(__name__)

DEFAULTS = IndexerConfig()


class PathType(click.Path):
    def convert(self, value, param, ctx):
        return pathlib.Path(super().convert(value, param, ctx))


def parse_socket(socket: str) -> typing.Tuple[str, int]:
    host, _, port = socket.rpartition(':')
    if not host or not port.isdigit():
        raise PassServerException(f"Listen socket should be HOST:PORT, not {socket!r}")
    return host.strip('[]'), int(port)


debug_option = click.option(
    '-d', '--debug', 'debug',
    default=False,
    is_flag=True,
    help="Enable debug logging.")


@click.command(help=__doc__)
@click.option(
    '--keyring',
    type=PathType(dir_okay=False),
    default=DEFAULTS.keyring,
    show_default=True,
    help="Location of the PGP public keyring.")
@click.option(
    '--store',
    type=PathType(file_okay=False, exists=True),
    envvar='PASSWORD_STORE_DIR',
    default=DEFAULTS.store,
    show_default=True,
    help="Location of the password store.")
@click.option(
    '--target',
    type=PathType(file_okay=False),
    default=DEFAULTS.target,
    show_default=True,
    help="Target directory to generate pass-site files in.")
@click.option(
    '--gnupghome',
    type=PathType(file_okay=False),
    envvar='GNUPGHOME',
    default=None,
    help="GnuPG home directory used while running gpg.")
@debug_option
@click.option(
    '-v', '--verbose', 'verbose',
    default=False,
    is_flag=True,
    help="Display GPG's normal STDERR output.")
@click.version_option(__version__, prog_name='pass-indexer')
def indexer(
        keyring: pathlib.Path,
        store: pathlib.Path,
        target: pathlib.Path,
        gnupghome: typing.Optional[pathlib.Path],
        debug: bool,
        verbose: bool):
    logging.basicConfig(level=(logging.DEBUG if debug else logging.WARNING))
    config = IndexerConfig(
        keyring=keyring,
        store=store,
        target=target,
        gnupghome=gnupghome,
        verbose=verbose)

    try:
        PassSite.from_config(config).build()
    except subprocess.CalledProcessError as error:
        raise PassServerException(f"gpg failed with exit status {error.returncode}") from error
    except OSError as error:
        raise PassServerException(str(error)) from error


@click.command()
@click.option(
    '--socket',
    default='127.0.0.1:7277',
    show_default=True,
    help="Proxy listen socket.")
@click.option(
    '--target',
    default=ProxyConfig().target,
    show_default=True,
    help="Proxy target, serving the pass-indexer target directory.")
@click.option(
    '--timeout',
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds to wait for the target before giving up.")
@debug_option
@click.version_option(__version__, prog_name='pass-proxy')
def proxy(socket: str, target: str, timeout: typing.Optional[float], debug: bool):
    """Serve the legacy browser client protocol from a pass-indexer site."""
    logging.basicConfig(level=(logging.DEBUG if debug else logging.WARNING))
    host, port = parse_socket(socket)
    app = create_app(ProxyConfig(target=target, timeout=timeout))
    log.info(f"Proxying {socket} to {target}")
    uvicorn.run(app, host=host, port=port, log_level=('debug' if debug else 'warning'))
