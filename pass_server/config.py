"""
Settings for pass-indexer and pass-proxy.

Each command builds one of these from its options and hands it to the objects
that need it.
"""

import pathlib
import typing

import attr

HOME = pathlib.Path.home()


@attr.s(frozen=True, kw_only=True)
class IndexerConfig:
    keyring: pathlib.Path = attr.ib(default=HOME / '.gnupg' / 'pubring.gpg')
    store: pathlib.Path = attr.ib(default=HOME / '.password-store')
    target: pathlib.Path = attr.ib(default=HOME / '.pass-site')
    gnupghome: typing.Optional[pathlib.Path] = attr.ib(default=None)
    verbose: bool = attr.ib(default=False)


@attr.s(frozen=True, kw_only=True)
class ProxyConfig:
    target: str = attr.ib(default='http://127.0.0.1:80/')
    timeout: typing.Optional[float] = attr.ib(default=None)
