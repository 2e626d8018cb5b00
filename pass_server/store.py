"""
Find the secrets in a password store and describe them without decrypting them.

A secret's path inside the store is all the index needs: 'example.com/alice.gpg'
is the secret for the username 'alice' in the domain 'example.com'.
"""

import logging
import os
import pathlib
import typing
import unicodedata

import attr

log = logging.getLogger(__name__)

SUFFIX = '.gpg'


def normalize(username: str) -> str:
    """
    Fold a username to ASCII for non-exact matching by clients.

    Characters are decomposed (NFKD) and anything outside ASCII is dropped,
    so 'Jöhn' becomes 'John' and '日本' becomes ''.
    """
    try:
        decomposed = unicodedata.normalize('NFKD', username)
    except (TypeError, ValueError) as error:
        log.debug(f"Could not normalize {username!r}: {error}")
        return ''
    return ''.join(c for c in decomposed if ord(c) < 0x80)


@attr.s(frozen=True, kw_only=True)
class SecretEntry:
    domain: str = attr.ib()
    path: str = attr.ib()
    username: str = attr.ib()
    username_normalized: str = attr.ib()

    def __str__(self):
        return f'{self.path}/{self.username}'


@attr.s(frozen=True)
class PasswordStore:
    directory: pathlib.Path = attr.ib()

    def search(self) -> typing.Sequence[pathlib.Path]:
        """
        Find every secret in the store.

        Files in the top level of the store (.gpg-id and friends) are never
        secrets, and .git directories are not searched.
        """
        log.info(f"Searching for secrets in {self.directory}")
        secrets: typing.List[pathlib.Path] = []

        for dirpath, dirnames, filenames in os.walk(self.directory, onerror=self.abort):
            dirnames[:] = sorted(d for d in dirnames if d != '.git')
            if pathlib.Path(dirpath) == self.directory:
                continue
            secrets.extend(pathlib.Path(dirpath, f) for f in sorted(filenames) if f.endswith(SUFFIX))

        log.info(f"Search found {len(secrets)} secrets in {self.directory}")
        return tuple(secrets)

    @staticmethod
    def abort(error: OSError) -> None:
        raise error

    def relative(self, secret: pathlib.Path) -> pathlib.PurePosixPath:
        """The directory containing a secret, relative to the store."""
        return pathlib.PurePosixPath(secret.parent.relative_to(self.directory).as_posix())

    def entry(self, secret: pathlib.Path) -> SecretEntry:
        parent = self.relative(secret)
        username = secret.name[:-len(SUFFIX)]
        return SecretEntry(
            domain=parent.name,
            path=parent.as_posix().lstrip('/'),
            username=username,
            username_normalized=normalize(username))

    def entries(self, secrets: typing.Iterable[pathlib.Path]) -> typing.List[SecretEntry]:
        return [self.entry(secret) for secret in secrets]
