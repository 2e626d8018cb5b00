import json
import logging
import os.path
import pathlib
import typing

import attr

from . import armour, keys
from .config import IndexerConfig
from .gpg import GPG
from .store import SUFFIX, PasswordStore, SecretEntry
from .utils import mkdir_private, write_private

log = logging.getLogger(__name__)

INDEX = 'index.asc'


@attr.s(frozen=True, kw_only=True)
class PassSite:
    """
    Builds the static site for a password store in a target directory.

    Each build rewrites every file from the store and keyring. Files written
    before a failure are left in place; running the build again replaces them.
    """

    store: PasswordStore = attr.ib()
    target: pathlib.Path = attr.ib()
    gpg: GPG = attr.ib()

    @classmethod
    def from_config(cls, config: IndexerConfig) -> 'PassSite':
        return cls(
            store=PasswordStore(config.store),
            target=config.target,
            gpg=GPG(keyring=config.keyring, home=config.gnupghome, verbose=config.verbose))

    def rel(self, path: pathlib.Path) -> str:
        return os.path.relpath(path.as_posix(), self.store.directory.as_posix())

    def destination(self, secret: pathlib.Path) -> pathlib.Path:
        name = secret.name[:-len(SUFFIX)] + '.asc'
        return self.target / self.store.relative(secret) / name

    def armour_secrets(self, secrets: typing.Iterable[pathlib.Path]) -> None:
        """Copy each secret into the target directory as an armoured file."""
        count = 0
        for secret in secrets:
            destination = self.destination(secret)
            log.debug(f"Armouring {self.rel(secret)} to {destination}")
            mkdir_private(destination.parent)
            write_private(destination, armour.encode(secret.read_bytes()))
            count += 1
        log.info(f"Armoured {count} secrets into {self.target}")

    @staticmethod
    def serialize(entries: typing.Iterable[SecretEntry]) -> bytes:
        index = [attr.asdict(entry) for entry in entries]
        text = json.dumps(index, ensure_ascii=False, separators=(',', ':')) + '\n'
        return text.encode('utf-8', 'replace')

    def write_index(
            self,
            entries: typing.Sequence[SecretEntry],
            recipients: typing.Sequence[keys.Recipient]) -> pathlib.Path:
        """Encrypt the index to the recipients and write it as index.asc."""
        fingerprints = list(dict.fromkeys(r.fingerprint for r in recipients))
        encrypted = self.gpg.encrypt(self.serialize(entries), fingerprints)
        path = self.target / INDEX
        write_private(path, armour.encode(encrypted))
        log.info(f"Wrote index of {len(entries)} secrets to {path}")
        return path

    def build(self) -> None:
        recipients = keys.resolve(self.store.directory, self.gpg)
        secrets = self.store.search()
        entries = self.store.entries(secrets)
        mkdir_private(self.target)
        self.armour_secrets(secrets)
        self.write_index(entries, recipients)
