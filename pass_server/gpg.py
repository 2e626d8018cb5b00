import logging
import os
import pathlib
import subprocess
import typing

import attr

log = logging.getLogger(__name__)


@attr.s(frozen=True)
class GPG:
    """
    Runs gpg against a single public keyring.

    The default keyring in GNUPGHOME is never read, so only keys present in
    the given keyring can be listed or encrypted to.
    """

    keyring: pathlib.Path = attr.ib()
    verbose: bool = attr.ib(default=False)
    home: typing.Optional[pathlib.Path] = attr.ib(default=None)

    def command(self, arguments: typing.Sequence[str]) -> typing.Tuple[str, ...]:
        command: typing.Tuple[str, ...] = (
            'gpg', '--batch', '--yes',
            '--no-default-keyring',
            # gpg looks up keyring names without a slash in GNUPGHOME.
            '--keyring', self.keyring.resolve().as_posix(),
            '--trust-model', 'always')
        if self.verbose:
            command = (*command, '--verbose')
        return (*command, *arguments)

    def run(self,
            arguments: typing.Sequence[str],
            stdin: typing.Optional[bytes] = None) -> subprocess.CompletedProcess:
        env = {**os.environ, 'GNUPGHOME': self.home.as_posix()} if self.home else None
        try:
            result = subprocess.run(
                self.command(arguments),
                input=stdin,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=env,
                check=True)
        except subprocess.CalledProcessError as error:
            for line in error.stderr.decode('utf-8', 'replace').splitlines():
                log.error(line)
            raise
        if self.verbose:
            for line in result.stderr.decode('utf-8', 'replace').splitlines():
                log.info(line)
        return result

    def list_keys(self) -> str:
        """List the keyring's public keys in gpg's machine readable format."""
        log.debug(f"Listing keys in {self.keyring}")
        listing = self.run(['--with-colons', '--fixed-list-mode', '--list-keys']).stdout
        # User IDs are printed as raw bytes, whatever their encoding.
        return listing.decode('utf-8', 'replace')

    def encrypt(self, data: bytes, recipients: typing.Iterable[str]) -> bytes:
        """Encrypt data to every recipient, returning binary OpenPGP packets."""
        args: typing.List[str] = []
        for recipient in recipients:
            args += ['--recipient', recipient]
        log.debug(f"Encrypting {len(data)} bytes for {len(args) // 2} recipient(s)")
        # --no-encrypt-to ignores encrypt-to and hidden-encrypt-to in gpg.conf.
        args += ['--no-encrypt-to', '--output', '-', '--encrypt']
        return self.run(args, stdin=data).stdout
