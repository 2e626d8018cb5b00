import os
import pathlib
import shutil
import subprocess
import typing

import attr
import click.testing
import pytest

from pass_server.keys import parse_keys

requires_gpg = pytest.mark.skipif(shutil.which('gpg') is None, reason="gpg is not installed")


@pytest.fixture()
def invoke():
    def invoke_func(command, arguments: typing.Sequence[str], exit_code: int = 0):
        assert all(isinstance(arg, str) for arg in arguments)
        runner = click.testing.CliRunner()
        result = runner.invoke(command, arguments)
        if result.exit_code != exit_code:
            message = f"Command {command.name} {' '.join(arguments)} exited with {result.exit_code}"
            raise Exception(message) from result.exception
        return result.output.splitlines()

    return invoke_func


@pytest.fixture()
def store(tmp_path: pathlib.Path) -> pathlib.Path:
    """
    A password store with one secret, and files that are not secrets.

        .gpg-id
        top-level.gpg            (ignored: in the top level of the store)
        .git/objects/object.gpg  (ignored: inside .git)
        example.com/alice.gpg
        example.com/notes.txt    (ignored: not a .gpg file)
    """
    directory = tmp_path / 'store'
    (directory / '.git' / 'objects').mkdir(parents=True)
    (directory / 'example.com').mkdir()
    (directory / '.gpg-id').write_text('ABCD1234\n')
    (directory / 'top-level.gpg').write_bytes(b'\x00')
    (directory / '.git' / 'objects' / 'object.gpg').write_bytes(b'\x00')
    (directory / 'example.com' / 'alice.gpg').write_bytes(b'\xde\xad')
    (directory / 'example.com' / 'notes.txt').write_text('not a secret')
    return directory


@attr.s(frozen=True, kw_only=True)
class FakeGPG:
    """Stands in for pass_server.gpg.GPG without running gpg."""

    keyring: pathlib.Path = attr.ib()
    listing: str = attr.ib()
    calls: typing.List[typing.Tuple[bytes, typing.List[str]]] = attr.ib(factory=list)

    def list_keys(self) -> str:
        return self.listing

    def encrypt(self, data: bytes, recipients: typing.Iterable[str]) -> bytes:
        self.calls.append((data, list(recipients)))
        return b'encrypted:' + data


KEY_ID = '12345678ABCD1234'
FINGERPRINT = 'AAAAAAAAAAAAAAAAAAAAAAAA' + KEY_ID

LISTING = f"""\
tru::1:1700000000:0:3:1:5
pub:u:255:22:{KEY_ID}:1700000000:::u:::scESC:::::ed25519:::0:
fpr:::::::::{FINGERPRINT}:
uid:u::::1700000000::0123456789ABCDEF0123456789ABCDEF01234567::Alice <alice@example.invalid>::::::::::0:
sub:u:255:18:FEDCBA0987654321:1700000000::::::e:::::cv25519::
fpr:::::::::BBBBBBBBBBBBBBBBBBBBBBBBFEDCBA0987654321:
"""


@pytest.fixture()
def fake_gpg(tmp_path: pathlib.Path) -> FakeGPG:
    keyring = tmp_path / 'pubring.gpg'
    keyring.write_bytes(b'')
    return FakeGPG(keyring=keyring, listing=LISTING)


@attr.s(frozen=True, kw_only=True)
class ExampleKey:
    home: pathlib.Path = attr.ib()
    keyring: pathlib.Path = attr.ib()
    fingerprint: str = attr.ib()
    key_id: str = attr.ib()

    def __str__(self):
        return self.key_id

    @property
    def short_id(self):
        return self.key_id[-8:]

    def run(self, *arguments: str) -> bytes:
        env = {**os.environ, 'GNUPGHOME': self.home.as_posix()}
        return subprocess.run(
            ('gpg', '--batch', '--pinentry-mode', 'loopback', '--passphrase', '', *arguments),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=env,
            check=True).stdout

    def decrypt(self, path: pathlib.Path) -> bytes:
        return self.run('--decrypt', path.as_posix())


def make_key(home: pathlib.Path) -> ExampleKey:
    """Generate a throwaway GPG key in a new home, exported into its own keyring file."""
    home.mkdir(parents=True, exist_ok=True)
    home.chmod(0o700)
    example = ExampleKey(home=home, keyring=home / 'exported.gpg', fingerprint='', key_id='')
    example.run(
        '--quick-gen-key', f'pass-server <{home.name}@example.invalid>',
        'default', 'default', 'never')

    recipient, = parse_keys(example.run('--with-colons', '--fixed-list-mode', '--list-keys').decode())
    example.keyring.write_bytes(example.run('--export', recipient.fingerprint))
    return attr.evolve(example, fingerprint=recipient.fingerprint, key_id=recipient.key_id)


def kill_agent(home: pathlib.Path) -> None:
    if shutil.which('gpgconf'):
        subprocess.run(
            ('gpgconf', '--kill', 'gpg-agent'),
            env={**os.environ, 'GNUPGHOME': home.as_posix()},
            check=False)


@pytest.fixture(scope='session')
def key(tmp_path_factory) -> typing.Iterator[ExampleKey]:
    if shutil.which('gpg') is None:
        pytest.skip("gpg is not installed")

    home = tmp_path_factory.mktemp('gnupg')
    yield make_key(home)
    kill_agent(home)
