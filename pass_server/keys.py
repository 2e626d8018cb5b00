"""
Resolve the recipients a password store may be published to.

Every ID in the store's .gpg-id file must match the long or short key ID of a
primary key in the keyring. Publishing stops at the first ID that does not.
"""

import logging
import pathlib
import typing

import attr

from .gpg import GPG
from .utils import PassServerException

log = logging.getLogger(__name__)

GPG_ID = '.gpg-id'


class UnmatchedIdentifier(PassServerException):
    def __init__(self, identifier: str):
        super().__init__(f"key with ID {identifier} not found")
        self.identifier = identifier


@attr.s(frozen=True, kw_only=True)
class Recipient:
    fingerprint: str = attr.ib()
    key_id: str = attr.ib()

    def __str__(self):
        return self.key_id

    @property
    def short_id(self) -> str:
        return self.key_id[-8:]

    def matches(self, identifier: str) -> bool:
        return identifier in (self.key_id, self.short_id)


def read_ids(store: pathlib.Path) -> typing.List[str]:
    """
    Read the non-blank lines of the store's .gpg-id file.

    Lines end at '\\n' only, with a single trailing '\\r' removed.
    """
    path = store / GPG_ID
    log.debug(f"Reading recipient IDs from {path}")
    lines = path.read_bytes().decode('utf-8', 'replace').split('\n')
    lines = [line[:-1] if line.endswith('\r') else line for line in lines]
    return [line for line in lines if line]


def parse_keys(listing: str) -> typing.List[Recipient]:
    """Parse the primary keys out of 'gpg --with-colons --list-keys' output."""
    recipients: typing.List[Recipient] = []
    key_id: typing.Optional[str] = None

    for line in listing.splitlines():
        fields = line.split(':')
        if fields[0] == 'pub':
            key_id = fields[4].upper()
        elif fields[0] == 'fpr' and key_id is not None:
            recipients.append(Recipient(fingerprint=fields[9].upper(), key_id=key_id))
            key_id = None
        elif fields[0] == 'sub':
            key_id = None

    return recipients


def read_keyring(gpg: GPG) -> typing.List[Recipient]:
    if not gpg.keyring.is_file():
        raise PassServerException(f"Keyring {gpg.keyring} does not exist")
    recipients = parse_keys(gpg.list_keys())
    log.info(f"Found {len(recipients)} keys in {gpg.keyring}")
    return recipients


def match_keys(
        recipients: typing.Sequence[Recipient],
        ids: typing.Iterable[str]) -> typing.List[Recipient]:
    """
    Find the first recipient matching each ID, in the order the IDs are given.

    Duplicate IDs give duplicate recipients.
    """
    matched: typing.List[Recipient] = []
    for identifier in ids:
        recipient = next((r for r in recipients if r.matches(identifier)), None)
        if recipient is None:
            raise UnmatchedIdentifier(identifier)
        log.debug(f"Matched {identifier} to {recipient.fingerprint}")
        matched.append(recipient)
    return matched


def resolve(store: pathlib.Path, gpg: GPG) -> typing.List[Recipient]:
    ids = read_ids(store)
    recipients = match_keys(read_keyring(gpg), ids)
    log.info(f"Resolved {len(recipients)} recipients for {store}")
    return recipients
