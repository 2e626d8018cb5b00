import os
import pathlib
import typing

import click


class PassServerException(click.ClickException):
    pass


def write_private(path: pathlib.Path, data: bytes) -> None:
    """Write a file readable only by its owner, replacing any contents."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, 'wb') as file:
        file.write(data)


def mkdir_private(path: pathlib.Path) -> None:
    """Create a directory and any missing parents, each readable only by its owner."""
    missing: typing.List[pathlib.Path] = []
    while not path.exists():
        missing.append(path)
        path = path.parent
    for directory in reversed(missing):
        directory.mkdir(mode=0o700, exist_ok=True)
