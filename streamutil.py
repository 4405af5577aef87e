from typing import BinaryIO

from diskcopyerror import SeekError


def seek(f: BinaryIO, offset: int):
    try:
        f.seek(offset)
    except (OSError, ValueError) as e:
        raise SeekError(offset) from e
