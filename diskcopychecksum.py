# https://www.discferret.com/wiki/Apple_DiskCopy_4.2
#
# "For each data REVERSE WORD:
#      Add the data REVERSE WORD to the checksum
#      Rotate the 32-bit checksum right one bit (wrapping bit 0 to bit 31)"

from typing import BinaryIO

import bigendian
from diskcopyerror import MisalignedLength, ShortRead


CHUNK_SIZE = 1024


def check_even(byte_count: int):
    if byte_count % 2 != 0:
        raise MisalignedLength(byte_count)


class DiskCopyChecksum(object):
    def __init__(self, initial_sum: int = 0):
        self.sum = initial_sum & 0xffffffff
        self.word_count = 0

    def update(self, word: int) -> int:
        s = self.sum + word
        if s & 0x1:
            self.sum = 0x80000000 | ((s >> 1) & 0x7fffffff)
        else:
            self.sum = 0x7fffffff & (s >> 1)
        self.word_count += 1
        return self.sum

    def consume_bytes(self, buffer, byte_count: int):
        check_even(byte_count)
        for offset in range(0, byte_count, 2):
            self.update(bigendian.read_u16(buffer, offset))

    def consume_stream(self, f: BinaryIO, byte_count: int):
        """
        Fold byte_count bytes read from f, CHUNK_SIZE bytes at a time.

        :raises MisalignedLength: byte_count is odd; nothing is read.
        :raises ShortRead: f hit EOF before byte_count bytes were read.
        """
        check_even(byte_count)

        bytes_read = 0
        remaining = byte_count
        while remaining > 0:
            chunk = f.read(min(remaining, CHUNK_SIZE))
            if not chunk:
                raise ShortRead(bytes_read, remaining)
            if len(chunk) % 2 != 0:
                # Only possible at EOF: complete the word or fail.
                extra = f.read(1)
                if not extra:
                    raise ShortRead(bytes_read + len(chunk), remaining - len(chunk))
                chunk += extra
            self.consume_bytes(chunk, len(chunk))
            bytes_read += len(chunk)
            remaining -= len(chunk)

    def value(self) -> int:
        return self.sum

    def __repr__(self):
        return f'DiskCopyChecksum(0x{self.sum:08x}, words={self.word_count})'
