# Just enough of an HFS volume to name and size a floppy image.
# https://developer.apple.com/library/archive/documentation/mac/pdf/Files/File_Manager.pdf
# ^ See "Master Directory Blocks"

from ctypes import BigEndianStructure, c_char, c_uint8, c_uint16, c_uint32, sizeof
from typing import BinaryIO

from diskcopyerror import BadSignature, MisalignedBlockSize, NameTooLong, ShortRead
from streamutil import seek


MDB_SIZE = 512
MDB_OFFSET = 1024  # Logical block 2, after the two boot blocks.
HFS_BLOCK_SIZE = 512
HFS_SIGNATURE = 0x4244  # "BD"
VOLUME_NAME_SIZE = 27


class MasterDirectoryBlock(BigEndianStructure):
    _pack_ = 1
    _fields_ = [
        ('drSigWord',   c_uint16),
        ('drCrDate',    c_uint32),
        ('drLsMod',     c_uint32),
        ('drAtrb',      c_uint16),
        ('drNmFls',     c_uint16),
        ('drVBMSt',     c_uint16),
        ('drAllocPtr',  c_uint16),
        ('drNmAlBlks',  c_uint16),
        ('drAlBlkSiz',  c_uint32),
        ('drClpSiz',    c_uint32),
        ('drAlBlSt',    c_uint16),
        ('drNxtCNID',   c_uint32),
        ('drFreeBks',   c_uint16),
        ('drVNLength',  c_uint8),
        ('drVN',        c_char * VOLUME_NAME_SIZE),

        # Don't care about the rest.
        ('_pad', c_uint8 * (MDB_SIZE - 64)),
    ]

    @classmethod
    def parse(cls, mdb_bytes: bytes) -> 'MasterDirectoryBlock':
        return cls.from_buffer_copy(mdb_bytes[:MDB_SIZE])

    @classmethod
    def read_from_disk(cls, f: BinaryIO) -> 'MasterDirectoryBlock':
        """Reads the MDB out of a raw HFS image."""
        seek(f, MDB_OFFSET)
        mdb_bytes = f.read(MDB_SIZE)
        if len(mdb_bytes) != MDB_SIZE:
            raise ShortRead(len(mdb_bytes), MDB_SIZE - len(mdb_bytes))
        return cls.parse(mdb_bytes)

    @property
    def signature(self) -> int:
        return self.drSigWord

    @property
    def allocation_block_size(self) -> int:
        return self.drAlBlkSiz

    @property
    def num_allocation_blocks(self) -> int:
        return self.drNmAlBlks

    @property
    def first_allocation_block(self) -> int:
        return self.drAlBlSt

    @property
    def num_free_allocation_blocks(self) -> int:
        return self.drFreeBks

    def volume_name(self) -> str:
        """Check valid() before relying on this."""
        if self.drVNLength > VOLUME_NAME_SIZE:
            raise NameTooLong(self.drVNLength, VOLUME_NAME_SIZE)
        name_bytes = bytes(self)[37:37 + self.drVNLength]
        return name_bytes.decode('mac_roman')

    def valid(self) -> int:
        """
        :return: Declared size of the volume in 512 byte blocks.
        """
        if self.drSigWord != HFS_SIGNATURE:
            raise BadSignature(self.drSigWord, HFS_SIGNATURE)
        if self.drAlBlkSiz % HFS_BLOCK_SIZE != 0:
            raise MisalignedBlockSize(self.drAlBlkSiz, HFS_BLOCK_SIZE)

        # drAlBlSt counts the blocks before the allocation area (boot blocks,
        # MDB, volume bitmap). The last two blocks hold the backup MDB and a
        # block reserved by Apple.
        non_allocated_blocks = self.drAlBlSt + 2
        allocated_blocks = (self.drAlBlkSiz // HFS_BLOCK_SIZE) * self.drNmAlBlks
        return non_allocated_blocks + allocated_blocks

    def describe(self) -> str:
        name_length = min(self.drVNLength, VOLUME_NAME_SIZE)
        name = bytes(self)[37:37 + name_length].decode('mac_roman')
        return '\n'.join([
            f'name[{self.drVNLength}]: {name}',
            f'{self.drNmAlBlks} allocation blocks each {self.drAlBlkSiz} bytes',
            f'{self.drAlBlSt} first allocation block',
            f'{self.drFreeBks} free allocation blocks',
        ])


if sizeof(MasterDirectoryBlock) != MDB_SIZE:
    raise ValueError('ASSERTION FAILED! sizeof(MasterDirectoryBlock) != 512')
