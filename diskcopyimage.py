# https://www.discferret.com/wiki/Apple_DiskCopy_4.2

from ctypes import BigEndianStructure, c_char, c_uint8, c_uint16, c_uint32, sizeof
from typing import BinaryIO, Dict, Mapping, Optional, Union

from diskcopychecksum import DiskCopyChecksum, check_even
from diskcopyerror import (
    BadMagic, ChecksumMismatch, DiskCopyError, NameTooLong, OddDataSize, ShortRead,
    UnrecognizedDiskFormat, UnrecognizedFormatByte, UnrecognizedGeometry, WriteError,
)
from hfsvolume import HFS_BLOCK_SIZE
from streamutil import seek


HEADER_SIZE = 84
NAME_SIZE = 63
MAGIC_NUMBER = 0x0100

# 0, 1 are GCR CLV (Mac single/double sided), 2, 3 are MFM CAV (PC DD/HD).
DISK_FORMATS: Mapping[int, str] = {
    0: '400k',
    1: '800k',
    2: '720k',
    3: '1440k',
}

# The format byte is a bit field whose meaning depends on GCR vs MFM, and the
# references disagree about it, so only known whole values are accepted.
FORMAT_BYTES: Mapping[int, str] = {
    0x02: '400k (alternate)',  # 68k MLA claim.
    0x12: '400k',  # Apple File Type Note claim.
    0x22: '>400k',
    0x24: '800k Apple II',
}

# HFS block count -> (disk format, format byte)
HFS_GEOMETRIES: Mapping[int, tuple] = {
    800: (0, 0x12),  # Follow Apple File Type Note
    1600: (1, 0x22),
    1440: (2, 0x22),
    2880: (3, 0x22),
}


def format_bytes_from_ini(section, base: Mapping[int, str] = FORMAT_BYTES) -> Dict[int, str]:
    """
    Extend the recognized format bytes with entries from an INI section, e.g.

        [FormatBytes]
        0x96 = misformatted GCR fill

    :return: A new mapping; base is left untouched.
    """
    format_bytes = dict(base)
    for key, description in section.items():
        value = int(key, 0)
        if not 0 <= value <= 0xff:
            raise ValueError(f'Format byte {key} does not fit in a byte')
        format_bytes[value] = description
    return format_bytes


def _encode_name(name: Union[str, bytes]) -> bytes:
    if isinstance(name, str):
        try:
            return name.encode('mac_roman')
        except UnicodeEncodeError as e:
            raise DiskCopyError(f'Name {name!r} cannot be encoded as Mac Roman') from e
    return bytes(name)


class DiskCopyImageHeader(BigEndianStructure):
    """
    The 84 byte header at the start of a Disk Copy 4.2 image. It is followed by
    data_size bytes of disk data, then tag_size bytes of tag data (12 bytes per
    512 byte sector, when present).

    Build one with parse(), read_from_disk() or create_for_hfs(). Nothing here
    modifies a header after it has been built.
    """

    _pack_ = 1
    _fields_ = [
        ('name_length',   c_uint8),
        ('name',          c_char * NAME_SIZE),
        ('data_size',     c_uint32),
        ('tag_size',      c_uint32),
        ('data_checksum', c_uint32),
        ('tag_checksum',  c_uint32),
        ('disk_format',   c_uint8),
        ('format_byte',   c_uint8),
        ('magic_number',  c_uint16),
    ]

    @classmethod
    def parse(cls, header_bytes: bytes) -> 'DiskCopyImageHeader':
        return cls.from_buffer_copy(header_bytes[:HEADER_SIZE])

    @classmethod
    def read_from_disk(cls, f: BinaryIO) -> 'DiskCopyImageHeader':
        """Reads the header from the start of f, leaving f at the start of the data."""
        seek(f, 0)
        header_bytes = f.read(HEADER_SIZE)
        if len(header_bytes) != HEADER_SIZE:
            raise ShortRead(len(header_bytes), HEADER_SIZE - len(header_bytes))
        return cls.parse(header_bytes)

    @classmethod
    def create_for_hfs(cls,
                       name: Union[str, bytes],
                       data_block_count: int,
                       data_checksum: int,
                       tag_byte_count: int = 0,
                       tag_checksum: int = 0) -> 'DiskCopyImageHeader':
        """
        :param name: Volume name, at most 63 bytes once encoded as Mac Roman. A str with
            characters Mac Roman lacks raises DiskCopyError rather than being altered.
        :param data_block_count: Size of the HFS volume in 512 byte blocks. Must be a 400k, 800k, 720k or 1440k floppy.
        """
        name_bytes = _encode_name(name)
        if len(name_bytes) > NAME_SIZE:
            raise NameTooLong(len(name_bytes), NAME_SIZE)

        geometry = HFS_GEOMETRIES.get(data_block_count)
        if geometry is None:
            raise UnrecognizedGeometry(data_block_count)
        disk_format, format_byte = geometry

        header = cls()
        header.name_length = len(name_bytes)
        header.name = name_bytes
        header.data_size = data_block_count * HFS_BLOCK_SIZE
        header.tag_size = tag_byte_count
        header.data_checksum = data_checksum
        header.tag_checksum = tag_checksum
        header.disk_format = disk_format
        header.format_byte = format_byte
        header.magic_number = MAGIC_NUMBER
        return header

    def serialize(self) -> bytes:
        return bytes(self)

    def write_to_disk(self, f: BinaryIO):
        """Writes the header at the current position of f. Does NOT seek first."""
        try:
            written = f.write(self.serialize())
        except OSError as e:
            raise WriteError(f'Could not write DiskCopy header: {e}') from e
        if written is not None and written != HEADER_SIZE:
            raise WriteError(f'Wrote {written} of {HEADER_SIZE} header bytes')

    @property
    def image_name(self) -> bytes:
        # self.name would stop at the first NUL, so slice the raw record instead.
        length = min(self.name_length, NAME_SIZE)
        return bytes(self)[1:1 + length]

    def total_file_size(self) -> int:
        return self.data_size + self.tag_size + HEADER_SIZE

    def validate(self, format_bytes: Optional[Mapping[int, str]] = None) -> int:
        """
        Checks the header for structural validity.

        :param format_bytes: Recognized format byte values, defaults to FORMAT_BYTES.
        :return: The total size of the image file the header describes.
        """
        if format_bytes is None:
            format_bytes = FORMAT_BYTES

        if self.name_length > NAME_SIZE:
            raise NameTooLong(self.name_length, NAME_SIZE)
        if self.disk_format not in DISK_FORMATS:
            raise UnrecognizedDiskFormat(self.disk_format)
        if self.format_byte not in format_bytes:
            raise UnrecognizedFormatByte(self.format_byte)
        if self.magic_number != MAGIC_NUMBER:
            raise BadMagic(self.magic_number, MAGIC_NUMBER)
        if self.data_size % 2 != 0:
            raise OddDataSize(self.data_size)
        return self.total_file_size()

    def read_data(self, f: BinaryIO) -> bytes:
        if self.magic_number != MAGIC_NUMBER:
            raise BadMagic(self.magic_number, MAGIC_NUMBER)

        seek(f, HEADER_SIZE)
        data = f.read(self.data_size)
        if len(data) != self.data_size:
            raise ShortRead(len(data), self.data_size - len(data))
        return data

    def verify_data_checksum(self, f: BinaryIO):
        self._verify_region(f, HEADER_SIZE, self.data_size, self.data_checksum, 'data')

    def verify_tag_checksum(self, f: BinaryIO):
        # No tags means nothing to check; don't touch the stream.
        if self.tag_size == 0:
            return
        self._verify_region(f, HEADER_SIZE + self.data_size, self.tag_size, self.tag_checksum, 'tag')

    def _verify_region(self, f: BinaryIO, offset: int, byte_count: int, expected: int, region: str):
        check_even(byte_count)
        seek(f, offset)

        checksum = DiskCopyChecksum(0)
        checksum.consume_stream(f, byte_count)
        computed = checksum.value()
        if computed != expected:
            raise ChecksumMismatch(expected, computed, region)

    def describe(self, format_bytes: Optional[Mapping[int, str]] = None) -> str:
        if format_bytes is None:
            format_bytes = FORMAT_BYTES

        name = self.image_name.decode('mac_roman')
        disk_format = DISK_FORMATS.get(self.disk_format, '<unknown>')
        format_byte = format_bytes.get(self.format_byte, '<unknown>')
        return '\n'.join([
            f'name[{self.name_length}]: {name}',
            f'0x{self.data_size:x} data bytes ({self.data_size >> 10} k)',
            f'0x{self.tag_size:x} tag bytes ({self.tag_size >> 10} k)',
            f'Data Checksum: {self.data_checksum:x} Tag Checksum: {self.tag_checksum:x}',
            f'Disk Format: {self.disk_format} ({disk_format})',
            f'Format Byte: 0x{self.format_byte:02x} ({format_byte})',
            f'Private word: 0x{self.magic_number:x}',
        ])

    def __eq__(self, other):
        if not isinstance(other, DiskCopyImageHeader):
            return NotImplemented
        return self.serialize() == other.serialize()

    __hash__ = None


if sizeof(DiskCopyImageHeader) != HEADER_SIZE:
    raise ValueError('ASSERTION FAILED! sizeof(DiskCopyImageHeader) != 84')
