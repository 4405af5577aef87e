class DiskCopyError(ValueError):
    pass


class NameTooLong(DiskCopyError):
    def __init__(self, length: int, maximum: int):
        super().__init__(f'Name length {length} is longer than the maximum {maximum}')
        self.length = length
        self.maximum = maximum


class UnrecognizedGeometry(DiskCopyError):
    def __init__(self, block_count: int):
        super().__init__(f'HFS data block count {block_count} is not recognized as valid')
        self.block_count = block_count


class UnrecognizedDiskFormat(DiskCopyError):
    def __init__(self, value: int):
        super().__init__(f'Unknown Disk Format Byte={value}')
        self.value = value


class UnrecognizedFormatByte(DiskCopyError):
    def __init__(self, value: int):
        super().__init__(f'Unknown Format Byte=0x{value:02x}')
        self.value = value


class BadMagic(DiskCopyError):
    def __init__(self, value: int, expected: int):
        super().__init__(f'Invalid Magic Number 0x{value:x} != 0x{expected:x}')
        self.value = value


class OddDataSize(DiskCopyError):
    def __init__(self, byte_count: int):
        super().__init__(f'Data size {byte_count} is not an even number of bytes.')
        self.byte_count = byte_count


class MisalignedLength(DiskCopyError):
    def __init__(self, byte_count: int):
        super().__init__(f'Cannot checksum {byte_count} bytes, not a whole number of 16-bit words.')
        self.byte_count = byte_count


class ShortRead(DiskCopyError):
    def __init__(self, bytes_read: int, bytes_remaining: int):
        super().__init__(f'Unexpected EOF after {bytes_read} bytes read, {bytes_remaining} bytes remaining')
        self.bytes_read = bytes_read
        self.bytes_remaining = bytes_remaining


class SeekError(DiskCopyError):
    def __init__(self, offset: int):
        super().__init__(f'Could not seek to {offset} bytes')
        self.offset = offset


class WriteError(DiskCopyError):
    pass


class ChecksumMismatch(DiskCopyError):
    """Raised when a region's computed checksum disagrees with the header.

    This is the only content error; callers decide whether it is fatal.
    """

    def __init__(self, expected: int, computed: int, region: str = 'data'):
        super().__init__(f'Computed {region} checksum {computed:x} does not match header sum {expected:x}')
        self.expected = expected
        self.computed = computed
        self.region = region


class BadSignature(DiskCopyError):
    def __init__(self, value: int, expected: int):
        super().__init__(f'Signature {value:x} did not match magic number {expected:x}')
        self.value = value


class MisalignedBlockSize(DiskCopyError):
    def __init__(self, block_size: int, sector_size: int):
        super().__init__(f'Declared allocation size {block_size} not a multiple of block size {sector_size}')
        self.block_size = block_size
