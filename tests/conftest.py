import pytest

import bigendian


@pytest.fixture
def make_mdb():
    def make(signature=0x4244, num_allocation_blocks=0, allocation_block_size=512,
             first_allocation_block=0, name=b'', name_length=None, free_blocks=0) -> bytes:
        mdb = bytearray(512)
        bigendian.write_u16(signature, mdb, 0)
        bigendian.write_u16(num_allocation_blocks, mdb, 18)
        bigendian.write_u32(allocation_block_size, mdb, 20)
        bigendian.write_u16(first_allocation_block, mdb, 28)
        bigendian.write_u16(free_blocks, mdb, 34)
        mdb[36] = len(name) if name_length is None else name_length
        mdb[37:37 + len(name)] = name
        return bytes(mdb)
    return make


@pytest.fixture
def raw_floppy(make_mdb):
    """An 800 block (400k) raw HFS image."""
    data = bytearray(bytes(range(256)) * 1600)
    data[1024:1536] = make_mdb(num_allocation_blocks=793, first_allocation_block=5, name=b'Floppy')
    return bytes(data)
