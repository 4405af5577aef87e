import pytest

import diskcopy
from diskcopychecksum import DiskCopyChecksum
from diskcopyerror import ChecksumMismatch, UnrecognizedGeometry
from diskcopyimage import HEADER_SIZE, DiskCopyImageHeader


@pytest.fixture
def raw_path(tmp_path, raw_floppy):
    path = tmp_path / 'floppy.hfs'
    path.write_bytes(raw_floppy)
    return path


@pytest.fixture
def dc42_path(tmp_path, raw_path):
    path = tmp_path / 'floppy.image'
    assert diskcopy.main(['create', '--input-image', str(raw_path), '--disk-copy', str(path)]) == 0
    return path


def corrupt(path, offset):
    data = bytearray(path.read_bytes())
    data[offset] ^= 0xff
    path.write_bytes(bytes(data))


def test_create(dc42_path, raw_floppy):
    data = dc42_path.read_bytes()
    assert len(data) == HEADER_SIZE + 800 * 512
    assert data[HEADER_SIZE:] == raw_floppy

    header = DiskCopyImageHeader.parse(data[:HEADER_SIZE])
    assert header.image_name == b'Floppy'
    assert header.disk_format == 0
    assert header.format_byte == 0x12
    assert header.validate() == len(data)


def test_create_prints_volume(raw_path, tmp_path, capsys):
    diskcopy.create(str(raw_path), str(tmp_path / 'out.image'), verbose=True)
    out = capsys.readouterr().out
    assert 'Read HFS MDB' in out
    assert "HFS volume 'Floppy' declared to be 800 disk blocks." in out


def test_create_unrecognized_geometry(tmp_path, make_mdb):
    raw = bytearray(1000 * 512)
    raw[1024:1536] = make_mdb(num_allocation_blocks=993, first_allocation_block=5)
    raw_path = tmp_path / 'odd.hfs'
    raw_path.write_bytes(bytes(raw))

    with pytest.raises(UnrecognizedGeometry):
        diskcopy.create(str(raw_path), str(tmp_path / 'odd.image'))
    assert not (tmp_path / 'odd.image').exists()


def test_verify(dc42_path, capsys):
    assert diskcopy.main(['verify', '--disk-copy', str(dc42_path), '-v']) == 0
    out = capsys.readouterr().out
    assert 'Read header' in out
    assert 'checksums OK' in out


def test_verify_corrupt(dc42_path, capsys):
    corrupt(dc42_path, HEADER_SIZE + 5000)
    assert diskcopy.main(['verify', '--disk-copy', str(dc42_path)]) == 2
    assert 'does not match' in capsys.readouterr().err


def test_verify_truncated(dc42_path):
    dc42_path.write_bytes(dc42_path.read_bytes()[:-10])
    assert diskcopy.main(['verify', '--disk-copy', str(dc42_path)]) == 2


def test_extract(dc42_path, tmp_path, raw_floppy, capsys):
    out_path = tmp_path / 'extracted.hfs'
    assert diskcopy.main(['extract', '--disk-copy', str(dc42_path), '--output-image', str(out_path)]) == 0
    assert out_path.read_bytes() == raw_floppy
    assert 'Read 409600 bytes (800) HFS blocks.' in capsys.readouterr().err


def test_extract_corrupt(dc42_path, tmp_path):
    corrupt(dc42_path, HEADER_SIZE)
    out_path = tmp_path / 'extracted.hfs'

    with pytest.raises(ChecksumMismatch):
        diskcopy.extract(str(dc42_path), str(out_path))
    assert diskcopy.main(['extract', '--disk-copy', str(dc42_path), '--output-image', str(out_path)]) == 2


def test_extract_ignore_data_checksum(dc42_path, tmp_path, capsys):
    corrupt(dc42_path, HEADER_SIZE)
    out_path = tmp_path / 'extracted.hfs'
    assert diskcopy.main(['extract', '--disk-copy', str(dc42_path), '--output-image', str(out_path),
                          '--ignore-data-checksum']) == 0
    assert 'Ignoring mismatch' in capsys.readouterr().err
    assert out_path.read_bytes() == dc42_path.read_bytes()[HEADER_SIZE:]


@pytest.mark.parametrize('command', ['create', 'verify'])
def test_ignore_data_checksum_rejected(command, dc42_path, raw_path):
    assert diskcopy.main([command, '--disk-copy', str(dc42_path), '--input-image', str(raw_path),
                          '--ignore-data-checksum']) == 1


@pytest.mark.parametrize('argv', [
    ['create', '--disk-copy', 'x.image'],
    ['extract', '--disk-copy', 'x.image'],
    ['verify'],
])
def test_missing_paths(argv):
    assert diskcopy.main(argv) == 1


def test_missing_file(tmp_path):
    assert diskcopy.main(['verify', '--disk-copy', str(tmp_path / 'nope.image')]) == 2


def test_formats_file(dc42_path, tmp_path):
    corrupt(dc42_path, 81)  # 0x12 -> 0xed
    assert diskcopy.main(['verify', '--disk-copy', str(dc42_path)]) == 2

    formats = tmp_path / 'formats.ini'
    formats.write_text('[FormatBytes]\n0xed = seen in the wild\n')
    assert diskcopy.main(['verify', '--disk-copy', str(dc42_path), '--formats', str(formats)]) == 0


def test_formats_file_without_section(dc42_path, tmp_path):
    formats = tmp_path / 'formats.ini'
    formats.write_text('[Other]\n')
    assert diskcopy.main(['verify', '--disk-copy', str(dc42_path), '--formats', str(formats)]) == 1


@pytest.mark.parametrize('contents', [
    'no section header\n',
    '[FormatBytes]\n0x100 = too big\n',
    '[FormatBytes]\nnot-a-number = x\n',
])
def test_formats_file_malformed(contents, dc42_path, tmp_path, capsys):
    formats = tmp_path / 'formats.ini'
    formats.write_text(contents)
    assert diskcopy.main(['verify', '--disk-copy', str(dc42_path), '--formats', str(formats)]) == 1
    assert 'Bad formats file' in capsys.readouterr().err


def test_verbose_describes_extended_format_byte(dc42_path, tmp_path, capsys):
    corrupt(dc42_path, 81)
    formats = tmp_path / 'formats.ini'
    formats.write_text('[FormatBytes]\n0xed = seen in the wild\n')
    assert diskcopy.main(['verify', '--disk-copy', str(dc42_path), '--formats', str(formats), '-v']) == 0
    assert 'Format Byte: 0xed (seen in the wild)' in capsys.readouterr().out


@pytest.fixture
def tagged_path(tmp_path, raw_floppy):
    tags = bytes(range(12)) * 800

    data_sum = DiskCopyChecksum()
    data_sum.consume_bytes(raw_floppy, len(raw_floppy))
    tag_sum = DiskCopyChecksum()
    tag_sum.consume_bytes(tags, len(tags))

    header = DiskCopyImageHeader.create_for_hfs('Tagged', 800, data_sum.value(),
                                                tag_byte_count=len(tags), tag_checksum=tag_sum.value())
    path = tmp_path / 'tagged.image'
    path.write_bytes(header.serialize() + raw_floppy + tags)
    return path


def test_verify_tags(tagged_path, capsys):
    assert diskcopy.main(['verify', '--disk-copy', str(tagged_path)]) == 0
    assert '9600 tag bytes, checksums OK' in capsys.readouterr().out


def test_verify_corrupt_tags(tagged_path, capsys):
    corrupt(tagged_path, HEADER_SIZE + 800 * 512 + 100)
    assert diskcopy.main(['verify', '--disk-copy', str(tagged_path)]) == 2
    assert 'tag checksum' in capsys.readouterr().err
