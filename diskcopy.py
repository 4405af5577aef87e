# Converts between raw HFS floppy images and uncompressed Disk Copy 4.2 images.

import argparse
import configparser
import sys
from typing import BinaryIO, Mapping, Optional

from progress.bar import Bar

from diskcopychecksum import DiskCopyChecksum
from diskcopyerror import ChecksumMismatch, DiskCopyError, ShortRead, WriteError
from diskcopyimage import FORMAT_BYTES, DiskCopyImageHeader, format_bytes_from_ini
from hfsvolume import HFS_BLOCK_SIZE, MasterDirectoryBlock

COMMANDS = ('create', 'extract', 'verify')

argparser = argparse.ArgumentParser(
    prog='diskcopy',
    description='Converts between uncompressed Apple Disk Copy 4.2 (DC42) disk images and raw HFS images.',
    epilog='create: use --input-image to create --disk-copy. '
           'extract: extract data from --disk-copy into --output-image. '
           'verify: validate basic structure and checksums of --disk-copy.')
argparser.add_argument('command', choices=COMMANDS)
argparser.add_argument('--disk-copy', help='Path of the Disk Copy 4.2 image to read or produce')
argparser.add_argument('--input-image', help='Path of the raw HFS image to encode into --disk-copy')
argparser.add_argument('--output-image', help='Path of the raw HFS image to extract from --disk-copy')
argparser.add_argument('--ignore-data-checksum', action='store_true',
                       help='extract: write the data even if the data checksum does not match')
argparser.add_argument('--formats', help='INI file with a [FormatBytes] section of extra recognized format bytes')
argparser.add_argument('--verbose', '-v', action='store_true')


class UsageError(Exception):
    pass


def load_format_bytes(path: str) -> Mapping[int, str]:
    config = configparser.ConfigParser()
    try:
        if not config.read(path):
            raise UsageError(f'Could not read formats file {path}')
        if 'FormatBytes' not in config:
            raise UsageError(f'{path} has no [FormatBytes] section')
        return format_bytes_from_ini(config['FormatBytes'])
    except (configparser.Error, ValueError) as e:
        raise UsageError(f'Bad formats file {path}: {e}') from e


def copy_blocks(src: BinaryIO, dst: BinaryIO, byte_count: int, label: str,
                checksum: Optional[DiskCopyChecksum] = None):
    """Copy byte_count bytes in 512 byte blocks, folding them into checksum if given."""
    block_count = byte_count // HFS_BLOCK_SIZE + (1 if byte_count % HFS_BLOCK_SIZE != 0 else 0)
    copied = 0

    with Bar(label, max=block_count) as bar:
        while copied < byte_count:
            size = min(HFS_BLOCK_SIZE, byte_count - copied)
            block = src.read(size)
            if len(block) != size:
                raise ShortRead(copied + len(block), byte_count - copied - len(block))
            if checksum is not None:
                checksum.consume_bytes(block, size)
            try:
                dst.write(block)
            except OSError as e:
                raise WriteError(f'Could not write {size} bytes at {copied}: {e}') from e
            copied += size
            bar.next()


def create(input_image: str, disk_copy: str, verbose: bool = False) -> DiskCopyImageHeader:
    with open(input_image, 'rb') as f:
        mdb = MasterDirectoryBlock.read_from_disk(f)
        if verbose:
            print(f'Read HFS MDB:\n{mdb.describe()}')

        block_count = mdb.valid()
        name = mdb.volume_name()
        print(f"HFS volume '{name}' declared to be {block_count} disk blocks.")

        f.seek(0)
        checksum = DiskCopyChecksum(0)
        checksum.consume_stream(f, block_count * HFS_BLOCK_SIZE)
        header = DiskCopyImageHeader.create_for_hfs(name, block_count, checksum.value())

        f.seek(0)
        with open(disk_copy, 'wb') as of:
            header.write_to_disk(of)
            copy_blocks(f, of, header.data_size, 'Creating')

    return header


def extract(disk_copy: str, output_image: str, ignore_data_checksum: bool = False,
            format_bytes: Mapping[int, str] = FORMAT_BYTES, verbose: bool = False) -> int:
    """
    :return: Number of data bytes extracted.
    """
    with open(disk_copy, 'rb') as f:
        header = DiskCopyImageHeader.read_from_disk(f)
        if verbose:
            print(f'Read header:\n{header.describe(format_bytes)}')
        header.validate(format_bytes)

        checksum = DiskCopyChecksum(0)
        with open(output_image, 'wb') as of:
            copy_blocks(f, of, header.data_size, 'Extracting', checksum)

    if checksum.value() != header.data_checksum:
        mismatch = ChecksumMismatch(header.data_checksum, checksum.value())
        if not ignore_data_checksum:
            raise mismatch
        print(f'Warning: {mismatch}', file=sys.stderr)
        print('Ignoring mismatch because of --ignore-data-checksum', file=sys.stderr)

    return header.data_size


def verify(disk_copy: str, format_bytes: Mapping[int, str] = FORMAT_BYTES, verbose: bool = False) -> DiskCopyImageHeader:
    with open(disk_copy, 'rb') as f:
        header = DiskCopyImageHeader.read_from_disk(f)
        if verbose:
            print(f'Read header:\n{header.describe(format_bytes)}')
        total_size = header.validate(format_bytes)

        file_size = f.seek(0, 2)
        if file_size < total_size:
            raise ShortRead(file_size, total_size - file_size)

        header.verify_data_checksum(f)
        header.verify_tag_checksum(f)

    return header


def run(args) -> None:
    format_bytes = load_format_bytes(args.formats) if args.formats else FORMAT_BYTES

    if args.command != 'extract' and args.ignore_data_checksum:
        raise UsageError(f"'{args.command}' cannot use --ignore-data-checksum")

    if args.command == 'create':
        if not args.input_image or not args.disk_copy:
            raise UsageError('create requires --input-image and --disk-copy')
        header = create(args.input_image, args.disk_copy, verbose=args.verbose)
        print(f'Wrote {header.total_file_size()} bytes to {args.disk_copy}')

    elif args.command == 'extract':
        if not args.disk_copy or not args.output_image:
            raise UsageError('extract requires --disk-copy and --output-image')
        bytes_read = extract(args.disk_copy, args.output_image, args.ignore_data_checksum, format_bytes,
                             verbose=args.verbose)
        print(f'Read {bytes_read} bytes ({bytes_read // HFS_BLOCK_SIZE}) HFS blocks.', file=sys.stderr)

    elif args.command == 'verify':
        if not args.disk_copy:
            raise UsageError('verify requires --disk-copy')
        header = verify(args.disk_copy, format_bytes, verbose=args.verbose)
        print(f'{args.disk_copy}: {header.data_size} data bytes, {header.tag_size} tag bytes, checksums OK')


def main(argv=None) -> int:
    args = argparser.parse_args(argv)
    try:
        run(args)
    except UsageError as e:
        print(e, file=sys.stderr)
        argparser.print_usage(sys.stderr)
        return 1
    except (DiskCopyError, OSError) as e:
        print(e, file=sys.stderr)
        return 2
    return 0


if __name__ == '__main__':
    sys.exit(main())
