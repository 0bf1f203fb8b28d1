"""
Командная строка для компрессора Хаффмана.
"""

import argparse
import sys
from typing import List, Optional

from archiver import HuffArchiver


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Huffman byte-stream compressor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py compress file.txt
  python main.py decompress file.txt.hf -o restored.txt
  python main.py info file.txt.hf
  python main.py verify file1.txt file2.bin
        """
    )
    parser.add_argument('--debug', type=int, default=0, help='Debug level (0, 1 or 4)')

    subparsers = parser.add_subparsers(dest='command', help='Command')

    compress_parser = subparsers.add_parser('compress', help='Compress file')
    compress_parser.add_argument('file', help='File to compress')
    compress_parser.add_argument('-o', '--output', help='Output path (default: FILE.hf)')

    decompress_parser = subparsers.add_parser('decompress', help='Decompress file')
    decompress_parser.add_argument('file', help='Compressed file')
    decompress_parser.add_argument('-o', '--output', help='Output path')

    info_parser = subparsers.add_parser('info', help='Show compressed file header')
    info_parser.add_argument('file', help='Compressed file')

    verify_parser = subparsers.add_parser('verify', help='Check round trip in memory')
    verify_parser.add_argument('files', nargs='+', help='Files to check')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    archiver = HuffArchiver(debug_level=args.debug)

    try:
        if args.command == 'compress':
            archiver.compress_file(args.file, args.output)

        elif args.command == 'decompress':
            archiver.decompress_file(args.file, args.output)

        elif args.command == 'info':
            archiver.info(args.file)

        elif args.command == 'verify':
            if not archiver.verify_files(args.files):
                return 1

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
