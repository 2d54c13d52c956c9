"""
Командная строка для grin.
"""

import argparse
import sys
from grin import Grin


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='grin',
        description='Huffman compressor for .grin files',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py encode notes.txt notes.grin
  python main.py decode notes.grin notes.txt
        """
    )
    parser.add_argument('-q', '--quiet', action='store_true', help='Do not print progress')

    subparsers = parser.add_subparsers(dest='command', help='Command')

    encode_parser = subparsers.add_parser('encode', help='Compress a file')
    encode_parser.add_argument('infile', help='File to compress')
    encode_parser.add_argument('outfile', help='Path of the .grin file to write')

    decode_parser = subparsers.add_parser('decode', help='Decompress a .grin file')
    decode_parser.add_argument('infile', help='.grin file to decompress')
    decode_parser.add_argument('outfile', help='Path of the restored file')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    grin = Grin(verbose=not args.quiet)

    try:
        if args.command == 'encode':
            grin.encode_file(args.infile, args.outfile)

        elif args.command == 'decode':
            grin.decode_file(args.infile, args.outfile)

    except (ValueError, LookupError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
