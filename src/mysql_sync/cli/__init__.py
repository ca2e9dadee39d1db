"""
Command-line interface for mysql-sync.

Available commands:
- compare: compare table structures and write sync scripts
- sync: run the periodic data sync
"""

import sys

from .commands import cmd_compare, cmd_sync
from .parser import create_parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the mysql-sync CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == 'compare':
        sys.exit(cmd_compare(args))
    elif args.command == 'sync':
        sys.exit(cmd_sync(args))
    else:
        parser.print_help()
        sys.exit(1)


__all__ = [
    'main',
    'cmd_compare',
    'cmd_sync',
    'create_parser',
]


if __name__ == '__main__':
    main()
