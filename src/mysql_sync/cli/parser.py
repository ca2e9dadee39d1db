"""Argument parser for the mysql-sync CLI."""

import argparse


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="mysql-sync",
        description="Keep two MySQL databases aligned in structure and data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compare one table and write <table>_<timestamp>.json/.sql
  mysql-sync compare --config config.yaml --source prod --target staging --table orders

  # Compare every table into a single merged plan
  mysql-sync compare --config config.yaml --source prod --target staging --merge-output

  # Run the data sync loop on the configured interval
  mysql-sync sync --config config.yaml

  # Run one sync tick and exit
  mysql-sync sync --config config.yaml --once
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: from config, else INFO)'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Emit JSON log lines'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Compare command ==========
    compare_parser = subparsers.add_parser(
        'compare', help='Compare table structures and write sync scripts'
    )
    compare_parser.add_argument('--config', required=True, help='YAML configuration file')
    compare_parser.add_argument(
        '--source', required=True, help='Source database name (from the databases section)'
    )
    compare_parser.add_argument(
        '--target', required=True, help='Target database name (from the databases section)'
    )
    compare_parser.add_argument(
        '--table', help='Table to compare (default: every table in the source)'
    )
    compare_parser.add_argument(
        '--merge-output',
        action='store_true',
        help='Write one merged plan instead of one per table (also options.merge_output)'
    )
    compare_parser.add_argument(
        '--output-dir', help='Directory for generated files (default: options.output_dir)'
    )

    # ========== Sync command ==========
    sync_parser = subparsers.add_parser('sync', help='Run the periodic data sync')
    sync_parser.add_argument('--config', required=True, help='YAML configuration file')
    sync_parser.add_argument(
        '--once', action='store_true', help='Run a single tick and exit'
    )
    sync_parser.add_argument(
        '--no-metrics-server',
        action='store_true',
        help='Do not expose Prometheus metrics on server.port'
    )

    return parser
