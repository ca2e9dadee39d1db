"""
mysql-sync: keep two MySQL-compatible databases aligned.

Two engines live here:
- structure: diff table structure (columns, indexes, primary keys) and
  render ordered DDL scripts that drive the target toward the source
- replication: detect row drift per table pair, repair missing columns,
  upsert source rows into the target in pages and prune rows the source
  no longer has
"""

__version__ = "0.3.0"
