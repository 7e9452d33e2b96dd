"""Synthetic hourly Parquet file generator.

Writes 100 synthetic records for one target hour into
``<prefix>/year=Y/month=M/day=D/hour=H/<random>.parquet``, either
immediately or paced across the hour to simulate a live source.

Usage:
    hourgen --quick --datetime 2024031507
    python -m hourgen -p s3://bucket/testfiles
"""

__version__ = "1.0.0"
