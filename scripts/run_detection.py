#!/usr/bin/env python3
"""
Run mule-ring detection over a transactions CSV and print or save the report.

Usage:
    python scripts/run_detection.py --input transactions.csv
    python scripts/run_detection.py --input transactions.csv --output report.json
"""

import argparse
import json
from pathlib import Path
from dotenv import load_dotenv
from loguru import logger

from ringwatch import setup_logger
from ringwatch.analyzers import FraudDetectionPipeline
from ringwatch.ingestion import parse_transactions_csv


def main():
    parser = argparse.ArgumentParser(description='Ringwatch Detection')
    parser.add_argument('--input', required=True, help='Path to transactions CSV')
    parser.add_argument('--output', help='Path to write the JSON report (default: stdout)')
    parser.add_argument('--config', help='Path to a custom detection settings JSON')
    args = parser.parse_args()

    load_dotenv()

    service_name = 'ringwatch-detection'
    setup_logger(service_name)

    content = Path(args.input).read_bytes()
    transactions = parse_transactions_csv(content)

    pipeline = FraudDetectionPipeline(config_path=args.config)
    result = pipeline.detect(transactions)
    report = json.dumps(result.to_report(), indent=2, default=str)

    if args.output:
        Path(args.output).write_text(report)
        logger.info(f"Report written to {args.output}")
    else:
        print(report)


if __name__ == "__main__":
    main()
