#!/usr/bin/env python3
"""Convenience runner for the ride companion replay CLI.

Usage:
    python run.py --route-csv route.csv --simulate-kmh 25
"""
import logging
import sys

from ride_companion.main import main

if __name__ == "__main__":
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    sys.exit(main())
