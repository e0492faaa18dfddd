#!/usr/bin/env python3
"""
Peridot Liquidator
Entry point: python -m peridot_liquidator.main run
"""
from .cli import main

if __name__ == "__main__":
    main()
