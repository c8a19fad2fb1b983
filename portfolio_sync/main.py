#!/usr/bin/env python3
"""
Portfolio Sync
Entry point for ``python -m portfolio_sync.main``
"""
from .cli import main

if __name__ == "__main__":
    main()
