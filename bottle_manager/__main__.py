#!/usr/bin/env python3
"""
Bottle module entry point
Allows running: python3 -m bottle_manager
"""

from bottle_manager.cli import main

if __name__ == '__main__':
    main()
