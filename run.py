#!/usr/bin/env python3
"""
Run Video Scraper Server

Usage:
    python run.py
"""

import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from video_scraper.server import main

if __name__ == '__main__':
    main()
