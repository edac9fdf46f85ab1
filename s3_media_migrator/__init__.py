#!/usr/bin/env python3
"""
WordPress media library to S3 migration tool
"""

__version__ = "0.1.0"
