#!/usr/bin/env python3
"""
Main execution module for the S3 media migration tool
"""

from s3_media_migrator.cli.commands import main

if __name__ == "__main__":
    main()
