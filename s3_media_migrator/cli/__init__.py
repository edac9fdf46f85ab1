"""Command-line interface for the S3 media migration tool."""
