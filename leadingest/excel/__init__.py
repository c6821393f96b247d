"""Spreadsheet decoding for uploaded lead files."""
