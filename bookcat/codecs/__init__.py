"""
Interchange codecs for bookcat catalogs.

- CSV: full-fidelity export and header-driven import
- HTML: table document for spreadsheet and print export, and its import
"""

from .csv_codec import encode_csv, decode_csv, parse_csv_line, CSV_HEADERS
from .html_codec import encode_html, decode_html, HTML_COLUMNS

__all__ = [
    'encode_csv',
    'decode_csv',
    'parse_csv_line',
    'CSV_HEADERS',
    'encode_html',
    'decode_html',
    'HTML_COLUMNS',
]
