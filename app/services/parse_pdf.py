"""
PDF metadata via pdfplumber.

- count_pages(path): total pages, which the citation viewer needs to know
  whether a citation's page is actually reachable.
- page_size(path, page): (width, height) in PDF points, for turning a
  normalized bbox into an overlay rectangle.

Text extraction itself happens in the backend; this module only reads what
the viewer needs.
"""

from pathlib import Path
from typing import Tuple, Union

import pdfplumber

from app.util.logger import get_logger


def count_pages(path: Union[str, Path]) -> int:
    """Number of pages in the PDF at `path`."""
    logger = get_logger("parse_pdf")
    try:
        with pdfplumber.open(path) as pdf:
            total = len(pdf.pages)
    except Exception as e:
        logger.error(f"Error opening PDF {path}: {str(e)}")
        raise
    logger.debug(f"{path}: {total} pages")
    return total


def page_size(path: Union[str, Path], page: int) -> Tuple[float, float]:
    """(width, height) of a 1-based page."""
    with pdfplumber.open(path) as pdf:
        if page < 1 or page > len(pdf.pages):
            raise ValueError(f"Page {page} out of range (1..{len(pdf.pages)})")
        p = pdf.pages[page - 1]
        return float(p.width), float(p.height)
