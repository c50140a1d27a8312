"""PDF text extraction for uploaded CVs and job descriptions."""

import io
import logging
import re

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from app.exceptions.document import DocumentExtractionError


logger = logging.getLogger(__name__)

_REPEATED_SPACES = re.compile(r"[ ]{2,}")
_REPEATED_NEWLINES = re.compile(r"\n{2,}")


class TextExtractor:
    """Reads text out of PDF bytes and normalizes its whitespace."""

    @staticmethod
    def clean_text(raw_text: str | None) -> str:
        text = (raw_text or "").replace("\r", "")
        text = _REPEATED_SPACES.sub(" ", text)
        text = _REPEATED_NEWLINES.sub("\n", text)
        return text.strip()

    def extract_from_pdf(self, data: bytes) -> str:
        try:
            reader = PdfReader(io.BytesIO(data))
            if reader.is_encrypted:
                raise DocumentExtractionError("Cannot extract text from an encrypted PDF")
            pages = [page.extract_text() or "" for page in reader.pages]
        except DocumentExtractionError:
            raise
        except (PyPdfError, ValueError, KeyError, OSError) as e:
            logger.error(f"PDF extraction failed: {str(e)}")
            raise DocumentExtractionError("Unable to read the CV") from e

        text = self.clean_text("\n".join(pages))
        if not text:
            raise DocumentExtractionError("No text could be extracted from the document")

        logger.info(f"Extracted {len(text)} characters from {len(pages)} PDF page(s)")
        return text
