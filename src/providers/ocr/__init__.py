"""OCR provider implementations.

TesseractOCRProvider is the only engine: it reads uploaded raster images
(after ImagePreprocessor upscaling) and PDF pages rendered by PyMuPDF.
"""

from src.providers.ocr.tesseract_provider import TesseractOCRProvider

__all__ = ["TesseractOCRProvider"]
