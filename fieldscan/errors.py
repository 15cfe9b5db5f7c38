from __future__ import annotations


class FieldScanError(Exception):
    """Base class for all fieldscan errors"""


class OCRInitError(FieldScanError):
    """The OCR engine could not be initialized; scanning cannot proceed"""


class RecognitionError(FieldScanError):
    """A single recognition call failed (engine error, timeout, bad image)"""


class CaptureSourceError(FieldScanError):
    """The camera or still image could not be opened"""
