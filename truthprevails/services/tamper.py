# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""
Metadata heuristics flagging files that may have been edited.

These are fixed-rule scores over embedded metadata, not a statistical model.
The constants below are part of the public behavior and must not drift.
"""

import logging
import re
import struct
from dataclasses import dataclass, field
from datetime import datetime
from io import BytesIO
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import piexif
from PIL import Image, UnidentifiedImageError

from truthprevails.shared.database.models import utcnow
from truthprevails.shared.errors import ValidationFailedError
from truthprevails.shared.models.schemas import BatchAnalysisSummary, FileInfo, TamperAnalysisOut

logger = logging.getLogger(__name__)

STATUS_CLEAN = "clean"
STATUS_SUSPICIOUS = "suspicious"
STATUS_FAILED = "failed"

# Image scoring
NO_EXIF_CONFIDENCE = 0.7
IMAGE_BASE_CONFIDENCE = 0.9
EDITING_SOFTWARE = ("photoshop", "gimp", "paint", "canva", "figma")
EDITING_SOFTWARE_PENALTY = 0.2
MISSING_ORIGINAL_DATE_PENALTY = 0.3
MODIFIED_BEFORE_ORIGINAL_PENALTY = 0.4
INVALID_GPS_PENALTY = 0.3
SUSPICIOUS_THRESHOLD = 0.8
DETAILED_THRESHOLD = 0.6

# PDF scoring
PDF_MAGIC = "%PDF-"
PDF_SCAN_BYTES = 1000
PDF_BASE_CONFIDENCE = 0.8
PDF_EDITOR_TERMS = (
    "/Creator",
    "/Producer",
    "/ModDate",
    "/CreationDate",
    "Adobe",
    "Acrobat",
    "PDF-XChange",
    "Foxit",
)

# Generic document scoring
MIN_DOCUMENT_BYTES = 100
SMALL_DOCUMENT_CONFIDENCE = 0.3
DOCUMENT_SCAN_BYTES = 2000
DOCUMENT_BASE_CONFIDENCE = 0.7
DOCUMENT_TOOLS = ("Microsoft Word", "Google Docs", "LibreOffice", "OpenOffice", "WPS Office")

TERM_PENALTY = 0.1
CONFIDENCE_FLOOR = 0.5

_EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"
_PDF_STRING_FIELD = r"/{name}\s*\(([^)]*)\)"


@dataclass
class TamperAnalysis:
    status: str
    details: str
    confidence: float
    metadata: Dict[str, Any] = field(default_factory=dict)
    file_info: Optional[FileInfo] = None
    error: Optional[str] = None

    def to_out(self) -> TamperAnalysisOut:
        return TamperAnalysisOut(
            status=self.status,
            details=self.details,
            confidence=round(self.confidence, 4),
            metadata=self.metadata,
            file_info=self.file_info,
            error=self.error,
        )


def _failed(kind: str) -> TamperAnalysis:
    return TamperAnalysis(STATUS_FAILED, f"Failed to analyze {kind} metadata", 0.0)


# --- Images -------------------------------------------------------------


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    elif not isinstance(value, str):
        value = str(value)
    value = value.strip("\x00 ").strip()
    return value or None


def _exif_datetime(value: Any) -> Optional[datetime]:
    text = _text(value)
    if not text:
        return None
    try:
        return datetime.strptime(text, _EXIF_DATE_FORMAT)
    except ValueError:
        return None


def _gps_degrees(value: Any, ref: Any) -> Optional[float]:
    """Decimal degrees from an EXIF (deg, min, sec) rational triple."""
    if not value:
        return None
    try:
        parts = [num / den for num, den in value]
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    while len(parts) < 3:
        parts.append(0.0)
    degrees = parts[0] + parts[1] / 60 + parts[2] / 3600
    if _text(ref) in ("S", "W"):
        degrees = -degrees
    return degrees


def _date_out(raw: Any) -> Optional[str]:
    parsed = _exif_datetime(raw)
    return parsed.isoformat() if parsed else _text(raw)


def _read_exif(data: bytes) -> Tuple[Optional[dict], Tuple[int, int]]:
    """
    Load EXIF from image bytes.

    Returns:
        (exif dict or None when the image carries no EXIF, image size)
    """
    with Image.open(BytesIO(data)) as img:
        size = img.size
        raw = img.info.get("exif") or b""
    if not raw or len(raw) <= 8:
        return None, size

    exif = piexif.load(raw)
    if not any(exif.get(ifd) for ifd in ("0th", "Exif", "GPS")):
        return None, size
    return exif, size


def analyze_image(data: bytes) -> TamperAnalysis:
    try:
        exif, (width, height) = _read_exif(data)
    except (UnidentifiedImageError, OSError, ValueError, KeyError, struct.error) as e:
        logger.warning(f"Image analysis error: {e}")
        return _failed("image")

    if exif is None:
        return TamperAnalysis(
            STATUS_SUSPICIOUS,
            "No EXIF metadata found - file may have been stripped of metadata",
            NO_EXIF_CONFIDENCE,
        )

    ifd0 = exif.get("0th") or {}
    exif_ifd = exif.get("Exif") or {}
    gps = exif.get("GPS") or {}

    software = _text(ifd0.get(piexif.ImageIFD.Software))
    original_raw = exif_ifd.get(piexif.ExifIFD.DateTimeOriginal)
    created_raw = exif_ifd.get(piexif.ExifIFD.DateTimeDigitized)
    modified_raw = ifd0.get(piexif.ImageIFD.DateTime)
    latitude = _gps_degrees(gps.get(piexif.GPSIFD.GPSLatitude), gps.get(piexif.GPSIFD.GPSLatitudeRef))
    longitude = _gps_degrees(gps.get(piexif.GPSIFD.GPSLongitude), gps.get(piexif.GPSIFD.GPSLongitudeRef))

    confidence = IMAGE_BASE_CONFIDENCE
    indicators: List[str] = []

    if software and any(editor in software.lower() for editor in EDITING_SOFTWARE):
        indicators.append("File was edited with image editing software")
        confidence -= EDITING_SOFTWARE_PENALTY

    if not _text(original_raw) and not _text(created_raw):
        indicators.append("Missing original creation timestamp")
        confidence -= MISSING_ORIGINAL_DATE_PENALTY

    original = _exif_datetime(original_raw)
    modified = _exif_datetime(modified_raw)
    if original and modified and modified < original:
        indicators.append("Modification date is before creation date")
        confidence -= MODIFIED_BEFORE_ORIGINAL_PENALTY

    if latitude is not None and longitude is not None:
        if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
            indicators.append("Invalid GPS coordinates")
            confidence -= INVALID_GPS_PENALTY

    status, details = STATUS_CLEAN, "Image appears to be authentic"
    if confidence < DETAILED_THRESHOLD:
        status, details = STATUS_SUSPICIOUS, f"Suspicious indicators found: {', '.join(indicators)}"
    elif confidence < SUSPICIOUS_THRESHOLD:
        status, details = STATUS_SUSPICIOUS, "Some suspicious indicators detected"

    metadata = {
        "software": software,
        "make": _text(ifd0.get(piexif.ImageIFD.Make)),
        "model": _text(ifd0.get(piexif.ImageIFD.Model)),
        "dateTimeOriginal": _date_out(original_raw),
        "modifyDate": _date_out(modified_raw),
        "gpsLatitude": latitude,
        "gpsLongitude": longitude,
        "imageWidth": exif_ifd.get(piexif.ExifIFD.PixelXDimension) or ifd0.get(piexif.ImageIFD.ImageWidth) or width,
        "imageHeight": exif_ifd.get(piexif.ExifIFD.PixelYDimension) or ifd0.get(piexif.ImageIFD.ImageLength) or height,
    }
    return TamperAnalysis(status, details, confidence, metadata)


# --- PDF ----------------------------------------------------------------


def _pdf_field(window: str, name: str) -> Optional[str]:
    match = re.search(_PDF_STRING_FIELD.format(name=name), window)
    if match is None:
        return None
    return match.group(1).strip() or None


def analyze_pdf(data: bytes) -> TamperAnalysis:
    if not data[:8].decode("latin-1").startswith(PDF_MAGIC):
        return TamperAnalysis(STATUS_SUSPICIOUS, "Invalid PDF format", 0.0)

    window = data[:PDF_SCAN_BYTES].decode("latin-1")
    found = [term for term in PDF_EDITOR_TERMS if term in window]

    details = "PDF appears to be authentic"
    confidence = PDF_BASE_CONFIDENCE
    if found:
        details = f"PDF contains editing software indicators: {', '.join(found)}"
        confidence = max(CONFIDENCE_FLOOR, PDF_BASE_CONFIDENCE - len(found) * TERM_PENALTY)

    metadata = {
        "creator": _pdf_field(window, "Creator"),
        "producer": _pdf_field(window, "Producer"),
        "creationDate": _pdf_field(window, "CreationDate"),
        "modifyDate": _pdf_field(window, "ModDate"),
    }
    return TamperAnalysis(STATUS_CLEAN, details, confidence, metadata)


# --- Other documents ----------------------------------------------------


def analyze_document(data: bytes, file_name: str, content_type: str) -> TamperAnalysis:
    metadata = {"fileType": content_type, "fileName": file_name, "fileSize": len(data)}

    if len(data) < MIN_DOCUMENT_BYTES:
        return TamperAnalysis(STATUS_SUSPICIOUS, "File size is unusually small", SMALL_DOCUMENT_CONFIDENCE, metadata)

    window = data[:DOCUMENT_SCAN_BYTES].decode("latin-1").lower()
    found = [tool for tool in DOCUMENT_TOOLS if tool.lower() in window]

    details = "Document appears to be authentic"
    confidence = DOCUMENT_BASE_CONFIDENCE
    if found:
        details = f"Document was created with: {', '.join(found)}"
        confidence = max(CONFIDENCE_FLOOR, DOCUMENT_BASE_CONFIDENCE - len(found) * TERM_PENALTY)
    return TamperAnalysis(STATUS_CLEAN, details, confidence, metadata)


# --- Dispatch -----------------------------------------------------------


def analyze(data: bytes, file_name: str, content_type: str) -> TamperAnalysis:
    """Run the heuristic matching the declared media type and attach file info."""
    content_type = (content_type or "").lower()
    if content_type.startswith("image/"):
        analysis = analyze_image(data)
    elif content_type == "application/pdf":
        analysis = analyze_pdf(data)
    else:
        analysis = analyze_document(data, file_name, content_type)

    analysis.file_info = FileInfo(name=file_name, type=content_type, size=len(data), analyzed_at=utcnow())
    logger.info(f"Tamper analysis of {file_name!r}: {analysis.status} ({analysis.confidence:.2f})")
    return analysis


def _failed_entry(file_name: str, content_type: str, data: bytes, reason: str) -> TamperAnalysis:
    return TamperAnalysis(
        STATUS_FAILED,
        reason,
        0.0,
        file_info=FileInfo(name=file_name, type=content_type, size=len(data), analyzed_at=utcnow()),
        error=reason,
    )


def analyze_batch(
    files: Sequence[Tuple[str, str, bytes]],
    check: Optional[Callable[[bytes, str], None]] = None,
) -> Tuple[List[TamperAnalysis], BatchAnalysisSummary]:
    """
    Analyze each (file name, content type, bytes) independently.

    ``check`` validates a single file before analysis and raises
    ValidationFailedError to reject it. A rejected or crashing file yields a
    failed entry in its position and does not stop the rest.
    """
    analyses: List[TamperAnalysis] = []
    for file_name, content_type, data in files:
        if check is not None:
            try:
                check(data, content_type)
            except ValidationFailedError as e:
                analyses.append(_failed_entry(file_name, content_type, data, e.message))
                continue
        try:
            analyses.append(analyze(data, file_name, content_type))
        except Exception as e:
            logger.exception(f"Tamper analysis crashed for {file_name!r}")
            analyses.append(_failed_entry(file_name, content_type, data, f"Failed to analyze file: {e}"))

    count = len(analyses)
    summary = BatchAnalysisSummary(
        total_files=count,
        overall_confidence=round(sum(a.confidence for a in analyses) / count, 4) if count else 0.0,
        suspicious_files=sum(1 for a in analyses if a.status == STATUS_SUSPICIOUS),
        failed_analyses=sum(1 for a in analyses if a.status == STATUS_FAILED),
        clean_files=sum(1 for a in analyses if a.status == STATUS_CLEAN),
    )
    return analyses, summary
