"""Tests for tamper heuristics."""

from io import BytesIO

import piexif
import pytest
from PIL import Image

from truthprevails.services import tamper
from truthprevails.shared.errors import ValidationFailedError


def make_jpeg(zeroth=None, exif=None, gps=None) -> bytes:
    """Small JPEG, with an EXIF block when any IFD is given."""
    buf = BytesIO()
    img = Image.new("RGB", (16, 12), color=(200, 30, 30))
    if zeroth is None and exif is None and gps is None:
        img.save(buf, format="JPEG")
    else:
        exif_bytes = piexif.dump(
            {"0th": zeroth or {}, "Exif": exif or {}, "GPS": gps or {}, "1st": {}, "thumbnail": None}
        )
        img.save(buf, format="JPEG", exif=exif_bytes)
    return buf.getvalue()


CAMERA = {piexif.ImageIFD.Make: b"Canon", piexif.ImageIFD.Model: b"EOS R5"}
ORIGINAL = {piexif.ExifIFD.DateTimeOriginal: b"2024:05:01 10:00:00"}


def _gps(lat_deg, lng_deg):
    return {
        piexif.GPSIFD.GPSLatitudeRef: b"N",
        piexif.GPSIFD.GPSLatitude: ((lat_deg, 1), (0, 1), (0, 1)),
        piexif.GPSIFD.GPSLongitudeRef: b"E",
        piexif.GPSIFD.GPSLongitude: ((lng_deg, 1), (0, 1), (0, 1)),
    }


class TestImageHeuristics:
    def test_no_exif_is_suspicious(self):
        result = tamper.analyze_image(make_jpeg())

        assert result.status == "suspicious"
        assert result.confidence == 0.7
        assert "No EXIF metadata" in result.details

    def test_camera_original_is_clean(self):
        result = tamper.analyze_image(make_jpeg(zeroth=CAMERA, exif=ORIGINAL))

        assert result.status == "clean"
        assert result.confidence == pytest.approx(0.9)
        assert result.metadata["make"] == "Canon"
        assert result.metadata["model"] == "EOS R5"
        assert result.metadata["dateTimeOriginal"] == "2024-05-01T10:00:00"
        assert result.metadata["imageWidth"] == 16
        assert result.metadata["imageHeight"] == 12

    def test_digitized_date_counts_as_creation(self):
        exif = {piexif.ExifIFD.DateTimeDigitized: b"2024:05:01 10:00:00"}
        result = tamper.analyze_image(make_jpeg(zeroth=CAMERA, exif=exif))

        assert result.status == "clean"

    def test_editing_software(self):
        zeroth = {**CAMERA, piexif.ImageIFD.Software: b"Adobe Photoshop 25.0"}
        result = tamper.analyze_image(make_jpeg(zeroth=zeroth, exif=ORIGINAL))

        assert result.status == "suspicious"
        assert result.confidence == pytest.approx(0.7)
        assert result.details == "Some suspicious indicators detected"
        assert result.metadata["software"] == "Adobe Photoshop 25.0"

    def test_indicators_accumulate(self):
        zeroth = {**CAMERA, piexif.ImageIFD.Software: b"GIMP 2.10"}
        result = tamper.analyze_image(make_jpeg(zeroth=zeroth))

        assert result.status == "suspicious"
        assert result.confidence == pytest.approx(0.4)
        assert "File was edited with image editing software" in result.details
        assert "Missing original creation timestamp" in result.details

    def test_modified_before_original(self):
        zeroth = {**CAMERA, piexif.ImageIFD.DateTime: b"2023:01:01 00:00:00"}
        result = tamper.analyze_image(make_jpeg(zeroth=zeroth, exif=ORIGINAL))

        assert result.status == "suspicious"
        assert result.confidence == pytest.approx(0.5)
        assert "Modification date is before creation date" in result.details

    def test_modified_after_original_is_fine(self):
        zeroth = {**CAMERA, piexif.ImageIFD.DateTime: b"2024:06:01 00:00:00"}
        result = tamper.analyze_image(make_jpeg(zeroth=zeroth, exif=ORIGINAL))

        assert result.status == "clean"

    def test_invalid_gps(self):
        result = tamper.analyze_image(make_jpeg(zeroth=CAMERA, exif=ORIGINAL, gps=_gps(95, 10)))

        assert result.status == "suspicious"
        assert result.confidence == pytest.approx(0.6)
        assert result.metadata["gpsLatitude"] == pytest.approx(95.0)

    def test_valid_gps(self):
        result = tamper.analyze_image(make_jpeg(zeroth=CAMERA, exif=ORIGINAL, gps=_gps(48, 2)))

        assert result.status == "clean"
        assert result.metadata["gpsLongitude"] == pytest.approx(2.0)

    def test_penalties_stack(self):
        zeroth = {**CAMERA, piexif.ImageIFD.Software: b"Canva"}
        result = tamper.analyze_image(make_jpeg(zeroth=zeroth, gps=_gps(95, 200)))

        # -0.2 software, -0.3 missing dates, -0.3 gps
        assert result.confidence == pytest.approx(0.1)
        assert result.status == "suspicious"

    def test_unreadable_image_fails(self):
        result = tamper.analyze_image(b"definitely not an image")

        assert result.status == "failed"
        assert result.confidence == 0.0


class TestPdfHeuristics:
    def test_bad_signature(self):
        result = tamper.analyze_pdf(b"<html>not a pdf</html>")

        assert result.status == "suspicious"
        assert result.confidence == 0.0

    def test_plain_pdf(self):
        result = tamper.analyze_pdf(b"%PDF-1.7\n1 0 obj\n<< /Type /Catalog >>\nendobj\n")

        assert result.status == "clean"
        assert result.confidence == pytest.approx(0.8)

    def test_editor_terms_lower_confidence_with_floor(self):
        data = b"%PDF-1.4\n<< /Creator (Microsoft Word) /Producer (Adobe PDF Library 15.0) >>\n"
        result = tamper.analyze_pdf(data)

        # /Creator, /Producer and Adobe
        assert result.status == "clean"
        assert result.confidence == pytest.approx(0.5)
        assert result.metadata["creator"] == "Microsoft Word"
        assert result.metadata["producer"] == "Adobe PDF Library 15.0"
        assert "/Creator" in result.details

    def test_single_term(self):
        result = tamper.analyze_pdf(b"%PDF-1.4\n<< /Producer (Skia) >>\n")

        assert result.confidence == pytest.approx(0.7)

    def test_terms_beyond_scan_window_are_ignored(self):
        data = b"%PDF-1.4\n" + b" " * 1200 + b"/Creator (Acrobat)"
        result = tamper.analyze_pdf(data)

        assert result.confidence == pytest.approx(0.8)
        assert result.metadata["creator"] is None


class TestDocumentHeuristics:
    def test_small_file(self):
        result = tamper.analyze_document(b"tiny", "a.doc", "application/msword")

        assert result.status == "suspicious"
        assert result.confidence == 0.3
        assert result.metadata["fileSize"] == 4

    def test_plain_document(self):
        result = tamper.analyze_document(b"x" * 500, "a.doc", "application/msword")

        assert result.status == "clean"
        assert result.confidence == pytest.approx(0.7)

    def test_office_tools_case_insensitive(self):
        data = b"generated by LIBREOFFICE and microsoft word " + b"x" * 200
        result = tamper.analyze_document(data, "a.doc", "application/msword")

        assert result.confidence == pytest.approx(0.5)
        assert "Microsoft Word" in result.details
        assert "LibreOffice" in result.details

    def test_single_tool(self):
        data = b"Google Docs export " + b"x" * 200
        result = tamper.analyze_document(data, "a.docx", "application/msword")

        assert result.confidence == pytest.approx(0.6)


class TestDispatch:
    def test_routes_by_media_type(self):
        assert tamper.analyze(make_jpeg(), "a.jpg", "image/jpeg").confidence == 0.7
        assert tamper.analyze(b"nope", "a.pdf", "application/pdf").confidence == 0.0
        assert tamper.analyze(b"tiny", "a.mp4", "video/mp4").confidence == 0.3

    def test_file_info_attached(self):
        result = tamper.analyze(b"tiny", "a.mp4", "video/mp4")

        assert result.file_info.name == "a.mp4"
        assert result.file_info.type == "video/mp4"
        assert result.file_info.size == 4

    def test_batch_summary(self):
        analyses, summary = tamper.analyze_batch(
            [
                ("a.jpg", "image/jpeg", make_jpeg(zeroth=CAMERA, exif=ORIGINAL)),
                ("b.pdf", "application/pdf", b"garbage"),
                ("c.jpg", "image/jpeg", b"broken"),
            ]
        )

        assert [a.status for a in analyses] == ["clean", "suspicious", "failed"]
        assert summary.total_files == 3
        assert summary.clean_files == 1
        assert summary.suspicious_files == 1
        assert summary.failed_analyses == 1
        assert summary.overall_confidence == pytest.approx(0.3)

    def test_batch_check_rejects_single_entry(self):
        def check(data, content_type):
            if content_type != "application/pdf":
                raise ValidationFailedError("Invalid file type", field="file")

        analyses, summary = tamper.analyze_batch(
            [
                ("a.pdf", "application/pdf", b"%PDF-1.4\n"),
                ("b.gif", "image/gif", b"GIF89a"),
            ],
            check=check,
        )

        assert [a.status for a in analyses] == ["clean", "failed"]
        assert analyses[1].error == "Invalid file type"
        assert analyses[1].details == "Invalid file type"
        assert analyses[1].file_info.name == "b.gif"
        assert summary.failed_analyses == 1
