"""
Tests for shaping batch results into HTTP responses.
"""

import json
import unittest

from services.upload import BatchResult, UploadFailure, UploadSuccess, build_response, format_success_rate
from services.upload.response_builder import build_error_response
from services.upload.task import ThumbnailLink
from utils.error_handlers import RequestError


def body_of(response):
    return json.loads(response.body)


def make_success(i: int, thumbnail: bool = False) -> UploadSuccess:
    return UploadSuccess(
        url=f"https://img.example.com/file/ID{i}.png",
        file_name=f"f{i}.png",
        size=100 + i,
        remote_file_id=f"ID{i}",
        extension="png",
        width=640,
        height=480,
        thumbnail=ThumbnailLink(src=f"https://img.example.com/file/TH{i}.png", width=90, height=60)
        if thumbnail else None,
        elapsed_ms=12,
    )


class TestFormatSuccessRate(unittest.TestCase):

    def test_three_of_five(self):
        self.assertEqual(format_success_rate(3, 5), "60.0%")

    def test_rounding(self):
        self.assertEqual(format_success_rate(1, 3), "33.3%")
        self.assertEqual(format_success_rate(2, 2), "100.0%")

    def test_empty_batch_does_not_divide(self):
        self.assertEqual(format_success_rate(0, 0), "0.0%")

    def test_rate_has_a_single_string_form(self):
        result = BatchResult(total=2)
        result.add(UploadFailure("a.png", "nope"))
        result.add(UploadFailure("b.png", "nope"))

        self.assertFalse(hasattr(result, "success_rate"))
        self.assertIsInstance(body_of(build_response(result))["successRate"], str)


class TestBuildResponse(unittest.TestCase):

    def partial_result(self) -> BatchResult:
        result = BatchResult(total=5)
        for i in range(3):
            result.add(make_success(i, thumbnail=(i == 0)))
        result.add(UploadFailure("big.iso", "File too large. Maximum size is 10GiB"))
        result.add(UploadFailure("x.png", "Upstream error 400: Bad Request"))
        return result

    def test_structured_partial_success(self):
        response = build_response(self.partial_result())
        body = body_of(response)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(body["total"], 5)
        self.assertEqual(body["successCount"], 3)
        self.assertEqual(body["failCount"], 2)
        self.assertEqual(body["successRate"], "60.0%")
        self.assertEqual(body["failed"][0], {"fileName": "big.iso", "error": "File too large. Maximum size is 10GiB"})

        first = body["successful"][0]
        self.assertEqual(first["src"], "https://img.example.com/file/ID0.png")
        self.assertEqual(first["fileName"], "f0.png")
        self.assertEqual(first["elapsedMs"], 12)
        self.assertEqual(first["thumbnail"], {"src": "https://img.example.com/file/TH0.png", "width": 90, "height": 60})
        self.assertIsNone(body["successful"][1]["thumbnail"])

    def test_legacy_bare_array(self):
        response = build_response(self.partial_result(), "legacy")
        body = body_of(response)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(body), 3)
        self.assertEqual(set(body[0]), {"src", "thumbnail"})
        self.assertEqual(body[0]["thumbnail"]["src"], "https://img.example.com/file/TH0.png")

    def test_all_failed_is_500_with_details(self):
        result = BatchResult(total=2)
        result.add(UploadFailure("a.png", "File is empty (0 bytes)"))
        result.add(UploadFailure("b.png", "Network error after 3 attempts"))

        response = build_response(result)
        body = body_of(response)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(body["error"], "All files failed to upload")
        self.assertIn("a.png: File is empty", body["details"])
        self.assertEqual(body["successCount"], 0)
        self.assertEqual(body["failCount"], 2)
        self.assertEqual(body["successRate"], "0.0%")

    def test_all_failed_legacy(self):
        result = BatchResult(total=1)
        result.add(UploadFailure("a.png", "boom"))

        response = build_response(result, "legacy")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(body_of(response), {"error": "All files failed to upload", "details": "a.png: boom"})

    def test_error_before_orchestration(self):
        response = build_error_response(RequestError("Malformed multipart body", details={"reason": "no boundary"}))
        body = body_of(response)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(body["error"], "Malformed multipart body")
        self.assertEqual(body["details"], "no boundary")
        self.assertEqual(body["total"], 0)
        self.assertEqual(body["successRate"], "0.0%")

    def test_unexpected_error_legacy(self):
        response = build_error_response(RuntimeError("kaput"), "legacy")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(body_of(response), {"error": "kaput", "details": "No additional details"})
