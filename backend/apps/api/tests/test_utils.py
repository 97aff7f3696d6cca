import unittest
from rest_framework import status
from apps.api.utils import error_response


class ErrorResponseTests(unittest.TestCase):
    def test_default_status_mapping_and_details(self):
        resp = error_response("NOT_FOUND", "missing", {"id": 1})
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["error"]["code"], "NOT_FOUND")
        self.assertEqual(resp.data["error"]["status"], status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["error"]["details"], {"id": 1})

    def test_custom_status_override(self):
        resp = error_response("UNKNOWN", "oops", http_status=status.HTTP_202_ACCEPTED)
        self.assertEqual(resp.status_code, status.HTTP_202_ACCEPTED)
        self.assertEqual(resp.data["error"]["message"], "oops")

    def test_token_code_maps_to_forbidden(self):
        resp = error_response("csrf_token_invalid", "expired", hint="Fetch a new token")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["error"]["code"], "CSRF_TOKEN_INVALID")
        self.assertEqual(resp.data["error"]["hint"], "Fetch a new token")

    def test_empty_code_or_message_is_rejected(self):
        with self.assertRaises(ValueError):
            error_response("", "message")
        with self.assertRaises(ValueError):
            error_response("NOT_FOUND", " ")
