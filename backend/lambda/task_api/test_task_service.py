"""test_task_service.py — Unit tests for task_service helper modules.

Run from the task_api directory:
    python3 -m pytest test_task_service.py -v
"""

from __future__ import annotations

import json
import os
import sys
import unittest
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.dirname(__file__))

from task_service.aws_clients import _get_ddb, _reset_clients
from task_service.errors import ValidationError
from task_service.http_utils import _error, _json_body, _path_method, _query_params, _response
from task_service.models import Task
from task_service.serialization import _deserialize, _emit_metric, _now_z, _serialize


class HttpUtilsTests(unittest.TestCase):
    def test_response_format(self):
        resp = _response(200, {"key": "val"})
        self.assertEqual(resp["statusCode"], 200)
        self.assertEqual(resp["headers"]["Content-Type"], "application/json")
        self.assertIn("Access-Control-Allow-Origin", resp["headers"])
        self.assertEqual(json.loads(resp["body"]), {"key": "val"})

    def test_error_envelope(self):
        resp = _error(409, "Task already exists", taskId="t-1")
        body = json.loads(resp["body"])
        self.assertFalse(body["success"])
        self.assertEqual(body["error"], "Task already exists")
        self.assertEqual(body["error_envelope"]["code"], "CONFLICT")
        self.assertFalse(body["error_envelope"]["retryable"])
        self.assertEqual(body["taskId"], "t-1")

    def test_server_error_is_retryable(self):
        body = json.loads(_error(500, "Internal server error")["body"])
        self.assertEqual(body["error_envelope"]["code"], "INTERNAL_ERROR")
        self.assertTrue(body["error_envelope"]["retryable"])

    def test_error_extra_headers(self):
        resp = _error(405, "Method not allowed", headers={"Allow": "GET"})
        self.assertEqual(resp["headers"]["Allow"], "GET")

    def test_json_body_empty(self):
        self.assertEqual(_json_body({"body": None}), {})
        self.assertEqual(_json_body({"body": ""}), {})

    def test_json_body_invalid(self):
        with self.assertRaises(ValidationError):
            _json_body({"body": "{oops"})
        with self.assertRaises(ValidationError):
            _json_body({"body": "[]"})
        with self.assertRaises(ValidationError):
            _json_body({"body": "@@@", "isBase64Encoded": True})

    def test_path_method_v2(self):
        event = {"requestContext": {"http": {"method": "post", "path": "/prod/tasks"}}, "rawPath": "/prod/tasks"}
        self.assertEqual(_path_method(event), ("POST", "/prod/tasks"))

    def test_path_method_v1(self):
        event = {"httpMethod": "DELETE", "path": "/tasks"}
        self.assertEqual(_path_method(event), ("DELETE", "/tasks"))

    def test_query_params_none(self):
        self.assertEqual(_query_params({"queryStringParameters": None}), {})


class SerializationTests(unittest.TestCase):
    def test_serialize_float(self):
        self.assertEqual(_serialize(1.5)["N"], "1.5")

    def test_serialize_bool(self):
        self.assertEqual(_serialize(True), {"BOOL": True})

    def test_deserialize_item(self):
        result = _deserialize({"title": {"S": "x"}, "count": {"N": "42"}, "ratio": {"N": "0.5"}})
        self.assertEqual(result, {"title": "x", "count": 42, "ratio": 0.5})

    def test_now_z_format(self):
        self.assertRegex(_now_z(), r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")

    def test_emit_metric_logs_structured_record(self):
        with self.assertLogs("task_service.serialization", level="INFO") as logs:
            _emit_metric("TasksReturned", 3)
        line = logs.output[0]
        self.assertIn("[OBSERVABILITY]", line)
        payload = json.loads(line.split("[OBSERVABILITY] ", 1)[1])
        self.assertEqual(payload["metric_name"], "TasksReturned")
        self.assertEqual(payload["metric_value"], 3)
        self.assertEqual(payload["namespace"], "TaskApp")


class TaskModelTests(unittest.TestCase):
    def test_item_round_trip(self):
        task = Task(task_id="a", title="x", created_at="2026-01-01T00:00:00.000Z", updated_at="2026-01-01T00:00:00.000Z")
        self.assertEqual(Task.from_item(task.to_item()), task)

    def test_legacy_item_defaults(self):
        task = Task.from_item({"taskId": "a", "title": "x", "createdAt": "2026-01-01T00:00:00.000Z"})
        self.assertFalse(task.completed)
        self.assertEqual(task.updated_at, task.created_at)


class AwsClientTests(unittest.TestCase):
    @patch("task_service.aws_clients.boto3")
    def test_get_ddb_singleton(self, mock_boto3):
        _reset_clients()
        mock_boto3.client.return_value = MagicMock()

        first = _get_ddb()
        second = _get_ddb()

        self.assertIs(first, second)
        mock_boto3.client.assert_called_once()
        self.assertEqual(mock_boto3.client.call_args[0][0], "dynamodb")

        _reset_clients()


if __name__ == "__main__":
    unittest.main()
